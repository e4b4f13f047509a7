from __future__ import annotations

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SearchConfig(_Frozen):
    """Image search providers and request limits.

    - pixabay_api_key: primary provider key; Pixabay is skipped when empty
    - bing_api_key: optional supplementary provider key
    - max_candidates: how many candidates a workflow step asks for
    - max_query_length: providers reject long queries with HTTP 400, so terms are capped
    """

    pixabay_api_key: str = Field(default="", description="Pixabay API key")
    bing_api_key: str = Field(default="", description="Bing Image Search API key (optional)")
    max_candidates: int = Field(default=9, ge=1, le=200, description="Candidates requested per search")
    max_query_length: int = Field(default=100, ge=1, description="Maximum query length sent to a provider")
    timeout_seconds: float = Field(default=15.0, gt=0, description="HTTP timeout per provider request")
    max_retries: int = Field(default=1, ge=0, le=5, description="Automatic retries on transport failure")
    backoff_initial_seconds: float = Field(default=0.5, gt=0, description="Initial backoff delay in seconds")
    backoff_multiplier: float = Field(default=2.0, gt=1.0, description="Exponential backoff multiplier")


class AnkiConfig(_Frozen):
    """Where and how notes are created in Anki."""

    connect_url: str = Field(default="http://localhost:8765", description="AnkiConnect endpoint")
    deck_name: str = Field(default="AnkiPix Generated", min_length=1, description="Target deck")
    note_type: str = Field(default="Basic", min_length=1, description="Note type (model) name")
    front_field: str = Field(default="Front", min_length=1)
    back_field: str = Field(default="Back", min_length=1)
    image_field: str = Field(default="Image", min_length=1)
    timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP timeout per AnkiConnect call")


class SubjectTagsConfig(_Frozen):
    biology: bool = Field(default=True, description="Enhance biology terms with diagram keywords")
    english: bool = Field(default=True, description="Enhance vocabulary terms with object photo keywords")
    exam: bool = Field(default=True, description="Enhance all terms with concept/definition keywords")


class ImageQualityConfig(_Frozen):
    min_resolution: int = Field(default=600, ge=100, le=2000, description="Minimum image width/height in pixels")
    prefer_cc0: bool = Field(default=True, description="Prefer CC0 licensed images")
    detect_watermark: bool = Field(default=True, description="Drop images that look like watermarked stock photos")


class WorkflowConfig(_Frozen):
    max_batch_items: int = Field(default=50, ge=1, description="Maximum number of items in one batch")
    commit_delay_seconds: float = Field(default=0.1, ge=0, description="Pause between AnkiConnect calls")
    card_tags: Tuple[str, ...] = Field(default=("ankipix", "auto-generated"))
    list_tags: Tuple[str, ...] = Field(default=("ankipix", "batch-generated"))


class AnkiPixSettings(_Frozen):
    """Top-level settings.

    Instances are immutable: use ankipix.settings.update_settings to derive a
    changed copy instead of assigning to fields.
    """

    search: SearchConfig = Field(default_factory=SearchConfig)
    anki: AnkiConfig = Field(default_factory=AnkiConfig)
    subject_tags: SubjectTagsConfig = Field(default_factory=SubjectTagsConfig)
    image_quality: ImageQualityConfig = Field(default_factory=ImageQualityConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
