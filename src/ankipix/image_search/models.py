"""
Data models for image search results.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CandidateImage(BaseModel):
    """One image search result, not yet chosen."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Full-size image URL used on the card")
    thumbnail: Optional[str] = Field(default=None, description="Preview URL used for display")
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    source: str = Field(..., description="Provider name, e.g. 'Pixabay'")
    tags: Optional[str] = Field(default=None, description="Provider supplied description or tags")
    is_cc0: Optional[bool] = Field(default=None, description="True when the provider guarantees a free license")
    provider_id: Optional[str] = Field(default=None, description="Provider specific identifier")

    @property
    def display_url(self) -> str:
        return self.thumbnail or self.url
