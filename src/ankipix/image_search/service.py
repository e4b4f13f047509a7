"""
Image Search Client.

Runs the configured providers in priority order (Pixabay first, Bing only to
fill the remaining slots), enhances the Bing query with subject keywords and
filters the combined result by size and watermark heuristics.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from ankipix.common.reliability import retry_call
from ankipix.config_models import AnkiPixSettings

from .models import CandidateImage
from .providers import BingProvider, ImageProvider, ImageSearchError, PixabayProvider

logger = logging.getLogger(__name__)

# Pixabay previews are small, so the configured minimum is capped for filtering
FILTER_RESOLUTION_CAP = 300

WATERMARK_PATTERNS = ('getty', 'shutterstock', 'watermark', 'stock')

BIOLOGY_TERMS = (
    'cell', 'dna', 'rna', 'protein', 'enzyme', 'mitochondria', 'nucleus',
    'membrane', 'organism', 'bacteria', 'virus', 'gene', 'chromosome',
    'photosynthesis', 'respiration', 'metabolism', 'evolution', 'species',
    'anatomy', 'physiology', 'neuron', 'brain', 'heart', 'lung', 'kidney',
    'blood', 'bone', 'muscle', 'tissue', 'organ', 'system',
)


def is_biology_term(keyword: str) -> bool:
    lowered = keyword.lower()
    return any(term in lowered for term in BIOLOGY_TERMS)


def is_vocabulary_term(keyword: str) -> bool:
    # A single word or a short phrase reads like a vocabulary entry
    return len(keyword.split(' ')) <= 2 and len(keyword) < 20


class ImageSearchClient:
    """Searches images for a term across the configured providers."""

    def __init__(
        self,
        settings: AnkiPixSettings,
        providers: Optional[Sequence[ImageProvider]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.settings = settings
        self.providers = list(providers) if providers is not None else self._default_providers(settings)
        self._sleep = sleep

    @staticmethod
    def _default_providers(settings: AnkiPixSettings) -> List[ImageProvider]:
        search = settings.search
        common = {"timeout": search.timeout_seconds, "max_query_length": search.max_query_length}
        return [
            PixabayProvider(search.pixabay_api_key, min_resolution=settings.image_quality.min_resolution, **common),
            BingProvider(search.bing_api_key, **common),
        ]

    def enhance_keyword(self, keyword: str) -> str:
        enhanced = keyword
        tags = self.settings.subject_tags

        if tags.biology and is_biology_term(keyword):
            enhanced += ' biology diagram anatomy cell'
        if tags.english and is_vocabulary_term(keyword):
            enhanced += ' object real white background'
        if tags.exam:
            enhanced += ' concept definition diagram'
        if self.settings.image_quality.prefer_cc0:
            enhanced += ' CC0'

        # Negative keywords to filter out unwanted content
        return enhanced + ' -cartoon -art -abstract -drawing'

    def filter_by_quality(self, images: Sequence[CandidateImage]) -> List[CandidateImage]:
        quality = self.settings.image_quality
        min_resolution = min(quality.min_resolution, FILTER_RESOLUTION_CAP)

        kept = []
        for image in images:
            if image.width < min_resolution or image.height < min_resolution:
                continue
            if quality.detect_watermark:
                haystacks = (image.url.lower(), (image.tags or '').lower())
                if any(pattern in text for pattern in WATERMARK_PATTERNS for text in haystacks):
                    continue
            kept.append(image)
        return kept

    def _query_provider(self, provider: ImageProvider, term: str, max_results: int) -> List[CandidateImage]:
        search = self.settings.search
        query = self.enhance_keyword(term) if isinstance(provider, BingProvider) else term
        kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
        return retry_call(
            lambda: provider.search(query, max_results),
            max_retries=search.max_retries,
            backoff_initial_seconds=search.backoff_initial_seconds,
            backoff_multiplier=search.backoff_multiplier,
            retry_on=(ImageSearchError,),
            **kwargs,
        )

    def search_images(self, term: str, max_results: int = 9) -> List[CandidateImage]:
        """Return up to max_results filtered candidates for term.

        Raises:
            ImageSearchError: No provider is configured, or every provider that
                was tried failed without producing any result.
        """
        enabled = [p for p in self.providers if p.is_enabled]
        if not enabled:
            raise ImageSearchError("No image provider configured; set a Pixabay or Bing API key")

        results: List[CandidateImage] = []
        errors: List[str] = []
        attempted = 0
        for provider in enabled:
            remaining = max_results - len(results)
            if remaining <= 0:
                break
            attempted += 1
            try:
                found = self._query_provider(provider, term, remaining)
            except ImageSearchError as e:
                logger.warning("Image provider failed", extra={"provider": provider.name, "error": str(e)})
                errors.append(f"{provider.name}: {e}")
                continue
            logger.debug("Provider results", extra={"provider": provider.name, "results": len(found)})
            results.extend(found)

        if not results and errors and len(errors) == attempted:
            raise ImageSearchError("; ".join(errors))

        filtered = self.filter_by_quality(results)[:max_results]
        logger.info("Image search finished", extra={"term": term, "found": len(results), "kept": len(filtered)})
        return filtered
