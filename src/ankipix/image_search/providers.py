"""
Image search providers.

Each provider turns a search term into a list of CandidateImage objects by
calling a public REST API. Providers raise ImageSearchError on transport or
parse failures; an API that answers with no hits yields an empty list.

This module uses only stdlib (urllib) for HTTP, like the AnkiConnect client.
"""
from __future__ import annotations

import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping

from pydantic import ValidationError

from .models import CandidateImage

logger = logging.getLogger(__name__)

USER_AGENT = "AnkiPix/1.0"

PIXABAY_API_URL = "https://pixabay.com/api/"
PIXABAY_MAX_PER_PAGE = 200
PIXABAY_MIN_PER_PAGE = 3

BING_API_URL = "https://api.bing.microsoft.com/v7.0/images/search"

_QUERY_JUNK = re.compile(r'[^\w\s\-]')


class ImageSearchError(RuntimeError):
    pass


def clean_query(term: str, max_length: int) -> str:
    """Strip characters providers choke on and cap the length."""
    cleaned = " ".join(_QUERY_JUNK.sub(' ', term or '').split())
    return cleaned[:max_length].strip()


def fetch_json(url: str, params: Mapping[str, Any], headers: Mapping[str, str], timeout: float) -> Any:
    full_url = f"{url}?{urllib.parse.urlencode(params)}"
    req = urllib.request.Request(full_url, headers={"User-Agent": USER_AGENT, **headers}, method="GET")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read()
    except urllib.error.HTTPError as e:
        raise ImageSearchError(f"HTTP {e.code} from {url}") from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise ImageSearchError(f"Could not reach {url}: {e}") from e
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ImageSearchError(f"Invalid JSON from {url}") from e


class ImageProvider(ABC):
    """Abstract base class for an image search API."""

    name: str = ""

    def __init__(self, api_key: str, timeout: float = 15.0, max_query_length: int = 100) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.max_query_length = max_query_length

    @property
    def is_enabled(self) -> bool:
        return bool(self.api_key)

    def _collect(self, items: Any, convert: Callable[[Mapping[str, Any]], CandidateImage]) -> List[CandidateImage]:
        """Convert raw result items, skipping any the provider returned malformed."""
        if not isinstance(items, list):
            return []
        candidates = []
        for item in items:
            try:
                candidates.append(convert(item))
            except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
                logger.warning("Skipping malformed result", extra={"provider": self.name, "error": str(e)})
        return candidates

    @abstractmethod
    def search(self, term: str, max_results: int) -> List[CandidateImage]:
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.name} (Enabled: {self.is_enabled})>"


class PixabayProvider(ImageProvider):
    """Pixabay search. Every Pixabay image is free to use, so results are marked CC0."""

    name = "Pixabay"

    def __init__(self, api_key: str, min_resolution: int = 600, **kwargs: Any) -> None:
        super().__init__(api_key, **kwargs)
        self.min_resolution = min_resolution

    def build_params(self, query: str, max_results: int) -> Dict[str, Any]:
        per_page = max(PIXABAY_MIN_PER_PAGE, min(max_results, PIXABAY_MAX_PER_PAGE))
        return {
            "key": self.api_key,
            "q": query,
            "image_type": "photo",
            "orientation": "all",
            "min_width": self.min_resolution,
            "min_height": self.min_resolution,
            "per_page": per_page,
            "safesearch": "true",
            "order": "popular",
        }

    def search(self, term: str, max_results: int) -> List[CandidateImage]:
        query = clean_query(term, self.max_query_length)
        if not query:
            return []

        logger.debug("Pixabay request", extra={"query": query, "per_page": max_results})
        data = fetch_json(
            PIXABAY_API_URL,
            self.build_params(query, max_results),
            headers={"Cache-Control": "no-cache, no-store, must-revalidate", "Pragma": "no-cache"},
            timeout=self.timeout,
        )
        if not isinstance(data, dict):
            raise ImageSearchError("Invalid Pixabay response format")
        if data.get("error"):
            raise ImageSearchError(f"Pixabay API error: {data['error']}")

        return self._collect(data.get("hits"), self._to_candidate)

    def _to_candidate(self, hit: Mapping[str, Any]) -> CandidateImage:
        return CandidateImage(
            url=hit.get("webformatURL") or hit["largeImageURL"],
            thumbnail=hit.get("previewURL"),
            width=int(hit.get("webformatWidth") or hit.get("imageWidth") or 0),
            height=int(hit.get("webformatHeight") or hit.get("imageHeight") or 0),
            source=self.name,
            tags=hit.get("tags"),
            is_cc0=True,
            provider_id=str(hit["id"]) if hit.get("id") is not None else None,
        )


class BingProvider(ImageProvider):
    """Bing Image Search. Results carry no license guarantee."""

    name = "Bing"

    def search(self, term: str, max_results: int) -> List[CandidateImage]:
        query = term.strip()[:self.max_query_length]
        if not query:
            return []

        logger.debug("Bing request", extra={"query": query, "count": max_results})
        data = fetch_json(
            BING_API_URL,
            {"q": query, "count": max_results, "imageType": "Photo", "size": "Medium", "safeSearch": "Strict"},
            headers={"Ocp-Apim-Subscription-Key": self.api_key},
            timeout=self.timeout,
        )
        if not isinstance(data, dict):
            raise ImageSearchError("Invalid Bing response format")

        return self._collect(data.get("value"), self._to_candidate)

    def _to_candidate(self, item: Mapping[str, Any]) -> CandidateImage:
        return CandidateImage(
            url=item["contentUrl"],
            thumbnail=item.get("thumbnailUrl"),
            width=int(item.get("width") or 0),
            height=int(item.get("height") or 0),
            source=self.name,
            tags=item.get("name"),
            is_cc0=False,
            provider_id=item.get("imageId"),
        )
