"""
Keyword extraction for image searches.

This package turns a snippet of note text into a short ordered list of
image search terms.
"""

from .extractor import KeywordExtractor, normalize_item

__all__ = [
    "KeywordExtractor",
    "normalize_item",
]
