"""
Image search across public image APIs.

Example usage:

from ankipix.config_models import AnkiPixSettings
from ankipix.image_search import ImageSearchClient

client = ImageSearchClient(settings)
images = client.search_images("mitochondria", max_results=9)
"""
from .models import CandidateImage
from .providers import BingProvider, ImageProvider, ImageSearchError, PixabayProvider
from .service import ImageSearchClient

__all__ = [
    "CandidateImage",
    "ImageProvider",
    "PixabayProvider",
    "BingProvider",
    "ImageSearchError",
    "ImageSearchClient",
]
