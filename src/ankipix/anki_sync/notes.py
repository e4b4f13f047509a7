"""
Builders for the AnkiConnect note payloads AnkiPix creates.

A payload is the dictionary passed as the `note` parameter of addNote:
{deckName, modelName, fields, tags, picture?}.
"""
from __future__ import annotations

import hashlib
import html
import posixpath
import urllib.parse
from typing import Any, Dict, Sequence

from ankipix.config_models import AnkiConfig
from ankipix.image_search.models import CandidateImage

IMAGE_CSS_CLASS = "ankipix-anki-card-image"
_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg")


def picture_filename(url: str) -> str:
    """Stable media filename for a downloaded picture.

    AnkiConnect needs a filename to store the image; hashing the URL keeps
    repeated downloads of the same image from piling up in the media folder.
    """
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:16]
    ext = posixpath.splitext(urllib.parse.urlparse(url).path)[1].lower()
    if ext not in _IMAGE_EXTENSIONS:
        ext = ".jpg"
    return f"ankipix_{digest}{ext}"


def image_tag(url: str) -> str:
    return f'<img src="{html.escape(url, quote=True)}" class="{IMAGE_CSS_CLASS}">'


def build_image_note(anki: AnkiConfig, text: str, image: CandidateImage, tags: Sequence[str]) -> Dict[str, Any]:
    """Card built by the interactive workflows: front is the item text, back shows the picture."""
    return {
        "deckName": anki.deck_name,
        "modelName": anki.note_type,
        "fields": {
            anki.front_field: text,
            anki.back_field: f"Images for: {text}<br>{image_tag(image.url)}",
        },
        "tags": list(tags),
        "picture": [{
            "url": image.url,
            "filename": picture_filename(image.url),
            "fields": [anki.back_field],
        }],
    }


def build_list_note(anki: AnkiConfig, text: str, image: CandidateImage, tags: Sequence[str]) -> Dict[str, Any]:
    """Card built by the non-interactive list command: the image URL goes in the image field."""
    return {
        "deckName": anki.deck_name,
        "modelName": anki.note_type,
        "fields": {
            anki.front_field: text,
            anki.back_field: f"Image for: {text}",
            anki.image_field: image.url,
        },
        "tags": list(tags),
    }
