"""AnkiConnect client and note payload builders.

Example usage:

from ankipix.anki_sync import AnkiConnectClient, build_image_note

client = AnkiConnectClient(settings.anki.connect_url)
client.create_note(build_image_note(settings.anki, "mitochondria", image, ["ankipix"]))
"""
from .anki_connect import (
    AnkiConnectClient,
    AnkiConnectError,
    AnkiConnectUnavailableError,
    DuplicateNoteError,
)
from .notes import build_image_note, build_list_note, picture_filename
