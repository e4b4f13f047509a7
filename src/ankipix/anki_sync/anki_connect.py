"""
AnkiConnect client used to create image flashcards.

Public API:
- AnkiConnectClient(url, timeout): thin wrapper over the AnkiConnect JSON API
- AnkiConnectError / AnkiConnectUnavailableError / DuplicateNoteError: typed failures

Usage example:

from ankipix.anki_sync import AnkiConnectClient, DuplicateNoteError

client = AnkiConnectClient("http://localhost:8765")
try:
    client.create_note({
        "deckName": "AnkiPix Generated",
        "modelName": "Basic",
        "fields": {"Front": "mitochondria", "Back": "..."},
        "tags": ["ankipix"],
    })
except DuplicateNoteError:
    ...

Notes:
- This module uses only stdlib (urllib) to talk to AnkiConnect.
- Duplicate detection is decided here, never by callers parsing messages.
"""
from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Dict, List, Mapping

ANKI_CONNECT_VERSION = 6

# AnkiConnect reports duplicates as "cannot create note because it is a duplicate"
_DUPLICATE_MARKERS = ("duplicate", "already exists")

logger = logging.getLogger(__name__)


class AnkiConnectError(RuntimeError):
    """Any failure reported by, or while talking to, AnkiConnect."""

    def __init__(self, message: str, action: str | None = None) -> None:
        super().__init__(message)
        self.action = action


class AnkiConnectUnavailableError(AnkiConnectError):
    """AnkiConnect could not be reached (Anki closed or add-on missing)."""


class DuplicateNoteError(AnkiConnectError):
    """An equivalent note already exists in the collection."""


def _escape_anki_query_value(value: str) -> str:
    """Escape value for Anki search query (wrap in quotes and escape quotes)."""
    if value is None:
        value = ""
    s = str(value)
    s = s.replace('\\', '\\\\').replace('"', '\\"')
    return f'"{s}"'


def _is_duplicate_error(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _DUPLICATE_MARKERS)


class AnkiConnectClient:
    def __init__(self, url: str = "http://localhost:8765", timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    def invoke(self, action: str, params: Mapping[str, Any] | None = None, *, expect_result: bool = False) -> Any:
        """Call one AnkiConnect action and return its result.

        Raises:
            AnkiConnectUnavailableError: AnkiConnect is not reachable
            DuplicateNoteError: addNote refused a duplicate
            AnkiConnectError: Any other error, or a null result when expect_result is set
        """
        payload = {
            "action": action,
            "version": ANKI_CONNECT_VERSION,
            "params": dict(params or {}),
        }
        data = json.dumps(payload).encode("utf-8")
        req = urllib.request.Request(
            self.url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        logger.debug("AnkiConnect request", extra={"action": action})
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            raise AnkiConnectError(f"AnkiConnect returned HTTP {e.code} for '{action}'", action) from e
        except (urllib.error.URLError, TimeoutError, ConnectionError) as e:
            raise AnkiConnectUnavailableError(
                f"Cannot connect to AnkiConnect at {self.url}. "
                "Please ensure Anki is running with the AnkiConnect add-on installed.",
                action,
            ) from e

        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise AnkiConnectError(f"Invalid JSON from AnkiConnect for '{action}'", action) from e
        if not isinstance(parsed, dict) or "result" not in parsed or "error" not in parsed:
            raise AnkiConnectError(f"Unexpected AnkiConnect response shape for '{action}'", action)

        error = parsed.get("error")
        if error is not None:
            message = f"AnkiConnect error on action '{action}': {error}"
            if action in ("addNote", "addNotes") and _is_duplicate_error(str(error)):
                raise DuplicateNoteError(message, action)
            raise AnkiConnectError(message, action)

        result = parsed.get("result")
        if result is None and expect_result:
            raise AnkiConnectError(f"AnkiConnect returned no result for '{action}'", action)
        return result

    def version(self) -> int:
        return int(self.invoke("version", expect_result=True))

    def test_connection(self) -> bool:
        try:
            self.version()
        except AnkiConnectError as e:
            logger.warning("AnkiConnect connection test failed", extra={"url": self.url, "error": str(e)})
            return False
        return True

    def deck_names(self) -> List[str]:
        return list(self.invoke("deckNames", expect_result=True))

    def create_deck(self, name: str) -> None:
        self.invoke("createDeck", {"deck": name})

    def ensure_deck(self, name: str) -> None:
        """Create the deck unless it already exists."""
        if name not in self.deck_names():
            logger.info("Creating deck", extra={"deck": name})
            self.create_deck(name)

    def model_names(self) -> List[str]:
        """Get list of all note type names."""
        return list(self.invoke("modelNames") or [])

    def model_field_names(self, model_name: str) -> List[str]:
        return list(self.invoke("modelFieldNames", {"modelName": model_name}) or [])

    def find_notes(self, query: str) -> List[int]:
        return list(self.invoke("findNotes", {"query": query}) or [])

    def add_note(self, note: Mapping[str, Any]) -> int:
        return int(self.invoke("addNote", {"note": dict(note)}, expect_result=True))

    def find_duplicates(self, note: Mapping[str, Any]) -> List[int]:
        """Find notes in the same deck whose first field equals this note's first field."""
        fields: Dict[str, str] = dict(note.get("fields") or {})
        if not fields:
            return []
        front_name, front_value = next(iter(fields.items()))
        query = " ".join([
            f'deck:{_escape_anki_query_value(note["deckName"])}',
            f'{front_name}:{_escape_anki_query_value(front_value)}',
        ])
        return self.find_notes(query)

    def create_note(self, note: Mapping[str, Any]) -> int:
        """Ensure the target deck exists, refuse duplicates and add the note.

        Returns:
            The new note id

        Raises:
            DuplicateNoteError: A note with the same front already exists in the deck
            AnkiConnectError: Deck creation or note creation failed
        """
        self.ensure_deck(note["deckName"])
        existing = self.find_duplicates(note)
        if existing:
            raise DuplicateNoteError(
                f"Note already exists in deck '{note['deckName']}' (note ids: {existing})", "findNotes"
            )
        note_id = self.add_note(note)
        logger.debug("Note created", extra={"note_id": note_id, "deck": note["deckName"]})
        return note_id
