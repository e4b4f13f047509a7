from __future__ import annotations

import json
import urllib.error
import urllib.request

import pytest

from ankipix.anki_sync.anki_connect import (
    AnkiConnectClient,
    AnkiConnectError,
    AnkiConnectUnavailableError,
    DuplicateNoteError,
)

from conftest import FakeResponse

NOTE = {
    "deckName": "Biology",
    "modelName": "Basic",
    "fields": {"Front": 'the "cell"', "Back": "Images for: cell"},
    "tags": ["ankipix"],
}


class FakeAnkiConnect:
    """Answers AnkiConnect actions from a dict of action -> (result, error)."""

    def __init__(self, answers):
        self.answers = answers
        self.requests = []

    def __call__(self, req, timeout=None):
        body = json.loads(req.data.decode("utf-8"))
        self.requests.append(body)
        result, error = self.answers[body["action"]]
        return FakeResponse({"result": result, "error": error})

    @property
    def actions(self):
        return [body["action"] for body in self.requests]


@pytest.fixture
def anki(monkeypatch):
    def install(answers):
        fake = FakeAnkiConnect(answers)
        monkeypatch.setattr(urllib.request, "urlopen", fake)
        return fake

    return install


def test_invoke_sends_versioned_payload(anki):
    fake = anki({"deckNames": (["Default"], None)})

    assert AnkiConnectClient().deck_names() == ["Default"]
    assert fake.requests == [{"action": "deckNames", "version": 6, "params": {}}]


def test_error_field_raises(anki):
    anki({"createDeck": (None, "collection is not available")})

    with pytest.raises(AnkiConnectError) as excinfo:
        AnkiConnectClient().create_deck("Biology")

    assert not isinstance(excinfo.value, DuplicateNoteError)
    assert excinfo.value.action == "createDeck"


def test_add_note_duplicate_error_is_typed(anki):
    anki({"addNote": (None, "cannot create note because it is a duplicate")})

    with pytest.raises(DuplicateNoteError):
        AnkiConnectClient().add_note(NOTE)


def test_null_result_for_expected_value_raises(anki):
    anki({"addNote": (None, None)})

    with pytest.raises(AnkiConnectError, match="no result"):
        AnkiConnectClient().add_note(NOTE)


def test_unreachable_endpoint(monkeypatch):
    def refuse(req, timeout=None):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(urllib.request, "urlopen", refuse)
    client = AnkiConnectClient("http://localhost:1")

    with pytest.raises(AnkiConnectUnavailableError):
        client.version()
    assert client.test_connection() is False


def test_malformed_response_raises(monkeypatch):
    monkeypatch.setattr(urllib.request, "urlopen", lambda req, timeout=None: FakeResponse({"unexpected": True}))
    with pytest.raises(AnkiConnectError, match="response shape"):
        AnkiConnectClient().invoke("version")

    monkeypatch.setattr(urllib.request, "urlopen", lambda req, timeout=None: FakeResponse(b"<html>"))
    with pytest.raises(AnkiConnectError, match="Invalid JSON"):
        AnkiConnectClient().invoke("version")


def test_test_connection_ok(anki):
    anki({"version": (6, None)})
    assert AnkiConnectClient().test_connection() is True


def test_create_note_creates_missing_deck_and_adds(anki):
    fake = anki({
        "deckNames": (["Default"], None),
        "createDeck": (1234, None),
        "findNotes": ([], None),
        "addNote": (1496198395707, None),
    })

    note_id = AnkiConnectClient().create_note(NOTE)

    assert note_id == 1496198395707
    assert fake.actions == ["deckNames", "createDeck", "findNotes", "addNote"]
    assert fake.requests[2]["params"]["query"] == 'deck:"Biology" Front:"the \\"cell\\""'
    assert fake.requests[3]["params"]["note"] == NOTE


def test_create_note_refuses_existing_front(anki):
    fake = anki({
        "deckNames": (["Biology"], None),
        "findNotes": ([111], None),
    })

    with pytest.raises(DuplicateNoteError):
        AnkiConnectClient().create_note(NOTE)

    assert "addNote" not in fake.actions


def test_model_helpers(anki):
    anki({"modelNames": (["Basic", "Cloze"], None), "modelFieldNames": (["Front", "Back"], None)})
    client = AnkiConnectClient()
    assert client.model_names() == ["Basic", "Cloze"]
    assert client.model_field_names("Basic") == ["Front", "Back"]
