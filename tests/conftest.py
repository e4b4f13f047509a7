from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from ankipix.anki_sync.anki_connect import AnkiConnectError
from ankipix.config_models import AnkiPixSettings
from ankipix.image_search.models import CandidateImage
from ankipix.settings import update_settings
from ankipix.workflow.models import Action, BatchRun, Decision, StepPrompt


def make_image(name: str, width: int = 640, height: int = 480, **kwargs: Any) -> CandidateImage:
    return CandidateImage(
        url=f"https://cdn.example.org/{name}.jpg",
        thumbnail=f"https://cdn.example.org/{name}_150.jpg",
        width=width,
        height=height,
        source=kwargs.pop("source", "Pixabay"),
        **kwargs,
    )


class FakeSearchClient:
    """Returns canned results per term; a value that is an exception is raised instead."""

    def __init__(self, results: Optional[Dict[str, Any]] = None, default: Any = None) -> None:
        self.results = results or {}
        self.default = default
        self.calls: List[str] = []
        self.on_search: Optional[Callable[[str], None]] = None

    def search_images(self, term: str, max_results: int = 9) -> List[CandidateImage]:
        self.calls.append(term)
        if self.on_search is not None:
            self.on_search(term)
        value = self.results.get(term, self.default)
        if isinstance(value, list) and value and isinstance(value[0], (list, BaseException)):
            # a list of per-call answers
            value = value.pop(0)
        if isinstance(value, BaseException):
            raise value
        return list(value or [])


class FakeStore:
    """Records created notes; errors maps a front text to the exception to raise."""

    def __init__(self, errors: Optional[Dict[str, BaseException]] = None, connected: bool = True) -> None:
        self.errors = errors or {}
        self.connected = connected
        self.notes: List[Dict[str, Any]] = []
        self.attempts: List[str] = []

    def test_connection(self) -> bool:
        return self.connected

    def create_note(self, note: Dict[str, Any]) -> int:
        front = next(iter(note["fields"].values()))
        self.attempts.append(front)
        if front in self.errors:
            raise self.errors[front]
        self.notes.append(note)
        return 1000 + len(self.notes)


class ScriptedPresenter:
    """Presenter answering from scripted lists.

    An entry may be a Decision or a callable taking the same arguments as the
    presenter method and returning a Decision.
    """

    def __init__(
        self,
        choices: Sequence[Any] = (),
        recoveries: Sequence[Any] = (),
        reviews: Sequence[Any] = (),
    ) -> None:
        self.choices = list(choices)
        self.recoveries = list(recoveries)
        self.reviews = list(reviews)
        self.choose_calls: List[tuple[StepPrompt, tuple]] = []
        self.recover_calls: List[tuple[StepPrompt, Any]] = []
        self.review_calls: List[bool] = []
        self.progress_calls: List[tuple[int, int, str]] = []
        self.messages: List[str] = []

    @staticmethod
    def _next(script: List[Any], *args: Any) -> Decision:
        if not script:
            raise AssertionError(f"Unexpected prompt: {args!r}")
        entry = script.pop(0)
        return entry(*args) if callable(entry) else entry

    def choose_image(self, prompt: StepPrompt, candidates: Sequence[CandidateImage]) -> Decision:
        self.choose_calls.append((prompt, tuple(candidates)))
        return self._next(self.choices, prompt, candidates)

    def recover(self, prompt: StepPrompt, outcome: Any) -> Decision:
        self.recover_calls.append((prompt, outcome))
        return self._next(self.recoveries, prompt, outcome)

    def review(self, run: BatchRun, can_create: bool) -> Decision:
        self.review_calls.append(can_create)
        return self._next(self.reviews, run, can_create)

    def progress(self, index: int, total: int, text: str) -> None:
        self.progress_calls.append((index, total, text))

    def notify(self, message: str) -> None:
        self.messages.append(message)


def pick_first(prompt: StepPrompt, candidates: Sequence[CandidateImage]) -> Decision:
    return Decision.pick(candidates[0])


CREATE = Decision(Action.CREATE)
BACK = Decision(Action.BACK)
CANCEL = Decision(Action.CANCEL)
ABORT = Decision(Action.ABORT)
SKIP = Decision(Action.SKIP)
RETRY = Decision(Action.RETRY)


class FakeResponse:
    def __init__(self, payload: Any) -> None:
        self._raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: Any) -> bool:
        return False


@pytest.fixture
def settings() -> AnkiPixSettings:
    base = AnkiPixSettings()
    return update_settings(
        base,
        search={"pixabay_api_key": "pixabay-test-key"},
        workflow={"commit_delay_seconds": 0},
    )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def store_error() -> Callable[[str], AnkiConnectError]:
    return lambda message: AnkiConnectError(message, "addNote")
