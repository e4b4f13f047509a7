"""
Data models for the flashcard generation workflow.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Sequence, Tuple, Union

from ankipix.image_search.models import CandidateImage


class Phase(Enum):
    STEPPING = auto()
    REVIEW = auto()
    COMMIT = auto()
    DONE = auto()
    CLOSED = auto()


class Action(Enum):
    PICK = auto()       # choose the attached image
    CONFIRM = auto()    # accept without an explicit pick (single-item path only)
    SEARCH = auto()     # search again with the attached term
    RETRY = auto()      # repeat the same search
    SKIP = auto()       # record no image for this item
    ABORT = auto()      # stop the whole run during stepping
    CREATE = auto()     # review: commit the selections
    BACK = auto()       # review: start stepping again from the first item
    CANCEL = auto()     # review: close without creating anything


@dataclass(frozen=True)
class Decision:
    """One user answer returned by the presentation surface."""

    action: Action
    image: Optional[CandidateImage] = None
    term: Optional[str] = None

    @classmethod
    def pick(cls, image: CandidateImage) -> "Decision":
        return cls(Action.PICK, image=image)

    @classmethod
    def search(cls, term: str) -> "Decision":
        return cls(Action.SEARCH, term=term)


@dataclass(frozen=True)
class Found:
    images: Tuple[CandidateImage, ...]


@dataclass(frozen=True)
class Empty:
    term: str


@dataclass(frozen=True)
class Failed:
    term: str
    error: str


SearchOutcome = Union[Found, Empty, Failed]


@dataclass(frozen=True)
class StepPrompt:
    """What the presentation surface needs to render one step."""

    index: int
    total: int
    item: str
    term: str
    single: bool = False

    @property
    def is_last(self) -> bool:
        return self.index >= self.total - 1


@dataclass(frozen=True)
class Selection:
    """What (if anything) was chosen for one source item."""

    index: int
    source_item: str
    image: Optional[CandidateImage] = None

    @property
    def found(self) -> bool:
        return self.image is not None


@dataclass
class BatchRun:
    """One pass of the workflow over a list of source items.

    `selections` grows by exactly one entry per decided item, so
    len(selections) == cursor holds throughout stepping.
    """

    items: Tuple[str, ...]
    selections: List[Selection] = field(default_factory=list)
    cursor: int = 0
    phase: Phase = Phase.STEPPING

    @classmethod
    def start(cls, items: Sequence[str]) -> "BatchRun":
        return cls(items=tuple(items))

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def current_item(self) -> str:
        return self.items[self.cursor]

    @property
    def stepping_done(self) -> bool:
        return self.cursor >= self.total

    @property
    def closed(self) -> bool:
        return self.phase is Phase.CLOSED

    @property
    def found_count(self) -> int:
        return sum(1 for selection in self.selections if selection.found)

    def record(self, image: Optional[CandidateImage]) -> Selection:
        if self.phase is not Phase.STEPPING:
            raise RuntimeError(f"Cannot record a selection while {self.phase.name.lower()}")
        if self.stepping_done:
            raise RuntimeError("Every item already has a selection")
        selection = Selection(index=self.cursor, source_item=self.items[self.cursor], image=image)
        self.selections.append(selection)
        self.cursor += 1
        return selection

    def restart(self) -> None:
        self.selections = []
        self.cursor = 0
        self.phase = Phase.STEPPING

    def close(self) -> None:
        self.phase = Phase.CLOSED


@dataclass(frozen=True)
class CommitResult:
    created: int = 0
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        return self.created + self.duplicates + self.failed

    def summary(self) -> str:
        parts = []
        if self.created:
            parts.append(f"{self.created} cards created")
        if self.duplicates:
            parts.append(f"{self.duplicates} duplicates skipped")
        if self.skipped:
            parts.append(f"{self.skipped} items skipped (no image)")
        if self.failed:
            parts.append(f"{self.failed} failed")
        return ", ".join(parts) if parts else "nothing to create"
