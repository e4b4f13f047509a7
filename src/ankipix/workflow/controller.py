"""
Workflow controller: turns source items into image flashcards.

Stepping walks the items one at a time (search, show candidates, wait for
the user), review shows every selection, commit creates the cards. Commit
is a separate phase, so aborting before it never touches the store.
"""
from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from ankipix.anki_sync.anki_connect import DuplicateNoteError
from ankipix.anki_sync.notes import build_image_note
from ankipix.config_models import AnkiConfig, AnkiPixSettings
from ankipix.image_search.models import CandidateImage
from ankipix.keywords.extractor import KeywordExtractor, normalize_item

from .models import (
    Action,
    BatchRun,
    CommitResult,
    Decision,
    Empty,
    Failed,
    Found,
    Phase,
    SearchOutcome,
    StepPrompt,
)
from .presenter import Presenter

logger = logging.getLogger(__name__)

NoteBuilder = Callable[[AnkiConfig, str, CandidateImage, Sequence[str]], Dict[str, Any]]

_BATCH_FOUND_ACTIONS = frozenset({Action.PICK, Action.ABORT})
_SINGLE_FOUND_ACTIONS = frozenset({Action.PICK, Action.CONFIRM, Action.SEARCH, Action.ABORT})
_EMPTY_ACTIONS = frozenset({Action.RETRY, Action.SEARCH, Action.SKIP, Action.ABORT})
_BATCH_FAILED_ACTIONS = frozenset({Action.RETRY, Action.SKIP, Action.ABORT})
_REVIEW_ACTIONS = frozenset({Action.CREATE, Action.BACK, Action.CANCEL})


class SearchClient(Protocol):
    def search_images(self, term: str, max_results: int = 9) -> List[CandidateImage]:
        ...


class NoteStore(Protocol):
    def create_note(self, note: Dict[str, Any]) -> int:
        ...


class WorkflowController:
    """Drives one workflow over a list of source items.

    Create one controller per workflow; the search client, store and
    extractor it receives hold no per-run state and may be shared.
    """

    def __init__(
        self,
        search_client: SearchClient,
        store: NoteStore,
        presenter: Presenter,
        settings: AnkiPixSettings,
        *,
        extractor: Optional[KeywordExtractor] = None,
        note_builder: NoteBuilder = build_image_note,
        tags: Optional[Sequence[str]] = None,
        use_keywords: bool = False,
        max_candidates: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.search_client = search_client
        self.store = store
        self.presenter = presenter
        self.settings = settings
        self.extractor = extractor or KeywordExtractor()
        self.note_builder = note_builder
        self.tags = tuple(tags) if tags is not None else settings.workflow.card_tags
        self.use_keywords = use_keywords
        self.max_candidates = max_candidates or settings.search.max_candidates
        self._sleep = sleep
        self.current_run: Optional[BatchRun] = None

    def run(self, items: Sequence[str]) -> Optional[CommitResult]:
        """Run the single-item flow for one item, the batch flow otherwise.

        Returns the commit result, or None when the user aborted or cancelled.
        """
        if not items:
            raise ValueError("No items to process")
        if len(items) == 1:
            return self.run_single(items[0])
        return self.run_batch(items)

    def cancel(self) -> None:
        """Close the current run unless commit already started."""
        run = self.current_run
        if run is not None and run.phase in (Phase.STEPPING, Phase.REVIEW):
            logger.info("Workflow cancelled", extra={"cursor": run.cursor, "total": run.total})
            run.close()

    def search_term_for(self, text: str) -> str:
        normalized = normalize_item(text)
        if not normalized or not self.use_keywords:
            return normalized
        keywords = self.extractor.extract_keywords(normalized)
        return keywords[0] if keywords else normalized

    # -- stepping --------------------------------------------------------

    def _search(self, term: str) -> SearchOutcome:
        try:
            images = self.search_client.search_images(term, self.max_candidates)
        except Exception as e:
            logger.warning("Image search failed", extra={"term": term, "error": str(e)})
            return Failed(term=term, error=str(e))
        if not images:
            return Empty(term=term)
        return Found(images=tuple(images))

    def _ask(self, prompt: StepPrompt, outcome: SearchOutcome) -> Decision:
        """Ask the presenter until it returns an action valid for this outcome."""
        if isinstance(outcome, Found):
            allowed = _SINGLE_FOUND_ACTIONS if prompt.single else _BATCH_FOUND_ACTIONS
        elif isinstance(outcome, Empty) or prompt.single:
            allowed = _EMPTY_ACTIONS
        else:
            allowed = _BATCH_FAILED_ACTIONS

        while True:
            if isinstance(outcome, Found):
                decision = self.presenter.choose_image(prompt, outcome.images)
            else:
                decision = self.presenter.recover(prompt, outcome)

            if decision.action not in allowed:
                logger.debug("Ignoring unavailable action", extra={"action": decision.action.name})
            elif decision.action is Action.PICK and decision.image not in outcome.images:
                logger.debug("Pick does not match a presented candidate")
            elif decision.action is Action.SEARCH and not (decision.term or "").strip():
                logger.debug("Ignoring empty custom search term")
            else:
                return decision

    def _decide(self, run: BatchRun, prompt: StepPrompt) -> Decision:
        """Resolve one item to PICK (with image), SKIP or ABORT."""
        term = prompt.term
        while True:
            outcome = self._search(term)
            if run.closed:
                logger.info("Discarding search result for a closed run", extra={"term": term})
                return Decision(Action.ABORT)

            decision = self._ask(replace(prompt, term=term), outcome)
            if decision.action is Action.CONFIRM:
                # single-item path only: no explicit pick means the first candidate
                return Decision.pick(outcome.images[0])
            if decision.action is Action.SEARCH:
                term = decision.term.strip()
                logger.info("Searching custom term", extra={"item": prompt.item, "term": term})
                continue
            if decision.action is Action.RETRY:
                # retry always goes back to the item's own term
                term = prompt.term
                continue
            return decision

    def _step_all(self, run: BatchRun) -> bool:
        """Decide every remaining item. False when the run was aborted."""
        while not run.stepping_done:
            item = run.current_item
            term = self.search_term_for(item)
            if not term:
                logger.info("Skipping blank item", extra={"index": run.cursor})
                run.record(None)
                continue

            prompt = StepPrompt(index=run.cursor, total=run.total, item=item, term=term)
            decision = self._decide(run, prompt)
            if decision.action is Action.ABORT or run.closed:
                run.close()
                logger.info("Workflow aborted", extra={"cursor": run.cursor, "total": run.total})
                return False
            run.record(decision.image if decision.action is Action.PICK else None)
        return True

    # -- review ----------------------------------------------------------

    def _review(self, run: BatchRun) -> Action:
        run.phase = Phase.REVIEW
        can_create = run.found_count > 0
        while True:
            decision = self.presenter.review(run, can_create)
            if run.closed:
                return Action.CANCEL
            if not can_create:
                # nothing to create: CREATE is unavailable, anything but CANCEL goes back
                return Action.CANCEL if decision.action is Action.CANCEL else Action.BACK
            if decision.action in _REVIEW_ACTIONS:
                return decision.action

    # -- commit ----------------------------------------------------------

    def _commit(self, run: BatchRun) -> Tuple[CommitResult, List[str]]:
        run.phase = Phase.COMMIT
        created = duplicates = skipped = failed = 0
        errors: List[str] = []
        store_calls = 0
        total = len(run.selections)

        for selection in run.selections:
            self.presenter.progress(selection.index, total, selection.source_item)
            if not selection.found:
                skipped += 1
                continue

            if store_calls and self.settings.workflow.commit_delay_seconds:
                # courtesy pause so AnkiConnect is not flooded
                self._sleep(self.settings.workflow.commit_delay_seconds)
            store_calls += 1

            try:
                note = self.note_builder(self.settings.anki, selection.source_item, selection.image, self.tags)
                self.store.create_note(note)
                created += 1
            except DuplicateNoteError as e:
                duplicates += 1
                logger.info("Duplicate note skipped", extra={"index": selection.index, "error": str(e)})
            except Exception as e:
                failed += 1
                errors.append(str(e))
                logger.error("Failed to create note", extra={"index": selection.index, "error": str(e)})

        run.phase = Phase.DONE
        result = CommitResult(created=created, duplicates=duplicates, skipped=skipped, failed=failed)
        logger.info(
            "Commit finished",
            extra={"created": created, "duplicates": duplicates, "skipped": skipped, "failed": failed},
        )
        return result, errors

    # -- entry points ----------------------------------------------------

    def run_batch(self, items: Sequence[str]) -> Optional[CommitResult]:
        run = BatchRun.start(items)
        self.current_run = run
        logger.info("Batch workflow started", extra={"items": run.total})

        while True:
            if not self._step_all(run):
                return None
            action = self._review(run)
            if action is Action.CREATE:
                break
            if action is Action.CANCEL:
                run.close()
                logger.info("Workflow cancelled at review")
                return None
            run.restart()

        result, _ = self._commit(run)
        self.presenter.notify(f"Batch processing complete: {result.summary()}")
        if result.failed:
            self.presenter.notify("Some cards failed to create. Check the log for details.")
        return result

    def run_single(self, text: str) -> Optional[CommitResult]:
        """Single-item flow: one search, pick or default to the first candidate, one card."""
        run = BatchRun.start([text])
        self.current_run = run

        normalized = normalize_item(text)
        keywords = self.extractor.extract_keywords(normalized) if normalized else []
        term = keywords[0] if keywords else normalized

        if not term:
            run.record(None)
        else:
            decision = self._decide(run, StepPrompt(index=0, total=1, item=text, term=term, single=True))
            if decision.action is Action.ABORT or run.closed:
                run.close()
                return None
            run.record(decision.image if decision.action is Action.PICK else None)

        result, errors = self._commit(run)
        if not result.attempted:
            self.presenter.notify("No images to add to card")
        elif result.created:
            self.presenter.notify("Anki card created successfully!")
        elif result.duplicates:
            self.presenter.notify("Failed to create Anki card: a note with this front already exists")
        else:
            self.presenter.notify(f"Failed to create Anki card: {errors[0]}")
        return result
