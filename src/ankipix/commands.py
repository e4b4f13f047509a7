"""
Host commands.

These are the entry points a host (the CLI, or an editor integration) calls
with the user's selected text. They do the pre-flight checks, split the
selection into source items and hand over to a WorkflowController.
"""
from __future__ import annotations

import logging
import re
import time
from typing import Callable, List, Optional, Protocol

from ankipix.anki_sync.anki_connect import AnkiConnectClient
from ankipix.anki_sync.notes import build_list_note
from ankipix.config_models import AnkiPixSettings
from ankipix.image_search.service import ImageSearchClient
from ankipix.keywords.extractor import KeywordExtractor, normalize_item
from ankipix.workflow.controller import NoteStore, SearchClient, WorkflowController
from ankipix.workflow.models import CommitResult
from ankipix.workflow.presenter import AutoSelectPresenter, Presenter

logger = logging.getLogger(__name__)

CANNOT_CONNECT = "Cannot connect to Anki. Please ensure Anki is running with AnkiConnect installed."

_BULLET = re.compile(r'^[-*]\s*')


class ConnectionChecker(NoteStore, Protocol):
    def test_connection(self) -> bool:
        ...


def split_selection(text: str) -> List[str]:
    """Selected text as source items: one per line, blank and dash-only lines dropped."""
    return [line.strip() for line in text.split('\n') if normalize_item(line)]


def parse_list_items(text: str) -> List[str]:
    """Items of a '-' or '*' bulleted list; other lines are ignored."""
    items = []
    for line in text.split('\n'):
        line = line.strip()
        if line.startswith(('-', '*')):
            item = _BULLET.sub('', line).strip()
            if item:
                items.append(item)
    return items


def _default_store(settings: AnkiPixSettings) -> AnkiConnectClient:
    return AnkiConnectClient(settings.anki.connect_url, timeout=settings.anki.timeout_seconds)


def check_connection(settings: AnkiPixSettings, store: Optional[ConnectionChecker] = None) -> bool:
    store = store or _default_store(settings)
    connected = store.test_connection()
    logger.info("AnkiConnect connection test", extra={"url": settings.anki.connect_url, "connected": connected})
    return connected


def generate_from_selection(
    text: str,
    settings: AnkiPixSettings,
    presenter: Presenter,
    *,
    search_client: Optional[SearchClient] = None,
    store: Optional[ConnectionChecker] = None,
    extractor: Optional[KeywordExtractor] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[CommitResult]:
    """Interactive card generation for a selection.

    A selection spanning several lines becomes a batch with one item per
    line; a single line goes through the single-item flow.
    """
    if not text or not text.strip():
        presenter.notify("Please select some text first")
        return None

    store = store or _default_store(settings)
    if not store.test_connection():
        presenter.notify(CANNOT_CONNECT)
        return None

    extractor = extractor or KeywordExtractor()
    if not extractor.extract_keywords(text):
        presenter.notify("No keywords could be extracted from the selection")
        return None

    lines = split_selection(text)
    limit = settings.workflow.max_batch_items
    if len(lines) > limit:
        presenter.notify(f"Too many items selected. Please select {limit} or fewer items for batch processing.")
        return None

    controller = WorkflowController(
        search_client or ImageSearchClient(settings),
        store,
        presenter,
        settings,
        extractor=extractor,
        sleep=sleep,
    )
    if len(lines) > 1:
        return controller.run_batch(lines)
    return controller.run_single(text.strip())


def batch_generate_from_list(
    text: str,
    settings: AnkiPixSettings,
    presenter: Presenter,
    *,
    search_client: Optional[SearchClient] = None,
    store: Optional[ConnectionChecker] = None,
    extractor: Optional[KeywordExtractor] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[CommitResult]:
    """Non-interactive card generation for a bulleted list.

    Each item is searched by its first keyword and gets the first image
    found; items without images are skipped.
    """
    if not text:
        presenter.notify("Please select a list of items first")
        return None

    items = parse_list_items(text)
    if not items:
        presenter.notify("No list items found in selection. Please select a bulleted list.")
        return None

    limit = settings.workflow.max_batch_items
    if len(items) > limit:
        presenter.notify(f"Too many items selected. Please select {limit} or fewer items for batch processing.")
        return None

    store = store or _default_store(settings)
    if not store.test_connection():
        presenter.notify(CANNOT_CONNECT)
        return None

    presenter.notify(f"Processing {len(items)} items...")
    controller = WorkflowController(
        search_client or ImageSearchClient(settings),
        store,
        AutoSelectPresenter(),
        settings,
        extractor=extractor,
        note_builder=build_list_note,
        tags=settings.workflow.list_tags,
        use_keywords=True,
        max_candidates=1,
        sleep=sleep,
    )
    result = controller.run_batch(items) or CommitResult(skipped=len(items))
    presenter.notify(f"Successfully created {result.created}/{len(items)} Anki cards")
    return result
