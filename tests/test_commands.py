from __future__ import annotations

from ankipix.commands import (
    CANNOT_CONNECT,
    batch_generate_from_list,
    check_connection,
    generate_from_selection,
    parse_list_items,
    split_selection,
)
from ankipix.settings import update_settings
from ankipix.workflow.models import Action, CommitResult, Decision

from conftest import CREATE, FakeSearchClient, FakeStore, ScriptedPresenter, make_image, pick_first

CELL = make_image("cell")


def test_split_selection_drops_blank_lines():
    assert split_selection("mitochondria\n\n  - \n ribosome \n") == ["mitochondria", "ribosome"]


def test_parse_list_items():
    text = "Organelles:\n- mitochondria\n* ribosome\n-\n  -   golgi apparatus\nplain line"
    assert parse_list_items(text) == ["mitochondria", "ribosome", "golgi apparatus"]


def test_check_connection(settings):
    assert check_connection(settings, store=FakeStore(connected=True)) is True
    assert check_connection(settings, store=FakeStore(connected=False)) is False


def test_generate_rejects_empty_selection(settings, store):
    presenter = ScriptedPresenter()
    assert generate_from_selection("  \n", settings, presenter, store=store) is None
    assert presenter.messages == ["Please select some text first"]


def test_generate_requires_anki(settings):
    presenter = ScriptedPresenter()
    search = FakeSearchClient(default=[CELL])

    result = generate_from_selection("mitochondria", settings, presenter, search_client=search, store=FakeStore(connected=False))

    assert result is None
    assert presenter.messages == [CANNOT_CONNECT]
    assert search.calls == []


def test_generate_rejects_text_without_keywords(settings, store):
    presenter = ScriptedPresenter()
    assert generate_from_selection("a of it", settings, presenter, store=store) is None
    assert presenter.messages == ["No keywords could be extracted from the selection"]


def test_generate_caps_batch_size(settings, store):
    settings = update_settings(settings, workflow={"max_batch_items": 2})
    presenter = ScriptedPresenter()

    result = generate_from_selection("alpha\nbeta\ngamma", settings, presenter, store=store)

    assert result is None
    assert presenter.messages == ["Too many items selected. Please select 2 or fewer items for batch processing."]


def test_generate_single_line_uses_single_item_flow(settings, store):
    presenter = ScriptedPresenter(choices=[Decision(Action.CONFIRM)])
    search = FakeSearchClient(default=[CELL])

    result = generate_from_selection("  mitochondria  ", settings, presenter, search_client=search, store=store)

    assert result == CommitResult(created=1)
    assert presenter.review_calls == []
    assert store.notes[0]["fields"]["Front"] == "mitochondria"


def test_generate_multi_line_uses_batch_flow(settings, store):
    presenter = ScriptedPresenter(choices=[pick_first, pick_first], reviews=[CREATE])
    search = FakeSearchClient(default=[CELL])

    result = generate_from_selection("mitochondria\n\nribosome", settings, presenter, search_client=search, store=store)

    assert result == CommitResult(created=2)
    assert search.calls == ["mitochondria", "ribosome"]
    assert presenter.review_calls == [True]


def test_batch_list_creates_cards_without_prompts(settings, store):
    presenter = ScriptedPresenter()
    search = FakeSearchClient({"ribosome": []}, default=[CELL, make_image("other")])

    result = batch_generate_from_list(
        "- mitochondria\n- ribosome\n- red blood cell", settings, presenter, search_client=search, store=store
    )

    assert result == CommitResult(created=2, skipped=1)
    assert search.calls == ["mitochondria", "ribosome", "red"]
    assert presenter.messages == ["Processing 3 items...", "Successfully created 2/3 Anki cards"]
    note = store.notes[1]
    assert note["fields"] == {"Front": "red blood cell", "Back": "Image for: red blood cell", "Image": CELL.url}
    assert note["tags"] == ["ankipix", "batch-generated"]


def test_batch_list_reports_zero_when_nothing_found(settings, store):
    presenter = ScriptedPresenter()

    result = batch_generate_from_list(
        "- alpha\n- beta", settings, presenter, search_client=FakeSearchClient(default=[]), store=store
    )

    assert result == CommitResult(skipped=2)
    assert presenter.messages[-1] == "Successfully created 0/2 Anki cards"


def test_batch_list_requires_bullets(settings, store):
    presenter = ScriptedPresenter()
    assert batch_generate_from_list("no bullets here", settings, presenter, store=store) is None
    assert presenter.messages == ["No list items found in selection. Please select a bulleted list."]


def test_batch_list_requires_anki(settings):
    presenter = ScriptedPresenter()
    result = batch_generate_from_list("- alpha", settings, presenter, store=FakeStore(connected=False))
    assert result is None
    assert presenter.messages == [CANNOT_CONNECT]
