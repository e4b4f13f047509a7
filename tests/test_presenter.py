from __future__ import annotations

from ankipix.workflow.models import Action, BatchRun, Empty, Failed, StepPrompt
from ankipix.workflow.presenter import AutoSelectPresenter, ConsolePresenter

from conftest import make_image

CELL = make_image("cell", tags="cell, biology")
LEAF = make_image("leaf")
BATCH_PROMPT = StepPrompt(index=0, total=2, item="mitochondria", term="mitochondria")
SINGLE_PROMPT = StepPrompt(index=0, total=1, item="mitochondria", term="mitochondria", single=True)


def console(*answers):
    """ConsolePresenter fed from answers; raises EOFError once they run out."""
    pending = list(answers)
    output = []

    def read(question):
        if not pending:
            raise EOFError
        return pending.pop(0)

    return ConsolePresenter(input_func=read, output_func=output.append), output


def test_batch_grid_requires_a_number():
    presenter, output = console("", "7", "s other", "2")

    decision = presenter.choose_image(BATCH_PROMPT, [CELL, LEAF])

    assert decision.action is Action.PICK
    assert decision.image == LEAF
    assert "Select an image first." in output
    assert "Step 1 / 2" in "\n".join(output)


def test_single_grid_accepts_enter_and_custom_search():
    presenter, _ = console("")
    assert presenter.choose_image(SINGLE_PROMPT, [CELL]).action is Action.CONFIRM

    presenter, _ = console("s  golgi body ")
    decision = presenter.choose_image(SINGLE_PROMPT, [CELL])
    assert decision.action is Action.SEARCH
    assert decision.term == "golgi body"


def test_end_of_input_aborts():
    presenter, _ = console()
    assert presenter.choose_image(BATCH_PROMPT, [CELL]).action is Action.ABORT
    assert presenter.recover(BATCH_PROMPT, Empty("mitochondria")).action is Action.ABORT


def test_recover_offers_custom_term_only_for_empty_results_in_batch():
    presenter, _ = console("s plant cell")
    decision = presenter.recover(BATCH_PROMPT, Empty("mitochondria"))
    assert decision.action is Action.SEARCH
    assert decision.term == "plant cell"

    presenter, output = console("s plant cell", "k")
    assert presenter.recover(BATCH_PROMPT, Failed("mitochondria", "timeout")).action is Action.SKIP
    assert "Unrecognised choice." in output

    presenter, _ = console("R")
    assert presenter.recover(SINGLE_PROMPT, Failed("mitochondria", "timeout")).action is Action.RETRY


def test_review_lists_selections_and_waits_for_a_choice():
    run = BatchRun.start(["alpha", "beta"])
    run.record(CELL)
    run.record(None)
    presenter, output = console("?", "c")

    assert presenter.review(run, can_create=True).action is Action.CREATE
    text = "\n".join(output)
    assert "alpha ✓ Image selected" in text
    assert "beta ✗ No image (will be skipped)" in text
    assert "1 cards will be created." in text


def test_blocked_review_goes_back():
    run = BatchRun.start(["alpha"])
    run.record(None)
    presenter, output = console("")

    assert presenter.review(run, can_create=False).action is Action.BACK
    assert "No valid cards to create. Please go back and select images." in output


def test_progress_line():
    presenter, output = console()
    presenter.progress(1, 3, "ribosome")
    assert output == ["Processing 2/3: ribosome"]


def test_auto_select_presenter():
    presenter = AutoSelectPresenter()
    assert presenter.choose_image(BATCH_PROMPT, [CELL, LEAF]).image == CELL
    assert presenter.recover(BATCH_PROMPT, Empty("x")).action is Action.SKIP
    assert presenter.review(BatchRun.start(["x"]), can_create=False).action is Action.CANCEL
    presenter.notify("done")
    assert presenter.messages == ["done"]
