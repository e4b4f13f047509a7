"""
Presentation surfaces for the workflow controller.

The controller never renders anything itself; it asks a Presenter to show a
step and waits for the returned Decision. ConsolePresenter is the terminal
front end used by the CLI, AutoSelectPresenter answers every question
without a human and drives the non-interactive list command.
"""
from __future__ import annotations

from typing import Callable, Protocol, Sequence

from ankipix.image_search.models import CandidateImage

from .models import Action, BatchRun, Decision, Empty, Failed, StepPrompt


class Presenter(Protocol):
    def choose_image(self, prompt: StepPrompt, candidates: Sequence[CandidateImage]) -> Decision:
        """Show the candidate grid and wait for PICK, CONFIRM, SEARCH or ABORT."""
        ...

    def recover(self, prompt: StepPrompt, outcome: Empty | Failed) -> Decision:
        """Show retry/skip/abort (and custom term on empty results) and wait for one."""
        ...

    def review(self, run: BatchRun, can_create: bool) -> Decision:
        """Show every selection and wait for CREATE, BACK or CANCEL."""
        ...

    def progress(self, index: int, total: int, text: str) -> None:
        ...

    def notify(self, message: str) -> None:
        ...


class AutoSelectPresenter:
    """Answers every step without asking: first candidate, skip on no result, create at review."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def choose_image(self, prompt: StepPrompt, candidates: Sequence[CandidateImage]) -> Decision:
        return Decision.pick(candidates[0])

    def recover(self, prompt: StepPrompt, outcome: Empty | Failed) -> Decision:
        return Decision(Action.SKIP)

    def review(self, run: BatchRun, can_create: bool) -> Decision:
        return Decision(Action.CREATE if can_create else Action.CANCEL)

    def progress(self, index: int, total: int, text: str) -> None:
        pass

    def notify(self, message: str) -> None:
        self.messages.append(message)


class ConsolePresenter:
    """Terminal presentation surface.

    input_func/output_func default to input/print and can be swapped for tests.
    End of input is treated as abort.
    """

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
    ) -> None:
        self._input = input_func
        self._output = output_func

    def _ask(self, question: str) -> str | None:
        try:
            return self._input(question).strip()
        except EOFError:
            return None

    def _header(self, prompt: StepPrompt) -> None:
        if prompt.single:
            self._output(f"\nGenerate Anki card with image for: {prompt.item}")
        else:
            self._output(f"\nStep {prompt.index + 1} / {prompt.total}")
            self._output(f"Keyword: {prompt.item}")
        if prompt.term != prompt.item:
            self._output(f"Searching for: {prompt.term}")

    def choose_image(self, prompt: StepPrompt, candidates: Sequence[CandidateImage]) -> Decision:
        self._header(prompt)
        for number, image in enumerate(candidates, 1):
            label = f" - {image.tags}" if image.tags else ""
            self._output(f"  [{number}] {image.width}×{image.height} {image.source}{label}")
            self._output(f"      {image.display_url}")

        if prompt.single:
            hint = "Pick 1-{n}, Enter for the first image, 's <term>' to search, 'q' to cancel: "
        else:
            next_label = "continue to review" if prompt.is_last else "next"
            hint = "Pick 1-{n} (" + next_label + "), 'q' to cancel: "

        while True:
            answer = self._ask(hint.format(n=len(candidates)))
            if answer is None or answer.lower() == 'q':
                return Decision(Action.ABORT)
            if answer == '':
                if prompt.single:
                    return Decision(Action.CONFIRM)
                self._output("Select an image first.")
                continue
            if prompt.single and answer.lower().startswith('s '):
                term = answer[2:].strip()
                if term:
                    return Decision.search(term)
                continue
            if answer.isdigit() and 1 <= int(answer) <= len(candidates):
                return Decision.pick(candidates[int(answer) - 1])
            self._output(f"Please enter a number between 1 and {len(candidates)}.")

    def recover(self, prompt: StepPrompt, outcome: Empty | Failed) -> Decision:
        self._header(prompt)
        custom_search = isinstance(outcome, Empty) or prompt.single
        if isinstance(outcome, Failed):
            self._output("Error searching for images. Please try again.")
        else:
            self._output("No images found. Try a different search term.")
        if custom_search:
            hint = "'r' retry original, 's <term>' search custom term, 'k' skip this word, 'q' cancel: "
        else:
            hint = "'r' retry search, 'k' skip this word, 'q' cancel: "

        while True:
            answer = self._ask(hint)
            if answer is None or answer.lower() == 'q':
                return Decision(Action.ABORT)
            lowered = answer.lower()
            if lowered == 'r':
                return Decision(Action.RETRY)
            if lowered == 'k':
                return Decision(Action.SKIP)
            if custom_search and lowered.startswith('s '):
                term = answer[2:].strip()
                if term:
                    return Decision.search(term)
            self._output("Unrecognised choice.")

    def review(self, run: BatchRun, can_create: bool) -> Decision:
        self._output("\nReview and Create Cards")
        for selection in run.selections:
            mark = "✓ Image selected" if selection.found else "✗ No image (will be skipped)"
            self._output(f"  {selection.source_item} {mark}")

        if not can_create:
            self._output("No valid cards to create. Please go back and select images.")
            self._ask("Press Enter to go back: ")
            return Decision(Action.BACK)

        self._output(f"{run.found_count} cards will be created.")
        while True:
            answer = self._ask("'c' create cards, 'b' back to edit, 'x' cancel: ")
            if answer is None or answer.lower() == 'x':
                return Decision(Action.CANCEL)
            if answer.lower() == 'c':
                return Decision(Action.CREATE)
            if answer.lower() == 'b':
                return Decision(Action.BACK)
            self._output("Unrecognised choice.")

    def progress(self, index: int, total: int, text: str) -> None:
        self._output(f"Processing {index + 1}/{total}: {text}")

    def notify(self, message: str) -> None:
        self._output(message)
