"""
Flashcard generation workflow.

The controller walks the user through one image decision per source item,
then creates all cards in a single commit pass.
"""

from .controller import WorkflowController
from .models import (
    Action,
    BatchRun,
    CommitResult,
    Decision,
    Empty,
    Failed,
    Found,
    Phase,
    Selection,
    StepPrompt,
)
from .presenter import AutoSelectPresenter, ConsolePresenter, Presenter

__all__ = [
    # controller
    "WorkflowController",
    # models
    "Action",
    "BatchRun",
    "CommitResult",
    "Decision",
    "Empty",
    "Failed",
    "Found",
    "Phase",
    "Selection",
    "StepPrompt",
    # presenters
    "Presenter",
    "ConsolePresenter",
    "AutoSelectPresenter",
]
