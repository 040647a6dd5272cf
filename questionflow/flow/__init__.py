"""
Respondent session flow: navigation state machine and draft auto-save.
"""

from .controller import FlowController, FlowState, StepOutcome
from .autosave import DraftAutoSaver
from .collaborators import invoke

__all__ = [
    "FlowController",
    "FlowState",
    "StepOutcome",
    "DraftAutoSaver",
    "invoke",
]
