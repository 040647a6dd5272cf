"""
questionflow - conditional logic and adaptive termination engine for
questionnaires.

Given a questionnaire (questions, ordered conditional rules, adaptive config)
and the respondent's answers so far, the engine decides which questions are
visible and required, where to navigate next, and whether enough has been
answered to stop early.
"""

from .errors import (
    QuestionFlowError,
    QuestionnaireDefinitionError,
    InvalidResponseError,
    UnknownQuestionError,
    SubmitError,
    DraftSaveError,
)
from .schemas import (
    Question,
    ConditionalRule,
    AdaptiveConfig,
    Questionnaire,
    AdaptiveMetadata,
    DraftSnapshot,
    load_questionnaire,
    load_sample,
)
from .config import FlowSettings, configure_logging
from .flow import FlowController, FlowState, StepOutcome

__version__ = "0.1.0"

__all__ = [
    "QuestionFlowError",
    "QuestionnaireDefinitionError",
    "InvalidResponseError",
    "UnknownQuestionError",
    "SubmitError",
    "DraftSaveError",
    "Question",
    "ConditionalRule",
    "AdaptiveConfig",
    "Questionnaire",
    "AdaptiveMetadata",
    "DraftSnapshot",
    "load_questionnaire",
    "load_sample",
    "FlowSettings",
    "configure_logging",
    "FlowController",
    "FlowState",
    "StepOutcome",
]
