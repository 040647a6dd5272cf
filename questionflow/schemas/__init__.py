"""
Schema definitions for questionnaires and respondent sessions.
"""

from .questionnaire import (
    QuestionType,
    RuleOperator,
    RuleAction,
    QuestionMetadata,
    Question,
    ConditionalRule,
    AdaptiveConfig,
    Questionnaire,
    load_questionnaire,
    load_sample,
    list_samples,
)
from .session import (
    ResponseValue,
    ResponseMap,
    NavigationState,
    AdaptiveMetadata,
    DraftSnapshot,
    coerce_response_value,
    normalize_response_map,
    is_empty_answer,
)

__all__ = [
    "QuestionType",
    "RuleOperator",
    "RuleAction",
    "QuestionMetadata",
    "Question",
    "ConditionalRule",
    "AdaptiveConfig",
    "Questionnaire",
    "load_questionnaire",
    "load_sample",
    "list_samples",
    "ResponseValue",
    "ResponseMap",
    "NavigationState",
    "AdaptiveMetadata",
    "DraftSnapshot",
    "coerce_response_value",
    "normalize_response_map",
    "is_empty_answer",
]
