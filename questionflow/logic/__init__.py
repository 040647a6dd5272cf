"""
Conditional logic and adaptive termination engine.

This package provides:
- Condition evaluation for a single rule
- Visibility/requirement resolution over the whole rule set
- Skip-to and end-survey navigation decisions
- Response validation
- Adaptive scoring with early-termination recommendation
"""

from .conditions import evaluate, matching_rules
from .visibility import resolve, visible_questions, conditionally_required, progress, render_question_text
from .navigation import skip_target, should_end_survey
from .validation import ValidationResult, validate, validate_question
from .scoring import AdaptiveScore, ConfidenceScope, score
from .builders import RuleBuilder, COMMON_RULE_SETS, get_rule_set
from .report import evaluate_responses

__all__ = [
    "evaluate",
    "matching_rules",
    "resolve",
    "visible_questions",
    "conditionally_required",
    "progress",
    "render_question_text",
    "skip_target",
    "should_end_survey",
    "ValidationResult",
    "validate",
    "validate_question",
    "AdaptiveScore",
    "ConfidenceScope",
    "score",
    "RuleBuilder",
    "COMMON_RULE_SETS",
    "get_rule_set",
    "evaluate_responses",
]
