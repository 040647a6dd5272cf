"""Skip-to and end-survey decisions derived from the rule set."""

from __future__ import annotations

from typing import Optional

from ..schemas.questionnaire import ConditionalRule, RuleAction
from ..schemas.session import ResponseMap
from .conditions import evaluate


def skip_target(rules: list[ConditionalRule], responses: ResponseMap) -> Optional[int]:
    """Target of the first matching ``skip_to`` rule in declaration order."""
    for rule in rules:
        if rule.action != RuleAction.SKIP_TO or rule.target_question_id is None:
            continue
        if evaluate(rule, responses):
            return rule.target_question_id
    return None


def should_end_survey(rules: list[ConditionalRule], responses: ResponseMap) -> bool:
    """True if any ``end_survey`` rule currently matches."""
    return any(
        rule.action == RuleAction.END_SURVEY and evaluate(rule, responses)
        for rule in rules
    )
