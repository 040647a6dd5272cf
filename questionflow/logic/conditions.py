"""
Condition evaluation for conditional rules.

A rule's condition compares the answer to its source question against the
rule's comparison value. Evaluation never raises: a malformed rule degrades
to a defined result (see ``not_in`` below).
"""

from __future__ import annotations

import math
import re
from typing import Any

from ..schemas.questionnaire import ConditionalRule, RuleOperator
from ..schemas.session import ResponseMap, value_kind

_DECIMAL_LITERAL = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def strict_equals(left: Any, right: Any) -> bool:
    """Kind and value must both match. True never equals 1; 1 equals 1.0."""
    left_kind = value_kind(left)
    if left_kind != value_kind(right):
        return False
    if left_kind == "array":
        return len(left) == len(right) and all(strict_equals(a, b) for a, b in zip(left, right))
    return left == right


def to_number(value: Any) -> float:
    """Numeric coercion; returns NaN for anything that is not numeric."""
    kind = value_kind(value)
    if kind == "boolean":
        return 1.0 if value else 0.0
    if kind == "number":
        return float(value)
    if kind == "null":
        return 0.0
    if kind == "string":
        text = value.strip()
        if text == "":
            return 0.0
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        if _DECIMAL_LITERAL.match(text):
            return float(text)
        return math.nan
    if kind == "array":
        if len(value) == 0:
            return 0.0
        if len(value) == 1:
            return to_number(value[0])
    return math.nan


def as_text(value: Any) -> str:
    """String form used by ``contains``: true/false, 5 not 5.0, a,b for lists."""
    kind = value_kind(value)
    if kind == "boolean":
        return "true" if value else "false"
    if kind == "number":
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    if kind == "null":
        return "null"
    if kind == "array":
        return ",".join("" if item is None else as_text(item) for item in value)
    return str(value)


def _contains(response: Any, expected: Any) -> bool:
    if isinstance(response, list):
        return any(strict_equals(item, expected) for item in response)
    return as_text(expected).casefold() in as_text(response).casefold()


def _is_member(response: Any, candidates: Any) -> bool:
    return any(strict_equals(candidate, response) for candidate in candidates)


def evaluate(rule: ConditionalRule, responses: ResponseMap) -> bool:
    """Evaluate one rule's predicate against the current responses."""
    response = responses.get(rule.source_question_id)
    if response is None:
        return False

    expected = rule.comparison_value
    operator = rule.operator

    if operator == RuleOperator.EQUALS:
        return strict_equals(response, expected)

    if operator == RuleOperator.NOT_EQUALS:
        return not strict_equals(response, expected)

    if operator == RuleOperator.CONTAINS:
        return _contains(response, expected)

    if operator in (RuleOperator.GREATER_THAN, RuleOperator.LESS_THAN):
        left = to_number(response)
        right = to_number(expected)
        # NaN compares false both ways
        if operator == RuleOperator.GREATER_THAN:
            return left > right
        return left < right

    if operator == RuleOperator.IN:
        if isinstance(expected, (list, tuple)):
            return _is_member(response, expected)
        return False

    if operator == RuleOperator.NOT_IN:
        if isinstance(expected, (list, tuple)):
            return not _is_member(response, expected)
        # Non-list comparison value: always true
        return True

    return False


def matching_rules(rules: list[ConditionalRule], responses: ResponseMap) -> list[ConditionalRule]:
    """Rules whose condition currently holds, in declaration order."""
    return [rule for rule in rules if evaluate(rule, responses)]
