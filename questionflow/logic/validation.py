"""
Response validation for visible questions.

Two checks per question:
1. Required: a visible question whose effective ``required`` is set must have
   a non-empty answer.
2. Shape: any non-empty answer must match its question type (text is a
   string, ratings are numbers within bounds, multiple choice is a list...).

Errors are returned as data keyed by question id; nothing here raises.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..schemas.questionnaire import Question, QuestionType
from ..schemas.session import ResponseMap, value_kind
from .conditions import as_text

REQUIRED_MESSAGE = "This question is required"
SELECT_AT_LEAST_ONE_MESSAGE = "Please select at least one option"


@dataclass
class ValidationResult:
    """Outcome of validating one or more questions."""
    valid: bool = True
    errors: dict[int, str] = field(default_factory=dict)

    def add_error(self, question_id: int, message: str):
        self.errors[question_id] = message
        self.valid = False


def _missing_message(question: Question, value) -> Optional[str]:
    if value is None or (isinstance(value, str) and value == ""):
        return REQUIRED_MESSAGE
    if question.type == QuestionType.MULTIPLE_CHOICE and isinstance(value, list) and len(value) == 0:
        return SELECT_AT_LEAST_ONE_MESSAGE
    return None


def _numeric_message(question: Question, value) -> Optional[str]:
    is_rating = question.type == QuestionType.RATING
    if value_kind(value) != "number":
        return "Please provide a rating" if is_rating else "Value must be a valid number"

    prefix = "Rating" if is_rating else "Value"
    bounds = question.metadata
    if bounds.min is not None and value < bounds.min:
        return f"{prefix} must be at least {as_text(bounds.min)}"
    if bounds.max is not None and value > bounds.max:
        return f"{prefix} must not exceed {as_text(bounds.max)}"
    return None


def shape_error(question: Question, value) -> Optional[str]:
    """Type check for a present, non-empty answer."""
    kind = value_kind(value)
    qtype = question.type

    if qtype in (QuestionType.TEXT, QuestionType.TEXTAREA):
        return None if kind == "string" else "Value must be text"

    if qtype in (QuestionType.RATING, QuestionType.SLIDER):
        return _numeric_message(question, value)

    if qtype in (QuestionType.SINGLE_CHOICE, QuestionType.LIKERT):
        return None if kind == "string" else "Please select an option"

    if qtype == QuestionType.MULTIPLE_CHOICE:
        if kind != "array" or not all(isinstance(item, str) for item in value):
            return "Value must be an array of selections"
        return None

    if qtype == QuestionType.BOOLEAN:
        return None if kind == "boolean" else "Please select an option"

    return None


def validate_question(question: Question, responses: ResponseMap) -> Optional[str]:
    """First error for a single (already visibility-resolved) question, or None."""
    value = responses.get(question.id)

    if question.required:
        message = _missing_message(question, value)
        if message:
            return message

    if value is None or (isinstance(value, (str, list)) and len(value) == 0):
        return None

    return shape_error(question, value)


def validate(visible_questions: list[Question], responses: ResponseMap) -> ValidationResult:
    """Validate every visible question against the current responses."""
    result = ValidationResult()
    for question in visible_questions:
        message = validate_question(question, responses)
        if message:
            result.add_error(question.id, message)
    return result
