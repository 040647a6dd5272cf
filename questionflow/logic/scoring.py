"""
Adaptive scoring and early-termination recommendation.

The engine computes, from the visible questions and the current responses:
- a weighted, normalized score
- a confidence level (answered count relative to ``min_questions``)
- whether the questionnaire has gathered enough to stop early
- how many risk-indicator questions scored above zero
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

from ..schemas.questionnaire import AdaptiveConfig, Question, QuestionType
from ..schemas.session import ResponseMap, is_empty_answer
from .conditions import strict_equals, to_number

logger = logging.getLogger(__name__)


class ConfidenceScope(str, Enum):
    """Which answers count toward confidence."""
    ALL = "all"          # every key in the response map, visible or not
    VISIBLE = "visible"  # only answered questions that are currently visible


@dataclass
class AdaptiveScore:
    """Result of one scoring pass."""
    normalized_score: float = 0.0
    confidence: float = 0.0
    should_terminate: bool = False
    risk_indicator_count: int = 0
    weighted_sum: float = 0.0
    weight_denominator: float = 0.0
    answered_count: int = 0

    def to_dict(self) -> dict:
        return {
            "normalized_score": self.normalized_score,
            "confidence": self.confidence,
            "should_terminate": self.should_terminate,
            "risk_indicator_count": self.risk_indicator_count,
            "weighted_sum": self.weighted_sum,
            "weight_denominator": self.weight_denominator,
            "answered_count": self.answered_count,
        }


def raw_question_score(question: Question, value) -> float:
    """
    Type-specific raw score of a non-empty answer.

    rating/slider -> the number itself (0 if not numeric)
    likert/single_choice -> index of the answer in options (-1 if not found)
    boolean -> 1 for True, else 0
    multiple_choice -> number of selections
    text/textarea -> 0
    """
    qtype = question.type

    if qtype in (QuestionType.RATING, QuestionType.SLIDER):
        number = to_number(value)
        return 0.0 if math.isnan(number) else number

    if qtype in (QuestionType.LIKERT, QuestionType.SINGLE_CHOICE):
        if question.options is None:
            return 0
        for index, option in enumerate(question.options):
            if strict_equals(option, value):
                return index
        return -1

    if qtype == QuestionType.BOOLEAN:
        return 1 if value is True else 0

    if qtype == QuestionType.MULTIPLE_CHOICE:
        return len(value) if isinstance(value, list) else 0

    return 0


def answered_count(
    visible: list[Question],
    responses: ResponseMap,
    scope: ConfidenceScope = ConfidenceScope.ALL,
) -> int:
    if ConfidenceScope(scope) == ConfidenceScope.VISIBLE:
        return sum(1 for q in visible if not is_empty_answer(responses.get(q.id)))
    return len(responses)


def score(
    visible: list[Question],
    responses: ResponseMap,
    config: AdaptiveConfig,
    confidence_scope: ConfidenceScope = ConfidenceScope.ALL,
) -> AdaptiveScore:
    """Score the visible questions. A disabled config short-circuits to zeros."""
    if not config.enabled:
        return AdaptiveScore()

    weighted_sum = 0.0
    weight_denominator = 0.0
    risk_count = 0

    for question in visible:
        value = responses.get(question.id)
        if is_empty_answer(value):
            continue

        weight = question.metadata.adaptive_weight or 1
        raw = raw_question_score(question, value)

        weighted_sum += raw * weight
        weight_denominator += weight

        if question.metadata.risk_indicator and raw > 0:
            risk_count += 1

    normalized = weighted_sum / weight_denominator if weight_denominator > 0 else 0.0

    count = answered_count(visible, responses, confidence_scope)
    if config.min_questions > 0:
        confidence = min(count / config.min_questions, 1.0)
    else:
        confidence = 1.0

    should_terminate = (
        config.early_termination_enabled
        and confidence >= config.confidence_threshold
        and count >= config.min_questions
    )

    if should_terminate:
        logger.debug(
            "Early termination reached: answered=%d min=%d confidence=%.2f",
            count, config.min_questions, confidence,
        )

    return AdaptiveScore(
        normalized_score=normalized,
        confidence=confidence,
        should_terminate=should_terminate,
        risk_indicator_count=risk_count,
        weighted_sum=weighted_sum,
        weight_denominator=weight_denominator,
        answered_count=count,
    )
