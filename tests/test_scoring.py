"""
Tests for adaptive scoring and early-termination recommendation.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from questionflow.logic.scoring import ConfidenceScope, raw_question_score, score
from questionflow.schemas import AdaptiveConfig, Question, QuestionMetadata, QuestionType

FREQUENCY = ["Not at all", "Several days", "More than half the days", "Nearly every day"]


def _config(**overrides):
    values = dict(
        enabled=True,
        min_questions=5,
        max_questions=10,
        confidence_threshold=0.6,
        early_termination_enabled=True,
    )
    values.update(overrides)
    return AdaptiveConfig(**values)


def _text_questions(count):
    return [Question(id=i, type=QuestionType.TEXT, order=i) for i in range(1, count + 1)]


class TestRawScore:

    def test_rating_is_the_number(self):
        assert raw_question_score(Question(id=1, type=QuestionType.RATING), 4) == 4

    def test_rating_non_numeric_is_zero(self):
        assert raw_question_score(Question(id=1, type=QuestionType.SLIDER), "lots") == 0

    def test_choice_is_option_index(self):
        question = Question(id=1, type=QuestionType.SINGLE_CHOICE, options=FREQUENCY)
        assert raw_question_score(question, "More than half the days") == 2

    def test_choice_not_in_options(self):
        question = Question(id=1, type=QuestionType.LIKERT, options=FREQUENCY)
        assert raw_question_score(question, "Sometimes") == -1

    def test_choice_without_options(self):
        assert raw_question_score(Question(id=1, type=QuestionType.LIKERT), "Sometimes") == 0
        assert raw_question_score(Question(id=1, type=QuestionType.LIKERT, options=[]), "Sometimes") == -1

    def test_boolean(self):
        question = Question(id=1, type=QuestionType.BOOLEAN)
        assert raw_question_score(question, True) == 1
        assert raw_question_score(question, False) == 0

    def test_multiple_choice_counts_selections(self):
        assert raw_question_score(Question(id=1, type=QuestionType.MULTIPLE_CHOICE), ["a", "b"]) == 2

    def test_text_is_zero(self):
        assert raw_question_score(Question(id=1, type=QuestionType.TEXT), "anything") == 0


class TestScore:

    def test_disabled_config_returns_zeros(self):
        result = score(_text_questions(3), {1: "a"}, AdaptiveConfig())
        assert result.normalized_score == 0
        assert result.confidence == 0
        assert result.should_terminate is False

    def test_confidence_below_min_questions(self):
        result = score(_text_questions(5), {1: "a", 2: "b", 3: "c"}, _config())
        assert result.confidence == pytest.approx(0.6)
        assert result.should_terminate is False

    def test_terminate_once_min_questions_answered(self):
        responses = {i: "x" for i in range(1, 6)}
        result = score(_text_questions(5), responses, _config())
        assert result.confidence == 1.0
        assert result.should_terminate is True

    def test_early_termination_disabled(self):
        responses = {i: "x" for i in range(1, 6)}
        result = score(_text_questions(5), responses, _config(early_termination_enabled=False))
        assert result.should_terminate is False

    def test_min_questions_zero_gives_full_confidence(self):
        result = score(_text_questions(1), {}, _config(min_questions=0))
        assert result.confidence == 1.0
        assert result.should_terminate is True

    def test_weighted_rating(self):
        question = Question(id=1, type=QuestionType.RATING, metadata=QuestionMetadata(adaptive_weight=2))
        result = score([question], {1: 4}, _config())
        assert result.weighted_sum == 8
        assert result.weight_denominator == 2
        assert result.normalized_score == 4

    def test_zero_weight_counts_as_one(self):
        question = Question(id=1, type=QuestionType.RATING, metadata=QuestionMetadata(adaptive_weight=0))
        result = score([question], {1: 3}, _config())
        assert result.weight_denominator == 1

    def test_unanswered_questions_do_not_count(self):
        questions = [
            Question(id=1, type=QuestionType.RATING),
            Question(id=2, type=QuestionType.MULTIPLE_CHOICE),
        ]
        result = score(questions, {1: 2, 2: []}, _config())
        assert result.weight_denominator == 1
        assert result.normalized_score == 2

    def test_risk_indicator_counts_positive_scores(self):
        risky = QuestionMetadata(risk_indicator=True)
        questions = [
            Question(id=1, type=QuestionType.SINGLE_CHOICE, options=FREQUENCY, metadata=risky),
            Question(id=2, type=QuestionType.SINGLE_CHOICE, options=FREQUENCY, metadata=risky),
            Question(id=3, type=QuestionType.BOOLEAN, metadata=risky),
        ]
        result = score(questions, {1: "Several days", 2: "Not at all", 3: True}, _config())
        assert result.risk_indicator_count == 2

    def test_all_scope_counts_hidden_answers(self):
        visible = _text_questions(2)
        responses = {1: "a", 2: "b", 7: "hidden", 8: "hidden"}
        result = score(visible, responses, _config(min_questions=4))
        assert result.answered_count == 4
        assert result.confidence == 1.0

    def test_visible_scope_ignores_hidden_answers(self):
        visible = _text_questions(2)
        responses = {1: "a", 2: "b", 7: "hidden", 8: "hidden"}
        result = score(visible, responses, _config(min_questions=4), ConfidenceScope.VISIBLE)
        assert result.answered_count == 2
        assert result.confidence == 0.5

    def test_hidden_questions_not_scored(self):
        visible = [Question(id=1, type=QuestionType.RATING)]
        result = score(visible, {1: 2, 2: 10}, _config())
        assert result.weighted_sum == 2
