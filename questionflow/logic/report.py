"""Stateless evaluation of a response map against a whole questionnaire."""

from __future__ import annotations

from ..schemas.questionnaire import Questionnaire
from ..schemas.session import normalize_response_map
from .conditions import matching_rules
from .navigation import should_end_survey, skip_target
from .scoring import ConfidenceScope, score
from .validation import validate
from .visibility import conditionally_required, progress, resolve


def evaluate_responses(
    questionnaire: Questionnaire,
    responses: dict,
    confidence_scope: ConfidenceScope = ConfidenceScope.ALL,
) -> dict:
    """
    Run every engine once over ``responses``.

    Keys may be JSON-style strings; they are converted to question ids.
    """
    responses = normalize_response_map(responses)
    rules = questionnaire.conditional_rules
    visible, required_overrides = resolve(questionnaire.questions, rules, responses)
    adaptive = score(visible, responses, questionnaire.adaptive_config, confidence_scope)
    validation = validate(visible, responses)

    return {
        "visible_question_ids": [q.id for q in visible],
        "required_question_ids": [q.id for q in visible if q.required],
        "conditionally_required_ids": conditionally_required(rules, responses),
        "required_overrides": sorted(required_overrides),
        "matched_rules": [rule.id for rule in matching_rules(rules, responses)],
        "skip_target": skip_target(rules, responses),
        "should_end_survey": should_end_survey(rules, responses),
        "progress": progress(visible, responses),
        "valid": validation.valid,
        "errors": {str(k): v for k, v in validation.errors.items()},
        "adaptive": adaptive.to_dict(),
    }
