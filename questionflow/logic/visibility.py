"""
Visibility and requirement resolution.

Rules are applied once, left to right, against a snapshot of the responses.
When two rules target the same question with opposite show/hide actions,
the later rule in the list wins.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Optional, Tuple

from ..schemas.questionnaire import ConditionalRule, Question, RuleAction
from ..schemas.session import ResponseMap, is_empty_answer
from .conditions import as_text, evaluate

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{(\w+)\.(\w+)\}\}")


def resolve(
    all_questions: list[Question],
    rules: list[ConditionalRule],
    responses: ResponseMap,
) -> Tuple[list[Question], set[int]]:
    """
    Derive the visible questions and the conditionally-required ids.

    Returns:
        Tuple of (visible questions in ``order`` with effective ``required``,
        set of question ids required by an active ``require`` rule)
    """
    hidden: set[int] = set()
    required: set[int] = set()

    for rule in rules:
        if rule.target_question_id is None:
            continue
        if not evaluate(rule, responses):
            continue

        if rule.action == RuleAction.HIDE:
            hidden.add(rule.target_question_id)
        elif rule.action == RuleAction.SHOW:
            hidden.discard(rule.target_question_id)
        elif rule.action == RuleAction.REQUIRE:
            required.add(rule.target_question_id)

    visible = []
    for question in sorted(all_questions, key=lambda q: q.order):
        if question.id in hidden:
            continue
        if question.id in required and not question.required:
            question = replace(question, required=True)
        visible.append(question)

    logger.debug(
        "Resolved %d/%d visible questions (hidden=%s, required=%s)",
        len(visible), len(all_questions), sorted(hidden), sorted(required),
    )
    return visible, required


def visible_questions(
    all_questions: list[Question],
    rules: list[ConditionalRule],
    responses: ResponseMap,
) -> list[Question]:
    """Visible questions only."""
    return resolve(all_questions, rules, responses)[0]


def conditionally_required(rules: list[ConditionalRule], responses: ResponseMap) -> list[int]:
    """Targets of active ``require`` rules, in rule order (may repeat)."""
    return [
        rule.target_question_id
        for rule in rules
        if rule.action == RuleAction.REQUIRE
        and rule.target_question_id is not None
        and evaluate(rule, responses)
    ]


def progress(visible: list[Question], responses: ResponseMap) -> dict:
    """Answered/total counts over the visible questions."""
    total = len(visible)
    current = sum(1 for q in visible if not is_empty_answer(responses.get(q.id)))
    percentage = round(current / total * 100) if total > 0 else 0
    return {"current": current, "total": total, "percentage": percentage}


def _find_reference(questions: list[Question], ref: str) -> Optional[Question]:
    for question in questions:
        if str(question.order) == ref or str(question.id) == ref:
            return question
    return None


def render_question_text(
    question: Question,
    all_questions: list[Question],
    responses: ResponseMap,
) -> str:
    """
    Substitute ``{{ref.prop}}`` placeholders with earlier answers.

    ``ref`` is a question order or id. Placeholders pointing at unknown or
    unanswered questions are left untouched.
    """
    def substitute(match: re.Match) -> str:
        ref_question = _find_reference(all_questions, match.group(1))
        if ref_question is None:
            return match.group(0)
        answer = responses.get(ref_question.id)
        if is_empty_answer(answer):
            return match.group(0)
        return as_text(answer)

    return _PLACEHOLDER.sub(substitute, question.text)
