"""
Flow Controller - per-respondent navigation state machine.

States:
    ANSWERING  -> respondent is moving between visible questions
    SUBMITTING -> submit collaborator is running
    SUBMITTED  -> terminal

Transitions:
    answer(question_id, value)  write a response; recompute visibility/scores;
                                restart the draft auto-save debounce
    next()                      validate current question, then skip-to rule,
                                early termination, or advance by one
    previous()                  step back one visible question, no validation
    submit()                    validate all visible questions, build
                                AdaptiveMetadata, call the submit collaborator

The current position is stored as a question id and re-derived against the
latest visible list on every transition, so a shrinking visible list never
leaves the index out of bounds.
"""

from __future__ import annotations

import logging
import secrets
import threading
from enum import Enum
from typing import Any, Optional

from ..config import FlowSettings
from ..errors import SubmitError, UnknownQuestionError
from ..logic.navigation import should_end_survey, skip_target
from ..logic.scoring import AdaptiveScore, score
from ..logic.validation import validate, validate_question
from ..logic.visibility import progress, render_question_text, resolve
from ..schemas.questionnaire import Question, Questionnaire
from ..schemas.session import (
    AdaptiveMetadata,
    DraftSnapshot,
    NavigationState,
    ResponseMap,
    coerce_response_value,
    normalize_response_map,
)
from .autosave import DraftAutoSaver, TimerFactory
from .collaborators import SaveDraftCallback, SubmitCallback, invoke

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    """Lifecycle of a respondent session."""
    ANSWERING = "answering"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class StepOutcome(str, Enum):
    """What a navigation call did."""
    MOVED = "moved"                    # advanced or went back one question
    SKIPPED = "skipped"                # jumped to a skip_to target
    STAYED = "stayed"                  # already at the first/last question
    BLOCKED = "blocked"                # validation errors recorded
    SUBMITTED = "submitted"            # submit collaborator succeeded
    SUBMIT_FAILED = "submit_failed"    # submit collaborator raised
    REJECTED = "rejected"              # not in ANSWERING, or a submit is in flight


class FlowController:
    """
    Drives one respondent through a questionnaire.

    Usage:
        flow = FlowController(questionnaire, on_submit=store_response)
        flow.answer(1, "Several days")
        flow.next()
        ...
        flow.submit()
    """

    def __init__(
        self,
        questionnaire: Questionnaire,
        on_submit: SubmitCallback,
        on_save_draft: Optional[SaveDraftCallback] = None,
        settings: Optional[FlowSettings] = None,
        initial_responses: Optional[dict] = None,
        session_id: Optional[str] = None,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self.questionnaire = questionnaire
        self.on_submit = on_submit
        self.settings = settings or FlowSettings()
        self.session_id = session_id or secrets.token_hex(8)

        self.responses: ResponseMap = normalize_response_map(initial_responses)
        self.navigation = NavigationState()
        self.state = FlowState.ANSWERING
        self.metadata: Optional[AdaptiveMetadata] = None
        self.last_submit_error: Optional[SubmitError] = None

        self._lock = threading.Lock()
        self.is_submitting = False

        self.autosaver: Optional[DraftAutoSaver] = None
        if on_save_draft is not None:
            self.autosaver = DraftAutoSaver(
                on_save_draft,
                delay=self.settings.autosave_delay,
                timer_factory=timer_factory,
                session_id=self.session_id,
            )

        visible = self.visible_questions
        self._current_id: Optional[int] = visible[0].id if visible else None
        self._sync_index()

    @classmethod
    def from_snapshot(
        cls,
        questionnaire: Questionnaire,
        snapshot: DraftSnapshot,
        on_submit: SubmitCallback,
        **kwargs: Any,
    ) -> "FlowController":
        """Resume a session from a saved draft; an explicit session_id wins over the draft's."""
        session_id = kwargs.pop("session_id", None) or snapshot.session_id or None
        flow = cls(
            questionnaire,
            on_submit,
            initial_responses=snapshot.responses,
            session_id=session_id,
            **kwargs,
        )
        flow.navigation.completion_path = list(snapshot.completion_path)
        if snapshot.current_question_id is not None:
            flow._current_id = snapshot.current_question_id
            flow._anchor()
        return flow

    # ------------------------------------------------------------------
    # Derived views (pure recomputation from the current responses)
    # ------------------------------------------------------------------

    def resolve(self) -> tuple[list[Question], set[int]]:
        return resolve(self.questionnaire.questions, self.questionnaire.conditional_rules, self.responses)

    @property
    def visible_questions(self) -> list[Question]:
        return self.resolve()[0]

    @property
    def adaptive(self) -> AdaptiveScore:
        return score(
            self.visible_questions,
            self.responses,
            self.questionnaire.adaptive_config,
            self.settings.confidence_scope,
        )

    @property
    def should_end_survey(self) -> bool:
        return should_end_survey(self.questionnaire.conditional_rules, self.responses)

    @property
    def skip_target(self) -> Optional[int]:
        return skip_target(self.questionnaire.conditional_rules, self.responses)

    @property
    def current_index(self) -> int:
        return self._position(self.visible_questions)[0]

    @property
    def current_question(self) -> Optional[Question]:
        visible = self.visible_questions
        if not visible:
            return None
        return visible[self._position(visible)[0]]

    @property
    def errors(self) -> dict[int, str]:
        return self.navigation.errors

    def _position(self, visible: list[Question]) -> tuple[int, Optional[int]]:
        """
        Index of the current question in ``visible`` and the id found there.

        If the current question is no longer visible, clamp to the first
        visible question ordered at or after it, else the last one.
        """
        if not visible:
            return 0, None

        for index, question in enumerate(visible):
            if question.id == self._current_id:
                return index, question.id

        anchor = self.questionnaire.get_question(self._current_id) if self._current_id is not None else None
        if anchor is None:
            return 0, visible[0].id

        for index, question in enumerate(visible):
            if question.order >= anchor.order:
                return index, question.id
        return len(visible) - 1, visible[-1].id

    def _anchor(self) -> list[Question]:
        """Re-point the current id at a visible question; returns the visible list."""
        visible = self.visible_questions
        index, question_id = self._position(visible)
        if question_id != self._current_id:
            logger.debug(
                "Question %s no longer visible, clamped to %s (index %d)",
                self._current_id, question_id, index,
            )
        self._current_id = question_id
        self.navigation.current_index = index
        return visible

    def _sync_index(self):
        self.navigation.current_index = self.current_index

    def _move_to(self, question_id: int, visible: list[Question]):
        self._current_id = question_id
        self.navigation.current_index = next(
            i for i, q in enumerate(visible) if q.id == question_id
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def answer(self, question_id: int, value: Any) -> bool:
        """
        Record an answer.

        Returns:
            False if the session no longer accepts answers
        """
        if self.state != FlowState.ANSWERING:
            logger.debug("Ignoring answer for %s in state %s", question_id, self.state.value)
            return False
        if self.questionnaire.get_question(question_id) is None:
            raise UnknownQuestionError(f"Question {question_id} is not part of this questionnaire")

        self.responses[question_id] = coerce_response_value(value)
        self.navigation.record_visit(question_id)
        self.navigation.clear_error(question_id)
        self._sync_index()

        if self.autosaver is not None and self.responses:
            self.autosaver.schedule(self.responses)
        return True

    def next(self) -> StepOutcome:
        """Validate the current question and move forward."""
        if self.state != FlowState.ANSWERING:
            return StepOutcome.REJECTED

        visible = self._anchor()
        if not visible:
            return StepOutcome.STAYED
        current = visible[self.navigation.current_index]

        message = validate_question(current, self.responses)
        if message:
            self.navigation.errors[current.id] = message
            return StepOutcome.BLOCKED

        target = self.skip_target
        if target is not None and any(q.id == target for q in visible):
            logger.debug("Skip rule moves session %s from %s to %s", self.session_id, current.id, target)
            self._move_to(target, visible)
            return StepOutcome.SKIPPED

        if self.adaptive.should_terminate:
            logger.info("Early termination for session %s, submitting", self.session_id)
            return self.submit()

        index = self.navigation.current_index
        if index < len(visible) - 1:
            self._move_to(visible[index + 1].id, visible)
            return StepOutcome.MOVED
        return StepOutcome.STAYED

    def previous(self) -> StepOutcome:
        """Step back one visible question."""
        if self.state != FlowState.ANSWERING:
            return StepOutcome.REJECTED

        visible = self._anchor()
        index = self.navigation.current_index
        if index > 0:
            self._move_to(visible[index - 1].id, visible)
            return StepOutcome.MOVED
        return StepOutcome.STAYED

    def build_metadata(self) -> AdaptiveMetadata:
        visible = self.visible_questions
        adaptive = self.adaptive
        return AdaptiveMetadata(
            total_questions_shown=len(visible),
            questions_skipped=len(self.questionnaire.questions) - len(visible),
            adaptive_score=adaptive.normalized_score,
            confidence_level=adaptive.confidence,
            early_termination=adaptive.should_terminate,
            completion_path=list(self.navigation.completion_path),
        )

    def submit(self) -> StepOutcome:
        """Validate every visible question and hand the responses to on_submit."""
        if self.state != FlowState.ANSWERING:
            return StepOutcome.REJECTED

        result = validate(self.visible_questions, self.responses)
        if not result.valid:
            self.navigation.errors.update(result.errors)
            return StepOutcome.BLOCKED

        with self._lock:
            # Another submit may have finished while this one was validating
            if self.is_submitting or self.state != FlowState.ANSWERING:
                logger.debug("Submit already in flight or done for session %s", self.session_id)
                return StepOutcome.REJECTED
            self.is_submitting = True
            self.state = FlowState.SUBMITTING

        try:
            metadata = self.build_metadata()
            try:
                invoke(self.on_submit, dict(self.responses), metadata)
            except Exception as exc:
                error = SubmitError(f"Failed to submit questionnaire: {exc}", self.session_id)
                error.__cause__ = exc
                self.last_submit_error = error
                self.state = FlowState.ANSWERING
                logger.error("Submit failed for session %s: %s", self.session_id, exc, exc_info=exc)
                return StepOutcome.SUBMIT_FAILED

            self.metadata = metadata
            self.last_submit_error = None
            self.state = FlowState.SUBMITTED
            if self.autosaver is not None:
                self.autosaver.cancel()
            logger.info(
                "Session %s submitted: %d shown, %d skipped, score=%.2f, early=%s",
                self.session_id, metadata.total_questions_shown, metadata.questions_skipped,
                metadata.adaptive_score, metadata.early_termination,
            )
            return StepOutcome.SUBMITTED
        finally:
            with self._lock:
                self.is_submitting = False

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def save_draft(self) -> bool:
        """Save the current responses immediately (cancels the pending debounce)."""
        if self.autosaver is None:
            return False
        self.autosaver.cancel()
        return self.autosaver.flush(self.responses)

    def snapshot(self) -> DraftSnapshot:
        return DraftSnapshot(
            questionnaire_id=self.questionnaire.id,
            session_id=self.session_id,
            responses=dict(self.responses),
            current_question_id=self._position(self.visible_questions)[1],
            completion_percentage=progress(self.visible_questions, self.responses)["percentage"],
            completion_path=list(self.navigation.completion_path),
        )

    def close(self):
        """Cancel pending timers; call when the respondent abandons the session."""
        if self.autosaver is not None:
            self.autosaver.cancel()

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def question_view(self, question: Question) -> dict:
        data = question.to_dict()
        data["text"] = render_question_text(question, self.questionnaire.questions, self.responses)
        data["value"] = self.responses.get(question.id)
        data["error"] = self.navigation.errors.get(question.id)
        return data

    def to_dict(self) -> dict:
        """Everything a UI layer needs to render the current step."""
        visible, required_overrides = self.resolve()
        index, _ = self._position(visible)
        current = visible[index] if visible else None
        adaptive = score(
            visible, self.responses, self.questionnaire.adaptive_config, self.settings.confidence_scope
        )
        return {
            "session_id": self.session_id,
            "questionnaire_id": self.questionnaire.id,
            "state": self.state.value,
            "current_index": index,
            "current_question": self.question_view(current) if current else None,
            "visible_question_ids": [q.id for q in visible],
            "required_question_ids": [q.id for q in visible if q.required],
            "conditionally_required_ids": sorted(required_overrides),
            "progress": progress(visible, self.responses),
            "adaptive": adaptive.to_dict(),
            "should_end_survey": self.should_end_survey,
            "skip_target": self.skip_target,
            "completion_path": list(self.navigation.completion_path),
            "errors": {str(k): v for k, v in self.navigation.errors.items()},
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }
