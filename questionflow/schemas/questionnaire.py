"""
Questionnaire definition schema.

A questionnaire is the immutable input of one respondent session:
- Questions (ordered by ``order``)
- Conditional rules (ordered; declaration order matters)
- Adaptive configuration (early-termination thresholds)

Definitions arrive as plain dicts/JSON from the questionnaire store. Both the
canonical snake_case keys and the legacy builder keys (``order_num``,
``questionId``, ``targetQuestionId``, ``value``) are accepted on load.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Any

from ..errors import QuestionnaireDefinitionError


class QuestionType(str, Enum):
    """Closed set of question widgets the engine knows how to score."""
    TEXT = "text"
    TEXTAREA = "textarea"
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    BOOLEAN = "boolean"
    RATING = "rating"
    LIKERT = "likert"
    SLIDER = "slider"


class RuleOperator(str, Enum):
    """Comparison applied between the source answer and the rule value."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    NOT_IN = "not_in"


class RuleAction(str, Enum):
    """What a rule does when its condition holds."""
    SHOW = "show"
    HIDE = "hide"
    REQUIRE = "require"
    SKIP_TO = "skip_to"
    END_SURVEY = "end_survey"


# Actions that must name a target question
TARGETED_ACTIONS = {RuleAction.SHOW, RuleAction.HIDE, RuleAction.REQUIRE, RuleAction.SKIP_TO}

CHOICE_TYPES = {QuestionType.SINGLE_CHOICE, QuestionType.MULTIPLE_CHOICE, QuestionType.LIKERT}


@dataclass(frozen=True)
class QuestionMetadata:
    """Optional per-question knobs used by scoring and answer-shape checks."""
    adaptive_weight: Optional[float] = None  # None -> weight 1
    risk_indicator: bool = False
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    scale_labels: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "QuestionMetadata":
        if not data:
            return cls()
        weight = data.get("adaptive_weight")
        if weight is not None:
            if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight < 0:
                raise QuestionnaireDefinitionError(
                    f"adaptive_weight must be a number >= 0, got {weight!r}"
                )
        return cls(
            adaptive_weight=weight,
            risk_indicator=bool(data.get("risk_indicator", False)),
            min=data.get("min"),
            max=data.get("max"),
            step=data.get("step"),
            scale_labels=list(data.get("scale_labels") or []),
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"risk_indicator": self.risk_indicator}
        if self.adaptive_weight is not None:
            data["adaptive_weight"] = self.adaptive_weight
        for key in ("min", "max", "step"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.scale_labels:
            data["scale_labels"] = list(self.scale_labels)
        return data


@dataclass(frozen=True)
class Question:
    """A single question. ``required`` is the author's flag, before rule overrides."""
    id: int
    type: QuestionType
    text: str = ""
    required: bool = False
    order: int = 0
    options: Optional[list[str]] = None
    metadata: QuestionMetadata = field(default_factory=QuestionMetadata)

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        if "id" not in data:
            raise QuestionnaireDefinitionError(f"Question is missing an id: {data!r}")
        try:
            question_type = QuestionType(data.get("type", "text"))
        except ValueError as exc:
            raise QuestionnaireDefinitionError(
                f"Question {data['id']}: unknown type {data.get('type')!r}"
            ) from exc

        options = data.get("options")
        if options is not None:
            if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
                raise QuestionnaireDefinitionError(
                    f"Question {data['id']}: options must be a list of strings"
                )
            options = list(options)

        return cls(
            id=int(data["id"]),
            type=question_type,
            text=data.get("text", ""),
            required=bool(data.get("required", False)),
            order=int(data.get("order", data.get("order_num", 0))),
            options=options,
            metadata=QuestionMetadata.from_dict(data.get("metadata")),
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "text": self.text,
            "required": self.required,
            "order": self.order,
            "metadata": self.metadata.to_dict(),
        }
        if self.options is not None:
            data["options"] = list(self.options)
        return data


@dataclass(frozen=True)
class ConditionalRule:
    """
    One conditional rule.

    ``comparison_value`` is a scalar or a list depending on the operator.
    ``target_question_id`` is None only for ``end_survey``.
    """
    id: str
    source_question_id: int
    operator: RuleOperator
    comparison_value: Any
    action: RuleAction
    target_question_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ConditionalRule":
        source = data.get("source_question_id", data.get("questionId"))
        if source is None:
            raise QuestionnaireDefinitionError(f"Rule has no source question: {data!r}")

        try:
            operator = RuleOperator(data.get("operator"))
            action = RuleAction(data.get("action"))
        except ValueError as exc:
            raise QuestionnaireDefinitionError(f"Rule {data.get('id')!r}: {exc}") from exc

        target = data.get("target_question_id", data.get("targetQuestionId"))
        if action in TARGETED_ACTIONS and target is None:
            raise QuestionnaireDefinitionError(
                f"Rule {data.get('id')!r}: action '{action.value}' requires a target question"
            )

        comparison = data["comparison_value"] if "comparison_value" in data else data.get("value")

        rule_id = data.get("id")
        if not rule_id:
            prefix = action.value if target is None else f"{action.value}_{target}"
            rule_id = f"{prefix}_if_{source}_{operator.value}"

        return cls(
            id=str(rule_id),
            source_question_id=int(source),
            operator=operator,
            comparison_value=comparison,
            action=action,
            target_question_id=int(target) if target is not None else None,
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "source_question_id": self.source_question_id,
            "operator": self.operator.value,
            "comparison_value": self.comparison_value,
            "action": self.action.value,
        }
        if self.target_question_id is not None:
            data["target_question_id"] = self.target_question_id
        return data


@dataclass
class AdaptiveConfig:
    """Early-termination thresholds. ``max_questions`` is informational only."""
    enabled: bool = False
    min_questions: int = 1
    max_questions: int = 1
    confidence_threshold: float = 1.0
    early_termination_enabled: bool = False

    def __post_init__(self):
        if self.min_questions < 0 or self.max_questions < 0:
            raise QuestionnaireDefinitionError("min_questions and max_questions must be >= 0")
        if self.min_questions > self.max_questions:
            raise QuestionnaireDefinitionError(
                f"min_questions ({self.min_questions}) exceeds max_questions ({self.max_questions})"
            )
        if not 0 <= self.confidence_threshold <= 1:
            raise QuestionnaireDefinitionError(
                f"confidence_threshold must be within 0..1, got {self.confidence_threshold}"
            )

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AdaptiveConfig":
        if not data:
            return cls()
        return cls(
            enabled=bool(data.get("enabled", False)),
            min_questions=int(data.get("min_questions", 1)),
            max_questions=int(data.get("max_questions", data.get("min_questions", 1))),
            confidence_threshold=float(data.get("confidence_threshold", 1.0)),
            early_termination_enabled=bool(data.get("early_termination_enabled", False)),
        )

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "min_questions": self.min_questions,
            "max_questions": self.max_questions,
            "confidence_threshold": self.confidence_threshold,
            "early_termination_enabled": self.early_termination_enabled,
        }


@dataclass
class Questionnaire:
    """Questions, rules and adaptive config for one questionnaire."""
    id: int
    title: str
    questions: list[Question] = field(default_factory=list)
    conditional_rules: list[ConditionalRule] = field(default_factory=list)
    adaptive_config: AdaptiveConfig = field(default_factory=AdaptiveConfig)
    description: str = ""
    estimated_time: Optional[int] = None
    allow_anonymous: bool = True

    def __post_init__(self):
        # Stable sort keeps declaration order for equal `order` values
        self.questions = sorted(self.questions, key=lambda q: q.order)
        seen: set[int] = set()
        for question in self.questions:
            if question.id in seen:
                raise QuestionnaireDefinitionError(f"Duplicate question id {question.id}")
            seen.add(question.id)

    def get_question(self, question_id: int) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "Questionnaire":
        """Create from dictionary."""
        if not isinstance(data, dict):
            raise QuestionnaireDefinitionError("Questionnaire definition must be an object")
        return cls(
            id=int(data.get("id", 0)),
            title=data.get("title", ""),
            description=data.get("description", ""),
            questions=[Question.from_dict(q) for q in data.get("questions", [])],
            conditional_rules=[ConditionalRule.from_dict(r) for r in data.get("conditional_rules", [])],
            adaptive_config=AdaptiveConfig.from_dict(data.get("adaptive_config")),
            estimated_time=data.get("estimated_time"),
            allow_anonymous=bool(data.get("allow_anonymous", True)),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "questions": [q.to_dict() for q in self.questions],
            "conditional_rules": [r.to_dict() for r in self.conditional_rules],
            "adaptive_config": self.adaptive_config.to_dict(),
            "estimated_time": self.estimated_time,
            "allow_anonymous": self.allow_anonymous,
        }


SAMPLES_DIR = Path(__file__).resolve().parents[1] / "samples"


def load_questionnaire(path: str | Path) -> Questionnaire:
    """Load a questionnaire definition from a JSON file."""
    path_obj = Path(path)
    try:
        data = json.loads(path_obj.read_text())
    except json.JSONDecodeError as exc:
        raise QuestionnaireDefinitionError(f"{path_obj}: invalid JSON ({exc})") from exc
    return Questionnaire.from_dict(data)


def load_sample(name: str) -> Questionnaire:
    """Load one of the bundled sample questionnaires by file stem."""
    path = SAMPLES_DIR / f"{name}.json"
    if not path.exists():
        raise QuestionnaireDefinitionError(f"Unknown sample questionnaire '{name}'")
    return load_questionnaire(path)


def list_samples() -> list[str]:
    return sorted(p.stem for p in SAMPLES_DIR.glob("*.json"))
