"""
Session-side data: response values, navigation state, submission metadata
and resumable draft snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from ..errors import InvalidResponseError

# str | number | bool | list of str
ResponseValue = Union[str, int, float, bool, list]
ResponseMap = dict[int, ResponseValue]


def coerce_response_value(value) -> ResponseValue:
    """
    Check that ``value`` is one of the supported answer shapes.

    Tuples are accepted and stored as lists. Anything else raises
    InvalidResponseError.
    """
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        if not all(isinstance(item, str) for item in value):
            raise InvalidResponseError(f"List answers must contain only strings, got {value!r}")
        return list(value)
    raise InvalidResponseError(f"Unsupported answer type {type(value).__name__}")


def value_kind(value) -> str:
    """Kind tag of a response value: boolean, number, string, array or null."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


def is_empty_answer(value) -> bool:
    """Absent, None, empty string or empty list."""
    if value is None:
        return True
    if isinstance(value, str) and value == "":
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    return False


def normalize_response_map(responses: Optional[dict]) -> ResponseMap:
    """Convert JSON-style string keys to int question ids and check values."""
    normalized: ResponseMap = {}
    for key, value in (responses or {}).items():
        normalized[int(key)] = coerce_response_value(value)
    return normalized


@dataclass
class NavigationState:
    """Position and per-question errors for one respondent session."""
    current_index: int = 0
    completion_path: list[int] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)

    def record_visit(self, question_id: int):
        if question_id not in self.completion_path:
            self.completion_path.append(question_id)

    def clear_error(self, question_id: int):
        self.errors.pop(question_id, None)


@dataclass
class AdaptiveMetadata:
    """Produced once at submission and handed to the submit collaborator."""
    total_questions_shown: int
    questions_skipped: int
    adaptive_score: float
    confidence_level: float
    early_termination: bool
    completion_path: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_questions_shown": self.total_questions_shown,
            "questions_skipped": self.questions_skipped,
            "adaptive_score": self.adaptive_score,
            "confidence_level": self.confidence_level,
            "early_termination": self.early_termination,
            "completion_path": list(self.completion_path),
        }


@dataclass
class DraftSnapshot:
    """Resume data for an unfinished session. The engine never stores it."""
    questionnaire_id: int
    session_id: str
    responses: ResponseMap = field(default_factory=dict)
    current_question_id: Optional[int] = None
    completion_percentage: float = 0.0
    completion_path: list[int] = field(default_factory=list)
    last_saved: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict:
        return {
            "questionnaire_id": self.questionnaire_id,
            "session_id": self.session_id,
            # JSON object keys are strings
            "responses": {str(k): v for k, v in self.responses.items()},
            "current_question_id": self.current_question_id,
            "completion_percentage": self.completion_percentage,
            "completion_path": list(self.completion_path),
            "last_saved": self.last_saved,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DraftSnapshot":
        return cls(
            questionnaire_id=int(data["questionnaire_id"]),
            session_id=data.get("session_id", ""),
            responses=normalize_response_map(data.get("responses")),
            current_question_id=data.get("current_question_id"),
            completion_percentage=float(data.get("completion_percentage", 0.0)),
            completion_path=[int(q) for q in data.get("completion_path", [])],
            last_saved=data.get("last_saved") or datetime.now().isoformat(),
        )
