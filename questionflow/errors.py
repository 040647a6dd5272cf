"""
Exception types for the question-flow engine.

Per-question validation problems are reported as data (see
``logic.validation.ValidationResult``), not raised. The classes here cover
malformed questionnaire definitions, unsupported answer values, and failures
raised by the external submit/draft collaborators.
"""


class QuestionFlowError(Exception):
    """Base class for all questionflow errors."""


class QuestionnaireDefinitionError(QuestionFlowError, ValueError):
    """A question, rule or adaptive config could not be built from its data."""


class InvalidResponseError(QuestionFlowError, TypeError):
    """An answer value is not one of str, number, bool or list of str."""


class UnknownQuestionError(QuestionFlowError, KeyError):
    """An answer was given for a question id the questionnaire does not have."""


class SubmitError(QuestionFlowError):
    """The submit collaborator raised; the session stays in Answering."""

    def __init__(self, message: str, session_id: str = ""):
        super().__init__(message)
        self.session_id = session_id


class DraftSaveError(QuestionFlowError):
    """The draft collaborator raised; logged only, never shown to the respondent."""

    def __init__(self, message: str, session_id: str = ""):
        super().__init__(message)
        self.session_id = session_id
