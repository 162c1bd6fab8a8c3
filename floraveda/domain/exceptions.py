"""
Domain exceptions shared by the analysis, chat and consultation layers.
"""
from enum import Enum


class AnalysisInputError(ValueError):
    """Raised when analysis input is rejected at the input boundary."""
    pass


class AnalysisError(Exception):
    """Base class for failures of a single analysis attempt."""
    pass


class EmptyResponseError(AnalysisError):
    """The model returned no text payload."""
    pass


class MalformedResponseError(AnalysisError):
    """The payload could not be parsed into a plant report."""
    pass


class TransportError(AnalysisError):
    """Network or provider failure while talking to the model."""
    pass


class ChatErrorKind(str, Enum):
    """Failure buckets for a chat exchange."""
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    SAFETY_BLOCKED = "safety_blocked"
    CONNECTION = "connection"


class ChatStreamError(Exception):
    """A chat stream failure already classified by the provider adapter."""

    def __init__(self, kind: ChatErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class InvalidStateTransitionError(Exception):
    """Raised when an operation is not allowed in the current state."""
    pass


class ExchangeInProgressError(InvalidStateTransitionError):
    """Raised when a chat exchange is started while another one streams."""
    pass


class ConsultationNotFoundError(Exception):
    """Raised when a consultation id is unknown or expired."""

    def __init__(self, consultation_id: str):
        super().__init__(f"Consultation '{consultation_id}' not found")
        self.consultation_id = consultation_id
