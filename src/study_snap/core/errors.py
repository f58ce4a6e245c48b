"""Error taxonomy shared across study_snap components."""

from __future__ import annotations

from enum import Enum

__all__ = [
    "StudySnapError",
    "UpstreamError",
    "ExtractionErrorKind",
    "ExtractionError",
    "SessionErrorKind",
    "SessionStateError",
    "LoggingError",
]


class StudySnapError(RuntimeError):
    """Base class for every error raised by study_snap."""


class UpstreamError(StudySnapError):
    """Raised when the completion provider fails or answers malformed data."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base} (status {self.status_code})"


class ExtractionErrorKind(str, Enum):
    MALFORMED_JSON = "malformed_json"
    EMPTY_OR_INVALID_SHAPE = "empty_or_invalid_shape"


class ExtractionError(StudySnapError):
    """Raised when model output cannot be turned into a quiz."""

    def __init__(
        self,
        message: str,
        *,
        kind: ExtractionErrorKind,
        raw_text: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.raw_text = raw_text


class SessionErrorKind(str, Enum):
    NO_SELECTION = "no_selection"
    ALREADY_ANSWERED = "already_answered"
    OUT_OF_SEQUENCE = "out_of_sequence"


class SessionStateError(StudySnapError):
    """Raised when a quiz session operation is invalid in its state."""

    def __init__(self, message: str, *, kind: SessionErrorKind) -> None:
        super().__init__(message)
        self.kind = kind


class LoggingError(StudySnapError):
    """Raised when the session history store cannot be written or read."""
