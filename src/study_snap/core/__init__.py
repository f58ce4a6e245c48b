"""Core shared helpers for study_snap commands."""

from __future__ import annotations

from .ai import load_client
from .errors import (
    ExtractionError,
    ExtractionErrorKind,
    LoggingError,
    SessionErrorKind,
    SessionStateError,
    StudySnapError,
    UpstreamError,
)
from .gateway import (
    CompletionGateway,
    Message,
    OpenAICompletionGateway,
    system_message,
    user_message,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
    describe_layout,
)

__all__ = [
    "load_client",
    "StudySnapError",
    "UpstreamError",
    "ExtractionError",
    "ExtractionErrorKind",
    "SessionStateError",
    "SessionErrorKind",
    "LoggingError",
    "CompletionGateway",
    "Message",
    "OpenAICompletionGateway",
    "system_message",
    "user_message",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "describe_layout",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
