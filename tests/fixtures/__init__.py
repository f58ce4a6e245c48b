"""Shared testing fixtures for the study_snap test suite."""

from .completions import (  # noqa: F401
    FakeChatClient,
    ScriptedGateway,
    completion,
    quiz_json,
)
from .workspace import WorkspaceBuilder  # noqa: F401

__all__ = [
    "FakeChatClient",
    "ScriptedGateway",
    "WorkspaceBuilder",
    "completion",
    "quiz_json",
]
