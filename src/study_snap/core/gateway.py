"""Completion gateway wrapping an OpenAI-compatible chat endpoint.

The gateway is the only place that talks to the model provider. Callers hand
it a role-tagged message sequence and receive the raw completion text, or an
:class:`~study_snap.core.errors.UpstreamError` carrying the provider's status
code and body. Failed calls are never retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Protocol, Sequence

import openai

from .errors import UpstreamError

__all__ = [
    "Message",
    "CompletionGateway",
    "OpenAICompletionGateway",
    "system_message",
    "user_message",
]

_LOGGER = logging.getLogger(__name__)

Role = Literal["system", "user"]
_ROLES = frozenset({"system", "user"})


@dataclass(frozen=True)
class Message:
    """A single role-tagged chat message."""

    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in _ROLES:
            raise ValueError(
                f"Unsupported message role '{self.role}'; "
                "expected 'system' or 'user'."
            )

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


def system_message(content: str) -> Message:
    return Message("system", content)


def user_message(content: str) -> Message:
    return Message("user", content)


class CompletionGateway(Protocol):
    """Protocol satisfied by completion service adapters."""

    def complete(self, messages: Sequence[Message]) -> str:
        """Return the raw completion text for ``messages``."""


class OpenAICompletionGateway:
    """Adapter for OpenAI-compatible chat completions."""

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        temperature: float = 0.2,
        max_output_tokens: int = 2048,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens

    @property
    def model(self) -> str:
        return self._model

    def complete(self, messages: Sequence[Message]) -> str:
        if not messages:
            raise ValueError("At least one message is required.")
        payload = [message.to_dict() for message in messages]
        _LOGGER.debug(
            "Requesting completion",
            extra={"model": self._model, "message_count": len(payload)},
        )
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=payload,
                temperature=self._temperature,
                max_tokens=self._max_output_tokens,
            )
        except openai.APIStatusError as exc:
            body = _response_text(exc)
            _LOGGER.error(
                "Completion provider returned an error status",
                extra={"model": self._model, "status_code": exc.status_code},
            )
            raise UpstreamError(
                "Completion provider error",
                status_code=exc.status_code,
                body=body,
            ) from exc
        except openai.APIConnectionError as exc:
            _LOGGER.error(
                "Completion provider unreachable",
                extra={"model": self._model},
            )
            raise UpstreamError(
                f"Completion provider unreachable: {exc}"
            ) from exc
        except openai.APIError as exc:
            _LOGGER.error(
                "Completion provider request failed",
                extra={"model": self._model, "error_type": type(exc).__name__},
            )
            raise UpstreamError(f"Completion provider error: {exc}") from exc

        content = _extract_content(response)
        _LOGGER.info(
            "Received completion",
            extra={"model": self._model, "response_chars": len(content)},
        )
        return content


def _extract_content(response: Any) -> str:
    try:
        choice = response.choices[0]
        content = choice.message.content
    except (AttributeError, IndexError, KeyError, TypeError) as exc:
        raise UpstreamError(
            "Malformed completion envelope: no choices returned",
            body=repr(response),
        ) from exc
    if not isinstance(content, str):
        raise UpstreamError(
            "Malformed completion envelope: message content missing",
            body=repr(response),
        )
    return content


def _response_text(exc: openai.APIStatusError) -> str:
    response = getattr(exc, "response", None)
    text = getattr(response, "text", None)
    if isinstance(text, str):
        return text
    if exc.body is not None:
        return str(exc.body)
    return str(exc)
