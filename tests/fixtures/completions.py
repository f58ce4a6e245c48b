"""Completion doubles shared across tests.

``FakeChatClient`` mirrors the ``chat.completions.create`` surface of the
OpenAI SDK client and is injected into ``OpenAICompletionGateway``.
``ScriptedGateway`` satisfies ``CompletionGateway`` directly for code that
sits above the gateway.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Dict, List, Sequence, Union

Scripted = Union[str, BaseException, Any]


def completion(content: Any) -> SimpleNamespace:
    """Build a chat completion envelope holding ``content``."""

    message = SimpleNamespace(role="assistant", content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeChatClient:
    """Stand-in for ``openai.OpenAI`` that replays queued responses."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self._queue: List[Scripted] = []
        self.chat = SimpleNamespace(
            completions=SimpleNamespace(create=self._create)
        )

    def queue_text(self, content: str) -> None:
        self._queue.append(completion(content))

    def queue_raw(self, envelope: Any) -> None:
        self._queue.append(envelope)

    def queue_error(self, exc: BaseException) -> None:
        self._queue.append(exc)

    def _create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if not self._queue:
            raise AssertionError("FakeChatClient received an unexpected call")
        item = self._queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class ScriptedGateway:
    """``CompletionGateway`` returning scripted text or raising errors."""

    def __init__(self, *responses: Scripted) -> None:
        self.responses: List[Scripted] = list(responses)
        self.calls: List[Sequence[Any]] = []

    def complete(self, messages: Sequence[Any]) -> str:
        self.calls.append(list(messages))
        if not self.responses:
            raise AssertionError("ScriptedGateway ran out of responses")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    @property
    def last_system_prompt(self) -> str:
        return self.calls[-1][0].content

    @property
    def last_user_text(self) -> str:
        return self.calls[-1][-1].content


def quiz_json(count: int, *, correct_index: int = 0) -> str:
    """Return a well-formed quiz array with ``count`` questions."""

    items = [
        {
            "question": f"Question {n}?",
            "options": [f"Q{n} option {c}" for c in "ABCD"],
            "correct_index": correct_index,
        }
        for n in range(1, count + 1)
    ]
    return json.dumps(items)
