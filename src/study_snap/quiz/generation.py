"""Superseding generation ids for in-flight quiz requests."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Sequence

from .extraction import Question
from .session import QuizSession

__all__ = ["GenerationTracker"]

_LOGGER = logging.getLogger(__name__)


class GenerationTracker:
    """Track which quiz generation request is still wanted.

    Each call to :meth:`begin` supersedes every earlier request. When a
    superseded request completes, :meth:`accept` discards its quiz instead
    of replacing the session the user is now looking at.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counter = itertools.count(1)
        self._current: int | None = None

    @property
    def current(self) -> int | None:
        with self._lock:
            return self._current

    def begin(self) -> int:
        with self._lock:
            generation_id = next(self._counter)
            self._current = generation_id
        _LOGGER.debug(
            "Started quiz generation", extra={"generation_id": generation_id}
        )
        return generation_id

    def is_current(self, generation_id: int) -> bool:
        with self._lock:
            return generation_id == self._current

    def cancel(self) -> None:
        """Abandon whatever generation is in flight."""

        with self._lock:
            self._current = None

    def accept(
        self, generation_id: int, quiz: Sequence[Question]
    ) -> QuizSession | None:
        """Return a new session for ``quiz`` if ``generation_id`` is current."""

        with self._lock:
            if generation_id != self._current:
                stale = True
            else:
                stale = False
                self._current = None
        if stale:
            _LOGGER.info(
                "Discarded superseded quiz generation",
                extra={"generation_id": generation_id},
            )
            return None
        return QuizSession(quiz)
