"""Quiz session state machine.

A :class:`QuizSession` walks one user through an already-extracted quiz:
select an option, submit it for grading, advance to the next question. It
performs no I/O and knows nothing about rendering, so the Rich console loop,
the Textual app and tests all drive the same object.

State transitions per question::

    AWAITING_SELECTION --select--> SELECTED --submit--> ANSWERED
            ^                        |  ^                  |
            |                        +--+ (re-select)      |
            +----------------- advance --------------------+
                                                           |
                               advance on last question -> FINISHED
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ..core.errors import SessionErrorKind, SessionStateError
from .extraction import Question, Quiz

__all__ = [
    "SessionState",
    "GradeResult",
    "Progress",
    "QuizSession",
]


class SessionState(str, Enum):
    AWAITING_SELECTION = "awaiting_selection"
    SELECTED = "selected"
    ANSWERED = "answered"
    FINISHED = "finished"


@dataclass(frozen=True)
class GradeResult:
    """Outcome of submitting an answer.

    ``correct_index`` is ``None`` for ungradable questions so callers never
    reveal an answer the model did not supply reliably.
    """

    correct: bool
    correct_index: int | None
    selected_index: int


@dataclass(frozen=True)
class Progress:
    """Read-only snapshot of where the session stands."""

    index: int
    total: int
    score: int

    @property
    def number(self) -> int:
        return self.index + 1


class QuizSession:
    """Mutable, single-owner session over a fixed quiz."""

    def __init__(self, quiz: Sequence[Question]) -> None:
        if not quiz:
            raise ValueError("A quiz session needs at least one question.")
        self._quiz: Quiz = tuple(quiz)
        self._index = 0
        self._score = 0
        self._selected: int | None = None
        self._answered = False
        self._finished = False
        self._last_grade: GradeResult | None = None

    @property
    def quiz(self) -> Quiz:
        return self._quiz

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def score(self) -> int:
        return self._score

    @property
    def selected_option(self) -> int | None:
        return self._selected

    @property
    def answered_current(self) -> bool:
        return self._answered

    @property
    def last_grade(self) -> GradeResult | None:
        """Grade for the current question once answered, else ``None``."""

        return self._last_grade if self._answered else None

    @property
    def is_finished(self) -> bool:
        return self._finished

    @property
    def is_last_question(self) -> bool:
        return self._index == len(self._quiz) - 1

    @property
    def state(self) -> SessionState:
        if self._finished:
            return SessionState.FINISHED
        if self._answered:
            return SessionState.ANSWERED
        if self._selected is not None:
            return SessionState.SELECTED
        return SessionState.AWAITING_SELECTION

    def current_question(self) -> Question:
        return self._quiz[self._index]

    def progress(self) -> Progress:
        return Progress(
            index=self._index,
            total=len(self._quiz),
            score=self._score,
        )

    def select_option(self, index: int) -> None:
        """Choose an option for the current question.

        Re-selecting before submission overwrites the earlier choice.
        """

        if self._answered or self._finished:
            raise SessionStateError(
                "This question has already been answered.",
                kind=SessionErrorKind.ALREADY_ANSWERED,
            )
        option_count = max(len(self.current_question().options), 4)
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValueError("Option index must be an integer.")
        if not 0 <= index < option_count:
            raise ValueError(
                f"Option index {index} is out of range for this question."
            )
        self._selected = index

    def submit_answer(self) -> GradeResult:
        """Grade the selected option and update the score."""

        if self._answered or self._finished:
            raise SessionStateError(
                "You already answered. Advance to the next question.",
                kind=SessionErrorKind.ALREADY_ANSWERED,
            )
        if self._selected is None:
            raise SessionStateError(
                "Please select an option first.",
                kind=SessionErrorKind.NO_SELECTION,
            )

        question = self.current_question()
        if question.is_gradable:
            correct = self._selected == question.correct_index
            reveal = question.correct_index
        else:
            correct = False
            reveal = None
        if correct:
            self._score += 1
        self._answered = True
        self._last_grade = GradeResult(
            correct=correct,
            correct_index=reveal,
            selected_index=self._selected,
        )
        return self._last_grade

    def advance(self) -> Progress:
        """Move past an answered question, finishing after the last one."""

        if self._finished or not self._answered:
            raise SessionStateError(
                "Answer the current question before moving on.",
                kind=SessionErrorKind.OUT_OF_SEQUENCE,
            )
        if self.is_last_question:
            self._finished = True
            return self.progress()
        self._index += 1
        self._selected = None
        self._answered = False
        self._last_grade = None
        return self.progress()
