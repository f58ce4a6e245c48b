"""
Request and response models for the HTTP backend.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from ..history.store import SessionLogEntry
from ..quiz.extraction import Question


class TextRequest(BaseModel):
    """Selected study text sent by the extension."""
    text: str = ""


class QuizRequest(TextRequest):
    """Quiz request; ``count`` is clamped server-side, never rejected."""
    count: Optional[Union[int, float, str]] = None


class QuizQuestion(BaseModel):
    """Wire form of one generated question."""
    question: str
    options: List[str]
    correct_index: Optional[int] = None

    @classmethod
    def from_question(cls, question: Question) -> "QuizQuestion":
        return cls(**question.to_wire())


class QuizResponse(BaseModel):
    quiz: List[QuizQuestion]


class ResultResponse(BaseModel):
    result: str


class ErrorResponse(BaseModel):
    error: str


class LogSessionRequest(BaseModel):
    """Which artifacts were produced for a selection."""
    topicTitle: str = Field(default="Untitled selection", max_length=200)
    hasSummary: bool = False
    hasFlashcards: bool = False
    hasQuiz: bool = False
    quizScore: Optional[int] = Field(default=None, ge=0)

    def to_entry(self) -> SessionLogEntry:
        return SessionLogEntry(
            topic_title=self.topicTitle.strip() or "Untitled selection",
            has_summary=self.hasSummary,
            has_flashcards=self.hasFlashcards,
            has_quiz=self.hasQuiz,
            quiz_score=self.quizScore,
        )


class OkResponse(BaseModel):
    ok: bool = True


class HistoryItem(BaseModel):
    topicTitle: str
    hasSummary: bool
    hasFlashcards: bool
    hasQuiz: bool
    quizScore: Optional[int] = None
    createdAt: Optional[str] = None


class HistoryResponse(BaseModel):
    history: List[HistoryItem]


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
