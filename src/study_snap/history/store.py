"""Append-only session history backed by SQLite."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing, contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Mapping, MutableMapping

from ..core.errors import LoggingError

__all__ = [
    "DEFAULT_USER",
    "MAX_RECENT",
    "SessionLogEntry",
    "SessionLogger",
    "record_session",
    "topic_title_for",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_USER = "default_user"
MAX_RECENT = 100


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class SessionLogEntry:
    """Which artifacts were produced for one piece of source text."""

    topic_title: str
    has_summary: bool = False
    has_flashcards: bool = False
    has_quiz: bool = False
    quiz_score: int | None = None
    created_at: str | None = None

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "topicTitle": self.topic_title,
            "hasSummary": self.has_summary,
            "hasFlashcards": self.has_flashcards,
            "hasQuiz": self.has_quiz,
            "quizScore": self.quiz_score,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SessionLogEntry":
        score = row["quiz_score"]
        return cls(
            topic_title=str(row["topic_title"]),
            has_summary=bool(row["has_summary"]),
            has_flashcards=bool(row["has_flashcards"]),
            has_quiz=bool(row["has_quiz"]),
            quiz_score=int(score) if score is not None else None,
            created_at=str(row["created_at"]),
        )


class SessionLogger:
    """SQLite store for :class:`SessionLogEntry` records."""

    def __init__(self, db_path: Path, *, user_id: str = DEFAULT_USER) -> None:
        self.db_path = Path(db_path)
        self.user_id = user_id
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside one transaction, closing it afterwards."""

        with closing(sqlite3.connect(self.db_path)) as con:
            con.row_factory = sqlite3.Row
            with con:
                yield con

    def _init_db(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._connect() as con:
                con.execute(
                    """
                    CREATE TABLE IF NOT EXISTS session_logs (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id TEXT NOT NULL,
                        topic_title TEXT NOT NULL,
                        has_summary INTEGER NOT NULL CHECK(has_summary IN (0,1)),
                        has_flashcards INTEGER NOT NULL
                            CHECK(has_flashcards IN (0,1)),
                        has_quiz INTEGER NOT NULL CHECK(has_quiz IN (0,1)),
                        quiz_score INTEGER,
                        created_at TEXT NOT NULL
                    )
                    """
                )
                con.execute(
                    "CREATE INDEX IF NOT EXISTS idx_session_logs_user_time "
                    "ON session_logs(user_id, created_at)"
                )
        except (OSError, sqlite3.Error) as exc:
            raise LoggingError(
                f"Unable to initialise session history at {self.db_path}: {exc}"
            ) from exc

    def append(self, entry: SessionLogEntry) -> bool:
        """Persist ``entry``; raises :class:`LoggingError` on failure."""

        created_at = entry.created_at or _timestamp()
        try:
            with self._connect() as con:
                con.execute(
                    """
                    INSERT INTO session_logs (
                        user_id, topic_title, has_summary, has_flashcards,
                        has_quiz, quiz_score, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        self.user_id,
                        entry.topic_title,
                        int(entry.has_summary),
                        int(entry.has_flashcards),
                        int(entry.has_quiz),
                        entry.quiz_score,
                        created_at,
                    ),
                )
        except sqlite3.Error as exc:
            raise LoggingError(f"Failed to record session: {exc}") from exc
        _LOGGER.debug(
            "Recorded session",
            extra={"topic_title": entry.topic_title, "has_quiz": entry.has_quiz},
        )
        return True

    def recent(self, limit: int = 20) -> list[SessionLogEntry]:
        """Return up to ``limit`` entries, newest first."""

        bounded = max(1, min(MAX_RECENT, int(limit)))
        try:
            with self._connect() as con:
                rows = con.execute(
                    """
                    SELECT topic_title, has_summary, has_flashcards, has_quiz,
                           quiz_score, created_at
                    FROM session_logs
                    WHERE user_id = ?
                    ORDER BY created_at DESC, id DESC
                    LIMIT ?
                    """,
                    (self.user_id, bounded),
                ).fetchall()
        except sqlite3.Error as exc:
            raise LoggingError(f"Failed to read session history: {exc}") from exc
        return [SessionLogEntry.from_row(row) for row in rows]


def record_session(
    store: SessionLogger | None, entry: SessionLogEntry
) -> bool:
    """Append ``entry`` without ever raising.

    Failures are logged and reported as ``False``; a missing store (history
    disabled) is a no-op.
    """

    if store is None:
        return False
    try:
        return store.append(entry)
    except LoggingError:
        _LOGGER.warning(
            "Session history write failed",
            exc_info=True,
            extra={"topic_title": entry.topic_title},
        )
        return False


def topic_title_for(text: str, *, max_chars: int = 60) -> str:
    """Derive a short history title from the first line of ``text``."""

    first_line = next(
        (line.strip() for line in (text or "").splitlines() if line.strip()),
        "",
    )
    collapsed = " ".join(first_line.split())
    if not collapsed:
        return "Untitled selection"
    if len(collapsed) <= max_chars:
        return collapsed
    return collapsed[: max_chars - 3].rstrip() + "..."
