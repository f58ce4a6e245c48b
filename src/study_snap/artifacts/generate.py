"""Single-shot study artifacts: bullet summaries and flashcards."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ..core.gateway import CompletionGateway, system_message, user_message

__all__ = [
    "SUMMARY_PROMPT",
    "FLASHCARD_PROMPT",
    "Flashcard",
    "generate_summary",
    "generate_flashcards",
    "parse_flashcards",
]

_LOGGER = logging.getLogger(__name__)

SUMMARY_PROMPT = """
You are an AI study assistant.

Summarize the given content in MAXIMUM 3 bullet points.

Rules:
- 2 to 3 bullets only.
- Each bullet should be short (under 15 words).
- No extra explanation, no intro, no outro.

Output format:
- Bullet list starting with "- ".
""".strip()

FLASHCARD_PROMPT = """
You are an AI flashcard generator.

From the content, create 8-12 concise flashcards.
Format strictly as:
Q: ...
A: ...
""".strip()

_CARD_LINE = re.compile(r"^\s*(?:[-*]\s*)?(?:\*\*)?([QA])\s*[:.)]\s*(?:\*\*)?\s*(.*)$")


@dataclass(frozen=True)
class Flashcard:
    question: str
    answer: str


def _require_text(text: str) -> str:
    if not text or not text.strip():
        raise ValueError("Source text must not be empty.")
    return text


def generate_summary(text: str, *, gateway: CompletionGateway) -> str:
    """Return a 2-3 bullet summary of ``text``."""

    _require_text(text)
    result = gateway.complete(
        [system_message(SUMMARY_PROMPT), user_message(text)]
    )
    _LOGGER.info("Summary generated", extra={"response_chars": len(result)})
    return result.strip()


def generate_flashcards(text: str, *, gateway: CompletionGateway) -> str:
    """Return raw ``Q:``/``A:`` flashcards for ``text``."""

    _require_text(text)
    result = gateway.complete(
        [system_message(FLASHCARD_PROMPT), user_message(text)]
    )
    _LOGGER.info("Flashcards generated", extra={"response_chars": len(result)})
    return result.strip()


def parse_flashcards(text: str) -> list[Flashcard]:
    """Pair up ``Q:``/``A:`` lines.

    Continuation lines are appended to the preceding question or answer.
    Questions without an answer are dropped.
    """

    cards: list[Flashcard] = []
    question: list[str] | None = None
    answer: list[str] | None = None

    def flush() -> None:
        if question and answer:
            q = " ".join(question).strip()
            a = " ".join(answer).strip()
            if q and a:
                cards.append(Flashcard(q, a))

    for line in (text or "").splitlines():
        match = _CARD_LINE.match(line)
        if match:
            tag, body = match.group(1), match.group(2).strip()
            if tag == "Q":
                flush()
                question, answer = [body], None
            elif question is not None:
                answer = [body]
            continue
        stripped = line.strip()
        if not stripped:
            continue
        if answer is not None:
            answer.append(stripped)
        elif question is not None:
            question.append(stripped)
    flush()
    return cards
