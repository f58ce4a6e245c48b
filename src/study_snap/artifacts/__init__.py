"""Summaries and flashcards generated from study text."""

from .generate import (
    FLASHCARD_PROMPT,
    SUMMARY_PROMPT,
    Flashcard,
    generate_flashcards,
    generate_summary,
    parse_flashcards,
)

__all__ = [
    "FLASHCARD_PROMPT",
    "SUMMARY_PROMPT",
    "Flashcard",
    "generate_flashcards",
    "generate_summary",
    "parse_flashcards",
]
