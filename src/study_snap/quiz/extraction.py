"""Quiz generation: prompt the completion service and extract questions.

Models routinely wrap JSON in prose or code fences, so the raw response is
never trusted to be pure JSON. :func:`extract_json_array` slices from the
first ``[`` to the last ``]`` before parsing. This assumes a single top-level
array; a stray ``]`` in trailing prose after the real array breaks the slice
and surfaces as :attr:`ExtractionErrorKind.MALFORMED_JSON`.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from ..core.errors import ExtractionError, ExtractionErrorKind
from ..core.gateway import CompletionGateway, system_message, user_message

__all__ = [
    "MIN_QUESTIONS",
    "MAX_QUESTIONS",
    "DEFAULT_QUESTION_COUNT",
    "OPTION_COUNT",
    "Question",
    "Quiz",
    "clamp_count",
    "build_quiz_prompt",
    "extract_json_array",
    "parse_question",
    "parse_quiz",
    "generate_quiz",
]

_LOGGER = logging.getLogger(__name__)

MIN_QUESTIONS = 1
MAX_QUESTIONS = 20
DEFAULT_QUESTION_COUNT = 5
OPTION_COUNT = 4


@dataclass(frozen=True)
class Question:
    """A multiple-choice question as returned by the model.

    ``correct_index`` is ``None`` when the model supplied something that is
    not an integer. Questions without exactly four options or with an
    out-of-range index are kept but reported as not gradable.
    """

    text: str
    options: tuple[str, ...]
    correct_index: int | None

    @property
    def is_gradable(self) -> bool:
        return (
            len(self.options) == OPTION_COUNT
            and self.correct_index is not None
            and 0 <= self.correct_index < OPTION_COUNT
        )

    def to_wire(self) -> dict[str, Any]:
        return {
            "question": self.text,
            "options": list(self.options),
            "correct_index": self.correct_index,
        }

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "Question":
        return parse_question(payload)


Quiz = tuple[Question, ...]


def clamp_count(
    count: object, *, default: int = DEFAULT_QUESTION_COUNT
) -> int:
    """Coerce a requested question count into ``[1, 20]``.

    Numeric input (including numeric strings) is truncated and clamped to the
    nearest bound. Anything non-numeric falls back to ``default``. Never
    raises.
    """

    number: float | None
    if isinstance(count, bool) or count is None:
        number = None
    elif isinstance(count, (int, float)):
        number = float(count)
    elif isinstance(count, str):
        try:
            number = float(count.strip())
        except ValueError:
            number = None
    else:
        number = None

    if number is None or math.isnan(number):
        number = float(default)
    if math.isinf(number):
        return MAX_QUESTIONS if number > 0 else MIN_QUESTIONS
    return max(MIN_QUESTIONS, min(MAX_QUESTIONS, int(number)))


def build_quiz_prompt(count: int) -> str:
    """Return the system instruction fixing the quiz output contract."""

    return f"""
You are an AI quiz generator.

From the content, create {count} multiple-choice questions.

Output JSON ONLY, no explanation, no markdown. The JSON must be:

[
  {{
    "question": "Question text here",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correct_index": 0
  }},
  ...
]

Rules:
- Exactly {count} questions.
- Exactly 4 options per question.
- "correct_index" is 0, 1, 2, or 3 for A, B, C, D respectively.
- Do NOT include any text outside the JSON.
""".strip()


def extract_json_array(raw: str) -> list[Any]:
    """Slice the outermost ``[...]`` out of ``raw`` and parse it.

    Raises :class:`ExtractionError` when the slice is not valid JSON, or
    when it is valid JSON but not a non-empty array.
    """

    text = (raw or "").strip()
    first = text.find("[")
    last = text.rfind("]")
    if first != -1 and last > first:
        text = text[first : last + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ExtractionError(
            "Failed to parse quiz JSON from model output.",
            kind=ExtractionErrorKind.MALFORMED_JSON,
            raw_text=raw,
        ) from exc

    if not isinstance(data, list) or not data:
        raise ExtractionError(
            "Quiz JSON is empty or invalid.",
            kind=ExtractionErrorKind.EMPTY_OR_INVALID_SHAPE,
            raw_text=raw,
        )
    return data


def _coerce_index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _coerce_options(value: Any) -> tuple[str, ...]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return ()
    return tuple(str(item).strip() for item in value)


def parse_question(item: Any) -> Question:
    """Build a :class:`Question` from one decoded array element."""

    if not isinstance(item, Mapping):
        raise ExtractionError(
            "Quiz entries must be JSON objects.",
            kind=ExtractionErrorKind.EMPTY_OR_INVALID_SHAPE,
        )
    text = str(item.get("question") or "").strip()
    if not text:
        raise ExtractionError(
            "Quiz entry is missing its question text.",
            kind=ExtractionErrorKind.EMPTY_OR_INVALID_SHAPE,
        )
    return Question(
        text=text,
        options=_coerce_options(item.get("options")),
        correct_index=_coerce_index(item.get("correct_index")),
    )


def parse_quiz(raw: str, *, limit: int | None = None) -> Quiz:
    """Extract and validate a quiz from raw model output."""

    records = extract_json_array(raw)
    if limit is not None and len(records) > limit:
        _LOGGER.warning(
            "Model returned more questions than requested; truncating",
            extra={"returned": len(records), "requested": limit},
        )
        records = records[:limit]
    try:
        questions = tuple(parse_question(item) for item in records)
    except ExtractionError as exc:
        exc.raw_text = raw
        raise
    ungradable = sum(1 for question in questions if not question.is_gradable)
    if ungradable:
        _LOGGER.warning(
            "Quiz contains malformed questions",
            extra={"ungradable": ungradable, "total": len(questions)},
        )
    return questions


def generate_quiz(
    source_text: str,
    count: object,
    *,
    gateway: CompletionGateway,
) -> Quiz:
    """Ask the completion service for a quiz over ``source_text``.

    ``count`` is clamped via :func:`clamp_count`. Gateway failures propagate
    as :class:`~study_snap.core.errors.UpstreamError`; unusable output raises
    :class:`ExtractionError`. Nothing is retried.
    """

    if not source_text or not source_text.strip():
        raise ValueError("Source text must not be empty.")
    requested = clamp_count(count)
    _LOGGER.info(
        "Generating quiz",
        extra={"requested": requested, "source_chars": len(source_text)},
    )
    raw = gateway.complete(
        [system_message(build_quiz_prompt(requested)), user_message(source_text)]
    )
    try:
        quiz = parse_quiz(raw, limit=requested)
    except ExtractionError as exc:
        _LOGGER.error(
            "Quiz extraction failed",
            extra={"kind": exc.kind.value, "response_chars": len(raw)},
        )
        raise
    _LOGGER.info("Quiz generated", extra={"questions": len(quiz)})
    return quiz
