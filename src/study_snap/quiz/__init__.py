from .extraction import (
    DEFAULT_QUESTION_COUNT,
    MAX_QUESTIONS,
    MIN_QUESTIONS,
    Question,
    clamp_count,
    extract_json_array,
    generate_quiz,
    parse_question,
    parse_quiz,
)
from .generation import GenerationTracker
from .session import GradeResult, Progress, QuizSession, SessionState
