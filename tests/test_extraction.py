from __future__ import annotations

import json
import logging

import pytest

from fixtures import ScriptedGateway, quiz_json
from study_snap.core.errors import (
    ExtractionError,
    ExtractionErrorKind,
    UpstreamError,
)
from study_snap.quiz import extraction
from study_snap.quiz.extraction import (
    Question,
    build_quiz_prompt,
    clamp_count,
    extract_json_array,
    generate_quiz,
    parse_question,
    parse_quiz,
)


@pytest.mark.parametrize(
    ("requested", "expected"),
    [
        (3, 3),
        ("7", 7),
        (" 12 ", 12),
        (25, 20),
        (0, 1),
        (-4, 1),
        (4.9, 4),
        ("abc", 5),
        (None, 5),
        ("", 5),
        (True, 5),
        (float("nan"), 5),
        (float("inf"), 20),
        (float("-inf"), 1),
    ],
)
def test_clamp_count(requested, expected) -> None:
    assert clamp_count(requested) == expected


def test_clamp_count_uses_supplied_default() -> None:
    assert clamp_count("lots", default=8) == 8
    assert clamp_count(None, default=50) == 20


def test_build_quiz_prompt_fixes_contract() -> None:
    prompt = build_quiz_prompt(3)
    assert "create 3 multiple-choice questions" in prompt
    assert "Exactly 3 questions." in prompt
    assert '"correct_index"' in prompt
    assert "Do NOT include any text outside the JSON." in prompt


def test_extract_json_array_clean_json_is_identity() -> None:
    raw = quiz_json(2)
    assert extract_json_array(raw) == json.loads(raw)


def test_extract_json_array_strips_prose_and_fences() -> None:
    body = quiz_json(1)
    raw = f"Sure! Here is your quiz:\n```json\n{body}\n```\nGood luck."
    assert extract_json_array(raw) == json.loads(body)


def test_extract_json_array_rejects_empty_array() -> None:
    with pytest.raises(ExtractionError) as excinfo:
        extract_json_array("[]")
    assert excinfo.value.kind is ExtractionErrorKind.EMPTY_OR_INVALID_SHAPE
    assert str(excinfo.value) == "Quiz JSON is empty or invalid."


def test_extract_json_array_rejects_object() -> None:
    with pytest.raises(ExtractionError) as excinfo:
        extract_json_array('{"question": "Q"}')
    assert excinfo.value.kind is ExtractionErrorKind.EMPTY_OR_INVALID_SHAPE


def test_extract_json_array_rejects_prose() -> None:
    with pytest.raises(ExtractionError) as excinfo:
        extract_json_array("I cannot help with that.")
    assert excinfo.value.kind is ExtractionErrorKind.MALFORMED_JSON
    assert str(excinfo.value) == "Failed to parse quiz JSON from model output."
    assert excinfo.value.raw_text == "I cannot help with that."


def test_extract_json_array_trailing_bracket_breaks_slice() -> None:
    raw = quiz_json(1) + "\nSee also [1]"
    with pytest.raises(ExtractionError) as excinfo:
        extract_json_array(raw)
    assert excinfo.value.kind is ExtractionErrorKind.MALFORMED_JSON


def test_parse_question_valid() -> None:
    question = parse_question(
        {
            "question": "  What is H2O? ",
            "options": ["Water", "Salt", "Air", "Fire"],
            "correct_index": 0,
        }
    )
    assert question == Question(
        text="What is H2O?",
        options=("Water", "Salt", "Air", "Fire"),
        correct_index=0,
    )
    assert question.is_gradable


@pytest.mark.parametrize(
    "payload",
    [
        {"question": "Q", "options": ["a", "b", "c"], "correct_index": 0},
        {"question": "Q", "options": ["a", "b", "c", "d"], "correct_index": 4},
        {"question": "Q", "options": list("abcd"), "correct_index": "x"},
        {"question": "Q", "options": "abcd", "correct_index": 1},
        {"question": "Q", "options": ["a", "b", "c", "d"]},
    ],
)
def test_parse_question_tolerates_malformed_fields(payload) -> None:
    question = parse_question(payload)
    assert question.text == "Q"
    assert not question.is_gradable


def test_parse_question_coerces_numeric_index() -> None:
    question = parse_question(
        {"question": "Q", "options": list("abcd"), "correct_index": "2"}
    )
    assert question.correct_index == 2
    assert question.is_gradable


@pytest.mark.parametrize(
    "item", ["just a string", 3, {"options": ["a"]}, {"question": "  "}]
)
def test_parse_question_rejects_missing_text(item) -> None:
    with pytest.raises(ExtractionError) as excinfo:
        parse_question(item)
    assert excinfo.value.kind is ExtractionErrorKind.EMPTY_OR_INVALID_SHAPE


def test_question_wire_round_trip() -> None:
    payload = {
        "question": "Capital of France?",
        "options": ["Paris", "Rome", "Oslo", "Bern"],
        "correct_index": 0,
    }
    assert Question.from_wire(payload).to_wire() == payload


def test_parse_quiz_truncates_to_limit(caplog) -> None:
    caplog.set_level(logging.WARNING, logger=extraction.__name__)
    quiz = parse_quiz(quiz_json(6), limit=4)
    assert len(quiz) == 4
    assert quiz[-1].text == "Question 4?"
    assert "truncating" in caplog.text


def test_parse_quiz_records_raw_text_on_bad_entry() -> None:
    raw = json.dumps([{"question": "ok", "options": list("abcd")}, "oops"])
    with pytest.raises(ExtractionError) as excinfo:
        parse_quiz(raw)
    assert excinfo.value.raw_text == raw


def test_generate_quiz_calls_gateway_with_prompt_and_text() -> None:
    gateway = ScriptedGateway(quiz_json(3))
    quiz = generate_quiz("Photosynthesis converts light.", 3, gateway=gateway)

    assert len(quiz) == 3
    messages = gateway.calls[0]
    assert [m.role for m in messages] == ["system", "user"]
    assert "Exactly 3 questions." in messages[0].content
    assert messages[1].content == "Photosynthesis converts light."


def test_generate_quiz_clamps_count_before_prompting() -> None:
    gateway = ScriptedGateway(quiz_json(20))
    quiz = generate_quiz("text", "99", gateway=gateway)
    assert len(quiz) == 20
    assert "Exactly 20 questions." in gateway.last_system_prompt


def test_generate_quiz_keeps_short_response() -> None:
    gateway = ScriptedGateway(quiz_json(2))
    quiz = generate_quiz("text", 5, gateway=gateway)
    assert len(quiz) == 2


def test_generate_quiz_rejects_blank_text() -> None:
    gateway = ScriptedGateway()
    with pytest.raises(ValueError):
        generate_quiz("   ", 3, gateway=gateway)
    assert gateway.calls == []


def test_generate_quiz_propagates_upstream_error() -> None:
    gateway = ScriptedGateway(UpstreamError("down", status_code=503))
    with pytest.raises(UpstreamError) as excinfo:
        generate_quiz("text", 3, gateway=gateway)
    assert excinfo.value.status_code == 503


def test_generate_quiz_logs_extraction_failure(caplog) -> None:
    caplog.set_level(logging.ERROR, logger=extraction.__name__)
    gateway = ScriptedGateway("no json here")
    with pytest.raises(ExtractionError):
        generate_quiz("text", 3, gateway=gateway)
    assert "Quiz extraction failed" in caplog.text
