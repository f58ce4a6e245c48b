from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fixtures import ScriptedGateway, quiz_json

from study_snap.core.config import default_config
from study_snap.core.errors import LoggingError, UpstreamError
from study_snap.history.store import SessionLogEntry, SessionLogger
from study_snap.web import create_app


@pytest.fixture
def store(tmp_path) -> SessionLogger:
    return SessionLogger(tmp_path / "history.sqlite3")


def _client(*responses, store=None, **kwargs) -> tuple[TestClient, ScriptedGateway]:
    gateway = ScriptedGateway(*responses)
    app = create_app(default_config(), gateway=gateway, history=store, **kwargs)
    return TestClient(app), gateway


def test_health_reports_ok():
    client, _ = _client()
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_quiz_returns_questions_in_wire_shape():
    client, gateway = _client(quiz_json(3, correct_index=2))
    response = client.post(
        "/quiz", json={"text": "Photosynthesis converts light.", "count": 3}
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["quiz"]) == 3
    first = body["quiz"][0]
    assert first == {
        "question": "Question 1?",
        "options": ["Q1 option A", "Q1 option B", "Q1 option C", "Q1 option D"],
        "correct_index": 2,
    }
    assert "Exactly 3 questions." in gateway.last_user_text


@pytest.mark.parametrize(
    "count, expected",
    [(None, 5), (0, 1), (25, 20), ("7", 7), ("many", 5)],
)
def test_quiz_count_is_clamped(count, expected):
    client, gateway = _client(quiz_json(expected))
    payload = {"text": "Cells divide by mitosis."}
    if count is not None:
        payload["count"] = count
    response = client.post("/quiz", json=payload)

    assert response.status_code == 200
    assert len(response.json()["quiz"]) == expected
    assert f"Exactly {expected} questions." in gateway.last_user_text


def test_quiz_truncates_extra_questions():
    client, _ = _client(quiz_json(6))
    response = client.post("/quiz", json={"text": "Text.", "count": 2})

    assert [q["question"] for q in response.json()["quiz"]] == [
        "Question 1?",
        "Question 2?",
    ]


@pytest.mark.parametrize("path", ["/quiz", "/summary", "/flashcards"])
@pytest.mark.parametrize("text", ["", "   \n"])
def test_blank_text_is_rejected(path, text):
    client, gateway = _client()
    response = client.post(path, json={"text": text})

    assert response.status_code == 400
    assert response.json() == {"error": "No text provided"}
    assert gateway.calls == []


def test_missing_text_field_is_rejected():
    client, _ = _client()
    response = client.post("/summary", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "No text provided"}


def test_quiz_extraction_failure_is_500():
    client, _ = _client("I cannot make a quiz from that.")
    response = client.post("/quiz", json={"text": "Some text"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to parse quiz JSON from model output."
    }


def test_quiz_empty_array_is_500():
    client, _ = _client("[]")
    response = client.post("/quiz", json={"text": "Some text"})

    assert response.status_code == 500
    assert response.json() == {"error": "Quiz JSON is empty or invalid."}


def test_upstream_error_is_500():
    client, _ = _client(
        UpstreamError("Completion provider error", status_code=429)
    )
    response = client.post("/summary", json={"text": "Text"})

    assert response.status_code == 500
    assert "Completion provider error" in response.json()["error"]


def test_summary_and_flashcards_return_result():
    client, gateway = _client(
        "- Point one\n- Point two", "Q: What?\nA: That."
    )

    summary = client.post("/summary", json={"text": "Notes"})
    cards = client.post("/flashcards", json={"text": "Notes"})

    assert summary.json() == {"result": "- Point one\n- Point two"}
    assert cards.json() == {"result": "Q: What?\nA: That."}
    assert len(gateway.calls) == 2


def test_missing_api_key_surfaces_as_500():
    def factory(cfg):
        raise RuntimeError("Missing PPLX_API_KEY in environment")

    app = create_app(default_config(), gateway_factory=factory)
    client = TestClient(app)
    response = client.post("/summary", json={"text": "Notes"})

    assert response.status_code == 500
    assert response.json() == {"error": "Missing PPLX_API_KEY in environment"}


def test_gateway_factory_runs_once():
    built = []

    def factory(cfg):
        gateway = ScriptedGateway("one", "two")
        built.append(gateway)
        return gateway

    client = TestClient(create_app(default_config(), gateway_factory=factory))
    client.post("/summary", json={"text": "a"})
    client.post("/summary", json={"text": "b"})

    assert len(built) == 1


def test_log_session_then_history(store):
    client, _ = _client(store=store)

    response = client.post(
        "/log-session",
        json={
            "topicTitle": "Mitosis",
            "hasSummary": True,
            "hasFlashcards": False,
            "hasQuiz": True,
            "quizScore": 4,
        },
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    client.post("/log-session", json={"topicTitle": "Osmosis"})

    history = client.get("/history").json()["history"]
    assert [item["topicTitle"] for item in history] == ["Osmosis", "Mitosis"]
    assert history[1]["hasQuiz"] is True
    assert history[1]["quizScore"] == 4
    assert history[0]["quizScore"] is None
    assert history[0]["createdAt"]


def test_history_without_store_is_empty():
    client, _ = _client()

    assert client.get("/history").json() == {"history": []}
    assert client.post("/log-session", json={}).json() == {"ok": True}


def test_history_is_capped_by_recent_limit(store):
    for n in range(25):
        store.append(SessionLogEntry(topic_title=f"Topic {n}"))
    client, _ = _client(store=store)

    history = client.get("/history").json()["history"]

    assert len(history) == 20
    assert history[0]["topicTitle"] == "Topic 24"


def test_history_failure_is_500(store, monkeypatch):
    def broken(limit):
        raise LoggingError("disk gone")

    monkeypatch.setattr(store, "recent", broken)
    client, _ = _client(store=store)
    response = client.get("/history")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to load history"}


def test_cors_headers_present():
    client, _ = _client()
    response = client.options(
        "/quiz",
        headers={
            "Origin": "chrome-extension://abc",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] in {
        "*",
        "chrome-extension://abc",
    }
