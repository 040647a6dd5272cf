"""
Tests for the session API endpoints (/api/sessions/*, /api/evaluate).

Uses Flask test client; sessions live in process memory.
"""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import web_questionnaire
from web_questionnaire import app
from questionflow.config import FlowSettings


@pytest.fixture
def client():
    app.config["TESTING"] = True
    # Long debounce so no real timer fires during a test
    app.config["QUESTIONFLOW_SETTINGS"] = FlowSettings(autosave_delay=60)
    with web_questionnaire.sessions_lock:
        for flow in web_questionnaire.sessions.values():
            flow.close()
        web_questionnaire.sessions.clear()
    web_questionnaire.submissions.clear()
    web_questionnaire.drafts.clear()
    with app.test_client() as client:
        yield client


def _questionnaire_payload():
    return {
        "questionnaire": {
            "id": 11,
            "title": "API survey",
            "questions": [
                {"id": 1, "type": "boolean", "text": "Any symptoms?", "required": True, "order": 1},
                {"id": 2, "type": "text", "text": "Describe", "order": 2},
                {"id": 3, "type": "rating", "text": "Severity", "order": 3,
                 "metadata": {"min": 1, "max": 5}},
            ],
            "conditional_rules": [
                {"id": "hide_2", "source_question_id": 1, "operator": "equals",
                 "comparison_value": False, "target_question_id": 2, "action": "hide"},
            ],
        }
    }


def _start(client, payload=None):
    response = client.post("/api/sessions", json=payload or _questionnaire_payload())
    assert response.status_code == 200
    return response.get_json()


class TestStartSession:

    def test_start_from_definition(self, client):
        data = _start(client)
        assert data["state"] == "answering"
        assert data["current_question"]["id"] == 1
        assert data["visible_question_ids"] == [1, 2, 3]
        assert data["session_id"] in web_questionnaire.sessions

    def test_start_from_sample(self, client):
        data = _start(client, {"sample": "gad7_adaptive"})
        assert data["questionnaire_id"] == 1
        assert data["adaptive"]["confidence"] == 0

    def test_start_with_initial_responses(self, client):
        payload = _questionnaire_payload()
        payload["responses"] = {"1": False}
        data = _start(client, payload)
        assert data["visible_question_ids"] == [1, 3]

    def test_invalid_definition(self, client):
        payload = _questionnaire_payload()
        payload["questionnaire"]["conditional_rules"][0].pop("target_question_id")
        response = client.post("/api/sessions", json=payload)
        assert response.status_code == 400
        assert "Invalid questionnaire" in response.get_json()["error"]

    def test_unknown_sample(self, client):
        response = client.post("/api/sessions", json={"sample": "nope"})
        assert response.status_code == 400

    def test_no_json_body(self, client):
        response = client.post("/api/sessions", data="plain", content_type="text/plain")
        assert response.status_code == 400


class TestSessionFlow:

    def test_invalid_session(self, client):
        for path in ("/answer", "/next", "/previous", "/submit", "/draft"):
            response = client.post(f"/api/sessions/unknown{path}", json={})
            assert response.status_code == 400
            assert response.get_json() == {"error": "Invalid session"}
        assert client.get("/api/sessions/unknown").status_code == 400

    def test_answer_next_previous(self, client):
        session_id = _start(client)["session_id"]

        data = client.post(f"/api/sessions/{session_id}/answer",
                           json={"question_id": 1, "value": False}).get_json()
        assert data["accepted"] is True
        assert data["visible_question_ids"] == [1, 3]

        data = client.post(f"/api/sessions/{session_id}/next").get_json()
        assert data["outcome"] == "moved"
        assert data["current_question"]["id"] == 3

        data = client.post(f"/api/sessions/{session_id}/previous").get_json()
        assert data["outcome"] == "moved"
        assert data["current_question"]["id"] == 1

    def test_next_blocked(self, client):
        session_id = _start(client)["session_id"]
        data = client.post(f"/api/sessions/{session_id}/next").get_json()
        assert data["outcome"] == "blocked"
        assert data["errors"] == {"1": "This question is required"}

    def test_answer_errors(self, client):
        session_id = _start(client)["session_id"]

        response = client.post(f"/api/sessions/{session_id}/answer", json={"question_id": 1})
        assert response.status_code == 400

        response = client.post(f"/api/sessions/{session_id}/answer", json={"question_id": 42, "value": "x"})
        assert response.status_code == 400

        response = client.post(f"/api/sessions/{session_id}/answer", json={"question_id": 1, "value": {"a": 1}})
        assert response.status_code == 400

    def test_submit(self, client):
        session_id = _start(client)["session_id"]
        client.post(f"/api/sessions/{session_id}/answer", json={"question_id": 1, "value": False})

        data = client.post(f"/api/sessions/{session_id}/submit").get_json()
        assert data["outcome"] == "submitted"
        assert data["state"] == "submitted"
        assert data["metadata"]["questions_skipped"] == 1

        result = client.get(f"/api/sessions/{session_id}/result").get_json()
        assert result["submitted"] is True
        assert result["responses"] == {"1": False}

        data = client.post(f"/api/sessions/{session_id}/answer",
                           json={"question_id": 1, "value": True}).get_json()
        assert data["accepted"] is False

    def test_result_before_submit(self, client):
        session_id = _start(client)["session_id"]
        assert client.get(f"/api/sessions/{session_id}/result").get_json() == {"submitted": False}

    def test_submit_failure_reported(self, client):
        session_id = _start(client)["session_id"]
        client.post(f"/api/sessions/{session_id}/answer", json={"question_id": 1, "value": True})
        flow = web_questionnaire.sessions[session_id]

        with patch.object(flow, "on_submit", side_effect=RuntimeError("db down")):
            data = client.post(f"/api/sessions/{session_id}/submit").get_json()

        assert data["outcome"] == "submit_failed"
        assert data["state"] == "answering"
        assert "db down" in data["submit_error"]

    def test_save_draft(self, client):
        session_id = _start(client)["session_id"]
        client.post(f"/api/sessions/{session_id}/answer", json={"question_id": 1, "value": True})

        data = client.post(f"/api/sessions/{session_id}/draft").get_json()
        assert data["saved"] is True
        assert data["draft"]["responses"] == {"1": True}
        assert data["draft"]["session_id"] == session_id

        assert client.get(f"/api/sessions/{session_id}/draft").get_json()["draft"] == data["draft"]

    def test_debounced_draft_uses_captured_responses(self, client):
        session_id = _start(client)["session_id"]
        client.post(f"/api/sessions/{session_id}/answer", json={"question_id": 1, "value": True})
        flow = web_questionnaire.sessions[session_id]

        # The timer hands over the responses captured when it was scheduled
        flow.autosaver.save_callback({1: False})

        draft = client.get(f"/api/sessions/{session_id}/draft").get_json()["draft"]
        assert draft["responses"] == {"1": False}
        assert draft["session_id"] == session_id
        assert draft["questionnaire_id"] == 11
        assert flow.responses == {1: True}


class TestEvaluate:

    def test_evaluate(self, client):
        payload = _questionnaire_payload()
        payload["responses"] = {"1": False, "3": 9}
        response = client.post("/api/evaluate", json=payload)
        assert response.status_code == 200

        report = response.get_json()
        assert report["visible_question_ids"] == [1, 3]
        assert report["errors"] == {"3": "Rating must not exceed 5"}

    def test_evaluate_bad_responses(self, client):
        payload = _questionnaire_payload()
        payload["responses"] = {"abc": 1}
        response = client.post("/api/evaluate", json=payload)
        assert response.status_code == 400

    def test_samples(self, client):
        assert "gad7_adaptive" in client.get("/api/samples").get_json()["samples"]
