"""Tests for the QA repair endpoints."""

import pytest
from fastapi.testclient import TestClient

from gatekeeper.main import app

client = TestClient(app)

CANDIDATES = [
    {"id": "shorten", "tags": ["length"], "risk": 0.1},
    {"id": "neutralise", "tags": ["claims"], "risk": 0.3},
]


def test_edit_search_endpoint():
    response = client.post(
        "/v1/qa/edit-search",
        json={
            "spec": {"brand": {"tone": "playful", "dark": True}, "layout": {"sections": ["hero"]}},
            "copy": {"HEADLINE": "Build pages fast"},
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["better"] is True
    assert data["applied"] == ["Use email signup CTA"]
    assert data["copy"]["CTA_HEAD"] == "Ready when you are"
    assert data["baseline_score"] == 100


def test_edit_search_respects_depth_setting(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EDIT_SEARCH_DEPTH", "0")
    response = client.post("/v1/qa/edit-search", json={"spec": {}, "copy": {"HEADLINE": "Hi"}})
    assert response.json()["better"] is False


class TestNextFix:
    def test_session_flow_until_fallback(self):
        first = client.post("/v1/qa/next-fix", json={"session_id": "s1", "candidates": CANDIDATES})
        assert first.status_code == 200
        assert first.json()["decision"]["next"]["id"] == "shorten"
        assert first.json()["attempts"] == []

        second = client.post(
            "/v1/qa/next-fix",
            json={
                "session_id": "s1",
                "candidates": CANDIDATES,
                "attempt": {"fix_id": "shorten", "success": False, "reason": "claims"},
            },
        )
        assert second.json()["decision"]["next"]["id"] == "neutralise"
        assert second.json()["fallback"] is None

        third = client.post(
            "/v1/qa/next-fix",
            json={
                "session_id": "s1",
                "candidates": CANDIDATES,
                "attempt": {"fix_id": "neutralise", "success": False, "reason": "claims"},
            },
        )
        data = third.json()
        assert data["decision"] == {"next": None, "stop": True}
        assert [a["fix_id"] for a in data["attempts"]] == ["shorten", "neutralise"]
        assert data["fallback"]["code"] == "contracts_failed.generic"

    def test_sessions_are_isolated(self):
        client.post(
            "/v1/qa/next-fix",
            json={
                "session_id": "a",
                "candidates": CANDIDATES,
                "attempt": {"fix_id": "shorten", "success": False},
            },
        )
        other = client.post("/v1/qa/next-fix", json={"session_id": "b", "candidates": CANDIDATES})
        assert other.json()["decision"]["next"]["id"] == "shorten"

    def test_max_attempts_override(self):
        response = client.post(
            "/v1/qa/next-fix",
            json={
                "session_id": "s2",
                "candidates": CANDIDATES,
                "attempt": {"fix_id": "shorten", "success": False},
                "max_attempts": 1,
            },
        )
        assert response.json()["decision"]["stop"] is True

    def test_empty_session_id_rejected(self):
        response = client.post("/v1/qa/next-fix", json={"session_id": "", "candidates": CANDIDATES})
        assert response.status_code == 422

    def test_stopped_session_records_nothing_more(self):
        attempt = {"fix_id": "shorten", "success": False, "reason": "claims"}
        for _ in range(200):
            response = client.post(
                "/v1/qa/next-fix",
                json={"session_id": "s3", "candidates": CANDIDATES, "attempt": attempt},
            )

        data = response.json()
        assert data["decision"]["stop"] is True
        assert [a["fix_id"] for a in data["attempts"]] == ["shorten", "shorten", "shorten"]

    def test_history_length_capped(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ATTEMPT_HISTORY_MAX_LEN", "5")
        for i in range(20):
            response = client.post(
                "/v1/qa/next-fix",
                json={
                    "session_id": "s4",
                    "candidates": [{"id": "fresh"}],
                    "attempt": {"fix_id": f"fix-{i}", "success": True},
                },
            )

        attempts = response.json()["attempts"]
        assert [a["fix_id"] for a in attempts] == [f"fix-{i}" for i in range(15, 20)]

    def test_accepts_camel_case_fields(self):
        response = client.post(
            "/v1/qa/next-fix",
            json={
                "sessionId": "s5",
                "candidates": CANDIDATES,
                "attempt": {"fixId": "shorten", "success": False},
                "maxAttempts": 1,
            },
        )
        data = response.json()
        assert data["session_id"] == "s5"
        assert data["attempts"][0]["fix_id"] == "shorten"
        assert data["decision"]["stop"] is True

    def test_edit_search_tolerates_malformed_spec(self):
        response = client.post(
            "/v1/qa/edit-search",
            json={"spec": {"brand": "minimal", "layout": ["hero", "features-3col"]}, "copy": {}},
        )
        assert response.status_code == 200
        assert response.json()["spec"]["layout"]["sections"] == []
