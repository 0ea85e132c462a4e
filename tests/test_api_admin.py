"""Tests for the admin metrics, costs and routing endpoints."""

import pytest
from fastapi.testclient import TestClient

from gatekeeper.api.deps import get_store
from gatekeeper.core.errors import SnapshotStoreError
from gatekeeper.core.snapshot_store import InMemorySnapshotStore
from gatekeeper.main import app

client = TestClient(app)


@pytest.fixture
def store():
    store = InMemorySnapshotStore()
    app.dependency_overrides[get_store] = lambda: store
    yield store
    app.dependency_overrides.clear()


def test_sup_metrics():
    response = client.post(
        "/v1/admin/sup-metrics",
        json=[
            {"decision": "block", "label": "bad", "latency_ms": 50},
            {"decision": "allow", "label": "bad", "latency_ms": 80, "url": "/a", "cost_cents": 2},
        ],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["true_positives"] == 1
    assert data["false_negatives"] == 1
    assert data["false_negative_rate"] == 0.5
    assert data["cost_per_url_cents"] == {"/a": 2.0}


def test_sup_metrics_accepts_camel_case_fields():
    response = client.post(
        "/v1/admin/sup-metrics",
        json=[{"decision": "allow", "label": "good", "latencyMs": 50, "costCents": 3, "url": "/a"}],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["p95_latency_ms"] == 50.0
    assert data["cost_per_url_cents"] == {"/a": 3.0}


def test_sup_metrics_rejects_unknown_decision():
    response = client.post("/v1/admin/sup-metrics", json=[{"decision": "maybe", "label": "bad"}])
    assert response.status_code == 422


def test_sup_audit():
    response = client.post(
        "/v1/admin/sup-audit",
        json={"rows": [{"mode": "allow", "ms": 10}, {"mode": "block", "ms": 20}, 5]},
    )
    data = response.json()
    assert data["total"] == 2
    assert data["modes"] == {"allow": 1, "strict": 0, "block": 1, "other": 0}
    assert data["avg_ms"] == 15.0


def test_costs_estimate_pending_by_default():
    response = client.post("/v1/admin/costs/estimate", json={"copy": {"HEADLINE": "Hi"}})
    assert response.status_code == 200
    data = response.json()
    assert data["pending"] is True
    assert data["cents"] == 0


def test_costs_rollup():
    response = client.post(
        "/v1/admin/costs/rollup",
        json={
            "key": "route",
            "records": [
                {"route": "/a", "cost_cents": 10, "latency_ms": 100},
                {"route": "/a", "cost_cents": 20, "latency_ms": 200},
            ],
        },
    )
    assert response.status_code == 200
    [entry] = response.json()
    assert entry["key"] == "/a"
    assert entry["count"] == 2
    assert entry["total_cents"] == 30.0
    assert entry["avg_cents"] == 15.0
    assert entry["p95_latency_ms"] == pytest.approx(195.0)


def test_costs_rollup_bad_key():
    response = client.post("/v1/admin/costs/rollup", json={"key": "tenant", "records": []})
    assert response.status_code == 422


class TestRouting:
    def test_snapshot_404_before_first_run(self, store):
        assert client.get("/v1/admin/routing/snapshot").status_code == 404

    def test_run_job_publishes_next_version(self, store):
        events = [{"provider_id": "a", "converted": True}, {"provider_id": "b", "sup_violations": 1}]

        first = client.post("/v1/admin/routing/run-job", json={"events": events, "learning_rate": 0.5})
        assert first.status_code == 200
        assert first.json()["version"] == 1
        assert first.json()["priors"] == {"a": 0.5, "b": -0.25}

        second = client.post("/v1/admin/routing/run-job", json={"events": events, "learning_rate": 0.5})
        assert second.json()["version"] == 2
        assert second.json()["priors"] == {"a": 1.0, "b": -0.5}

        latest = client.get("/v1/admin/routing/snapshot").json()
        assert latest["version"] == 2
        assert store.latest().version == 2

    def test_run_job_accepts_camel_case_events(self, store):
        events = [{"providerId": "a", "converted": True}, {"providerId": "b", "supViolations": 1}]

        response = client.post("/v1/admin/routing/run-job", json={"events": events, "learningRate": 0.5})

        assert response.status_code == 200
        assert response.json()["priors"] == {"a": 0.5, "b": -0.25}

    def test_store_failure_returns_503(self, store, monkeypatch: pytest.MonkeyPatch):
        def fail(snapshot):
            raise SnapshotStoreError("table missing")

        monkeypatch.setattr(store, "publish", fail)
        response = client.post("/v1/admin/routing/run-job", json={"events": []})
        assert response.status_code == 503

    def test_learning_rate_out_of_range(self, store):
        response = client.post("/v1/admin/routing/run-job", json={"events": [], "learning_rate": 2})
        assert response.status_code == 422


class TestAdminKey:
    def test_required_when_configured(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ADMIN_API_KEY", "secret")
        response = client.post("/v1/admin/sup-audit", json={"rows": []})
        assert response.status_code == 401

    def test_accepted_when_matching(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ADMIN_API_KEY", "secret")
        response = client.post("/v1/admin/sup-audit", json={"rows": []}, headers={"X-Admin-Key": "secret"})
        assert response.status_code == 200
