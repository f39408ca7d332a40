"""
HTTP adapter tests - endpoints over an injected engine.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from boxflow.api.main import app, get_engine


@pytest.fixture
def client(engine):
    """Test client wired to the fixture engine instead of the seed file."""
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoints:
    """Liveness and health checks."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["system_health"] == "healthy"
        assert data["total_clients"] == 5
        assert data["demo_mode"] is False

    def test_run_health_check(self, client):
        response = client.post("/health/check")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["stage_occupancy"] == 5


class TestStageEndpoints:
    """Stage catalog and occupancy queries."""

    def test_list_stages(self, client):
        stages = client.get("/stages").json()

        assert len(stages) == 16
        trial = next(s for s in stages if s["id"] == "trial-visit")
        assert trial["label"] == "Trial Visit"
        assert trial["count"] == 1

    def test_stage_clients(self, client):
        clients = client.get("/stages/trial-visit/clients").json()

        assert [c["id"] for c in clients] == ["c-trial"]
        assert clients[0]["status"] == "new"

    def test_unknown_stage_is_empty(self, client):
        assert client.get("/stages/moon-base/clients").json() == []
        assert client.get("/stages/moon-base/count").json() == {"stage_id": "moon-base", "count": 0}

    def test_stage_outcomes(self, client):
        options = client.get("/stages/payment-visit/outcomes").json()

        assert [o["value"] for o in options] == ["done", "follow-up", "pending"]


class TestOutcomeEndpoint:
    """Submitting action results."""

    def test_record_outcome_moves_client(self, client):
        response = client.post("/clients/c-trial/outcome", json={
            "from_box": "trial-visit",
            "outcome": "done",
            "remark": "Agreed to subscribe",
            "user_name": "Asha",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["to_box"] == "payment-visit"
        assert data["moved"] is True
        assert data["status"] == "active"
        assert data["follow_up_created"] is True
        assert data["follow_up"]["task_type"] == "payment-visit"

        assert client.get("/stages/payment-visit/count").json()["count"] == 2

    def test_stale_from_box_conflict(self, client):
        response = client.post("/clients/c-trial/outcome", json={
            "from_box": "payment-visit",
            "outcome": "done",
        })

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["expected"] == "payment-visit"
        assert detail["actual"] == "trial-visit"

    def test_unknown_client(self, client):
        response = client.post("/clients/ghost/outcome", json={"from_box": "trial-visit", "outcome": "done"})
        assert response.status_code == 404

    def test_invalid_outcome(self, client):
        response = client.post("/clients/c-trial/outcome", json={"from_box": "trial-visit", "outcome": "maybe"})
        assert response.status_code == 422

    def test_empty_from_box(self, client):
        response = client.post("/clients/c-trial/outcome", json={"from_box": " ", "outcome": "done"})
        assert response.status_code == 422


class TestClientEndpoints:
    """Client lookups and history."""

    def test_get_client(self, client):
        data = client.get("/clients/c-call").json()

        assert data["current_box"] == "user-payment-call"
        assert data["attempt_count"] == 2

    def test_get_unknown_client(self, client):
        assert client.get("/clients/ghost").status_code == 404

    def test_history(self, client):
        client.post("/clients/c-trial/outcome", json={"from_box": "trial-visit", "outcome": "done", "user_name": "Asha"})

        entries = client.get("/clients/c-trial/history").json()["entries"]

        assert len(entries) == 1
        assert entries[0]["user_name"] == "Asha"
        assert entries[0]["action"] == "Done"
        assert entries[0]["description"] == "Trial Visit → Payment Visit"
        assert entries[0]["stayed"] is False

    def test_history_unknown_client(self, client):
        assert client.get("/clients/ghost/history").status_code == 404


class TestActivityAndSummary:
    """Recent activity, follow-ups and the pending summary."""

    def test_activity_newest_first(self, client):
        client.post("/clients/c-trial/outcome", json={"from_box": "trial-visit", "outcome": "pending"})
        client.post("/clients/c-gst/outcome", json={"from_box": "gst-visit-1", "outcome": "done"})

        entries = client.get("/activity", params={"limit": 1}).json()["entries"]

        assert len(entries) == 1
        assert entries[0]["client_id"] == "c-gst"

    def test_activity_limit_validated(self, client):
        assert client.get("/activity", params={"limit": -1}).status_code == 422

    def test_follow_ups(self, client):
        client.post("/clients/c-call/outcome", json={"from_box": "user-payment-call", "outcome": "follow-up"})

        tasks = client.get("/follow-ups").json()

        assert len(tasks) == 1
        assert tasks[0]["client_id"] == "c-call"
        assert tasks[0]["priority"] == "high"
        assert tasks[0]["assigned_officer"] == "Rajesh Kumar"

    def test_summary_after_collection(self, client):
        client.post("/clients/c-pay/outcome", json={"from_box": "payment-visit", "outcome": "done"})

        summary = client.get("/summary").json()

        assert summary["current_pending"] == 6000.0
        assert summary["collection_count"] == 1
        assert summary["collection_amount"] == 4000.0


class TestDemoMode:
    """Simulation is gated on demo mode."""

    def test_simulate_requires_demo_mode(self, client):
        assert client.post("/stages/trial-visit/simulate").status_code == 409

    def test_enable_and_simulate(self, client):
        response = client.put("/demo-mode", json={"enabled": True})
        assert response.json()["demo_mode"] is True

        result = client.post("/stages/trial-visit/simulate").json()

        assert result["simulated"] is True
        assert result["transition"]["client_id"] == "c-trial"

    def test_simulate_empty_stage(self, client):
        client.put("/demo-mode", json={"enabled": True})

        result = client.post("/stages/user-bill-making/simulate").json()

        assert result == {"simulated": False, "transition": None}


class TestDebugVerify:
    """Verification endpoint is debug-only."""

    def test_verify_in_debug(self, client):
        with patch('boxflow.api.main.debug_enabled', return_value=True):
            response = client.get("/debug/verify")

        assert response.status_code == 200
        assert response.json() == {"consistent": True, "issues": []}

    def test_verify_forbidden_outside_debug(self, client):
        with patch('boxflow.api.main.debug_enabled', return_value=False):
            assert client.get("/debug/verify").status_code == 403
