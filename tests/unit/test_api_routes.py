"""Tests for the REST API routes and error envelope."""

from __future__ import annotations

from fastapi.testclient import TestClient

from aftersales.api.app import create_app
from aftersales.ledger import RequestLedger
from aftersales.models.config import AfterSalesConfig, APIConfig
from tests.conftest import AGENT, CLIENT, OWNER, STRANGER, as_caller, make_ledger

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class TestCreateAndRead:
    def test_create_returns_sequential_ids(self, api: TestClient) -> None:
        first = api.post("/api/v1/requests", json={"description": "broken widget"}, headers=as_caller(CLIENT))
        second = api.post("/api/v1/requests", json={"description": "noisy fan"}, headers=as_caller(STRANGER))
        assert first.status_code == 201
        assert first.json() == {"id": 0}
        assert second.json() == {"id": 1}

    def test_get_request(self, api: TestClient) -> None:
        api.post("/api/v1/requests", json={"description": "broken widget"}, headers=as_caller(CLIENT))
        resp = api.get("/api/v1/requests/0")
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == 0
        assert body["client"] == CLIENT
        assert body["description"] == "broken widget"
        assert body["status"] == "pending"
        assert body["agent_response"] == ""
        assert body["client_feedback"] == ""
        assert body["exists"] is True
        assert body["created_at"] == body["updated_at"]

    def test_get_unknown_request_returns_default_record(self, api: TestClient) -> None:
        resp = api.get("/api/v1/requests/7")
        assert resp.status_code == 200
        body = resp.json()
        assert body["exists"] is False
        assert body["id"] == 0
        assert body["client"] == ""
        assert body["status"] == "pending"
        assert body["created_at"].startswith("1970-01-01T00:00:00")

    def test_get_is_public(self, api: TestClient) -> None:
        api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller(CLIENT))
        assert api.get("/api/v1/requests/0").status_code == 200

    def test_create_requires_identity(self, api: TestClient) -> None:
        resp = api.post("/api/v1/requests", json={"description": "x"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "MISSING_IDENTITY"

    def test_blank_identity_is_missing(self, api: TestClient) -> None:
        resp = api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller("   "))
        assert resp.status_code == 401

    def test_negative_id_is_invalid(self, api: TestClient) -> None:
        resp = api.get("/api/v1/requests/-1")
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_REQUEST"

    def test_list_client_requests(self, api: TestClient) -> None:
        for caller in (CLIENT, STRANGER, CLIENT):
            api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller(caller))
        assert api.get(f"/api/v1/clients/{CLIENT}/requests").json() == {"client": CLIENT, "request_ids": [0, 2]}
        assert api.get("/api/v1/clients/nobody/requests").json() == {"client": "nobody", "request_ids": []}

    def test_client_request_at(self, api: TestClient) -> None:
        api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller(STRANGER))
        api.post("/api/v1/requests", json={"description": "y"}, headers=as_caller(CLIENT))
        resp = api.get(f"/api/v1/clients/{CLIENT}/requests/0")
        assert resp.json() == {"client": CLIENT, "index": 0, "request_id": 1}

        missing = api.get(f"/api/v1/clients/{CLIENT}/requests/1")
        assert missing.status_code == 409
        assert missing.json()["error"] == "PRECONDITION_VIOLATED"


class TestUpdate:
    def test_agent_updates_request(self, api: TestClient) -> None:
        api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller(CLIENT))
        resp = api.put(
            "/api/v1/requests/0",
            json={"status": "in_progress", "agent_response": "looking into it"},
            headers=as_caller(OWNER),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "in_progress"
        assert body["agent_response"] == "looking into it"
        assert body["updated_at"] > body["created_at"]

    def test_non_agent_gets_403(self, api: TestClient) -> None:
        api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller(CLIENT))
        resp = api.put(
            "/api/v1/requests/0",
            json={"status": "resolved", "agent_response": "self-service"},
            headers=as_caller(CLIENT),
        )
        assert resp.status_code == 403
        assert resp.json()["error"] == "UNAUTHORIZED"
        assert api.get("/api/v1/requests/0").json()["status"] == "pending"

    def test_unknown_status_is_invalid(self, api: TestClient) -> None:
        api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller(CLIENT))
        resp = api.put("/api/v1/requests/0", json={"status": "escalated"}, headers=as_caller(OWNER))
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_REQUEST"

    def test_strict_mode_maps_to_409(self) -> None:
        api = TestClient(create_app(ledger=make_ledger(strict=True)), raise_server_exceptions=False)
        resp = api.put("/api/v1/requests/3", json={"status": "resolved"}, headers=as_caller(OWNER))
        assert resp.status_code == 409
        assert resp.json()["error"] == "PRECONDITION_VIOLATED"


class TestFeedback:
    def test_creator_adds_feedback(self, api: TestClient) -> None:
        api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller(CLIENT))
        resp = api.put("/api/v1/requests/0/feedback", json={"feedback": "still broken"}, headers=as_caller(CLIENT))
        assert resp.status_code == 200
        assert resp.json()["client_feedback"] == "still broken"

    def test_other_caller_gets_403(self, api: TestClient) -> None:
        api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller(CLIENT))
        resp = api.put("/api/v1/requests/0/feedback", json={"feedback": "spam"}, headers=as_caller(OWNER))
        assert resp.status_code == 403
        assert api.get("/api/v1/requests/0").json()["client_feedback"] == ""


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


class TestRoles:
    def test_owner_adds_agent(self, api: TestClient) -> None:
        resp = api.post("/api/v1/agents", json={"identity": AGENT}, headers=as_caller(OWNER))
        assert resp.status_code == 201
        assert api.get(f"/api/v1/agents/{AGENT}").json() == {"identity": AGENT, "is_agent": True}

    def test_non_owner_cannot_add_agent(self, api: TestClient) -> None:
        resp = api.post("/api/v1/agents", json={"identity": AGENT}, headers=as_caller(STRANGER))
        assert resp.status_code == 403
        assert api.get(f"/api/v1/agents/{AGENT}").json()["is_agent"] is False

    def test_empty_agent_identity_is_invalid(self, api: TestClient) -> None:
        resp = api.post("/api/v1/agents", json={"identity": ""}, headers=as_caller(OWNER))
        assert resp.status_code == 400

    def test_transfer_ownership(self, api: TestClient) -> None:
        resp = api.put("/api/v1/owner", json={"new_owner": CLIENT}, headers=as_caller(OWNER))
        assert resp.json() == {"owner": CLIENT}
        assert api.get("/api/v1/owner").json() == {"owner": CLIENT}

        again = api.put("/api/v1/owner", json={"new_owner": STRANGER}, headers=as_caller(OWNER))
        assert again.status_code == 403

    def test_stats(self, api: TestClient, ledger: RequestLedger) -> None:
        ledger.create_request(CLIENT, "x")
        ledger.registry.add_agent(OWNER, AGENT)
        assert api.get("/api/v1/stats").json() == {
            "request_count": 1,
            "owner": OWNER,
            "agent_count": 2,
            "strict_validation": False,
        }


# ---------------------------------------------------------------------------
# Service endpoints
# ---------------------------------------------------------------------------


class TestService:
    def test_health(self, api: TestClient) -> None:
        body = api.get("/api/v1/health").json()
        assert body["status"] == "ok"
        assert "version" in body

    def test_metrics_exposition(self, api: TestClient) -> None:
        api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller(CLIENT))
        resp = api.get("/api/v1/metrics")
        assert resp.status_code == 200
        assert "aftersales_requests_created_total" in resp.text

    def test_unknown_route_uses_envelope(self, api: TestClient) -> None:
        resp = api.get("/api/v1/nope")
        assert resp.status_code == 404
        assert resp.json()["error"] == "NOT_FOUND"

    def test_custom_identity_header(self) -> None:
        config = AfterSalesConfig(api=APIConfig(identity_header="X-Wallet"))
        api = TestClient(create_app(ledger=make_ledger(), config=config), raise_server_exceptions=False)
        assert api.post("/api/v1/requests", json={"description": "x"}, headers=as_caller(CLIENT)).status_code == 401
        resp = api.post("/api/v1/requests", json={"description": "x"}, headers={"X-Wallet": CLIENT})
        assert resp.status_code == 201
