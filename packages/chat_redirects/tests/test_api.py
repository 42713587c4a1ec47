"""
Tests for the backoffice HTTP endpoints.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from backoffice_api.deps import get_orchestrator, get_redis
from backoffice_api.main import app


@pytest.fixture
def client(orchestrator):
    """Test client wired to the in-memory orchestrator, without Redis."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_redis] = lambda: None
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def schedule_body(clock, **overrides):
    body = {
        "sourceUserId": "agent-ana",
        "destinationUserId": "agent-bruno",
        "sectorCode": "SEC-01",
        "startDate": (clock.now + timedelta(hours=1)).isoformat(),
        "endDate": (clock.now + timedelta(days=1)).isoformat(),
    }
    body.update(overrides)
    return body


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "backoffice-api"}


class TestImmediateRedirect:
    """Tests for POST /redirects/immediate."""

    def test_redirect(self, client, account, chats, owner_of):
        response = client.post(
            "/redirects/immediate",
            json={"sourceUserId": "agent-ana", "destinationUserId": "agent-bruno"},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Chats of agent-ana redirected to agent-bruno."}
        assert owner_of("chat-1") == "agent-bruno"

    def test_unknown_user_is_404(self, client, account):
        """Test domain errors map to status plus detail and code."""
        response = client.post(
            "/redirects/immediate",
            json={"sourceUserId": "agent-ghost", "destinationUserId": "agent-bruno"},
        )

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"
        assert response.json()["detail"]

    def test_missing_field_is_422(self, client):
        response = client.post("/redirects/immediate", json={"sourceUserId": "agent-ana"})

        assert response.status_code == 422


class TestScheduledRedirects:
    """Tests for scheduled redirect endpoints."""

    def test_create(self, client, clock, account):
        """Test creation returns 201 and a camelCase body."""
        response = client.post("/redirects/scheduled", json=schedule_body(clock))

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "scheduled"
        assert data["sourceUserId"] == "agent-ana"
        assert data["sectorCode"] == "SEC-01"
        assert data["id"]

    def test_create_accepts_utc_offsets(self, client, clock, account):
        """Test timezone-aware dates are stored as UTC."""
        body = schedule_body(clock, startDate="2026-03-02T10:00:00-03:00", endDate=None)

        response = client.post("/redirects/scheduled", json=body)

        assert response.status_code == 201
        assert response.json()["startDate"].startswith("2026-03-02T13:00:00")

    def test_create_in_past_is_400(self, client, clock, account):
        body = schedule_body(clock, startDate=(clock.now - timedelta(hours=1)).isoformat())

        response = client.post("/redirects/scheduled", json=body)

        assert response.status_code == 400
        assert response.json()["code"] == "START_DATE_IN_PAST"

    def test_duplicate_is_409(self, client, clock, account):
        client.post("/redirects/scheduled", json=schedule_body(clock))

        response = client.post("/redirects/scheduled", json=schedule_body(clock))

        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_REDIRECT"

    def test_cancel(self, client, clock, account):
        redirect_id = client.post("/redirects/scheduled", json=schedule_body(clock)).json()["id"]

        response = client.delete(f"/redirects/scheduled/{redirect_id}")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_cancel_through_generic_delete(self, client, clock, account):
        redirect_id = client.post("/redirects/scheduled", json=schedule_body(clock)).json()["id"]

        response = client.delete(f"/redirects/{redirect_id}", params={"scheduled": "true"})

        assert response.status_code == 200
        assert redirect_id in response.json()["message"]

    def test_cancel_unknown_is_404(self, client):
        response = client.delete("/redirects/scheduled/does-not-exist")

        assert response.status_code == 404
        assert response.json()["code"] == "REDIRECT_NOT_FOUND"

    def test_update_end_date(self, client, clock, account):
        redirect_id = client.post("/redirects/scheduled", json=schedule_body(clock)).json()["id"]
        new_end = clock.now + timedelta(days=3)

        response = client.patch(
            f"/redirects/{redirect_id}/end-date",
            json={"endDate": new_end.isoformat()},
        )

        assert response.status_code == 200
        assert response.json()["endDate"].startswith(new_end.isoformat())

    def test_update_end_date_before_start_is_400(self, client, clock, account):
        redirect_id = client.post("/redirects/scheduled", json=schedule_body(clock)).json()["id"]

        response = client.patch(
            f"/redirects/{redirect_id}/end-date",
            json={"endDate": clock.now.isoformat()},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_END_DATE"


class TestOverrides:
    """Tests for listing and removing overrides."""

    def test_list(self, client, clock, account):
        client.post("/redirects/scheduled", json=schedule_body(clock))

        response = client.get("/redirects")

        assert response.status_code == 200
        data = response.json()
        assert [item["status"] for item in data] == ["active", "scheduled"]
        assert data[0]["id"] == "SEC-07:agent-zeca"
        assert data[1]["sectorName"] == "Vendas"
        assert data[1]["recordStatus"] == "scheduled"

    def test_remove_by_key(self, client, account, overrides):
        response = client.delete("/redirects/SEC-07:agent-zeca")

        assert response.status_code == 200
        assert "acc-sales" in response.json()["message"]
        assert "SEC-07" not in overrides()

    def test_remove_by_path(self, client, account, overrides):
        response = client.delete("/redirects/overrides/SEC-07/agent-zeca")

        assert response.status_code == 200
        assert overrides() == {}

    def test_malformed_key_is_400(self, client, account):
        response = client.delete("/redirects/SEC-07")

        assert response.status_code == 400
        assert response.json()["code"] == "MALFORMED_OVERRIDE_KEY"

    def test_unknown_override_is_404(self, client, account):
        response = client.delete("/redirects/SEC-07:agent-bruno")

        assert response.status_code == 404
        assert response.json()["code"] == "OVERRIDE_NOT_FOUND"


class TestDirectoryEndpoints:
    """Tests for directory pass-through endpoints."""

    def test_user_sectors(self, client):
        response = client.get("/redirects/users/agent-carla/sectors")

        assert response.status_code == 200
        assert response.json() == [{"code": "SEC-02", "name": "Suporte"}]

    def test_directory_failure_is_502(self, client, directory):
        directory.fail_for("agent-carla")

        response = client.get("/redirects/users/agent-carla/sectors")

        assert response.status_code == 502
        assert response.json()["code"] == "STUB_FAILURE"

    def test_list_users_pages(self, client):
        """Test the listing forwards paging and reports camelCase meta."""
        first = client.get("/directory/users", params={"perPage": 2}).json()

        assert [u["id"] for u in first["data"]] == ["agent-ana", "agent-bruno"]
        assert first["meta"]["hasNextPage"] is True
        assert first["meta"]["hasPrevPage"] is False
        assert first["meta"]["perPage"] == 2

        second = client.get(
            "/directory/users", params={"perPage": 2, "cursor": first["meta"]["next"]}
        ).json()

        assert [u["id"] for u in second["data"]] == ["agent-carla", "agent-lost"]
        assert second["meta"]["hasPrevPage"] is True

    def test_list_users_filter(self, client):
        response = client.get("/directory/users", params={"filter": "bruno"})

        assert [u["name"] for u in response.json()["data"]] == ["Bruno Lima"]

    def test_per_page_bounds(self, client):
        assert client.get("/directory/users", params={"perPage": 0}).status_code == 422


class TestReconcileEndpoint:
    def test_reconcile_activates_due_records(self, client, clock, account, overrides):
        """Test a manual cycle activates what is due and reports counts."""
        client.post("/redirects/scheduled", json=schedule_body(clock))
        clock.advance(hours=2)

        response = client.post("/redirects/reconcile")

        assert response.status_code == 200
        assert response.json() == {
            "skipped": False,
            "activated": 1,
            "completed": 0,
            "failed": 0,
            "errors": {},
        }
        assert overrides()["SEC-01"] == "agent-bruno"
