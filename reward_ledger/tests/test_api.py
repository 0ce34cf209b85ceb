"""
HTTP Tests for the Reward Ledger API
"""

import pytest
from fastapi.testclient import TestClient

from reward_ledger.api import app, get_ledger_service
from reward_ledger.service import LedgerService


AUTHORITY = "authority-principal"
AS_AUTHORITY = {"X-Caller": AUTHORITY}
AS_ALICE = {"X-Caller": "alice"}


@pytest.fixture
def service():
    return LedgerService(authority=AUTHORITY)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_ledger_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRewardEndpoints:
    """Tests for mint, batch and lookup endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_mint(self, client):
        """Test POST /rewards returns the new id."""
        response = client.post("/rewards", json={"points": 100}, headers=AS_AUTHORITY)

        assert response.status_code == 201
        data = response.json()
        assert data["ok"] is True
        assert data["value"] == 1

    def test_mint_by_non_authority(self, client):
        """Test the not-authority code reaches the client."""
        response = client.post("/rewards", json={"points": 100}, headers=AS_ALICE)

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == 200

    def test_mint_requires_caller_header(self, client):
        response = client.post("/rewards", json={"points": 100})

        assert response.status_code == 422

    def test_batch_mint_skips_invalid(self, client):
        """Test POST /rewards/batch drops invalid items silently."""
        response = client.post(
            "/rewards/batch", json={"points": [100, 0, 300]}, headers=AS_AUTHORITY
        )

        assert response.status_code == 201
        assert response.json()["value"] == [1, 2]

    def test_oversized_batch(self, client):
        response = client.post("/rewards/batch", json={"points": [1] * 101}, headers=AS_AUTHORITY)

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == 202

    def test_get_reward(self, client):
        """Test GET /rewards/{id} returns the full view."""
        client.post(
            "/rewards/batch",
            json={"points": [40], "metadata": ["launch"]},
            headers=AS_AUTHORITY,
        )

        response = client.get("/rewards/1")

        assert response.status_code == 200
        data = response.json()
        assert data["owner"] == AUTHORITY
        assert data["points"] == 40
        assert data["burned"] is False
        assert data["metadata"] == "launch"

    def test_get_missing_reward(self, client):
        response = client.get("/rewards/9")

        assert response.status_code == 404

    def test_list_and_stats(self, client):
        client.post("/rewards/batch", json={"points": [1, 2, 3]}, headers=AS_AUTHORITY)

        listing = client.get("/rewards", params={"start_id": 2, "limit": 5}).json()
        assert [r["id"] for r in listing["rewards"]] == [2, 3]

        stats = client.get("/stats").json()
        assert stats["total_minted"] == 3
        assert stats["live"] == 3


class TestLifecycleEndpoints:
    """Tests for transfer, points and burn endpoints."""

    def test_transfer_then_burn(self, client, service):
        """Test a reward moves to a new owner who can then burn it."""
        client.post("/rewards", json={"points": 10}, headers=AS_AUTHORITY)

        response = client.post(
            "/rewards/1/transfer",
            json={"sender": AUTHORITY, "recipient": "alice"},
            headers=AS_AUTHORITY,
        )
        assert response.status_code == 200
        assert service.owner_of(1) == "alice"

        response = client.post("/rewards/1/burn", headers=AS_ALICE)
        assert response.status_code == 200

        response = client.post("/rewards/1/burn", headers=AS_ALICE)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == 204

    def test_transfer_by_non_owner(self, client, service):
        client.post("/rewards", json={"points": 10}, headers=AS_AUTHORITY)

        response = client.post(
            "/rewards/1/transfer",
            json={"sender": "alice", "recipient": "bob"},
            headers=AS_ALICE,
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == 201
        assert service.owner_of(1) == AUTHORITY

    def test_update_and_deduct_points(self, client, service):
        client.post("/rewards", json={"points": 10}, headers=AS_AUTHORITY)

        response = client.put("/rewards/1/points", json={"points": 25}, headers=AS_AUTHORITY)
        assert response.status_code == 200

        response = client.post("/rewards/1/deduct", json={"amount": 5}, headers=AS_AUTHORITY)
        assert response.json()["value"] == 20

        response = client.post("/rewards/1/deduct", json={"amount": 50}, headers=AS_AUTHORITY)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == 203
        assert service.points_of(1) == 20

    def test_permissions(self, client):
        client.post("/rewards", json={"points": 10}, headers=AS_AUTHORITY)

        data = client.get("/rewards/1/permissions", params={"sender": AUTHORITY}).json()

        assert data["is_valid"] is True
        assert data["can_transfer"] is True
        assert data["can_burn"] is True
