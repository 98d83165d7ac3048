"""Integration tests for invitation endpoints."""

import pytest
from fastapi.testclient import TestClient

from tests.helpers import OUTSIDER_ID, OWNER_ID, FakeBackend, create_test_token


@pytest.fixture
def invited(api_backend: FakeBackend) -> FakeBackend:
    """Company Acme with an outstanding invitation for new@example.com."""
    api_backend.add_user(OWNER_ID, "owner@acme.test", "Olive Owner")
    api_backend.add_user(OUTSIDER_ID, "new@example.com", "Nina New")
    api_backend.add_company(OWNER_ID)
    api_backend.add_membership(OWNER_ID, OUTSIDER_ID, status="invited")
    return api_backend


@pytest.fixture
def invitee_headers() -> dict[str, str]:
    """Authorization header for the invited user."""
    return {"Authorization": f"Bearer {create_test_token(sub=str(OUTSIDER_ID), email='new@example.com')}"}


class TestListInvitations:
    """Tests for GET /api/v1/invitations endpoint."""

    def test_lists_pending_invitations(
        self, client: TestClient, invited: FakeBackend, invitee_headers: dict[str, str]
    ) -> None:
        """Test that the invitee sees their invitation."""
        response = client.get("/api/v1/invitations", headers=invitee_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["company_id"] == str(OWNER_ID)
        assert data[0]["status"] == "invited"

    def test_owner_has_no_invitations(
        self, client: TestClient, invited: FakeBackend, auth_headers: dict[str, str]
    ) -> None:
        """Test that an active member has nothing to accept."""
        response = client.get("/api/v1/invitations", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == []

    def test_requires_auth(self, client: TestClient) -> None:
        """Test that 401 is returned without auth header."""
        assert client.get("/api/v1/invitations").status_code == 401


class TestAcceptInvitation:
    """Tests for POST /api/v1/invitations/{company_id}/accept endpoint."""

    def test_accept_activates_membership(
        self, client: TestClient, invited: FakeBackend, invitee_headers: dict[str, str]
    ) -> None:
        """Test that accepting joins the company."""
        response = client.post(f"/api/v1/invitations/{OWNER_ID}/accept", headers=invitee_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "active"

        company = client.get("/api/v1/company", headers=invitee_headers).json()
        assert company["company"]["name"] == "Acme"
        assert company["is_admin"] is False

    def test_accept_twice_is_404(
        self, client: TestClient, invited: FakeBackend, invitee_headers: dict[str, str]
    ) -> None:
        """Test that an accepted invitation cannot be accepted again."""
        client.post(f"/api/v1/invitations/{OWNER_ID}/accept", headers=invitee_headers)

        response = client.post(f"/api/v1/invitations/{OWNER_ID}/accept", headers=invitee_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_accept_without_invitation_is_404(
        self, client: TestClient, invited: FakeBackend, auth_headers: dict[str, str]
    ) -> None:
        """Test that accepting without an invitation changes nothing."""
        response = client.post(f"/api/v1/invitations/{OUTSIDER_ID}/accept", headers=auth_headers)

        assert response.status_code == 404
        assert "accept_invitation" not in invited.calls
