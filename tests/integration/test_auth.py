"""Integration tests for SimpleJWT authentication and actor resolution.

Validates:
  - /health is public (plain Django view, no DRF).
  - Protected DRF endpoints return 401 without, or with a bad, token.
  - A token obtained from /api/v1/auth/token/ opens the API.
  - /api/v1/me reports the actor the order endpoints will act as.
"""

import pytest

pytestmark = pytest.mark.integration


class TestPublicEndpoints:
    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"


class TestProtectedEndpoints:
    """All DRF endpoints require a valid JWT by default (Fail Closed)."""

    def test_no_token_returns_401(self, api_client):
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401

    def test_invalid_token_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer invalid.token.here")
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401

    def test_malformed_auth_header_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Token some-token")
        response = api_client.get("/api/v1/orders/")
        assert response.status_code == 401

    def test_401_includes_www_authenticate_header(self, api_client):
        response = api_client.get("/api/v1/me")
        assert response.status_code == 401
        assert "Bearer" in response.get("WWW-Authenticate", "")


class TestTokenFlow:
    def test_obtained_token_authenticates(self, api_client, customer_user):
        response = api_client.post(
            "/api/v1/auth/token/",
            {"username": "customer", "password": "testpass123"},
            format="json",
        )
        assert response.status_code == 200

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        me = api_client.get("/api/v1/me")

        assert me.status_code == 200
        assert me.data == {"id": str(customer_user.pk), "role": "customer", "username": "customer"}

    def test_wrong_password(self, api_client, customer_user):
        response = api_client.post(
            "/api/v1/auth/token/",
            {"username": "customer", "password": "nope"},
            format="json",
        )
        assert response.status_code == 401


class TestMe:
    def test_vendor_owner(self, client_for, vendor_a_user, vendor_a):
        data = client_for(vendor_a_user).get("/api/v1/me").data
        assert data["role"] == "vendor"
        assert data["id"] == str(vendor_a.pk)

    def test_staff_user(self, client_for, admin_user):
        assert client_for(admin_user).get("/api/v1/me").data["role"] == "admin"
