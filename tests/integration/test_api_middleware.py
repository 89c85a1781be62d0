"""Integration tests for API middleware stack."""

from uuid import UUID

import pytest
from httpx import AsyncClient
from uuid_utils.compat import uuid7


@pytest.mark.asyncio
class TestAuthenticationMiddleware:
    """Integration tests for authentication middleware."""

    async def test_missing_auth_header_returns_401(self, test_client: AsyncClient):
        """Protected endpoints require a Bearer token."""
        response = await test_client.get("/v1/releases/available")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        data = response.json()
        assert data["error_code"] == "unauthorized"
        assert data["request_id"] == "unknown"

    async def test_invalid_bearer_token_returns_401(self, test_client: AsyncClient):
        response = await test_client.get(
            "/v1/releases/available", headers={"Authorization": "Bearer invalid-token"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid API key"

    async def test_invalid_auth_format_returns_401(self, test_client: AsyncClient):
        response = await test_client.get(
            "/v1/releases/available", headers={"Authorization": "Basic dXNlcjpwYXNz"}
        )

        assert response.status_code == 401

    async def test_invalid_user_header_returns_401(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(
            "/v1/releases/available", headers={"X-User-ID": "not-a-uuid"}
        )

        assert response.status_code == 401
        assert "X-User-ID" in response.json()["message"]

    async def test_valid_token_passes_authentication(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/v1/releases/available")

        assert response.status_code == 200


@pytest.mark.asyncio
class TestRequestContextMiddleware:
    async def test_request_and_correlation_ids_in_headers(
        self, authenticated_client: AsyncClient
    ):
        response = await authenticated_client.get("/v1/releases/available")

        UUID(response.headers["X-Request-ID"])
        UUID(response.headers["X-Correlation-ID"])

    async def test_caller_correlation_id_is_reused(self, authenticated_client: AsyncClient):
        correlation_id = str(uuid7())

        response = await authenticated_client.get(
            "/v1/releases/available", headers={"X-Correlation-ID": correlation_id}
        )

        assert response.headers["X-Correlation-ID"] == correlation_id

    async def test_malformed_correlation_id_is_replaced(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(
            "/v1/releases/available", headers={"X-Correlation-ID": "abc"}
        )

        assert response.headers["X-Correlation-ID"] != "abc"

    async def test_each_request_gets_new_id(self, authenticated_client: AsyncClient):
        first = await authenticated_client.get("/v1/releases/available")
        second = await authenticated_client.get("/v1/releases/available")

        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]


@pytest.mark.asyncio
class TestErrorHandlingMiddleware:
    """Domain errors are rendered in the standard error format."""

    async def test_not_found_format(self, authenticated_client: AsyncClient):
        device_id = uuid7()

        response = await authenticated_client.get(f"/v1/devices/{device_id}")

        assert response.status_code == 404
        data = response.json()
        assert data["error_code"] == "not_found"
        assert data["details"] == {"resource": "device", "id": str(device_id)}
        assert data["request_id"] == response.headers["X-Request-ID"]

    async def test_body_validation_uses_error_format(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post("/v1/devices", json={"device_name": "X"})

        assert response.status_code == 422
        data = response.json()
        assert data["error_code"] == "validation_error"
        assert data["details"]["errors"]
