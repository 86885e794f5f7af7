"""
Tests for the Google OAuth routes and bearer authentication.
"""

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import jwt
import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.models import User
from crm.config import Settings


class TestGoogleLoginRoutes:
    @pytest.mark.asyncio
    async def test_login_redirects_to_google(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/auth/google")

        assert response.status_code == status.HTTP_302_FOUND
        location = urlparse(response.headers["location"])
        query = parse_qs(location.query)
        assert location.netloc == "accounts.google.com"
        assert query["client_id"] == ["test-client-id"]
        assert query["scope"] == ["profile email"]
        assert query["state"][0]

    @pytest.mark.asyncio
    async def test_callback_with_unknown_state(self, async_client: AsyncClient) -> None:
        response = await async_client.get(
            "/api/auth/google/callback",
            params={"code": "abc", "state": "forged"},
        )

        assert response.status_code == status.HTTP_302_FOUND
        location = response.headers["location"]
        assert location.startswith("http://localhost:3000/login?")
        assert parse_qs(urlparse(location).query)["error"] == ["invalid_state"]

    @pytest.mark.asyncio
    async def test_error_page(self, async_client: AsyncClient) -> None:
        response = await async_client.get(
            "/api/auth/google/error",
            params={"error": "access_denied", "error_description": "Denied"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Google OAuth error occurred"
        assert body["error"]["error"] == "access_denied"

    @pytest.mark.asyncio
    async def test_error_page_defaults(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/auth/google/error")

        assert response.json()["error"]["error"] == "unknown_error"


class TestLogoutAndStatus:
    @pytest.mark.asyncio
    async def test_logout_requires_user_id(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/api/auth/google/logout", json={})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"success": False, "message": "User ID is required"}

    @pytest.mark.asyncio
    async def test_logout_disconnects_then_404s(
        self,
        async_client: AsyncClient,
        test_user: User,
    ) -> None:
        first = await async_client.post("/api/auth/google/logout", json={"userId": str(test_user.id)})
        second = await async_client.post("/api/auth/google/logout", json={"userId": str(test_user.id)})

        assert first.status_code == status.HTTP_200_OK
        assert first.json()["success"] is True
        assert second.status_code == status.HTTP_404_NOT_FOUND
        assert second.json()["message"] == "User not found or already disconnected"

    @pytest.mark.asyncio
    async def test_status_requires_user_id(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/auth/google/status")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_status_for_connected_user(
        self,
        async_client: AsyncClient,
        test_user: User,
    ) -> None:
        response = await async_client.get(
            "/api/auth/google/status",
            params={"userId": str(test_user.id)},
        )

        body = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert body["connected"] is True
        assert body["user"]["email"] == test_user.email


class TestBearerAuthentication:
    """Tests for the bearer-token dependency."""

    @pytest.mark.asyncio
    async def test_protected_endpoint_without_token(self, async_client: AsyncClient) -> None:
        """Test that protected endpoints require authentication."""
        response = await async_client.get("/api/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"]["code"] == "MISSING_TOKEN"

    @pytest.mark.asyncio
    async def test_protected_endpoint_with_valid_token(
        self,
        async_client: AsyncClient,
        test_user: User,
        auth_headers: dict[str, str],
    ) -> None:
        response = await async_client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["email"] == test_user.email
        assert response.json()["username"] == "operator"

    @pytest.mark.asyncio
    async def test_protected_endpoint_with_expired_token(
        self,
        async_client: AsyncClient,
        test_user: User,
        test_settings: Settings,
    ) -> None:
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": str(test_user.id),
                "id": str(test_user.id),
                "email": test_user.email,
                "username": test_user.username,
                "iat": now - timedelta(hours=3),
                "exp": now - timedelta(hours=1),
            },
            test_settings.jwt_secret_key,
            algorithm="HS256",
        )

        response = await async_client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"]["code"] == "TOKEN_EXPIRED"

    @pytest.mark.asyncio
    async def test_user_without_google_link_is_forbidden(
        self,
        async_client: AsyncClient,
        test_user: User,
        auth_headers: dict[str, str],
        db_session: AsyncSession,
    ) -> None:
        test_user.google_id = None
        await db_session.flush()

        response = await async_client.get("/api/customers", headers=auth_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"]["code"] == "GOOGLE_OAUTH_REQUIRED"

    @pytest.mark.asyncio
    async def test_correlation_id_is_echoed(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health", headers={"X-Correlation-ID": "abc-123"})

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["X-Correlation-ID"] == "abc-123"
        assert response.json()["status"] == "healthy"
