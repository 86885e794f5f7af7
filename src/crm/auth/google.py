"""
Google OAuth 2.0 client.
"""

import secrets
from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from crm.auth.schemas import GoogleOAuthProfile, GoogleTokenResponse, ProfileEmail, ProfilePhoto
from crm.config import Settings, get_settings
from crm.shared.exceptions import OAuthProviderError
from crm.shared.logging import get_logger

logger = get_logger(__name__)


class GoogleOAuthClientProtocol(Protocol):
    """Protocol for the Google OAuth client."""

    def generate_state(self) -> str: ...
    def get_authorization_url(self, state: str) -> str: ...
    async def exchange_code(self, code: str) -> GoogleTokenResponse: ...
    async def get_profile(self, access_token: str) -> GoogleOAuthProfile: ...
    async def close(self) -> None: ...


def profile_from_userinfo(data: dict[str, Any]) -> GoogleOAuthProfile:
    """Map an OpenID userinfo document onto the profile shape used at login."""
    if not isinstance(data, dict):
        raise ValueError("Userinfo document is not a JSON object")
    emails = []
    if data.get("email"):
        emails.append(
            ProfileEmail(
                value=data["email"],
                verified=bool(data.get("email_verified", False)),
            )
        )
    photos = [ProfilePhoto(value=data["picture"])] if data.get("picture") else []
    return GoogleOAuthProfile(
        id=str(data["sub"]),
        display_name=data.get("name"),
        emails=emails,
        photos=photos,
    )


class GoogleOAuthClient:
    """Authorization-code flow against Google's OAuth endpoints."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Application settings. Uses default if not provided.
            http_client: HTTP client for making requests. Creates new if not provided.
        """
        self._settings = settings if settings is not None else get_settings()
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client if owned."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def generate_state(self) -> str:
        """Generate a random state parameter for CSRF protection."""
        return secrets.token_urlsafe(32)

    def get_authorization_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self._settings.google_client_id,
            "redirect_uri": self._settings.google_callback_url,
            "scope": self._settings.google_scopes,
            "state": state,
            "prompt": "select_account",
        }
        return f"{self._settings.google_authorization_endpoint}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> GoogleTokenResponse:
        """Exchange an authorization code for tokens.

        Raises:
            OAuthProviderError: If the token endpoint rejects the request or
                returns an unusable body.
        """
        client = await self._get_http_client()
        try:
            response = await client.post(
                self._settings.google_token_endpoint,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self._settings.google_callback_url,
                    "client_id": self._settings.google_client_id,
                    "client_secret": self._settings.google_client_secret,
                },
            )
            response.raise_for_status()
            return GoogleTokenResponse.model_validate(response.json())
        except httpx.HTTPError as e:
            logger.error("Google token exchange failed", extra={"error": str(e)})
            raise OAuthProviderError(
                message="Failed to exchange authorization code",
                details={"error": str(e)},
            ) from e
        except (ValueError, KeyError) as e:
            logger.error("Google token response malformed", extra={"error": str(e)})
            raise OAuthProviderError(
                message="Invalid token response from Google",
                details={"error": str(e)},
            ) from e

    async def get_profile(self, access_token: str) -> GoogleOAuthProfile:
        """Fetch the signed-in user's profile.

        Raises:
            OAuthProviderError: If the userinfo request fails or the document
                has no subject.
        """
        client = await self._get_http_client()
        try:
            response = await client.get(
                self._settings.google_userinfo_endpoint,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
            return profile_from_userinfo(response.json())
        except httpx.HTTPError as e:
            logger.error("Google userinfo request failed", extra={"error": str(e)})
            raise OAuthProviderError(
                message="Failed to fetch user information",
                details={"error": str(e)},
            ) from e
        except (ValueError, KeyError) as e:
            logger.error("Google userinfo response malformed", extra={"error": str(e)})
            raise OAuthProviderError(
                message="Invalid user information from Google",
                details={"error": str(e)},
            ) from e
