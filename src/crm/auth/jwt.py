"""
JWT session token issuance and verification.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError as PyJWTInvalidTokenError

from crm.auth.models import User
from crm.auth.schemas import TokenPayload
from crm.config import Settings, get_settings
from crm.shared.exceptions import InvalidTokenError, TokenExpiredError
from crm.shared.logging import get_logger

logger = get_logger(__name__)


class JWTServiceProtocol(Protocol):
    """Protocol for JWT operations."""

    def create_access_token(self, user: User) -> str: ...
    def verify_token(self, token: str) -> TokenPayload: ...


class JWTService:
    """Issues and verifies HS256 session tokens."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings if settings is not None else get_settings()

    @property
    def expires_in_seconds(self) -> int:
        return self._settings.jwt_expiration_hours * 3600

    def create_access_token(self, user: User) -> str:
        """Create a session token carrying the user's id, email and username."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "id": str(user.id),
            "email": user.email,
            "username": user.username,
            "iat": now,
            "exp": now + timedelta(hours=self._settings.jwt_expiration_hours),
        }
        return jwt.encode(
            payload,
            self._settings.jwt_secret_key,
            algorithm=self._settings.jwt_algorithm,
        )

    def verify_token(self, token: str) -> TokenPayload:
        """Decode and validate a session token.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the signature or claims are invalid.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.jwt_secret_key,
                algorithms=[self._settings.jwt_algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except ExpiredSignatureError as e:
            logger.warning("Token expired")
            raise TokenExpiredError() from e
        except PyJWTInvalidTokenError as e:
            logger.warning("Invalid token", extra={"error": str(e)})
            raise InvalidTokenError() from e

        try:
            return TokenPayload.model_validate(payload)
        except ValueError as e:
            raise InvalidTokenError("Token is missing required claims") from e
