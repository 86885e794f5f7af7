"""
Application exception hierarchy.

Every error carries a machine-readable code so the API layer can render a
consistent ``{"detail": {"code", "message", "details"}}`` body.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(AppException):
    """Requested resource does not exist."""

    status_code = 404

    def __init__(
        self,
        message: str = "Resource not found",
        code: str = "NOT_FOUND",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code=code, details=details)


class ValidationError(AppException):
    """Input failed domain validation."""

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        code: str = "VALIDATION_ERROR",
        details: dict[str, Any] | None = None,
        errors: list[Any] | None = None,
    ) -> None:
        details = dict(details or {})
        if errors:
            details["errors"] = list(errors)
        super().__init__(message=message, code=code, details=details)


class ConflictError(AppException):
    """Write would violate a uniqueness constraint."""

    status_code = 409

    def __init__(
        self,
        message: str = "Resource already exists",
        code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code=code, details=details)


class AuthenticationError(AppException):
    """Authentication failed."""

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        code: str = "UNAUTHENTICATED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code=code, details=details)


class TokenExpiredError(AuthenticationError):
    """JWT token has expired."""

    def __init__(self, message: str = "Token has expired") -> None:
        super().__init__(message=message, code="TOKEN_EXPIRED")


class InvalidTokenError(AuthenticationError):
    """JWT token is invalid."""

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message=message, code="INVALID_TOKEN")


class AuthorizationError(AppException):
    """Authenticated user may not perform the action."""

    status_code = 403

    def __init__(
        self,
        message: str = "Forbidden",
        code: str = "FORBIDDEN",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code=code, details=details)


class OAuthProviderError(AppException):
    """Google OAuth token or userinfo exchange failed."""

    status_code = 502

    def __init__(
        self,
        message: str = "OAuth provider error",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="OAUTH_PROVIDER_ERROR", details=details)


class DeliveryError(AppException):
    """Messaging vendor rejected or could not accept a message."""

    status_code = 502

    def __init__(
        self,
        message: str = "Message delivery failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="DELIVERY_ERROR", details=details)
