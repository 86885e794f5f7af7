"""
FastAPI dependencies for authentication.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.models import User
from crm.auth.service import AuthService
from crm.shared.database import get_db_session
from crm.shared.exceptions import AuthenticationError, AuthorizationError
from crm.shared.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


async def get_auth_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> AuthService:
    return AuthService(session=session)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> User:
    """Resolve the bearer token on the request to a user."""
    if credentials is None:
        logger.warning(
            "Missing authentication credentials",
            extra={"endpoint": request.url.path, "method": request.method},
        )
        raise AuthenticationError(
            "Authentication required. Please use Google OAuth to sign in.",
            code="MISSING_TOKEN",
        )
    return await auth_service.get_user_from_token(credentials.credentials)


async def require_google_user(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Allow only users linked to a verified Google account."""
    if not user.google_id:
        logger.warning("User without Google ID on protected route", extra={"email": user.email})
        raise AuthorizationError(
            "Google OAuth authentication required. Please sign in with Google.",
            code="GOOGLE_OAUTH_REQUIRED",
        )
    if not user.email_verified:
        logger.warning("User with unverified email on protected route", extra={"email": user.email})
        raise AuthorizationError(
            "Email verification required. Please verify your email with Google.",
            code="EMAIL_VERIFICATION_REQUIRED",
        )
    return user


CurrentUser = Annotated[User, Depends(require_google_user)]
