"""
Google OAuth API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, RedirectResponse

from crm.auth.dependencies import CurrentUser, get_auth_service
from crm.auth.schemas import (
    GoogleLogoutRequest,
    GoogleOAuthErrorDetail,
    GoogleOAuthErrorResponse,
    GoogleOAuthStatus,
    UserProfile,
)
from crm.auth.service import AuthService
from crm.shared.logging import get_logger
from crm.shared.schemas import MessageResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/google", summary="Initiate Google OAuth login")
async def google_login(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    redirect: str | None = Query(None, description="Front end URL to return to after login"),
) -> RedirectResponse:
    login = auth_service.initiate_login(redirect)
    return RedirectResponse(url=login.authorization_url, status_code=status.HTTP_302_FOUND)


@router.get("/google/callback", summary="Google OAuth callback")
async def google_callback(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    error_description: str | None = Query(None),
) -> RedirectResponse:
    """Complete the login and redirect back to the front end.

    Failures are reported to the front end through ``error`` and
    ``error_description`` query parameters on its ``/login`` page.
    """
    target = await auth_service.handle_callback(
        code=code,
        state=state,
        error=error,
        error_description=error_description,
    )
    return RedirectResponse(url=target, status_code=status.HTTP_302_FOUND)


@router.get(
    "/google/error",
    response_model=GoogleOAuthErrorResponse,
    status_code=status.HTTP_400_BAD_REQUEST,
)
async def google_error(
    error: str | None = Query(None),
    error_description: str | None = Query(None),
    state: str | None = Query(None),
) -> GoogleOAuthErrorResponse:
    logger.info(
        "Google OAuth error reported",
        extra={"error": error, "error_description": error_description},
    )
    return GoogleOAuthErrorResponse(
        error=GoogleOAuthErrorDetail(
            error=error or "unknown_error",
            error_description=error_description,
            state=state,
        )
    )


@router.post("/google/logout", response_model=MessageResponse)
async def google_logout(
    body: GoogleLogoutRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse | JSONResponse:
    if not body.user_id:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "User ID is required"},
        )

    if await auth_service.disconnect(body.user_id):
        return MessageResponse(message="Google OAuth disconnected successfully")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"success": False, "message": "User not found or already disconnected"},
    )


@router.get("/google/status", response_model=GoogleOAuthStatus)
async def google_status(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    user_id: str | None = Query(None, alias="userId"),
) -> GoogleOAuthStatus | JSONResponse:
    if not user_id:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "User ID is required"},
        )
    return await auth_service.get_status(user_id)


@router.get("/me", response_model=UserProfile)
async def get_me(current_user: CurrentUser) -> UserProfile:
    return UserProfile.model_validate(current_user)
