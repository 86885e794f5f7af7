"""
Pydantic schemas for Google OAuth and session tokens.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProfileEmail(BaseModel):
    value: str
    verified: bool = False


class ProfilePhoto(BaseModel):
    value: str


class GoogleOAuthProfile(BaseModel):
    """Normalized Google profile returned by the userinfo endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    display_name: str | None = Field(default=None, alias="displayName")
    emails: list[ProfileEmail] = Field(default_factory=list)
    photos: list[ProfilePhoto] = Field(default_factory=list)
    provider: str = "google"

    @property
    def primary_email(self) -> ProfileEmail | None:
        return self.emails[0] if self.emails else None

    @property
    def photo_url(self) -> str | None:
        return self.photos[0].value if self.photos else None


class GoogleTokenResponse(BaseModel):
    """Token response from Google's token endpoint."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    id_token: str | None = None
    scope: str | None = None


class UserProfile(BaseModel):
    """User profile exposed to the front end."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    username: str
    name: str | None = None
    profile_picture: str | None = None
    google_id: str | None = None
    email_verified: bool = False
    last_login: datetime | None = None
    created_at: datetime | None = None


class TokenPayload(BaseModel):
    """Decoded session JWT claims."""

    sub: str
    id: str
    email: str
    username: str
    exp: int
    iat: int


class LoginRedirect(BaseModel):
    authorization_url: str
    state: str


class GoogleOAuthErrorDetail(BaseModel):
    error: str = "unknown_error"
    error_description: str | None = None
    state: str | None = None


class GoogleOAuthErrorResponse(BaseModel):
    success: bool = False
    message: str = "Google OAuth error occurred"
    error: GoogleOAuthErrorDetail


class GoogleLogoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")


class GoogleOAuthStatus(BaseModel):
    success: bool = True
    message: str = "OAuth status retrieved successfully"
    connected: bool
    user: UserProfile | None = None
