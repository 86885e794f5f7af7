"""
Authentication service orchestrating Google OAuth and JWT issuance.
"""

import json
from urllib.parse import quote, urlencode, urlsplit
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.google import GoogleOAuthClient, GoogleOAuthClientProtocol
from crm.auth.jwt import JWTService, JWTServiceProtocol
from crm.auth.models import User
from crm.auth.repository import UserRepository, UserRepositoryProtocol
from crm.auth.schemas import GoogleOAuthProfile, GoogleOAuthStatus, LoginRedirect, UserProfile
from crm.auth.state import OAuthStateStore, get_state_store
from crm.config import Settings, get_settings
from crm.shared.database import utcnow
from crm.shared.exceptions import AuthenticationError, OAuthProviderError
from crm.shared.logging import get_logger

logger = get_logger(__name__)

EMAIL_NOT_FOUND = "No email found in Google profile"
EMAIL_NOT_VERIFIED = "Google email not verified. Please verify your email with Google first."
DOMAIN_NOT_ALLOWED = (
    "Only Gmail accounts are supported. Please use a Gmail account for authentication."
)


def url_origin(url: str | None) -> str | None:
    """``scheme://host[:port]`` of an absolute http(s) URL, lower-cased."""
    if not url:
        return None
    parts = urlsplit(url.strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}".lower()


def parse_user_id(raw: str | None) -> UUID | None:
    if not raw:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        return None


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        google_client: GoogleOAuthClientProtocol | None = None,
        jwt_service: JWTServiceProtocol | None = None,
        user_repository: UserRepositoryProtocol | None = None,
        state_store: OAuthStateStore | None = None,
    ) -> None:
        """Initialize authentication service.

        Args:
            session: Database session.
            settings: Application settings.
            google_client: Google OAuth client.
            jwt_service: JWT service for token operations.
            user_repository: User repository for database operations.
            state_store: Store holding issued OAuth states.
        """
        self._settings = settings if settings is not None else get_settings()
        self._session = session
        self._google_client = (
            google_client if google_client is not None else GoogleOAuthClient(self._settings)
        )
        self._jwt_service = jwt_service if jwt_service is not None else JWTService(self._settings)
        self._user_repository = (
            user_repository if user_repository is not None else UserRepository(session)
        )
        self._state_store = state_store if state_store is not None else get_state_store()

    def initiate_login(self, redirect_url: str | None = None) -> LoginRedirect:
        """Issue a state and build the Google authorization URL."""
        state = self._google_client.generate_state()
        redirect_url = self._allowed_redirect(redirect_url)
        self._state_store.save(state, redirect_url)
        authorization_url = self._google_client.get_authorization_url(state)

        logger.info(
            "Google OAuth login initiated",
            extra={"state": state[:8] + "...", "redirect": redirect_url},
        )
        return LoginRedirect(authorization_url=authorization_url, state=state)

    def _allowed_redirect(self, redirect_url: str | None) -> str | None:
        """Keep a post-login redirect only when it targets the front end or a CORS origin."""
        if not redirect_url:
            return None
        allowed = {url_origin(self._settings.frontend_url)}
        allowed.update(url_origin(origin) for origin in self._settings.cors_origins_list)
        allowed.discard(None)
        if url_origin(redirect_url) in allowed:
            return redirect_url
        logger.warning("Ignoring login redirect to a foreign origin", extra={"redirect": redirect_url})
        return None

    def _check_profile(self, profile: GoogleOAuthProfile) -> str:
        """Return the normalized email or raise AuthenticationError."""
        email = profile.primary_email
        if email is None or not email.value:
            raise AuthenticationError(EMAIL_NOT_FOUND, code="EMAIL_MISSING")
        if not email.verified:
            raise AuthenticationError(EMAIL_NOT_VERIFIED, code="EMAIL_VERIFICATION_REQUIRED")

        address = email.value.strip().lower()
        domain = address.rsplit("@", 1)[-1]
        if domain not in self._settings.allowed_email_domains_list:
            raise AuthenticationError(DOMAIN_NOT_ALLOWED, code="EMAIL_DOMAIN_NOT_ALLOWED")
        return address

    async def authenticate_profile(self, profile: GoogleOAuthProfile) -> User:
        """Validate a Google profile and create or update the matching user.

        Raises:
            AuthenticationError: If the profile's email is missing, unverified,
                or outside the allowed domains.
        """
        email = self._check_profile(profile)
        now = utcnow()

        user = await self._user_repository.find_by_google_id_or_email(profile.id, email)
        if user is None:
            user = await self._user_repository.create(
                User(
                    email=email,
                    username=email.split("@", 1)[0],
                    name=profile.display_name,
                    profile_picture=profile.photo_url,
                    google_id=profile.id,
                    email_verified=True,
                    last_login=now,
                )
            )
            logger.info("User created from Google profile", extra={"user_id": str(user.id)})
            return user

        user.google_id = profile.id
        user.name = profile.display_name or user.name
        user.profile_picture = profile.photo_url or user.profile_picture
        user.email_verified = True
        user.last_login = now
        user = await self._user_repository.save(user)
        logger.info("User updated from Google profile", extra={"user_id": str(user.id)})
        return user

    async def complete_login(self, code: str) -> tuple[User, str]:
        token_response = await self._google_client.exchange_code(code)
        profile = await self._google_client.get_profile(token_response.access_token)
        user = await self.authenticate_profile(profile)
        return user, self._jwt_service.create_access_token(user)

    def _error_redirect(self, error: str, description: str | None) -> str:
        query = urlencode({"error": error, "error_description": description or ""})
        return f"{self._settings.frontend_url}/login?{query}"

    async def handle_callback(
        self,
        code: str | None,
        state: str | None,
        error: str | None = None,
        error_description: str | None = None,
    ) -> str:
        """Process the provider callback and return the front end redirect URL."""
        if error:
            logger.warning(
                "Google OAuth callback returned error",
                extra={"error": error, "error_description": error_description},
            )
            return self._error_redirect(error, error_description)

        entry = self._state_store.consume(state)
        if entry is None:
            logger.warning("Invalid state parameter in Google OAuth callback")
            return self._error_redirect("invalid_state", "Invalid state parameter")

        if not code:
            return self._error_redirect("authentication_failed", "Missing authorization code")

        try:
            user, token = await self.complete_login(code)
        except (AuthenticationError, OAuthProviderError) as e:
            logger.warning("Google OAuth authentication failed", extra={"reason": e.message})
            return self._error_redirect("authentication_failed", e.message)
        finally:
            await self._google_client.close()

        profile = UserProfile.model_validate(user).model_dump(mode="json")
        base_url = (entry.redirect_url or self._settings.frontend_url).rstrip("/")
        logger.info("User authenticated via Google", extra={"user_id": str(user.id)})
        return f"{base_url}/?token={token}&user={quote(json.dumps(profile), safe='')}"

    async def disconnect(self, user_id: str) -> bool:
        """Clear the Google link. False when the user is unknown or not linked."""
        parsed = parse_user_id(user_id)
        user = await self._user_repository.get_by_id(parsed) if parsed else None
        if user is None or not user.google_id:
            return False

        user.google_id = None
        user.profile_picture = None
        await self._user_repository.save(user)
        logger.info("Google OAuth disconnected", extra={"user_id": str(user.id)})
        return True

    async def get_status(self, user_id: str) -> GoogleOAuthStatus:
        parsed = parse_user_id(user_id)
        user = await self._user_repository.get_by_id(parsed) if parsed else None
        if user is None or not user.is_google_connected:
            return GoogleOAuthStatus(connected=False)
        return GoogleOAuthStatus(connected=True, user=UserProfile.model_validate(user))

    async def get_user_from_token(self, token: str) -> User:
        """Resolve a bearer token to its user.

        Raises:
            AuthenticationError: If the token is invalid or the user is gone.
        """
        payload = self._jwt_service.verify_token(token)
        user_id = parse_user_id(payload.sub)
        user = await self._user_repository.get_by_id(user_id) if user_id else None
        if user is None:
            raise AuthenticationError(
                "Authentication required. Please use Google OAuth to sign in.",
            )
        return user
