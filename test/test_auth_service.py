"""
Tests for the Google OAuth authentication service.
"""

import json
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse
from uuid import uuid4

import pytest

from crm.auth.jwt import JWTService
from crm.auth.models import User
from crm.auth.repository import UserRepository
from crm.auth.schemas import GoogleOAuthProfile, GoogleTokenResponse, ProfileEmail, ProfilePhoto
from crm.auth.service import DOMAIN_NOT_ALLOWED, EMAIL_NOT_VERIFIED, AuthService
from crm.auth.state import OAuthStateStore
from crm.config import Settings
from crm.shared.exceptions import AuthenticationError, OAuthProviderError


def _profile(email: str = "new.person@gmail.com", verified: bool = True) -> GoogleOAuthProfile:
    return GoogleOAuthProfile(
        id="google-42",
        display_name="New Person",
        emails=[ProfileEmail(value=email, verified=verified)],
        photos=[ProfilePhoto(value="https://lh3.googleusercontent.com/photo.jpg")],
    )


async def _assign_id(user: User) -> User:
    user.id = uuid4()
    return user


@pytest.fixture
def user_repository() -> AsyncMock:
    repository = AsyncMock(spec=UserRepository)
    repository.find_by_google_id_or_email.return_value = None
    repository.create.side_effect = _assign_id
    repository.save.side_effect = lambda user: user
    return repository


@pytest.fixture
def state_store() -> OAuthStateStore:
    return OAuthStateStore(ttl_seconds=600)


@pytest.fixture
def auth_service(
    test_settings: Settings,
    mock_google_client: MagicMock,
    jwt_service: JWTService,
    user_repository: AsyncMock,
    state_store: OAuthStateStore,
) -> AuthService:
    return AuthService(
        session=MagicMock(),
        settings=test_settings,
        google_client=mock_google_client,
        jwt_service=jwt_service,
        user_repository=user_repository,
        state_store=state_store,
    )


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


class TestInitiateLogin:
    def test_issues_state_and_authorization_url(
        self,
        auth_service: AuthService,
        state_store: OAuthStateStore,
    ) -> None:
        login = auth_service.initiate_login("http://localhost:3000/app")

        assert login.state == "test-state-12345"
        assert login.authorization_url.startswith("https://accounts.google.com/")
        assert len(state_store) == 1
        assert state_store.consume("test-state-12345").redirect_url == "http://localhost:3000/app"


class TestHandleCallback:
    @pytest.mark.asyncio
    async def test_provider_error_is_forwarded_to_login(self, auth_service: AuthService) -> None:
        url = await auth_service.handle_callback(
            code=None,
            state=None,
            error="access_denied",
            error_description="User cancelled",
        )

        assert url.startswith("http://localhost:3000/login?")
        assert _query(url) == {"error": ["access_denied"], "error_description": ["User cancelled"]}

    @pytest.mark.asyncio
    async def test_unknown_state_is_rejected(self, auth_service: AuthService) -> None:
        url = await auth_service.handle_callback(code="abc", state="forged")

        assert _query(url)["error"] == ["invalid_state"]
        assert _query(url)["error_description"] == ["Invalid state parameter"]

    @pytest.mark.asyncio
    async def test_missing_code(self, auth_service: AuthService) -> None:
        auth_service.initiate_login()

        url = await auth_service.handle_callback(code=None, state="test-state-12345")

        assert _query(url)["error"] == ["authentication_failed"]

    @pytest.mark.asyncio
    async def test_state_is_single_use(
        self,
        auth_service: AuthService,
        mock_google_client: MagicMock,
    ) -> None:
        mock_google_client.exchange_code.return_value = GoogleTokenResponse(access_token="at")
        mock_google_client.get_profile.return_value = _profile()
        auth_service.initiate_login()

        first = await auth_service.handle_callback(code="abc", state="test-state-12345")
        second = await auth_service.handle_callback(code="abc", state="test-state-12345")

        assert "token=" in first
        assert _query(second)["error"] == ["invalid_state"]

    @pytest.mark.asyncio
    async def test_success_redirects_with_token_and_user(
        self,
        auth_service: AuthService,
        mock_google_client: MagicMock,
        jwt_service: JWTService,
    ) -> None:
        mock_google_client.exchange_code.return_value = GoogleTokenResponse(access_token="at")
        mock_google_client.get_profile.return_value = _profile()
        auth_service.initiate_login()

        url = await auth_service.handle_callback(code="abc", state="test-state-12345")

        assert url.startswith("http://localhost:3000/?token=")
        query = _query(url)
        payload = jwt_service.verify_token(query["token"][0])
        user = json.loads(query["user"][0])
        assert payload.email == "new.person@gmail.com"
        assert user["username"] == "new.person"
        assert user["google_id"] == "google-42"
        mock_google_client.exchange_code.assert_awaited_once_with("abc")

    @pytest.mark.asyncio
    async def test_unverified_email_fails_login(
        self,
        auth_service: AuthService,
        mock_google_client: MagicMock,
    ) -> None:
        mock_google_client.exchange_code.return_value = GoogleTokenResponse(access_token="at")
        mock_google_client.get_profile.return_value = _profile(verified=False)
        auth_service.initiate_login()

        url = await auth_service.handle_callback(code="abc", state="test-state-12345")

        assert _query(url)["error"] == ["authentication_failed"]
        assert _query(url)["error_description"] == [EMAIL_NOT_VERIFIED]

    @pytest.mark.asyncio
    async def test_provider_failure_fails_login(
        self,
        auth_service: AuthService,
        mock_google_client: MagicMock,
    ) -> None:
        mock_google_client.exchange_code.side_effect = OAuthProviderError(
            "Failed to exchange authorization code"
        )
        auth_service.initiate_login()

        url = await auth_service.handle_callback(code="abc", state="test-state-12345")

        assert _query(url)["error_description"] == ["Failed to exchange authorization code"]


class TestAuthenticateProfile:
    @pytest.mark.asyncio
    async def test_non_gmail_domain_is_rejected(self, auth_service: AuthService) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.authenticate_profile(_profile(email="someone@company.com"))

        assert exc_info.value.message == DOMAIN_NOT_ALLOWED

    @pytest.mark.asyncio
    async def test_missing_email_is_rejected(self, auth_service: AuthService) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.authenticate_profile(GoogleOAuthProfile(id="g"))

        assert exc_info.value.code == "EMAIL_MISSING"

    @pytest.mark.asyncio
    async def test_existing_user_is_linked_and_updated(
        self,
        auth_service: AuthService,
        user_repository: AsyncMock,
    ) -> None:
        existing = User(id=uuid4(), email="new.person@gmail.com", username="np", email_verified=False)
        user_repository.find_by_google_id_or_email.return_value = existing

        user = await auth_service.authenticate_profile(_profile(email="New.Person@gmail.com"))

        assert user is existing
        assert user.google_id == "google-42"
        assert user.email_verified is True
        assert user.username == "np"
        assert user.last_login is not None
        user_repository.find_by_google_id_or_email.assert_awaited_once_with(
            "google-42", "new.person@gmail.com"
        )
        user_repository.create.assert_not_awaited()


class TestConnectionStatus:
    @pytest.mark.asyncio
    async def test_disconnect_unknown_user(
        self,
        auth_service: AuthService,
        user_repository: AsyncMock,
    ) -> None:
        user_repository.get_by_id.return_value = None

        assert await auth_service.disconnect(str(uuid4())) is False
        assert await auth_service.disconnect("not-a-uuid") is False

    @pytest.mark.asyncio
    async def test_disconnect_clears_google_link(
        self,
        auth_service: AuthService,
        user_repository: AsyncMock,
    ) -> None:
        user = User(id=uuid4(), email="a@gmail.com", username="a", google_id="g-1", profile_picture="p")
        user_repository.get_by_id.return_value = user

        assert await auth_service.disconnect(str(user.id)) is True
        assert user.google_id is None
        assert user.profile_picture is None
        assert await auth_service.disconnect(str(user.id)) is False

    @pytest.mark.asyncio
    async def test_status_hides_user_when_not_connected(
        self,
        auth_service: AuthService,
        user_repository: AsyncMock,
    ) -> None:
        user_repository.get_by_id.return_value = User(id=uuid4(), email="a@gmail.com", username="a")

        status = await auth_service.get_status(str(uuid4()))

        assert status.connected is False
        assert status.user is None


class TestOAuthStateStore:
    def test_expired_state_is_absent(self) -> None:
        now = [1000.0]
        store = OAuthStateStore(ttl_seconds=60, clock=lambda: now[0])
        store.save("s1")

        now[0] += 61

        assert store.consume("s1") is None

    def test_save_purges_stale_entries(self) -> None:
        now = [0.0]
        store = OAuthStateStore(ttl_seconds=10, clock=lambda: now[0])
        store.save("old")
        now[0] = 20.0

        store.save("new")

        assert len(store) == 1

    def test_blank_state_is_absent(self) -> None:
        assert OAuthStateStore().consume(None) is None
        assert OAuthStateStore().consume("") is None


class TestLoginRedirectTarget:
    def test_foreign_origin_is_dropped(
        self,
        auth_service: AuthService,
        state_store: OAuthStateStore,
    ) -> None:
        auth_service.initiate_login("https://attacker.example.com/collect")

        assert state_store.consume("test-state-12345").redirect_url is None

    def test_cors_origin_is_kept(
        self,
        test_settings: Settings,
        mock_google_client: MagicMock,
        state_store: OAuthStateStore,
    ) -> None:
        settings = test_settings.model_copy(
            update={"cors_origins": "http://localhost:3000,https://admin.example.com"}
        )
        service = AuthService(
            session=MagicMock(),
            settings=settings,
            google_client=mock_google_client,
            state_store=state_store,
        )

        service.initiate_login("https://admin.example.com/dashboard")

        assert state_store.consume("test-state-12345").redirect_url == "https://admin.example.com/dashboard"

    @pytest.mark.asyncio
    async def test_dropped_redirect_falls_back_to_frontend(
        self,
        auth_service: AuthService,
        mock_google_client: MagicMock,
    ) -> None:
        mock_google_client.exchange_code.return_value = GoogleTokenResponse(access_token="at")
        mock_google_client.get_profile.return_value = _profile()
        auth_service.initiate_login("//attacker.example.com")

        url = await auth_service.handle_callback(code="abc", state="test-state-12345")

        assert url.startswith("http://localhost:3000/?token=")


class TestClientCleanup:
    @pytest.mark.asyncio
    async def test_client_closed_after_login(
        self,
        auth_service: AuthService,
        mock_google_client: MagicMock,
    ) -> None:
        mock_google_client.exchange_code.return_value = GoogleTokenResponse(access_token="at")
        mock_google_client.get_profile.return_value = _profile()
        auth_service.initiate_login()

        await auth_service.handle_callback(code="abc", state="test-state-12345")

        mock_google_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_client_closed_after_provider_failure(
        self,
        auth_service: AuthService,
        mock_google_client: MagicMock,
    ) -> None:
        mock_google_client.exchange_code.side_effect = OAuthProviderError("Token exchange failed")
        auth_service.initiate_login()

        url = await auth_service.handle_callback(code="abc", state="test-state-12345")

        assert _query(url)["error"] == ["authentication_failed"]
        mock_google_client.close.assert_awaited_once()
