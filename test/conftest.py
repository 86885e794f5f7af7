"""
Pytest configuration and shared fixtures.
"""

import os

os.environ["APP_ENV"] = "dev"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_CREATE_TABLES"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["FRONTEND_URL"] = "http://localhost:3000"

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import MagicMock
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from crm.auth.google import GoogleOAuthClient
from crm.auth.jwt import JWTService
from crm.auth.models import User
from crm.auth.state import get_state_store
from crm.campaigns.models import Campaign, CommunicationLog  # noqa: F401
from crm.config import Settings
from crm.customers.models import Customer
from crm.main import app
from crm.messaging.factory import get_vendor_provider
from crm.messaging.mock_vendor import MockVendorProvider
from crm.orders.models import Order
from crm.segments.models import Segment  # noqa: F401
from crm.shared.database import Base, get_db_session


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        app_env="dev",
        debug=True,
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-for-testing-only",
        jwt_expiration_hours=1,
        google_client_id="test-client-id",
        google_client_secret="test-client-secret",
        frontend_url="http://localhost:3000",
    )


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by every connection in the test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def jwt_service(test_settings: Settings) -> JWTService:
    return JWTService(settings=test_settings)


@pytest.fixture
def mock_google_client() -> MagicMock:
    client = MagicMock(spec=GoogleOAuthClient)
    client.generate_state.return_value = "test-state-12345"
    client.get_authorization_url.return_value = (
        "https://accounts.google.com/o/oauth2/v2/auth?client_id=test-client-id&state=test-state-12345"
    )
    return client


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A signed-in operator linked to a verified Google account."""
    user = User(
        email="operator@gmail.com",
        username="operator",
        name="Test Operator",
        google_id="google-operator-1",
        email_verified=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def auth_headers(jwt_service: JWTService, test_user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {jwt_service.create_access_token(test_user)}"}


@pytest.fixture
def mock_vendor() -> MockVendorProvider:
    """Vendor that always succeeds."""
    return MockVendorProvider(success_rate=1.0, seed=7)


@pytest_asyncio.fixture
async def async_client(
    db_session: AsyncSession,
    mock_vendor: MockVendorProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the test session and vendor injected."""

    async def _override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    get_state_store.cache_clear()
    app.dependency_overrides[get_db_session] = _override_get_db_session
    app.dependency_overrides[get_vendor_provider] = lambda: mock_vendor

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    get_state_store.cache_clear()


@pytest.fixture
def make_customer(db_session: AsyncSession) -> Callable[..., Awaitable[Customer]]:
    """Factory that persists a customer."""

    async def _make(
        name: str = "Jane Doe",
        email: str | None = None,
        spend: float = 0.0,
        visits: int = 0,
        phone: str | None = None,
        last_active: datetime | None = None,
        created_at: datetime | None = None,
    ) -> Customer:
        customer = Customer(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            phone=phone,
            spend=spend,
            visits=visits,
            last_active=last_active,
        )
        if created_at is not None:
            customer.created_at = created_at
        db_session.add(customer)
        await db_session.flush()
        await db_session.refresh(customer)
        return customer

    return _make


@pytest.fixture
def make_order(db_session: AsyncSession) -> Callable[..., Awaitable[Order]]:
    """Factory that persists an order whose amount matches its items."""

    async def _make(
        customer_id: UUID,
        items: list[dict[str, Any]] | None = None,
        date: datetime | None = None,
    ) -> Order:
        items = items or [{"sku": "SKU-1", "name": "Widget", "qty": 1, "price": 50.0}]
        order = Order(
            customer_id=customer_id,
            items=items,
            amount=round(sum(item["qty"] * item["price"] for item in items), 2),
            date=date or datetime.now(timezone.utc) - timedelta(days=1),
        )
        db_session.add(order)
        await db_session.flush()
        await db_session.refresh(order)
        return order

    return _make
