"""pytest configuration and fixtures.

This module provides async database fixtures backed by in-memory SQLite,
sample users/services/areas, a deterministic clock, a recording trigger
notifier, provider client fixtures and an HTTP client wired to the app with
its dependencies overridden.
"""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import cast
from uuid import UUID

from cryptography.fernet import Fernet

# Must be set before areahub.core.config is imported
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("LOG_JSON_FORMAT", "true")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402
from starlette.types import ASGIApp  # noqa: E402

from areahub.core.jwt import create_access_token  # noqa: E402
from areahub.main import app  # noqa: E402
from areahub.models import Area, Base, Service, User  # noqa: E402
from areahub.models.enums import OAuthProvider  # noqa: E402
from areahub.services.oauth2 import (  # noqa: E402
    GitHubOAuth2Client,
    OAuth2ClientRegistry,
    OAuth2ProviderConfig,
)
from areahub.services.service_link_service import KeyedLock  # noqa: E402

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


# =============================================================================
# TEST DOUBLES
# =============================================================================


START_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingNotifier:
    """Trigger notifier that records calls and can be told to fail."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[tuple[UUID, datetime]] = []
        self.error = error

    async def notify_triggered(self, area_id: UUID, triggered_at: datetime) -> None:
        self.calls.append((area_id, triggered_at))
        if self.error is not None:
            raise self.error


# =============================================================================
# ASYNC ENGINE FIXTURES (SQLite In-Memory for Tests)
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an async SQLite in-memory engine for testing.

    StaticPool keeps a single connection so every session of a test sees
    the same in-memory database.

    Yields:
        AsyncEngine: SQLAlchemy async engine backed by SQLite in-memory.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def async_session_maker(
    async_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    async_session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide a database session for one test.

    Each test gets its own in-memory database, so commits made by the
    services under test never leak into other tests.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    """Clock pinned to 2024-01-01T12:00:00Z."""
    return FrozenClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Trigger notifier that records calls."""
    return RecordingNotifier()


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    """Persisted platform user."""
    user = User(email="alice@example.com", username="alice")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second persisted platform user."""
    user = User(email="bob@example.com", username="bob")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest_asyncio.fixture
async def github_service(db_session: AsyncSession) -> Service:
    """Persisted service that requires OAuth2 (provider: GitHub)."""
    service = Service(name="GitHub", description="Code hosting", requires_auth=True)
    db_session.add(service)
    await db_session.flush()
    return service


@pytest_asyncio.fixture
async def public_service(db_session: AsyncSession) -> Service:
    """Persisted service that needs no authentication."""
    service = Service(name="Timer", description="Time based triggers", requires_auth=False)
    db_session.add(service)
    await db_session.flush()
    return service


@pytest_asyncio.fixture
async def area(db_session: AsyncSession, user: User) -> Area:
    """Persisted AREA owned by ``user``."""
    area = Area(name="Star to Discord", user_id=user.id)
    db_session.add(area)
    await db_session.flush()
    return area


@pytest_asyncio.fixture
async def other_area(db_session: AsyncSession, user: User) -> Area:
    """A second persisted AREA owned by ``user``."""
    area = Area(name="Issue to Gmail", user_id=user.id)
    db_session.add(area)
    await db_session.flush()
    return area


# =============================================================================
# OAUTH2 FIXTURES
# =============================================================================


@pytest.fixture
def github_config() -> OAuth2ProviderConfig:
    """Configured GitHub credentials."""
    return OAuth2ProviderConfig(
        provider=OAuthProvider.GITHUB,
        client_id="gh-client-id",
        client_secret="gh-client-secret",
        timeout_seconds=5.0,
    )


@pytest.fixture
def github_client(github_config: OAuth2ProviderConfig, clock: FrozenClock) -> GitHubOAuth2Client:
    """GitHub client; tests patch its network methods."""
    return GitHubOAuth2Client(github_config, clock=clock)


@pytest.fixture
def registry(github_client: GitHubOAuth2Client) -> OAuth2ClientRegistry:
    """Registry holding only the GitHub client."""
    return OAuth2ClientRegistry([github_client])


@pytest.fixture
def locks() -> KeyedLock:
    """Private lock table per test."""
    return KeyedLock()


# =============================================================================
# HTTP CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def auth_headers(user: User) -> dict[str, str]:
    """Bearer header for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession,
    notifier: RecordingNotifier,
    clock: FrozenClock,
    registry: OAuth2ClientRegistry,
) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for testing API endpoints.

    Uses ASGI transport to test the FastAPI app without running a server.
    The database session, trigger notifier, clock and provider registry
    are replaced by the test fixtures.
    """
    from areahub.api.deps import get_clock, get_oauth2_registry, get_trigger_notifier
    from areahub.db.session import get_db

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        """Override database dependency to use test session."""
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_trigger_notifier] = lambda: notifier
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_oauth2_registry] = lambda: registry

    try:
        transport = ASGITransport(app=cast("ASGIApp", app))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
