"""Pytest fixtures for testing."""
import os

# Settings are read when application modules are imported, so the environment
# must be prepared before any of them. Tests run in dev mode (bypasses auth)
# regardless of local .env.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEV_MODE"] = "true"
os.environ.pop("CATEGORIZER_URL", None)

from collections.abc import AsyncGenerator, Generator  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.change_feed import ChangeFeed, set_change_feed  # noqa: E402
from core.config import get_settings  # noqa: E402
from models.base import Base  # noqa: E402
from models.user import User  # noqa: E402


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """
    Create an engine over a fresh SQLite file for each test.

    A file (not :memory:) is used so that every connection of the pool sees
    the same database, which live collections need.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """
    Session for arranging and inspecting data directly.

    SQLite allows one writer at a time: commit writes made here before the
    code under test writes through its own sessions.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def change_feed() -> Generator[ChangeFeed]:
    """A fresh process-wide change feed per test."""
    feed = ChangeFeed()
    set_change_feed(feed)
    yield feed
    feed.close_all()
    set_change_feed(None)


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A committed user to own test data."""
    user = User(auth0_id="test-user-123", email="test@example.com")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second committed user, for ownership checks."""
    user = User(auth0_id="other-user-456", email="other@example.com")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    change_feed: ChangeFeed,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client whose requests run in units of work on the test database."""
    # Clear the settings cache so it picks up the environment set above
    get_settings.cache_clear()

    from api.main import app
    from core.change_feed import get_change_feed
    from db.session import get_async_session, unit_of_work

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        async with unit_of_work(session_factory, change_feed) as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_change_feed] = lambda: change_feed

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def dev_user(client: AsyncClient, db_session: AsyncSession) -> User:
    """The user that dev-mode requests act as (created by a first request)."""
    from core.auth import DEV_AUTH0_ID

    response = await client.get("/folders/")
    assert response.status_code == 200
    result = await db_session.execute(select(User).where(User.auth0_id == DEV_AUTH0_ID))
    return result.scalar_one()
