"""Async SQLAlchemy session factory."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.change_feed import ChangeFeed, get_change_feed, pop_pending_changes
from core.config import get_settings


@lru_cache
def get_engine() -> AsyncEngine:
    """Create the application engine on first use."""
    settings = get_settings()
    options: dict = {"echo": False, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return create_async_engine(settings.database_url, **options)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory shared by requests and live collections."""
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def unit_of_work(
    session_factory: async_sessionmaker[AsyncSession],
    change_feed: ChangeFeed | None = None,
) -> AsyncGenerator[AsyncSession]:
    """
    Open a session that commits on success and rolls back on error.

    Services use flush() for refreshing objects; commit happens once here.
    Change events recorded during the unit of work are published only after
    the commit succeeds and are discarded on rollback.
    """
    feed = change_feed if change_feed is not None else get_change_feed()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            pop_pending_changes(session)
            raise
        feed.publish_many(pop_pending_changes(session))


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield an async database session.

    Uses unit-of-work pattern: one atomic transaction per request, with the
    request's change events published after commit.
    """
    async with unit_of_work(get_session_factory()) as session:
        yield session
