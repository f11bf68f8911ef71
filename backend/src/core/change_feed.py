"""
In-process change feed for per-user table changes.

Services record change events on the database session while they work. The
events are published only after the unit of work commits (see
``db.session.unit_of_work``), so subscribers never observe changes that were
rolled back.

Subscribers register for one user and an optional set of tables and consume a
typed stream of ``ChangeEvent`` objects. A subscription must be closed when the
consuming scope ends, otherwise the feed keeps delivering into its queue.
"""
import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

PENDING_CHANGES_KEY = "pending_changes"


class ChangeKind(StrEnum):
    """Type of row change."""

    INSERTED = "inserted"
    UPDATED = "updated"
    DELETED = "deleted"


class ChangeEvent(BaseModel):
    """
    A single committed row change.

    ``record`` holds the JSON-compatible row after the change. For deletes it
    holds the row as it was before removal.
    """

    table: str
    kind: ChangeKind
    user_id: UUID
    record: dict[str, Any]
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Subscription:
    """
    A cancelable registration on the change feed.

    Iterate with ``async for``. Consumers call ``task_done()`` after handling
    each event so that ``drain()`` can wait for the queue to be fully applied.
    """

    def __init__(
        self,
        feed: "ChangeFeed",
        user_id: UUID,
        tables: frozenset[str] | None,
    ) -> None:
        self._feed = feed
        self.user_id = user_id
        self.tables = tables
        self._queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue()
        self.closed = False

    def matches(self, event: ChangeEvent) -> bool:
        """Check whether an event belongs to this subscription's scope."""
        if event.user_id != self.user_id:
            return False
        return self.tables is None or event.table in self.tables

    def deliver(self, event: ChangeEvent) -> None:
        """Queue an event for the consumer. Ignored once closed."""
        if not self.closed:
            self._queue.put_nowait(event)

    @property
    def pending(self) -> int:
        """Number of queued, not yet consumed items."""
        return self._queue.qsize()

    async def get(self) -> ChangeEvent | None:
        """Wait for the next event. Returns None once the subscription is closed."""
        return await self._queue.get()

    def task_done(self) -> None:
        """Mark the most recently consumed event as handled."""
        self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been consumed and marked done."""
        await self._queue.join()

    def close(self) -> None:
        """Release the registration. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self._feed._remove(self)
        # Sentinel wakes up a consumer blocked in get()
        self._queue.put_nowait(None)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.get()
        if event is None:
            self.task_done()
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class ChangeFeed:
    """Fan-out broker delivering committed change events to matching subscriptions."""

    def __init__(self) -> None:
        self._subscriptions: set[Subscription] = set()

    def subscribe(
        self,
        user_id: UUID,
        tables: Iterable[str] | None = None,
    ) -> Subscription:
        """
        Register for changes to one user's rows.

        Args:
            user_id: Only events for this user are delivered.
            tables: Table names to receive. None means every table.

        Returns:
            A new Subscription. The caller owns it and must close it.
        """
        subscription = Subscription(
            self, user_id, frozenset(tables) if tables is not None else None,
        )
        self._subscriptions.add(subscription)
        logger.debug(
            "Change feed subscription opened for user %s (tables=%s)",
            user_id, subscription.tables,
        )
        return subscription

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver an event to all matching subscriptions.

        Returns:
            Number of subscriptions the event was delivered to.
        """
        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.matches(event):
                subscription.deliver(event)
                delivered += 1
        return delivered

    def publish_many(self, events: Iterable[ChangeEvent]) -> None:
        """Deliver events in order."""
        for event in events:
            self.publish(event)

    @property
    def subscriber_count(self) -> int:
        """Number of open subscriptions."""
        return len(self._subscriptions)

    def close_all(self) -> None:
        """Close every open subscription (used at application shutdown)."""
        for subscription in list(self._subscriptions):
            subscription.close()

    def _remove(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)


def record_change(
    db: AsyncSession,
    table: str,
    kind: ChangeKind,
    user_id: UUID,
    record: dict[str, Any],
) -> ChangeEvent:
    """
    Record a change on the session, to be published after commit.

    Args:
        db: Database session of the current unit of work.
        table: Table the changed row belongs to.
        kind: Type of change.
        user_id: Owner of the changed row.
        record: JSON-compatible row data.

    Returns:
        The recorded event.
    """
    event = ChangeEvent(table=table, kind=kind, user_id=user_id, record=record)
    db.info.setdefault(PENDING_CHANGES_KEY, []).append(event)
    return event


def pop_pending_changes(db: AsyncSession) -> list[ChangeEvent]:
    """Remove and return the changes recorded on a session."""
    return db.info.pop(PENDING_CHANGES_KEY, [])


_change_feed: ChangeFeed | None = None


def get_change_feed() -> ChangeFeed:
    """Get the process-wide change feed, creating it on first use."""
    global _change_feed  # noqa: PLW0603
    if _change_feed is None:
        _change_feed = ChangeFeed()
    return _change_feed


def set_change_feed(feed: ChangeFeed | None) -> None:
    """Replace the process-wide change feed (used by app lifespan and tests)."""
    global _change_feed  # noqa: PLW0603
    _change_feed = feed
