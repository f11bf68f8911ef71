"""Tests for the in-process change feed."""
import asyncio
from uuid import uuid4

from core.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeKind,
    get_change_feed,
    set_change_feed,
)


def make_event(user_id, table: str = "bookmarks", kind: ChangeKind = ChangeKind.INSERTED) -> ChangeEvent:  # noqa: ANN001
    return ChangeEvent(table=table, kind=kind, user_id=user_id, record={"id": str(uuid4())})


class TestSubscriptionScope:
    """Events are delivered only to matching user and table subscriptions."""

    async def test__publish__filters_by_user(self) -> None:
        feed = ChangeFeed()
        alice, bob = uuid4(), uuid4()
        alice_sub = feed.subscribe(alice)
        bob_sub = feed.subscribe(bob)

        delivered = feed.publish(make_event(alice))

        assert delivered == 1
        assert alice_sub.pending == 1
        assert bob_sub.pending == 0

    async def test__publish__filters_by_table(self) -> None:
        feed = ChangeFeed()
        user_id = uuid4()
        folders_only = feed.subscribe(user_id, tables=["folders"])
        everything = feed.subscribe(user_id)

        feed.publish(make_event(user_id, table="bookmarks"))
        feed.publish(make_event(user_id, table="folders"))

        assert folders_only.pending == 1
        assert everything.pending == 2

    async def test__publish_many__preserves_order(self) -> None:
        feed = ChangeFeed()
        user_id = uuid4()
        subscription = feed.subscribe(user_id)
        events = [make_event(user_id) for _ in range(3)]

        feed.publish_many(events)

        received = [await subscription.get() for _ in range(3)]
        assert received == events


class TestSubscriptionLifecycle:
    async def test__close__is_idempotent_and_unregisters(self) -> None:
        feed = ChangeFeed()
        subscription = feed.subscribe(uuid4())
        assert feed.subscriber_count == 1

        subscription.close()
        subscription.close()

        assert feed.subscriber_count == 0
        assert subscription.closed

    async def test__async_iteration__ends_on_close(self) -> None:
        feed = ChangeFeed()
        user_id = uuid4()
        subscription = feed.subscribe(user_id)
        event = make_event(user_id)
        feed.publish(event)
        subscription.close()

        received = [e async for e in subscription]

        assert received == [event]

    async def test__deliver_after_close__is_ignored(self) -> None:
        feed = ChangeFeed()
        user_id = uuid4()
        subscription = feed.subscribe(user_id)
        subscription.close()

        assert feed.publish(make_event(user_id)) == 0

    async def test__context_manager__closes_subscription(self) -> None:
        feed = ChangeFeed()
        async with feed.subscribe(uuid4()) as subscription:
            assert not subscription.closed
        assert subscription.closed
        assert feed.subscriber_count == 0

    async def test__drain__waits_for_consumer(self) -> None:
        feed = ChangeFeed()
        user_id = uuid4()
        subscription = feed.subscribe(user_id)
        handled: list[ChangeEvent] = []

        async def consume() -> None:
            async for event in subscription:
                await asyncio.sleep(0)
                handled.append(event)
                subscription.task_done()

        consumer = asyncio.create_task(consume())
        feed.publish_many([make_event(user_id), make_event(user_id)])

        await subscription.drain()
        assert len(handled) == 2

        subscription.close()
        await consumer

    async def test__close_all__ends_every_subscription(self) -> None:
        feed = ChangeFeed()
        subscriptions = [feed.subscribe(uuid4()) for _ in range(3)]

        feed.close_all()

        assert feed.subscriber_count == 0
        assert all(s.closed for s in subscriptions)


def test__get_change_feed__lazily_creates_and_can_be_replaced() -> None:
    set_change_feed(None)
    created = get_change_feed()
    assert get_change_feed() is created

    replacement = ChangeFeed()
    set_change_feed(replacement)
    assert get_change_feed() is replacement
    set_change_feed(None)
