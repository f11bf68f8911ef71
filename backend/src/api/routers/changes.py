"""Server-sent events stream of the current user's row changes."""
import asyncio
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from api.dependencies import get_change_feed, get_current_user
from core.change_feed import ChangeEvent, ChangeFeed, Subscription
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["changes"])

STREAM_TABLES = frozenset({"bookmarks", "folders", "tags", "bookmark_tags"})
HEARTBEAT_SECONDS = 15.0


def parse_tables(tables: str | None) -> frozenset[str] | None:
    """
    Parse a comma-separated table list. None or blank means every table.

    Raises:
        ValueError: If a name is not a streamable table.
    """
    if not tables or not tables.strip():
        return None
    names = frozenset(name.strip() for name in tables.split(",") if name.strip())
    unknown = names - STREAM_TABLES
    if unknown:
        raise ValueError(f"Unknown tables: {', '.join(sorted(unknown))}")
    return names


def format_sse(event: ChangeEvent) -> str:
    """Encode one change event as an SSE message."""
    return f"event: {event.kind}\ndata: {event.model_dump_json()}\n\n"


async def event_stream(
    subscription: Subscription,
    heartbeat: float = HEARTBEAT_SECONDS,
) -> AsyncIterator[str]:
    """Yield SSE messages until the subscription closes or the client goes away."""
    async with subscription:
        while True:
            try:
                event = await asyncio.wait_for(subscription.get(), timeout=heartbeat)
            except TimeoutError:
                yield ": keep-alive\n\n"
                continue
            subscription.task_done()
            if event is None:
                break
            yield format_sse(event)
    logger.debug("Change stream closed for user %s", subscription.user_id)


@router.get("/changes")
async def stream_changes(
    tables: str | None = Query(
        default=None, description="Comma-separated tables to follow (default: all)",
    ),
    current_user: User = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
) -> StreamingResponse:
    """Stream `inserted`/`updated`/`deleted` events for the current user."""
    try:
        table_set = parse_tables(tables)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    subscription = feed.subscribe(current_user.id, table_set)
    return StreamingResponse(
        event_stream(subscription),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
