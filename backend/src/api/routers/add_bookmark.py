"""Add-bookmark deep link target used by the browser extension."""
import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.bookmark import BookmarkCreate, BookmarkResponse
from services import bookmark_service
from services.deep_link import (
    ADD_BOOKMARK_PATH,
    AddBookmarkPrefill,
    prefill_from_query,
    should_close_window,
)
from services.exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix=ADD_BOOKMARK_PATH, tags=["add-bookmark"])


class AddBookmarkDetails(BaseModel):
    """Optional form fields submitted together with the deep-link values."""

    description: str | None = None
    folder_id: UUID | None = None
    tag_ids: list[UUID] = Field(default_factory=list)


class AddBookmarkResult(BaseModel):
    """Outcome of submitting the add-bookmark form."""

    saved: bool
    bookmark: BookmarkResponse | None = None
    close_window: bool = False
    error: str | None = None


@router.get("", response_model=AddBookmarkPrefill)
async def add_bookmark_form(
    url: str | None = Query(default=None),
    title: str | None = Query(default=None),
    source: str | None = Query(default=None),
) -> AddBookmarkPrefill:
    """Return the form values prefilled from the deep link."""
    return prefill_from_query(url, title, source)


@router.post("", response_model=AddBookmarkResult)
async def add_bookmark(
    url: str | None = Query(default=None),
    title: str | None = Query(default=None),
    source: str | None = Query(default=None),
    details: AddBookmarkDetails | None = Body(default=None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> AddBookmarkResult:
    """
    Save the bookmark described by the deep link.

    Failures are reported in the result (`saved: false` with an error
    message) so the form can stay open. `close_window` is true only after a
    successful save that started from the extension popup.
    """
    prefill = prefill_from_query(url, title, source)
    details = details or AddBookmarkDetails()
    try:
        data = BookmarkCreate(
            url=prefill.url,
            title=prefill.title or None,
            description=details.description,
            folder_id=details.folder_id,
            tag_ids=details.tag_ids,
        )
        bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    except ValidationError as e:
        logger.warning("Rejected add-bookmark submission: %s", e)
        return AddBookmarkResult(saved=False, error=e.errors()[0]["msg"])
    except EntityNotFoundError as e:
        logger.warning("Rejected add-bookmark submission: %s", e)
        return AddBookmarkResult(saved=False, error=str(e))

    return AddBookmarkResult(
        saved=True,
        bookmark=BookmarkResponse.model_validate(bookmark),
        close_window=should_close_window(prefill.source, saved=True),
    )
