"""Bookmark CRUD endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import service_errors
from models.user import User
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkListResponse,
    BookmarkResponse,
    BookmarkSuggestionApply,
    BookmarkUpdate,
)
from schemas.bookmark_tag import BookmarkTagResponse
from services import bookmark_service, bookmark_tag_service
from sync.filtering import build_tag_map, filter_bookmarks

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/", response_model=BookmarkResponse, status_code=status.HTTP_201_CREATED)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """
    Create a new bookmark.

    Tags listed in `tag_ids` are attached in the same transaction.

    Returns 404 if `folder_id` or any tag id is not one of the user's.
    """
    with service_errors():
        bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    return BookmarkResponse.model_validate(bookmark)


@router.get("/", response_model=BookmarkListResponse)
async def list_bookmarks(
    folder_id: UUID | None = Query(default=None, description="Only bookmarks in this folder"),
    tag_id: list[UUID] = Query(
        default=[],
        description="Only bookmarks carrying ALL of these tags (repeat the parameter)",
    ),
    q: str | None = Query(default=None, description="Case-insensitive title/URL search"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkListResponse:
    """
    List the user's bookmarks, newest first.

    The folder, tag and search filters combine by intersection.
    """
    bookmarks = await bookmark_service.list_bookmarks(db, current_user.id)
    tag_map = {}
    if tag_id:
        tag_map = build_tag_map(await bookmark_tag_service.list_associations(db, current_user.id))
    visible = filter_bookmarks(bookmarks, tag_map, folder_id=folder_id, tag_ids=tag_id, query=q)
    items = [BookmarkResponse.model_validate(b) for b in visible]
    return BookmarkListResponse(items=items, total=len(items))


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    with service_errors():
        bookmark = await bookmark_service.require_bookmark(db, current_user.id, bookmark_id)
    return BookmarkResponse.model_validate(bookmark)


@router.patch("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: UUID,
    data: BookmarkUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Update a bookmark. Only the fields sent are changed."""
    with service_errors():
        bookmark = await bookmark_service.update_bookmark(db, current_user.id, bookmark_id, data)
    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    bookmark_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a bookmark and its tag associations."""
    with service_errors():
        await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)


@router.post("/{bookmark_id}/suggestions/apply", response_model=BookmarkResponse)
async def apply_suggestions(
    bookmark_id: UUID,
    data: BookmarkSuggestionApply,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """
    Apply categorization suggestions the user has confirmed.

    Missing folders and tags are created by name. Tags are added to the
    bookmark's existing tags.
    """
    with service_errors():
        bookmark = await bookmark_service.apply_suggestions(db, current_user.id, bookmark_id, data)
    return BookmarkResponse.model_validate(bookmark)


@router.put("/{bookmark_id}/tags/{tag_id}", response_model=BookmarkTagResponse)
async def attach_tag(
    bookmark_id: UUID,
    tag_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkTagResponse:
    """Attach a tag to a bookmark. Attaching an attached tag is a no-op."""
    with service_errors():
        association = await bookmark_tag_service.attach_tag(
            db, current_user.id, bookmark_id, tag_id,
        )
    return BookmarkTagResponse.model_validate(association)


@router.delete("/{bookmark_id}/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def detach_tag(
    bookmark_id: UUID,
    tag_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Remove a tag from a bookmark. Succeeds even if the tag was not attached."""
    with service_errors():
        await bookmark_tag_service.detach_tag(db, current_user.id, bookmark_id, tag_id)
