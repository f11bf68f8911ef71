"""Service layer for bookmark CRUD operations."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.change_feed import ChangeKind
from models.base import utcnow
from models.bookmark import Bookmark
from models.bookmark_tag import BookmarkTag
from models.tag import Tag
from schemas.bookmark import BookmarkCreate, BookmarkSuggestionApply, BookmarkUpdate
from services import bookmark_tag_service, folder_service, tag_service
from services.changes import record_row_change
from services.exceptions import EntityNotFoundError, TagNotFoundError

logger = logging.getLogger(__name__)


async def list_bookmarks(db: AsyncSession, user_id: UUID) -> list[Bookmark]:
    """Get all bookmarks for a user, newest first."""
    result = await db.execute(
        select(Bookmark)
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc()),
    )
    return list(result.scalars())


async def get_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
) -> Bookmark | None:
    """Get a bookmark by ID, scoped to user."""
    result = await db.execute(
        select(Bookmark).where(Bookmark.id == bookmark_id, Bookmark.user_id == user_id),
    )
    return result.scalar_one_or_none()


async def require_bookmark(db: AsyncSession, user_id: UUID, bookmark_id: UUID) -> Bookmark:
    """
    Get a bookmark by ID or fail.

    Raises:
        EntityNotFoundError: If the bookmark doesn't exist or belongs to another user.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        raise EntityNotFoundError("Bookmark", bookmark_id)
    return bookmark


async def _require_tags(db: AsyncSession, user_id: UUID, tag_ids: list[UUID]) -> None:
    """Fail if any of the tag ids is not owned by the user."""
    if not tag_ids:
        return
    result = await db.execute(
        select(Tag.id).where(Tag.user_id == user_id, Tag.id.in_(tag_ids)),
    )
    found = set(result.scalars())
    for tag_id in tag_ids:
        if tag_id not in found:
            raise TagNotFoundError(tag_id)


async def create_bookmark(
    db: AsyncSession,
    user_id: UUID,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a new bookmark for a user.

    Tags selected at creation time are attached in the same unit of work, so
    the bookmark and its associations are committed together.

    Args:
        db: Database session.
        user_id: Owner of the new bookmark.
        data: Validated bookmark fields.

    Returns:
        The created Bookmark.

    Raises:
        FolderNotFoundError: If folder_id is not one of the user's folders.
        TagNotFoundError: If any tag id is not one of the user's tags.
    """
    if data.folder_id is not None:
        await folder_service.require_folder(db, user_id, data.folder_id)
    await _require_tags(db, user_id, data.tag_ids)

    bookmark = Bookmark(
        user_id=user_id,
        url=data.url,
        title=data.title,
        description=data.description,
        folder_id=data.folder_id,
    )
    db.add(bookmark)
    await db.flush()
    await db.refresh(bookmark)
    record_row_change(db, ChangeKind.INSERTED, bookmark, user_id)

    for tag_id in data.tag_ids:
        association = BookmarkTag(bookmark_id=bookmark.id, tag_id=tag_id)
        db.add(association)
        await db.flush()
        record_row_change(db, ChangeKind.INSERTED, association, user_id)

    return bookmark


async def update_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
    data: BookmarkUpdate,
) -> Bookmark:
    """
    Apply a partial update to a bookmark.

    Only fields explicitly provided are changed. An update that changes
    nothing records no change event.

    Raises:
        EntityNotFoundError: If the bookmark doesn't exist for this user.
        FolderNotFoundError: If the new folder_id is not one of the user's folders.
    """
    bookmark = await require_bookmark(db, user_id, bookmark_id)
    changes = {k: v for k, v in data.changes().items() if getattr(bookmark, k) != v}
    if not changes:
        return bookmark

    if changes.get("folder_id") is not None:
        await folder_service.require_folder(db, user_id, changes["folder_id"])

    for field, value in changes.items():
        setattr(bookmark, field, value)
    bookmark.updated_at = utcnow()
    await db.flush()
    await db.refresh(bookmark)
    record_row_change(db, ChangeKind.UPDATED, bookmark, user_id)
    return bookmark


async def delete_bookmark(db: AsyncSession, user_id: UUID, bookmark_id: UUID) -> None:
    """
    Delete a bookmark and its tag associations.

    Associations are removed first so no row is left pointing at a missing
    bookmark.

    Raises:
        EntityNotFoundError: If the bookmark doesn't exist for this user.
    """
    bookmark = await require_bookmark(db, user_id, bookmark_id)
    await bookmark_tag_service.delete_for_bookmark(db, user_id, bookmark_id)

    record_row_change(db, ChangeKind.DELETED, bookmark, user_id)
    await db.delete(bookmark)
    await db.flush()


async def apply_suggestions(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
    data: BookmarkSuggestionApply,
) -> Bookmark:
    """
    Write confirmed categorization suggestions back to a bookmark.

    The folder and tags are looked up by name (case-insensitive) and created
    when missing. Tags are added to the bookmark's existing tags.

    Raises:
        EntityNotFoundError: If the bookmark doesn't exist for this user.
    """
    bookmark = await require_bookmark(db, user_id, bookmark_id)

    if data.folder_name is not None:
        folder = await folder_service.get_or_create_folder(db, user_id, data.folder_name)
        if bookmark.folder_id != folder.id:
            bookmark = await update_bookmark(
                db, user_id, bookmark_id, BookmarkUpdate(folder_id=folder.id),
            )

    tags = await tag_service.get_or_create_tags(db, user_id, data.tags)
    for tag in tags:
        await bookmark_tag_service.attach_tag(db, user_id, bookmark_id, tag.id)

    logger.info(
        "Applied suggestions to bookmark %s (folder=%s, tags=%d)",
        bookmark_id, data.folder_name, len(tags),
    )
    return bookmark
