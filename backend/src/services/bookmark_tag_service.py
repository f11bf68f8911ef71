"""Service layer for bookmark-tag associations."""
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.change_feed import ChangeKind
from models.bookmark import Bookmark
from models.bookmark_tag import BookmarkTag
from models.tag import Tag
from services.changes import record_row_change
from services.exceptions import EntityNotFoundError, TagNotFoundError


async def list_associations(db: AsyncSession, user_id: UUID) -> list[BookmarkTag]:
    """
    Get all bookmark-tag rows for a user's bookmarks.

    Association rows carry no user_id; ownership comes from the bookmark.
    """
    result = await db.execute(
        select(BookmarkTag)
        .join(Bookmark, BookmarkTag.bookmark_id == Bookmark.id)
        .where(Bookmark.user_id == user_id)
        .order_by(BookmarkTag.created_at, BookmarkTag.bookmark_id, BookmarkTag.tag_id),
    )
    return list(result.scalars())


async def _check_ownership(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
    tag_id: UUID,
) -> None:
    bookmark = await db.execute(
        select(Bookmark.id).where(Bookmark.id == bookmark_id, Bookmark.user_id == user_id),
    )
    if bookmark.first() is None:
        raise EntityNotFoundError("Bookmark", bookmark_id)
    tag = await db.execute(
        select(Tag.id).where(Tag.id == tag_id, Tag.user_id == user_id),
    )
    if tag.first() is None:
        raise TagNotFoundError(tag_id)


async def attach_tag(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
    tag_id: UUID,
) -> BookmarkTag:
    """
    Attach a tag to a bookmark.

    Attaching an already attached tag returns the existing row and records no
    change, so there is never more than one row per pair.

    Raises:
        EntityNotFoundError: If the bookmark doesn't exist for this user.
        TagNotFoundError: If the tag doesn't exist for this user.
    """
    await _check_ownership(db, user_id, bookmark_id, tag_id)

    existing = await db.get(BookmarkTag, (bookmark_id, tag_id))
    if existing is not None:
        return existing

    association = BookmarkTag(bookmark_id=bookmark_id, tag_id=tag_id)
    db.add(association)
    await db.flush()
    record_row_change(db, ChangeKind.INSERTED, association, user_id)
    return association


async def detach_tag(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
    tag_id: UUID,
) -> bool:
    """
    Remove a tag from a bookmark.

    Returns:
        True if an association was removed, False if none existed.

    Raises:
        EntityNotFoundError: If the bookmark doesn't exist for this user.
        TagNotFoundError: If the tag doesn't exist for this user.
    """
    await _check_ownership(db, user_id, bookmark_id, tag_id)

    association = await db.get(BookmarkTag, (bookmark_id, tag_id))
    if association is None:
        return False

    record_row_change(db, ChangeKind.DELETED, association, user_id)
    await db.delete(association)
    await db.flush()
    return True


async def _delete_where(db: AsyncSession, user_id: UUID, *criteria: object) -> int:
    result = await db.execute(select(BookmarkTag).where(*criteria))
    associations = list(result.scalars())
    if not associations:
        return 0
    for association in associations:
        record_row_change(db, ChangeKind.DELETED, association, user_id)
    await db.execute(delete(BookmarkTag).where(*criteria))
    await db.flush()
    return len(associations)


async def delete_for_bookmark(db: AsyncSession, user_id: UUID, bookmark_id: UUID) -> int:
    """
    Delete every association of a bookmark.

    Must run before the bookmark row itself is deleted.

    Returns:
        Number of association rows removed.
    """
    return await _delete_where(db, user_id, BookmarkTag.bookmark_id == bookmark_id)


async def delete_for_tag(db: AsyncSession, user_id: UUID, tag_id: UUID) -> int:
    """
    Delete every association of a tag.

    Must run before the tag row itself is deleted.

    Returns:
        Number of association rows removed.
    """
    return await _delete_where(db, user_id, BookmarkTag.tag_id == tag_id)
