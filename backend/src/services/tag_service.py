"""Service layer for tag operations."""
import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.change_feed import ChangeKind
from models.base import utcnow
from models.tag import Tag
from schemas.tag import TagCreate, TagUpdate
from services import bookmark_tag_service
from services.changes import record_row_change
from services.exceptions import DuplicateNameError, TagNotFoundError

logger = logging.getLogger(__name__)


async def list_tags(db: AsyncSession, user_id: UUID) -> list[Tag]:
    """Get all tags for a user, ordered by name (case-insensitive)."""
    result = await db.execute(
        select(Tag)
        .where(Tag.user_id == user_id)
        .order_by(func.lower(Tag.name), Tag.id),
    )
    return list(result.scalars())


async def get_tag(db: AsyncSession, user_id: UUID, tag_id: UUID) -> Tag | None:
    """Get a tag by ID, scoped to user."""
    result = await db.execute(
        select(Tag).where(Tag.id == tag_id, Tag.user_id == user_id),
    )
    return result.scalar_one_or_none()


async def require_tag(db: AsyncSession, user_id: UUID, tag_id: UUID) -> Tag:
    """
    Get a tag by ID or fail.

    Raises:
        TagNotFoundError: If the tag doesn't exist or belongs to another user.
    """
    tag = await get_tag(db, user_id, tag_id)
    if tag is None:
        raise TagNotFoundError(tag_id)
    return tag


async def _name_taken(
    db: AsyncSession,
    user_id: UUID,
    name: str,
    exclude_id: UUID | None = None,
) -> bool:
    query = select(Tag.id).where(Tag.user_id == user_id, Tag.name == name)
    if exclude_id is not None:
        query = query.where(Tag.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def _flush_unique(db: AsyncSession, name: str) -> None:
    try:
        await db.flush()
    except IntegrityError as e:
        # Race condition: another request created the tag between check and flush
        if "uq_tags_user_id_name" in str(e) or "UNIQUE" in str(e):
            raise DuplicateNameError("Tag", name) from e
        raise


async def create_tag(db: AsyncSession, user_id: UUID, data: TagCreate) -> Tag:
    """
    Create a tag.

    Raises:
        DuplicateNameError: If the user already has a tag with this name.
    """
    if await _name_taken(db, user_id, data.name):
        raise DuplicateNameError("Tag", data.name)

    tag = Tag(user_id=user_id, name=data.name, color=data.color)
    db.add(tag)
    await _flush_unique(db, data.name)
    await db.refresh(tag)
    record_row_change(db, ChangeKind.INSERTED, tag, user_id)
    return tag


async def update_tag(
    db: AsyncSession,
    user_id: UUID,
    tag_id: UUID,
    data: TagUpdate,
) -> Tag:
    """
    Rename and/or recolor a tag.

    Raises:
        TagNotFoundError: If the tag doesn't exist for this user.
        DuplicateNameError: If another tag already has the new name.
    """
    tag = await require_tag(db, user_id, tag_id)
    changes = {k: v for k, v in data.changes().items() if getattr(tag, k) != v}
    if not changes:
        return tag

    if "name" in changes and await _name_taken(db, user_id, changes["name"], exclude_id=tag_id):
        raise DuplicateNameError("Tag", changes["name"])

    for field, value in changes.items():
        setattr(tag, field, value)
    tag.updated_at = utcnow()
    await _flush_unique(db, tag.name)
    await db.refresh(tag)
    record_row_change(db, ChangeKind.UPDATED, tag, user_id)
    return tag


async def delete_tag(db: AsyncSession, user_id: UUID, tag_id: UUID) -> int:
    """
    Delete a tag after removing it from every bookmark.

    The bookmarks themselves are kept.

    Returns:
        Number of bookmark associations removed.

    Raises:
        TagNotFoundError: If the tag doesn't exist for this user.
    """
    tag = await require_tag(db, user_id, tag_id)
    removed = await bookmark_tag_service.delete_for_tag(db, user_id, tag_id)

    record_row_change(db, ChangeKind.DELETED, tag, user_id)
    await db.delete(tag)
    await db.flush()

    logger.info("Deleted tag %s for user %s (%d associations removed)", tag_id, user_id, removed)
    return removed


async def get_or_create_tags(
    db: AsyncSession,
    user_id: UUID,
    tag_names: list[str],
) -> list[Tag]:
    """
    Get existing tags or create new ones.

    Names are matched case-insensitively; new tags get a palette color.

    Args:
        db: Database session.
        user_id: User ID to scope tags.
        tag_names: List of tag names to get or create.

    Returns:
        List of Tag objects (existing or newly created), in input order.
    """
    if not tag_names:
        return []

    lowered = [name.strip().lower() for name in tag_names]
    result = await db.execute(
        select(Tag).where(
            Tag.user_id == user_id,
            func.lower(Tag.name).in_(lowered),
        ),
    )
    existing_tags = {tag.name.lower(): tag for tag in result.scalars()}

    tags = []
    for name, key in zip(tag_names, lowered, strict=True):
        tag = existing_tags.get(key)
        if tag is None:
            tag = await create_tag(db, user_id, TagCreate(name=name))
            existing_tags[key] = tag
        if tag not in tags:
            tags.append(tag)
    return tags
