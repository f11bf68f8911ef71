"""Service layer for folder operations."""
import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.change_feed import ChangeKind
from models.base import utcnow
from models.bookmark import Bookmark
from models.folder import Folder
from schemas.folder import FolderCreate, FolderUpdate
from services.changes import record_row_change
from services.exceptions import DuplicateNameError, FolderNotFoundError

logger = logging.getLogger(__name__)


async def list_folders(db: AsyncSession, user_id: UUID) -> list[Folder]:
    """Get all folders for a user, ordered by name (case-insensitive)."""
    result = await db.execute(
        select(Folder)
        .where(Folder.user_id == user_id)
        .order_by(func.lower(Folder.name), Folder.id),
    )
    return list(result.scalars())


async def get_folder(db: AsyncSession, user_id: UUID, folder_id: UUID) -> Folder | None:
    """Get a folder by ID, scoped to user."""
    result = await db.execute(
        select(Folder).where(Folder.id == folder_id, Folder.user_id == user_id),
    )
    return result.scalar_one_or_none()


async def require_folder(db: AsyncSession, user_id: UUID, folder_id: UUID) -> Folder:
    """
    Get a folder by ID or fail.

    Raises:
        FolderNotFoundError: If the folder doesn't exist or belongs to another user.
    """
    folder = await get_folder(db, user_id, folder_id)
    if folder is None:
        raise FolderNotFoundError(folder_id)
    return folder


async def get_folder_by_name(db: AsyncSession, user_id: UUID, name: str) -> Folder | None:
    """Find a folder by name, ignoring case."""
    result = await db.execute(
        select(Folder)
        .where(
            Folder.user_id == user_id,
            func.lower(Folder.name) == name.strip().lower(),
        )
        .order_by(Folder.created_at)
        .limit(1),
    )
    return result.scalar_one_or_none()


async def _flush_unique(db: AsyncSession, name: str) -> None:
    try:
        await db.flush()
    except IntegrityError as e:
        # Race condition: another request created the name between check and flush
        if "uq_folders_user_id_name" in str(e) or "UNIQUE" in str(e):
            raise DuplicateNameError("Folder", name) from e
        raise


async def create_folder(db: AsyncSession, user_id: UUID, data: FolderCreate) -> Folder:
    """
    Create a folder.

    Raises:
        DuplicateNameError: If the user already has a folder with this name.
    """
    existing = await db.execute(
        select(Folder.id).where(Folder.user_id == user_id, Folder.name == data.name),
    )
    if existing.first() is not None:
        raise DuplicateNameError("Folder", data.name)

    folder = Folder(user_id=user_id, name=data.name)
    db.add(folder)
    await _flush_unique(db, data.name)
    await db.refresh(folder)
    record_row_change(db, ChangeKind.INSERTED, folder, user_id)
    return folder


async def rename_folder(
    db: AsyncSession,
    user_id: UUID,
    folder_id: UUID,
    data: FolderUpdate,
) -> Folder:
    """
    Rename a folder.

    Raises:
        FolderNotFoundError: If the folder doesn't exist for this user.
        DuplicateNameError: If another folder already has the new name.
    """
    folder = await require_folder(db, user_id, folder_id)
    if folder.name == data.name:
        return folder

    existing = await db.execute(
        select(Folder.id).where(
            Folder.user_id == user_id,
            Folder.name == data.name,
            Folder.id != folder_id,
        ),
    )
    if existing.first() is not None:
        raise DuplicateNameError("Folder", data.name)

    folder.name = data.name
    folder.updated_at = utcnow()
    await _flush_unique(db, data.name)
    await db.refresh(folder)
    record_row_change(db, ChangeKind.UPDATED, folder, user_id)
    return folder


async def delete_folder(db: AsyncSession, user_id: UUID, folder_id: UUID) -> int:
    """
    Delete a folder after moving its bookmarks out of it.

    Bookmarks in the folder are kept with folder_id cleared. The database has
    no cascade, so the references are cleared before the folder row goes.

    Returns:
        Number of bookmarks that were moved out of the folder.

    Raises:
        FolderNotFoundError: If the folder doesn't exist for this user.
    """
    folder = await require_folder(db, user_id, folder_id)

    result = await db.execute(
        select(Bookmark).where(
            Bookmark.user_id == user_id,
            Bookmark.folder_id == folder_id,
        ),
    )
    bookmarks = list(result.scalars())
    now = utcnow()
    for bookmark in bookmarks:
        bookmark.folder_id = None
        bookmark.updated_at = now
    await db.flush()
    for bookmark in bookmarks:
        record_row_change(db, ChangeKind.UPDATED, bookmark, user_id)

    record_row_change(db, ChangeKind.DELETED, folder, user_id)
    await db.delete(folder)
    await db.flush()

    logger.info(
        "Deleted folder %s for user %s (%d bookmarks unfiled)",
        folder_id, user_id, len(bookmarks),
    )
    return len(bookmarks)


async def get_or_create_folder(db: AsyncSession, user_id: UUID, name: str) -> Folder:
    """
    Get a folder by name (case-insensitive) or create it.

    Used when applying categorization suggestions.
    """
    folder = await get_folder_by_name(db, user_id, name)
    if folder is not None:
        return folder
    return await create_folder(db, user_id, FolderCreate(name=name))
