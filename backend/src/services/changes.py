"""Helpers for recording row changes on the current unit of work."""
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from core.change_feed import ChangeEvent, ChangeKind, record_change
from models.base import Base
from models.bookmark import Bookmark
from models.bookmark_tag import BookmarkTag
from models.folder import Folder
from models.tag import Tag
from schemas.bookmark import BookmarkResponse
from schemas.bookmark_tag import BookmarkTagResponse
from schemas.folder import FolderResponse
from schemas.tag import TagResponse

RECORD_SCHEMAS: dict[type[Base], type[BaseModel]] = {
    Bookmark: BookmarkResponse,
    BookmarkTag: BookmarkTagResponse,
    Folder: FolderResponse,
    Tag: TagResponse,
}


def record_row_change(
    db: AsyncSession,
    kind: ChangeKind,
    row: Base,
    user_id: UUID,
) -> ChangeEvent:
    """
    Serialize a row with its response schema and record the change.

    The row must be flushed (and refreshed if it has server-side values) so
    that every field of the schema is populated.
    """
    schema = RECORD_SCHEMAS[type(row)]
    record = schema.model_validate(row).model_dump(mode="json")
    return record_change(db, row.__tablename__, kind, user_id, record)
