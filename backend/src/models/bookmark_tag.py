"""Association model linking bookmarks and tags."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, UTCDateTime, utcnow


class BookmarkTag(Base):
    """
    Junction row for the many-to-many relationship between bookmarks and tags.

    The composite primary key prevents duplicate associations. Rows are removed
    by the service layer before the bookmark or tag they reference.
    """

    __tablename__ = "bookmark_tags"
    __table_args__ = (
        # Index for lookups by tag (composite PK already indexes bookmark_id first)
        Index("ix_bookmark_tags_tag_id", "tag_id"),
    )

    bookmark_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("bookmarks.id"), primary_key=True,
    )
    tag_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tags.id"), primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )
