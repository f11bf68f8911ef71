"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDMixin
from models.bookmark import Bookmark
from models.bookmark_tag import BookmarkTag
from models.folder import Folder
from models.tag import Tag
from models.user import User

__all__ = [
    "Base",
    "Bookmark",
    "BookmarkTag",
    "Folder",
    "Tag",
    "TimestampMixin",
    "UUIDMixin",
    "User",
]
