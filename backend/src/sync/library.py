"""
The bookmark library: every live collection for the current session.

One session subscription drives all collections, so a sign-in or sign-out
reloads bookmarks, folders, tags and associations together. The library also
holds the selection state that decides which bookmarks are visible.
"""
import asyncio
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.change_feed import ChangeFeed
from schemas.bookmark import BookmarkResponse
from schemas.tag import TagResponse
from sync.collections import (
    BookmarkCollection,
    BookmarkTagCollection,
    FolderCollection,
    LiveCollection,
    Notifier,
    TagCollection,
)
from sync.filtering import BookmarkFilter, FilteredView, TagMap, tags_for
from sync.session import SessionContext, SessionUser

logger = logging.getLogger(__name__)


class BookmarkLibrary:
    """Live bookmarks, folders, tags and associations for one session."""

    def __init__(
        self,
        session: SessionContext,
        session_factory: async_sessionmaker[AsyncSession],
        change_feed: ChangeFeed | None = None,
        notify: Notifier | None = None,
    ) -> None:
        self.session = session
        self.bookmarks = BookmarkCollection(session_factory, change_feed, notify)
        self.folders = FolderCollection(session_factory, change_feed, notify)
        self.tags = TagCollection(session_factory, change_feed, notify)
        self.bookmark_tags = BookmarkTagCollection(session_factory, change_feed, notify)
        self.view = FilteredView(self.bookmarks, self.bookmark_tags)
        self.filter = BookmarkFilter()
        self._unsubscribe = session.subscribe(self._on_session_change)

    @property
    def collections(self) -> tuple[LiveCollection, ...]:
        return (self.bookmarks, self.folders, self.tags, self.bookmark_tags)

    async def start(self) -> None:
        """Load every collection for the user already signed in, if any."""
        await self._load(self.session.user_id)

    async def _on_session_change(self, user: SessionUser | None) -> None:
        self.filter = BookmarkFilter()
        await self._load(user.id if user is not None else None)

    async def _load(self, user_id: UUID | None) -> None:
        await asyncio.gather(*(collection.load(user_id) for collection in self.collections))
        logger.debug("Library loaded for user %s", user_id)

    # -- selection ----------------------------------------------------------

    def select_folder(self, folder_id: UUID | None) -> None:
        self.filter = self.filter.with_folder(folder_id)

    def toggle_tag(self, tag_id: UUID) -> None:
        self.filter = self.filter.toggle_tag(tag_id)

    def search(self, query: str) -> None:
        self.filter = self.filter.with_query(query)

    def clear_filters(self) -> None:
        self.filter = BookmarkFilter()

    # -- derived state ------------------------------------------------------

    @property
    def visible(self) -> list[BookmarkResponse]:
        """Bookmarks passing the current selection, newest first."""
        return self.view.visible(self.filter)

    @property
    def tag_map(self) -> TagMap:
        return self.view.tag_map

    def tags_of(self, bookmark_id: UUID) -> list[TagResponse]:
        """Tags attached to a bookmark, in tag display order."""
        tag_ids = tags_for(self.tag_map, bookmark_id)
        return [tag for tag in self.tags.items if tag.id in tag_ids]

    # -- lifecycle ----------------------------------------------------------

    async def drain(self) -> None:
        """Wait until every collection has applied the changes queued so far."""
        await asyncio.gather(*(collection.drain() for collection in self.collections))

    async def close(self) -> None:
        """Stop following the session and release every subscription."""
        self._unsubscribe()
        await asyncio.gather(*(collection.close() for collection in self.collections))

    async def __aenter__(self) -> "BookmarkLibrary":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
