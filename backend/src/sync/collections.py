"""
Live collections: locally cached mirrors of one user's rows.

A collection loads a snapshot of its table, then keeps it current by applying
change events from the change feed. Mutations go through the service layer in
their own unit of work; the local mirror changes only when the resulting event
arrives, never optimistically. Call ``drain()`` to wait for your own change to
become visible.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.change_feed import ChangeEvent, ChangeFeed, ChangeKind, Subscription, get_change_feed
from db.session import unit_of_work
from schemas.bookmark import BookmarkCreate, BookmarkResponse, BookmarkUpdate
from schemas.bookmark_tag import BookmarkTagResponse
from schemas.folder import FolderCreate, FolderResponse, FolderUpdate
from schemas.tag import TagCreate, TagResponse, TagUpdate
from services import bookmark_service, bookmark_tag_service, folder_service, tag_service
from services.exceptions import DuplicateNameError, EntityNotFoundError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

# notify(level, message); stands in for a user-facing toast
Notifier = Callable[[str, str], None]
Operation = Callable[[AsyncSession, UUID], Awaitable[Any]]


class LiveCollection(ABC, Generic[RecordT]):
    """
    Base class for a per-user mirror of one table.

    Subclasses set ``table`` and ``record_schema`` and implement
    ``_fetch``, ``key_of`` and ``sort_key``.
    """

    table: ClassVar[str]
    record_schema: ClassVar[type[BaseModel]]
    sort_descending: ClassVar[bool] = False

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        change_feed: ChangeFeed | None = None,
        notify: Notifier | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._feed = change_feed if change_feed is not None else get_change_feed()
        self._notify_callback = notify
        self._records: dict[Hashable, RecordT] = {}
        self._sorted: list[RecordT] | None = None
        self._subscription: Subscription | None = None
        self._consumer: asyncio.Task | None = None
        self.user_id: UUID | None = None
        self.version = 0

    # -- subclass hooks -----------------------------------------------------

    @abstractmethod
    async def _fetch(self, db: AsyncSession, user_id: UUID) -> list[Any]:
        """Read the user's rows."""

    @staticmethod
    @abstractmethod
    def key_of(record: RecordT) -> Hashable:
        """Identity of a record within the collection."""

    @staticmethod
    @abstractmethod
    def sort_key(record: RecordT) -> Any:
        """Display order key."""

    # -- state --------------------------------------------------------------

    @property
    def items(self) -> list[RecordT]:
        """Current records in display order."""
        if self._sorted is None:
            self._sorted = sorted(
                self._records.values(),
                key=self.sort_key,
                reverse=self.sort_descending,
            )
        return list(self._sorted)

    def get(self, key: Hashable) -> RecordT | None:
        """Look up a record by key."""
        return self._records.get(key)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def _bump(self) -> None:
        self._sorted = None
        self.version += 1

    def _notify(self, level: str, message: str) -> None:
        if self._notify_callback is not None:
            self._notify_callback(level, message)

    # -- lifecycle ----------------------------------------------------------

    async def load(self, user_id: UUID | None) -> list[RecordT]:
        """
        Load the user's rows and start following the change feed.

        The subscription is opened before the snapshot is read so that no
        change committed in between is missed. Events already reflected in
        the snapshot are no-ops when applied.

        Args:
            user_id: Current user, or None when signed out.

        Returns:
            The loaded records. Empty (and no error) when user_id is None.
        """
        await self.close()
        self.user_id = user_id
        if self._records:
            self._records = {}
            self._bump()
        if user_id is None:
            return []

        subscription = self._feed.subscribe(user_id, tables=[self.table])
        self._subscription = subscription
        try:
            async with self._session_factory() as db:
                rows = await self._fetch(db, user_id)
        except SQLAlchemyError:
            logger.exception("Failed to load %s for user %s", self.table, user_id)
            self._notify("error", f"Failed to load {self.table}")
            await self.close()
            return []

        self._records = {}
        for row in rows:
            record = self.record_schema.model_validate(row)
            self._records[self.key_of(record)] = record
        self._bump()
        self._consumer = asyncio.create_task(self._consume(subscription))
        return self.items

    async def _consume(self, subscription: Subscription) -> None:
        async for event in subscription:
            try:
                self.apply(event)
            except ValidationError:
                logger.exception("Dropping malformed %s change event", self.table)
            finally:
                subscription.task_done()

    async def drain(self) -> None:
        """Wait until every change event queued so far has been applied."""
        if self._subscription is not None and not self._subscription.closed:
            await self._subscription.drain()

    async def close(self) -> None:
        """Release the subscription and stop the consumer. Safe to call repeatedly."""
        subscription, self._subscription = self._subscription, None
        consumer, self._consumer = self._consumer, None
        if subscription is not None:
            subscription.close()
        if consumer is not None:
            await consumer

    # -- event handling -----------------------------------------------------

    def apply(self, event: ChangeEvent) -> bool:
        """
        Apply one change event to the local mirror.

        Inserts and updates are upserts; deletes remove by key. Replaying an
        event that is already reflected changes nothing.

        Returns:
            True if local state changed.
        """
        if event.table != self.table or event.user_id != self.user_id:
            return False

        record = self.record_schema.model_validate(event.record)
        key = self.key_of(record)
        if event.kind == ChangeKind.DELETED:
            if self._records.pop(key, None) is None:
                return False
        else:
            if self._records.get(key) == record:
                return False
            self._records[key] = record
        self._bump()
        return True

    # -- mutations ----------------------------------------------------------

    async def _mutate(
        self,
        description: str,
        operation: Operation,
        success_message: str | None = None,
    ) -> bool:
        """Run a service operation in its own unit of work, reporting the outcome."""
        if self.user_id is None:
            logger.warning("Cannot %s: no signed-in user", description)
            self._notify("error", f"Failed to {description}: not signed in")
            return False
        try:
            async with unit_of_work(self._session_factory, self._feed) as db:
                await operation(db, self.user_id)
        except (EntityNotFoundError, DuplicateNameError) as e:
            logger.warning("Failed to %s: %s", description, e)
            self._notify("error", f"Failed to {description}: {e}")
            return False
        except SQLAlchemyError:
            logger.exception("Failed to %s", description)
            self._notify("error", f"Failed to {description}")
            return False
        if success_message:
            self._notify("success", success_message)
        return True


class EntityCollection(LiveCollection[RecordT]):
    """A live collection of id-keyed rows with create, update and delete."""

    create_schema: ClassVar[type[BaseModel]]
    update_schema: ClassVar[type[BaseModel]]
    entity_name: ClassVar[str]
    # action -> message shown after a successful commit
    success_messages: ClassVar[dict[str, str]] = {}

    @staticmethod
    def key_of(record: RecordT) -> Hashable:
        return record.id

    @abstractmethod
    async def _create(self, db: AsyncSession, user_id: UUID, data: BaseModel) -> Any:
        """Insert the row through the service layer."""

    @abstractmethod
    async def _update(self, db: AsyncSession, user_id: UUID, id: UUID, data: BaseModel) -> Any:
        """Update the row through the service layer."""

    @abstractmethod
    async def _delete(self, db: AsyncSession, user_id: UUID, id: UUID) -> Any:
        """Delete the row and its dependents through the service layer."""

    async def create(self, **fields: Any) -> bool:
        """
        Insert a row.

        Raises:
            ValidationError: If the fields are invalid. Nothing is written.
        """
        data = self.create_schema(**fields)
        return await self._mutate(
            f"create {self.entity_name}",
            lambda db, user_id: self._create(db, user_id, data),
            self.success_messages.get("create"),
        )

    async def update(self, id: UUID, **fields: Any) -> bool:
        """
        Apply a partial update.

        Raises:
            ValidationError: If the fields are invalid. Nothing is written.
        """
        data = self.update_schema(**fields)
        return await self._mutate(
            f"update {self.entity_name}",
            lambda db, user_id: self._update(db, user_id, id, data),
            self.success_messages.get("update"),
        )

    async def delete(self, id: UUID) -> bool:
        """Delete a row together with its dependent rows."""
        return await self._mutate(
            f"delete {self.entity_name}",
            lambda db, user_id: self._delete(db, user_id, id),
            self.success_messages.get("delete"),
        )


class BookmarkCollection(EntityCollection[BookmarkResponse]):
    """Bookmarks, newest first."""

    table = "bookmarks"
    record_schema = BookmarkResponse
    create_schema = BookmarkCreate
    update_schema = BookmarkUpdate
    entity_name = "bookmark"
    success_messages = {
        "create": "Bookmark saved successfully!",
        "update": "Bookmark updated!",
        "delete": "Bookmark deleted!",
    }
    sort_descending = True

    @staticmethod
    def sort_key(record: BookmarkResponse) -> Any:
        return (record.created_at, record.id)

    async def _fetch(self, db: AsyncSession, user_id: UUID) -> list[Any]:
        return await bookmark_service.list_bookmarks(db, user_id)

    async def _create(self, db: AsyncSession, user_id: UUID, data: BaseModel) -> Any:
        return await bookmark_service.create_bookmark(db, user_id, data)

    async def _update(self, db: AsyncSession, user_id: UUID, id: UUID, data: BaseModel) -> Any:
        return await bookmark_service.update_bookmark(db, user_id, id, data)

    async def _delete(self, db: AsyncSession, user_id: UUID, id: UUID) -> Any:
        return await bookmark_service.delete_bookmark(db, user_id, id)


class FolderCollection(EntityCollection[FolderResponse]):
    """Folders, by name."""

    table = "folders"
    record_schema = FolderResponse
    create_schema = FolderCreate
    update_schema = FolderUpdate
    entity_name = "folder"
    success_messages = {"create": "Folder created!", "delete": "Folder deleted!"}

    @staticmethod
    def sort_key(record: FolderResponse) -> Any:
        return (record.name.lower(), record.id)

    async def _fetch(self, db: AsyncSession, user_id: UUID) -> list[Any]:
        return await folder_service.list_folders(db, user_id)

    async def _create(self, db: AsyncSession, user_id: UUID, data: BaseModel) -> Any:
        return await folder_service.create_folder(db, user_id, data)

    async def _update(self, db: AsyncSession, user_id: UUID, id: UUID, data: BaseModel) -> Any:
        return await folder_service.rename_folder(db, user_id, id, data)

    async def _delete(self, db: AsyncSession, user_id: UUID, id: UUID) -> Any:
        return await folder_service.delete_folder(db, user_id, id)

    async def create(self, name: str) -> bool:  # type: ignore[override]
        """Create a folder with the given name."""
        return await super().create(name=name)

    async def rename(self, id: UUID, name: str) -> bool:
        """Rename a folder."""
        return await self.update(id, name=name)


class TagCollection(EntityCollection[TagResponse]):
    """Tags, by name."""

    table = "tags"
    record_schema = TagResponse
    create_schema = TagCreate
    update_schema = TagUpdate
    entity_name = "tag"
    success_messages = {"create": "Tag created!", "delete": "Tag deleted!"}

    @staticmethod
    def sort_key(record: TagResponse) -> Any:
        return (record.name.lower(), record.id)

    async def _fetch(self, db: AsyncSession, user_id: UUID) -> list[Any]:
        return await tag_service.list_tags(db, user_id)

    async def _create(self, db: AsyncSession, user_id: UUID, data: BaseModel) -> Any:
        return await tag_service.create_tag(db, user_id, data)

    async def _update(self, db: AsyncSession, user_id: UUID, id: UUID, data: BaseModel) -> Any:
        return await tag_service.update_tag(db, user_id, id, data)

    async def _delete(self, db: AsyncSession, user_id: UUID, id: UUID) -> Any:
        return await tag_service.delete_tag(db, user_id, id)

    async def create(self, name: str, color: str | None = None) -> bool:  # type: ignore[override]
        """Create a tag. A palette color is picked when color is None."""
        return await super().create(name=name, color=color)


class BookmarkTagCollection(LiveCollection[BookmarkTagResponse]):
    """Bookmark-tag associations, keyed by (bookmark_id, tag_id)."""

    table = "bookmark_tags"
    record_schema = BookmarkTagResponse

    @staticmethod
    def key_of(record: BookmarkTagResponse) -> Hashable:
        return (record.bookmark_id, record.tag_id)

    @staticmethod
    def sort_key(record: BookmarkTagResponse) -> Any:
        return (record.created_at, record.bookmark_id, record.tag_id)

    async def _fetch(self, db: AsyncSession, user_id: UUID) -> list[Any]:
        return await bookmark_tag_service.list_associations(db, user_id)

    async def attach(self, bookmark_id: UUID, tag_id: UUID) -> bool:
        """Attach a tag to a bookmark. Attaching twice is a no-op."""
        return await self._mutate(
            "attach tag",
            lambda db, user_id: bookmark_tag_service.attach_tag(db, user_id, bookmark_id, tag_id),
        )

    async def detach(self, bookmark_id: UUID, tag_id: UUID) -> bool:
        """Remove a tag from a bookmark."""
        return await self._mutate(
            "detach tag",
            lambda db, user_id: bookmark_tag_service.detach_tag(db, user_id, bookmark_id, tag_id),
        )
