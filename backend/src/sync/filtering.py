"""
Bookmark filtering.

``filter_bookmarks`` is a pure function over bookmarks and a bookmark-to-tags
map. Filters compose by intersection, so their order does not matter, and an
unset filter keeps every bookmark.
"""
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, TypeVar
from uuid import UUID


class FilterableBookmark(Protocol):
    id: UUID
    url: str
    title: str
    folder_id: UUID | None


class Association(Protocol):
    bookmark_id: UUID
    tag_id: UUID


TagMap = dict[UUID, set[UUID]]
B = TypeVar("B", bound=FilterableBookmark)


def build_tag_map(associations: Iterable[Association]) -> TagMap:
    """Group association rows into bookmark id -> set of tag ids."""
    tag_map: TagMap = {}
    for association in associations:
        tag_map.setdefault(association.bookmark_id, set()).add(association.tag_id)
    return tag_map


def tags_for(tag_map: TagMap, bookmark_id: UUID) -> set[UUID]:
    """Tag ids of a bookmark; empty when it has none."""
    return tag_map.get(bookmark_id, set())


def normalize_query(query: str | None) -> str:
    """Lower-cased search text. Whitespace is kept and matched literally."""
    return (query or "").lower()


def filter_bookmarks(
    bookmarks: Iterable[B],
    tag_map: TagMap,
    folder_id: UUID | None = None,
    tag_ids: Iterable[UUID] = (),
    query: str | None = "",
) -> list[B]:
    """
    Compute the visible bookmarks.

    Args:
        bookmarks: Bookmarks in display order. The order is preserved.
        tag_map: Bookmark id -> tag ids, from ``build_tag_map``.
        folder_id: Keep only bookmarks in this folder. Unfiled bookmarks are
            excluded once a folder is selected.
        tag_ids: Keep only bookmarks carrying every one of these tags.
        query: Keep only bookmarks whose title or URL contains this text,
            ignoring case.

    Returns:
        The bookmarks passing every active filter.
    """
    required_tags = set(tag_ids)
    needle = normalize_query(query)

    visible = []
    for bookmark in bookmarks:
        if folder_id is not None and bookmark.folder_id != folder_id:
            continue
        if required_tags and not required_tags <= tags_for(tag_map, bookmark.id):
            continue
        if needle and needle not in bookmark.title.lower() and needle not in bookmark.url.lower():
            continue
        visible.append(bookmark)
    return visible


@dataclass(frozen=True)
class BookmarkFilter:
    """Selection state: folder, tags and search text."""

    folder_id: UUID | None = None
    tag_ids: frozenset[UUID] = field(default_factory=frozenset)
    query: str = ""

    @property
    def is_empty(self) -> bool:
        return self.folder_id is None and not self.tag_ids and not normalize_query(self.query)

    def with_folder(self, folder_id: UUID | None) -> "BookmarkFilter":
        return replace(self, folder_id=folder_id)

    def toggle_tag(self, tag_id: UUID) -> "BookmarkFilter":
        """Add the tag to the selection, or remove it if already selected."""
        return replace(self, tag_ids=self.tag_ids ^ {tag_id})

    def with_query(self, query: str) -> "BookmarkFilter":
        return replace(self, query=query)

    def apply(self, bookmarks: Iterable[B], tag_map: TagMap) -> list[B]:
        return filter_bookmarks(
            bookmarks,
            tag_map,
            folder_id=self.folder_id,
            tag_ids=self.tag_ids,
            query=self.query,
        )


class VersionedSource(Protocol):
    version: int

    @property
    def items(self) -> Sequence[Any]: ...


class FilteredView:
    """
    Memoized visible set over a bookmark collection and an association collection.

    Results are recomputed only when either collection's version or the
    filter changes.
    """

    def __init__(self, bookmarks: VersionedSource, associations: VersionedSource) -> None:
        self._bookmarks = bookmarks
        self._associations = associations
        self._tag_map: TagMap = {}
        self._tag_map_version: int | None = None
        self._cache_key: tuple | None = None
        self._visible: list = []
        self.recomputations = 0

    @property
    def tag_map(self) -> TagMap:
        """Bookmark id -> tag ids, rebuilt wholesale when associations change."""
        if self._tag_map_version != self._associations.version:
            self._tag_map = build_tag_map(self._associations.items)
            self._tag_map_version = self._associations.version
        return self._tag_map

    def visible(self, selection: BookmarkFilter | None = None) -> list:
        """Visible bookmarks for the given selection."""
        selection = selection or BookmarkFilter()
        key = (self._bookmarks.version, self._associations.version, selection)
        if key != self._cache_key:
            self._visible = selection.apply(self._bookmarks.items, self.tag_map)
            self._cache_key = key
            self.recomputations += 1
        return list(self._visible)
