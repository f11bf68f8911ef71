"""Tests for bookmark filtering and the memoized filtered view."""
from dataclasses import dataclass
from datetime import UTC, datetime
from itertools import permutations
from uuid import UUID, uuid4

import pytest

from sync.filtering import (
    BookmarkFilter,
    FilteredView,
    build_tag_map,
    filter_bookmarks,
    normalize_query,
    tags_for,
)


@dataclass(frozen=True)
class FakeBookmark:
    id: UUID
    url: str
    title: str
    folder_id: UUID | None = None


@dataclass(frozen=True)
class FakeAssociation:
    bookmark_id: UUID
    tag_id: UUID
    created_at: datetime = datetime(2024, 1, 1, tzinfo=UTC)


class FakeSource:
    """Minimal versioned collection."""

    def __init__(self, items: list) -> None:
        self._items = items
        self.version = 0

    @property
    def items(self) -> list:
        return list(self._items)

    def replace(self, items: list) -> None:
        self._items = items
        self.version += 1


FOLDER_WORK = uuid4()
FOLDER_HOME = uuid4()
TAG_PYTHON = uuid4()
TAG_WEB = uuid4()
TAG_DOCS = uuid4()


@pytest.fixture
def bookmarks() -> list[FakeBookmark]:
    return [
        FakeBookmark(uuid4(), "https://fastapi.tiangolo.com", "FastAPI", FOLDER_WORK),
        FakeBookmark(uuid4(), "https://docs.python.org/3/", "Python Docs", FOLDER_WORK),
        FakeBookmark(uuid4(), "https://www.seriouseats.com", "Serious Eats", FOLDER_HOME),
        FakeBookmark(uuid4(), "https://example.com/python-tricks", "Tricks", None),
    ]


@pytest.fixture
def associations(bookmarks: list[FakeBookmark]) -> list[FakeAssociation]:
    fastapi, docs, _, tricks = bookmarks
    return [
        FakeAssociation(fastapi.id, TAG_PYTHON),
        FakeAssociation(fastapi.id, TAG_WEB),
        FakeAssociation(docs.id, TAG_PYTHON),
        FakeAssociation(docs.id, TAG_DOCS),
        FakeAssociation(tricks.id, TAG_PYTHON),
    ]


# =============================================================================
# helpers
# =============================================================================


def test__build_tag_map__groups_by_bookmark(
    bookmarks: list[FakeBookmark],
    associations: list[FakeAssociation],
) -> None:
    tag_map = build_tag_map(associations)
    assert tag_map[bookmarks[0].id] == {TAG_PYTHON, TAG_WEB}
    assert tags_for(tag_map, bookmarks[2].id) == set()


@pytest.mark.parametrize(
    ("query", "expected"),
    [(None, ""), ("", ""), ("   ", "   "), (" PyThOn ", " python ")],
)
def test__normalize_query(query: str | None, expected: str) -> None:
    assert normalize_query(query) == expected


# =============================================================================
# filter_bookmarks
# =============================================================================


def test__filter_bookmarks__no_filters_is_identity(
    bookmarks: list[FakeBookmark],
    associations: list[FakeAssociation],
) -> None:
    assert filter_bookmarks(bookmarks, build_tag_map(associations)) == bookmarks


def test__filter_bookmarks__whitespace_query_is_a_substring(
    bookmarks: list[FakeBookmark],
) -> None:
    visible = filter_bookmarks(bookmarks, {}, query=" ")
    assert [b.title for b in visible] == ["Python Docs", "Serious Eats"]


def test__filter_bookmarks__query_is_not_trimmed() -> None:
    docs = FakeBookmark(uuid4(), "https://python.org", "Python docs")
    home = FakeBookmark(uuid4(), "https://docs.example.com", "Home")
    assert filter_bookmarks([docs, home], {}, query=" docs") == [docs]
    assert filter_bookmarks([docs, home], {}, query="docs") == [docs, home]


def test__filter_bookmarks__folder_excludes_unfiled(bookmarks: list[FakeBookmark]) -> None:
    visible = filter_bookmarks(bookmarks, {}, folder_id=FOLDER_WORK)
    assert [b.title for b in visible] == ["FastAPI", "Python Docs"]


def test__filter_bookmarks__tags_are_conjunctive(
    bookmarks: list[FakeBookmark],
    associations: list[FakeAssociation],
) -> None:
    tag_map = build_tag_map(associations)

    python_only = filter_bookmarks(bookmarks, tag_map, tag_ids=[TAG_PYTHON])
    assert [b.title for b in python_only] == ["FastAPI", "Python Docs", "Tricks"]

    python_and_web = filter_bookmarks(bookmarks, tag_map, tag_ids=[TAG_PYTHON, TAG_WEB])
    assert [b.title for b in python_and_web] == ["FastAPI"]

    web_and_docs = filter_bookmarks(bookmarks, tag_map, tag_ids=[TAG_WEB, TAG_DOCS])
    assert web_and_docs == []


def test__filter_bookmarks__search_matches_title_or_url_ignoring_case(
    bookmarks: list[FakeBookmark],
) -> None:
    # "python" is in the title of one bookmark and only the URL of another
    visible = filter_bookmarks(bookmarks, {}, query="PYTHON")
    assert [b.title for b in visible] == ["Python Docs", "Tricks"]

    assert [b.title for b in filter_bookmarks(bookmarks, {}, query="eats")] == ["Serious Eats"]


def test__filter_bookmarks__filters_commute(
    bookmarks: list[FakeBookmark],
    associations: list[FakeAssociation],
) -> None:
    """Applying the filters one at a time, in any order, equals applying them together."""
    tag_map = build_tag_map(associations)
    steps = {
        "folder": {"folder_id": FOLDER_WORK},
        "tags": {"tag_ids": [TAG_PYTHON]},
        "query": {"query": "docs"},
    }
    combined = filter_bookmarks(
        bookmarks, tag_map, folder_id=FOLDER_WORK, tag_ids=[TAG_PYTHON], query="docs",
    )
    assert [b.title for b in combined] == ["Python Docs"]

    for order in permutations(steps):
        result = bookmarks
        for name in order:
            result = filter_bookmarks(result, tag_map, **steps[name])
        assert result == combined


def test__filter_bookmarks__preserves_input_order(bookmarks: list[FakeBookmark]) -> None:
    reversed_input = list(reversed(bookmarks))
    assert filter_bookmarks(reversed_input, {}) == reversed_input


# =============================================================================
# BookmarkFilter
# =============================================================================


def test__bookmark_filter__toggle_tag_twice_removes_it() -> None:
    selection = BookmarkFilter().toggle_tag(TAG_PYTHON).toggle_tag(TAG_WEB)
    assert selection.tag_ids == {TAG_PYTHON, TAG_WEB}
    assert selection.toggle_tag(TAG_PYTHON).tag_ids == {TAG_WEB}


def test__bookmark_filter__is_empty() -> None:
    assert BookmarkFilter().is_empty
    assert not BookmarkFilter(query="  ").is_empty
    assert not BookmarkFilter().with_folder(FOLDER_HOME).is_empty
    assert not BookmarkFilter().with_query("x").is_empty


def test__bookmark_filter__is_hashable_value() -> None:
    a = BookmarkFilter().with_folder(FOLDER_WORK).toggle_tag(TAG_PYTHON)
    b = BookmarkFilter(folder_id=FOLDER_WORK, tag_ids=frozenset({TAG_PYTHON}))
    assert a == b
    assert hash(a) == hash(b)


# =============================================================================
# FilteredView memoization
# =============================================================================


def test__filtered_view__recomputes_only_on_change(
    bookmarks: list[FakeBookmark],
    associations: list[FakeAssociation],
) -> None:
    bookmark_source = FakeSource(bookmarks)
    association_source = FakeSource(associations)
    view = FilteredView(bookmark_source, association_source)
    selection = BookmarkFilter().toggle_tag(TAG_PYTHON)

    first = view.visible(selection)
    view.visible(selection)
    assert view.recomputations == 1
    assert [b.title for b in first] == ["FastAPI", "Python Docs", "Tricks"]

    # A new but equal selection hits the cache
    view.visible(BookmarkFilter(tag_ids=frozenset({TAG_PYTHON})))
    assert view.recomputations == 1

    # Removing an association bumps its version and invalidates the cache
    association_source.replace(associations[:-1])
    assert [b.title for b in view.visible(selection)] == ["FastAPI", "Python Docs"]
    assert view.recomputations == 2

    bookmark_source.replace(bookmarks[:1])
    assert [b.title for b in view.visible(selection)] == ["FastAPI"]
    assert view.recomputations == 3


def test__filtered_view__returns_copies(bookmarks: list[FakeBookmark]) -> None:
    view = FilteredView(FakeSource(bookmarks), FakeSource([]))
    result = view.visible()
    result.clear()
    assert len(view.visible()) == len(bookmarks)


def test__filtered_view__end_to_end_selection(
    bookmarks: list[FakeBookmark],
    associations: list[FakeAssociation],
) -> None:
    """Folder, tag and search selections narrow the view step by step."""
    view = FilteredView(FakeSource(bookmarks), FakeSource(associations))

    selection = BookmarkFilter()
    assert len(view.visible(selection)) == 4

    selection = selection.with_folder(FOLDER_WORK)
    assert [b.title for b in view.visible(selection)] == ["FastAPI", "Python Docs"]

    selection = selection.toggle_tag(TAG_DOCS)
    assert [b.title for b in view.visible(selection)] == ["Python Docs"]

    selection = selection.with_query("fast")
    assert view.visible(selection) == []

    selection = selection.toggle_tag(TAG_DOCS)
    assert [b.title for b in view.visible(selection)] == ["FastAPI"]
