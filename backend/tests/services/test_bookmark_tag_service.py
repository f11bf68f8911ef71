"""Tests for bookmark-tag association service functionality."""
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from core.change_feed import ChangeKind, pop_pending_changes
from models.user import User
from schemas.bookmark import BookmarkCreate
from schemas.tag import TagCreate
from services.bookmark_service import create_bookmark
from services.bookmark_tag_service import (
    attach_tag,
    delete_for_tag,
    detach_tag,
    list_associations,
)
from services.exceptions import EntityNotFoundError, TagNotFoundError
from services.tag_service import create_tag


@pytest.fixture
async def bookmark_and_tag(db_session: AsyncSession, test_user: User) -> tuple:
    bookmark = await create_bookmark(
        db_session, test_user.id, BookmarkCreate(url="https://example.com"),
    )
    tag = await create_tag(db_session, test_user.id, TagCreate(name="reading"))
    pop_pending_changes(db_session)
    return bookmark, tag


async def test__attach_tag__records_insert(
    db_session: AsyncSession,
    test_user: User,
    bookmark_and_tag: tuple,
) -> None:
    bookmark, tag = bookmark_and_tag

    association = await attach_tag(db_session, test_user.id, bookmark.id, tag.id)

    assert association.bookmark_id == bookmark.id
    assert association.tag_id == tag.id
    events = pop_pending_changes(db_session)
    assert [(e.table, e.kind) for e in events] == [("bookmark_tags", ChangeKind.INSERTED)]
    assert events[0].record["bookmark_id"] == str(bookmark.id)


async def test__attach_tag__twice_keeps_single_row(
    db_session: AsyncSession,
    test_user: User,
    bookmark_and_tag: tuple,
) -> None:
    bookmark, tag = bookmark_and_tag

    first = await attach_tag(db_session, test_user.id, bookmark.id, tag.id)
    pop_pending_changes(db_session)
    second = await attach_tag(db_session, test_user.id, bookmark.id, tag.id)

    assert second is first
    assert pop_pending_changes(db_session) == []
    assert len(await list_associations(db_session, test_user.id)) == 1


async def test__attach_tag__foreign_tag_rejected(
    db_session: AsyncSession,
    test_user: User,
    other_user: User,
    bookmark_and_tag: tuple,
) -> None:
    bookmark, _ = bookmark_and_tag
    their_tag = await create_tag(db_session, other_user.id, TagCreate(name="theirs"))

    with pytest.raises(TagNotFoundError):
        await attach_tag(db_session, test_user.id, bookmark.id, their_tag.id)


async def test__attach_tag__unknown_bookmark_rejected(
    db_session: AsyncSession,
    test_user: User,
    bookmark_and_tag: tuple,
) -> None:
    _, tag = bookmark_and_tag
    with pytest.raises(EntityNotFoundError):
        await attach_tag(db_session, test_user.id, uuid4(), tag.id)


async def test__detach_tag__removes_row(
    db_session: AsyncSession,
    test_user: User,
    bookmark_and_tag: tuple,
) -> None:
    bookmark, tag = bookmark_and_tag
    await attach_tag(db_session, test_user.id, bookmark.id, tag.id)
    pop_pending_changes(db_session)

    assert await detach_tag(db_session, test_user.id, bookmark.id, tag.id) is True

    assert await list_associations(db_session, test_user.id) == []
    events = pop_pending_changes(db_session)
    assert [(e.table, e.kind) for e in events] == [("bookmark_tags", ChangeKind.DELETED)]


async def test__detach_tag__not_attached_returns_false(
    db_session: AsyncSession,
    test_user: User,
    bookmark_and_tag: tuple,
) -> None:
    bookmark, tag = bookmark_and_tag
    assert await detach_tag(db_session, test_user.id, bookmark.id, tag.id) is False
    assert pop_pending_changes(db_session) == []


async def test__list_associations__scoped_to_owner(
    db_session: AsyncSession,
    test_user: User,
    other_user: User,
    bookmark_and_tag: tuple,
) -> None:
    bookmark, tag = bookmark_and_tag
    await attach_tag(db_session, test_user.id, bookmark.id, tag.id)

    their_bookmark = await create_bookmark(
        db_session, other_user.id, BookmarkCreate(url="https://other.example"),
    )
    their_tag = await create_tag(db_session, other_user.id, TagCreate(name="x"))
    await attach_tag(db_session, other_user.id, their_bookmark.id, their_tag.id)

    mine = await list_associations(db_session, test_user.id)
    assert [(a.bookmark_id, a.tag_id) for a in mine] == [(bookmark.id, tag.id)]


async def test__delete_for_tag__counts_removed_rows(
    db_session: AsyncSession,
    test_user: User,
    bookmark_and_tag: tuple,
) -> None:
    bookmark, tag = bookmark_and_tag
    second = await create_bookmark(
        db_session, test_user.id, BookmarkCreate(url="https://second.example"),
    )
    await attach_tag(db_session, test_user.id, bookmark.id, tag.id)
    await attach_tag(db_session, test_user.id, second.id, tag.id)

    assert await delete_for_tag(db_session, test_user.id, tag.id) == 2
    assert await list_associations(db_session, test_user.id) == []
