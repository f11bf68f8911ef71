"""Tests for orphan row detection and cleanup."""
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.bookmark_tag import BookmarkTag
from models.folder import Folder
from models.tag import Tag
from models.user import User
from tasks.orphan_cleanup import cleanup_orphans, run_orphan_cleanup


async def _seed(db: AsyncSession, user: User, other_user: User) -> dict:
    """Create one healthy graph plus one orphan of each kind."""
    folder = Folder(user_id=user.id, name="Box")
    their_folder = Folder(user_id=other_user.id, name="Theirs")
    tag = Tag(user_id=user.id, name="python", color="#4ECDC4")
    db.add_all([folder, their_folder, tag])
    await db.flush()

    healthy = Bookmark(user_id=user.id, url="https://ok.example", title="ok", folder_id=folder.id)
    missing_folder = Bookmark(
        user_id=user.id, url="https://a.example", title="a", folder_id=uuid4(),
    )
    foreign_folder = Bookmark(
        user_id=user.id, url="https://b.example", title="b", folder_id=their_folder.id,
    )
    db.add_all([healthy, missing_folder, foreign_folder])
    await db.flush()

    db.add_all([
        BookmarkTag(bookmark_id=healthy.id, tag_id=tag.id),
        # Missing bookmark
        BookmarkTag(bookmark_id=uuid4(), tag_id=tag.id),
        # Missing tag
        BookmarkTag(bookmark_id=healthy.id, tag_id=uuid4()),
        # Missing both
        BookmarkTag(bookmark_id=uuid4(), tag_id=uuid4()),
    ])
    await db.commit()
    return {"healthy": healthy, "folder": folder, "tag": tag}


async def test__cleanup_orphans__report_only(
    db_session: AsyncSession,
    test_user: User,
    other_user: User,
) -> None:
    await _seed(db_session, test_user, other_user)

    stats = await cleanup_orphans(db_session, delete=False)

    assert stats.to_dict() == {
        "missing_bookmark": 2,
        "missing_tag": 1,
        "dangling_folder": 2,
        "repaired": 0,
    }
    result = await db_session.execute(select(BookmarkTag))
    assert len(list(result.scalars())) == 4


async def test__cleanup_orphans__delete_repairs(
    db_session: AsyncSession,
    test_user: User,
    other_user: User,
) -> None:
    seeded = await _seed(db_session, test_user, other_user)

    stats = await cleanup_orphans(db_session, delete=True)

    assert stats.repaired == 5
    db_session.expire_all()
    associations = list((await db_session.execute(select(BookmarkTag))).scalars())
    assert [(a.bookmark_id, a.tag_id) for a in associations] == [
        (seeded["healthy"].id, seeded["tag"].id),
    ]
    folders = {
        b.url: b.folder_id
        for b in (await db_session.execute(select(Bookmark))).scalars()
    }
    assert folders == {
        "https://ok.example": seeded["folder"].id,
        "https://a.example": None,
        "https://b.example": None,
    }

    # A second run finds nothing
    stats = await cleanup_orphans(db_session, delete=False)
    assert stats.to_dict() == {
        "missing_bookmark": 0,
        "missing_tag": 0,
        "dangling_folder": 0,
        "repaired": 0,
    }


async def test__run_orphan_cleanup__clean_database(
    db_session: AsyncSession,
    test_user: User,  # noqa: ARG001
) -> None:
    stats = await run_orphan_cleanup(db_session, delete=True)
    assert stats.repaired == 0
