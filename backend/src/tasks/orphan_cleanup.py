"""
Orphan row detection and cleanup.

Cascades are done by the service layer, not the database. If a cleanup step
is skipped (bug, manual SQL, interrupted migration) rows can be left pointing
at missing parents:

- bookmark_tags rows whose bookmark or tag no longer exists
- bookmarks whose folder_id references a missing folder, or a folder owned by
  another user

Association orphans are deleted; dangling folder references are cleared so the
bookmark survives unfiled. Changes made here bypass the change feed; open
clients pick them up on their next load.

Usage:
    python -m tasks.orphan_cleanup           # Report only (default)
    python -m tasks.orphan_cleanup --delete  # Report and repair
"""
import argparse
import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import delete as sa_delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_session_factory
from models.bookmark import Bookmark
from models.bookmark_tag import BookmarkTag
from models.folder import Folder
from models.tag import Tag

logger = logging.getLogger(__name__)


@dataclass
class OrphanStats:
    """Statistics from an orphan cleanup run."""

    missing_bookmark: int = 0
    missing_tag: int = 0
    dangling_folder: int = 0
    repaired: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to simple dict for logging/return."""
        return {
            "missing_bookmark": self.missing_bookmark,
            "missing_tag": self.missing_tag,
            "dangling_folder": self.dangling_folder,
            "repaired": self.repaired,
        }


def _bookmark_exists():  # noqa: ANN202
    return select(Bookmark.id).where(Bookmark.id == BookmarkTag.bookmark_id).exists()


def _tag_exists():  # noqa: ANN202
    return select(Tag.id).where(Tag.id == BookmarkTag.tag_id).exists()


def _folder_owned():  # noqa: ANN202
    # Folder must exist and belong to the bookmark's owner
    return select(Folder.id).where(
        Folder.id == Bookmark.folder_id,
        Folder.user_id == Bookmark.user_id,
    ).exists()


async def _count_or_delete_associations(db: AsyncSession, condition, delete: bool) -> int:  # noqa: ANN001
    if delete:
        result = await db.execute(
            sa_delete(BookmarkTag)
            .where(condition)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount
    return await db.scalar(select(func.count()).select_from(BookmarkTag).where(condition)) or 0


async def cleanup_orphans(db: AsyncSession, delete: bool = False) -> OrphanStats:
    """
    Find and optionally repair orphaned rows.

    Association rows missing both parents are counted under missing_bookmark
    only: in delete mode they are gone before the tag check runs, and in
    report mode the tag check skips rows already counted.

    Args:
        db: Database session.
        delete: If True, delete orphan associations and clear dangling
                folder references. If False (default), only report them.

    Returns:
        OrphanStats with counts per kind of orphan.
    """
    stats = OrphanStats()

    stats.missing_bookmark = await _count_or_delete_associations(
        db, ~_bookmark_exists(), delete,
    )
    stats.missing_tag = await _count_or_delete_associations(
        db, _bookmark_exists() & ~_tag_exists(), delete,
    )

    dangling = Bookmark.folder_id.is_not(None) & ~_folder_owned()
    if delete:
        result = await db.execute(
            update(Bookmark)
            .where(dangling)
            .values(folder_id=None)
            .execution_options(synchronize_session=False),
        )
        stats.dangling_folder = result.rowcount
    else:
        stats.dangling_folder = await db.scalar(
            select(func.count()).select_from(Bookmark).where(dangling),
        ) or 0

    for kind, count in (
        ("bookmark_tags with missing bookmark", stats.missing_bookmark),
        ("bookmark_tags with missing tag", stats.missing_tag),
        ("bookmarks with dangling folder_id", stats.dangling_folder),
    ):
        if count > 0:
            logger.info("%s %d %s", "Repaired" if delete else "Found", count, kind)

    if delete:
        stats.repaired = stats.missing_bookmark + stats.missing_tag + stats.dangling_folder
        await db.commit()

    return stats


async def run_orphan_cleanup(
    db: AsyncSession | None = None,
    delete: bool = False,
) -> OrphanStats:
    """
    Entry point for orphan cleanup.

    Args:
        db: Database session. If None, creates one from the session factory.
        delete: If True, repair the orphans found.

    Returns:
        OrphanStats with results.
    """
    logger.info("Starting orphan cleanup (delete=%s)", delete)

    if db is not None:
        stats = await cleanup_orphans(db, delete=delete)
    else:
        async with get_session_factory()() as session:
            stats = await cleanup_orphans(session, delete=delete)

    logger.info("Orphan cleanup complete: %s", stats.to_dict())
    return stats


def main() -> None:
    """CLI entry point with --delete flag."""
    parser = argparse.ArgumentParser(
        description="Detect and optionally repair orphaned bookmark rows.",
    )
    parser.add_argument(
        "--delete",
        action="store_true",
        help="Delete orphan associations and clear dangling folder references "
        "(default: report only)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_orphan_cleanup(delete=args.delete))


if __name__ == "__main__":
    main()
