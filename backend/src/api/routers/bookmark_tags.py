"""Bookmark-tag association listing."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.bookmark_tag import BookmarkTagListResponse, BookmarkTagResponse
from services import bookmark_tag_service

router = APIRouter(prefix="/bookmark-tags", tags=["bookmark-tags"])


@router.get("/", response_model=BookmarkTagListResponse)
async def list_bookmark_tags(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkTagListResponse:
    """
    Get every bookmark-tag association of the current user's bookmarks.

    Attach and detach through `/bookmarks/{id}/tags/{tag_id}`.
    """
    associations = await bookmark_tag_service.list_associations(db, current_user.id)
    return BookmarkTagListResponse(
        associations=[BookmarkTagResponse.model_validate(a) for a in associations],
    )
