"""Tag management endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import service_errors
from models.user import User
from schemas.tag import TagCreate, TagListResponse, TagResponse, TagUpdate
from services import tag_service

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/", response_model=TagListResponse)
async def list_tags(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagListResponse:
    """Get all tags for the current user, sorted by name."""
    tags = await tag_service.list_tags(db, current_user.id)
    return TagListResponse(tags=[TagResponse.model_validate(t) for t in tags])


@router.post("/", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagResponse:
    """
    Create a tag. A palette color is picked when none is given.

    Returns 409 if a tag with the same name already exists.
    """
    with service_errors():
        tag = await tag_service.create_tag(db, current_user.id, data)
    return TagResponse.model_validate(tag)


@router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: UUID,
    data: TagUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagResponse:
    """
    Rename and/or recolor a tag.

    Returns 404 if the tag doesn't exist.
    Returns 409 if a tag with the new name already exists.
    """
    with service_errors():
        tag = await tag_service.update_tag(db, current_user.id, tag_id, data)
    return TagResponse.model_validate(tag)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """
    Delete a tag.

    This removes the tag from all bookmarks, then deletes the tag itself.
    """
    with service_errors():
        await tag_service.delete_tag(db, current_user.id, tag_id)
