"""Folder management endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import service_errors
from models.user import User
from schemas.folder import FolderCreate, FolderListResponse, FolderResponse, FolderUpdate
from services import folder_service

router = APIRouter(prefix="/folders", tags=["folders"])


@router.get("/", response_model=FolderListResponse)
async def list_folders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> FolderListResponse:
    """Get all folders for the current user, sorted by name."""
    folders = await folder_service.list_folders(db, current_user.id)
    return FolderListResponse(folders=[FolderResponse.model_validate(f) for f in folders])


@router.post("/", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    data: FolderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> FolderResponse:
    """
    Create a folder.

    Returns 409 if a folder with the same name already exists.
    """
    with service_errors():
        folder = await folder_service.create_folder(db, current_user.id, data)
    return FolderResponse.model_validate(folder)


@router.patch("/{folder_id}", response_model=FolderResponse)
async def rename_folder(
    folder_id: UUID,
    data: FolderUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> FolderResponse:
    """
    Rename a folder.

    Returns 404 if the folder doesn't exist.
    Returns 409 if a folder with the new name already exists.
    """
    with service_errors():
        folder = await folder_service.rename_folder(db, current_user.id, folder_id, data)
    return FolderResponse.model_validate(folder)


@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(
    folder_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """
    Delete a folder.

    Bookmarks in the folder are kept and become unfiled.
    """
    with service_errors():
        await folder_service.delete_folder(db, current_user.id, folder_id)
