"""Pydantic schemas for folder endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from schemas.validators import validate_name


class FolderCreate(BaseModel):
    """Schema for creating a folder."""

    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        """Trim and validate the folder name."""
        return validate_name(v)


class FolderUpdate(BaseModel):
    """Schema for renaming a folder."""

    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        """Trim and validate the folder name."""
        return validate_name(v)


class FolderResponse(BaseModel):
    """Schema for a folder row."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    user_id: UUID
    name: str
    created_at: datetime
    updated_at: datetime


class FolderListResponse(BaseModel):
    """Schema for the folder list response."""

    folders: list[FolderResponse]
