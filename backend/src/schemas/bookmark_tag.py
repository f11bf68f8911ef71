"""Pydantic schemas for bookmark-tag associations."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BookmarkTagResponse(BaseModel):
    """Schema for one bookmark-tag association row."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    bookmark_id: UUID
    tag_id: UUID
    created_at: datetime


class BookmarkTagListResponse(BaseModel):
    """Schema for the association list response."""

    associations: list[BookmarkTagResponse]
