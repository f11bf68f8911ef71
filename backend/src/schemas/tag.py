"""Pydantic schemas for tag endpoints."""
import random
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from schemas.validators import validate_color, validate_name

TAG_COLORS = (
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#FFA07A",
    "#98D8C8",
    "#F7DC6F",
    "#BB8FCE",
    "#85C1E2",
)


def random_tag_color() -> str:
    """Pick a color from the tag palette."""
    return random.choice(TAG_COLORS)  # noqa: S311


class TagCreate(BaseModel):
    """Schema for creating a tag. A palette color is chosen when none is given."""

    name: str
    color: str = Field(default_factory=random_tag_color)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        """Trim and validate the tag name."""
        return validate_name(v)

    @field_validator("color", mode="before")
    @classmethod
    def check_color(cls, v: str | None) -> str:
        """Validate the color, choosing one from the palette when missing."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return random_tag_color()
        return validate_color(v)


class TagUpdate(BaseModel):
    """Schema for a partial tag update (rename and/or recolor)."""

    name: str | None = None
    color: str | None = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str | None) -> str | None:
        """Trim and validate the tag name when provided."""
        return validate_name(v) if v is not None else None

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str | None) -> str | None:
        """Validate the color when provided."""
        return validate_color(v) if v is not None else None

    @model_validator(mode="after")
    def check_not_null(self) -> "TagUpdate":
        """Fields may be omitted but not cleared."""
        for name in ("name", "color"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        """Return only the fields explicitly provided."""
        return self.model_dump(exclude_unset=True)


class TagResponse(BaseModel):
    """Schema for a tag row."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    user_id: UUID
    name: str
    color: str
    created_at: datetime
    updated_at: datetime


class TagListResponse(BaseModel):
    """Schema for the tags list response."""

    tags: list[TagResponse]
