"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from schemas.validators import (
    hostname_of,
    validate_description_length,
    validate_http_url,
    validate_name,
    validate_title_length,
)


def _clean_description(value: str | None) -> str | None:
    """Blank descriptions are stored as NULL."""
    if value is None:
        return None
    value = value.strip()
    return validate_description_length(value) if value else None


def default_title_for(url: str) -> str:
    """Title used when none is given: the URL's hostname, else the URL itself."""
    return hostname_of(url) or url


class BookmarkCreate(BaseModel):
    """Schema for creating a new bookmark."""

    url: str
    title: str | None = None
    description: str | None = None
    folder_id: UUID | None = None
    tag_ids: list[UUID] = Field(
        default_factory=list,
        description="Tags to attach in the same transaction as the bookmark insert.",
    )

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        """Require an absolute http(s) URL."""
        return validate_http_url(v)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """Trim and validate title length."""
        if v is None:
            return None
        return validate_title_length(v.strip())

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str | None) -> str | None:
        """Validate description length."""
        return _clean_description(v)

    @field_validator("tag_ids")
    @classmethod
    def dedupe_tag_ids(cls, v: list[UUID]) -> list[UUID]:
        """Drop repeated tag ids, preserving first occurrence order."""
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def fill_title(self) -> "BookmarkCreate":
        """Fall back to the hostname when no title is given."""
        if not self.title:
            self.title = default_title_for(self.url)
        return self


class BookmarkUpdate(BaseModel):
    """
    Schema for a partial bookmark update.

    Only fields present in the request are applied. Send folder_id as null to
    move a bookmark out of its folder.
    """

    url: str | None = None
    title: str | None = None
    description: str | None = None
    folder_id: UUID | None = None

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str | None) -> str | None:
        """Require an absolute http(s) URL when provided."""
        return validate_http_url(v) if v is not None else None

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """Reject blank titles and validate length."""
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return validate_title_length(v)

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str | None) -> str | None:
        """Validate description length."""
        return _clean_description(v)

    @model_validator(mode="after")
    def check_required_not_null(self) -> "BookmarkUpdate":
        """url and title may be omitted but not cleared."""
        for name in ("url", "title"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        """Return only the fields explicitly provided."""
        return self.model_dump(exclude_unset=True)


class BookmarkResponse(BaseModel):
    """Schema for a bookmark row as returned by the API and the change feed."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    user_id: UUID
    url: str
    title: str
    description: str | None
    folder_id: UUID | None
    created_at: datetime
    updated_at: datetime


class BookmarkListResponse(BaseModel):
    """Schema for the bookmark list response."""

    items: list[BookmarkResponse]
    total: int


class BookmarkSuggestionApply(BaseModel):
    """Schema for applying confirmed categorization suggestions to a bookmark."""

    model_config = ConfigDict(populate_by_name=True)

    folder_name: str | None = Field(default=None, alias="folderName")
    tags: list[str] = Field(default_factory=list)

    @field_validator("folder_name")
    @classmethod
    def clean_folder_name(cls, v: str | None) -> str | None:
        """Blank folder names mean "leave the folder unchanged"."""
        if v is None:
            return None
        v = v.strip()
        return validate_name(v) if v else None

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        """Trim tag names, drop blanks and case-insensitive duplicates."""
        cleaned: list[str] = []
        seen: set[str] = set()
        for name in v:
            trimmed = name.strip()
            if trimmed and trimmed.casefold() not in seen:
                seen.add(trimmed.casefold())
                cleaned.append(validate_name(trimmed))
        return cleaned
