"""Pydantic schemas for the categorization endpoint."""
from pydantic import BaseModel, ConfigDict, Field


class CategorizeRequest(BaseModel):
    """
    Request body for POST /api/bookmarks/categorize.

    Fields are optional at the schema level so the endpoint can answer missing
    url/title with its own 400 error instead of a 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    bookmark_id: str | None = Field(default=None, alias="bookmarkId")
    url: str | None = None
    title: str | None = None
    description: str | None = None


class CategorySuggestion(BaseModel):
    """Folder and tag names suggested by the categorization service."""

    model_config = ConfigDict(populate_by_name=True)

    folder_name: str = Field(alias="folderName")
    tags: list[str] = Field(default_factory=list)


class CategorizeResponse(BaseModel):
    """Response body wrapping the suggestions."""

    suggestions: CategorySuggestion
