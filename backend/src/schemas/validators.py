"""
Shared validation functions for Pydantic schemas.

This module contains validators used across the bookmark, folder and tag schemas.
"""
import re
from urllib.parse import urlparse

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from core.config import get_settings

# Tag colors are stored as #RRGGBB hex strings
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

_http_url_adapter = TypeAdapter(HttpUrl)


def validate_http_url(url: str) -> str:
    """
    Validate that a URL is an absolute http or https address.

    The URL is returned trimmed but otherwise as entered. HttpUrl is only used
    for validation because it normalizes root URLs with a trailing slash.

    Raises:
        ValueError: If the URL is empty, relative, uses another scheme, or is too long.
    """
    settings = get_settings()
    value = url.strip()
    if not value:
        raise ValueError("URL is required")
    if len(value) > settings.max_url_length:
        raise ValueError(
            f"URL exceeds maximum length of {settings.max_url_length:,} characters.",
        )
    try:
        _http_url_adapter.validate_python(value)
    except PydanticValidationError as e:
        raise ValueError(f"Invalid URL: '{value}'. Use an absolute http(s) address.") from e
    return value


def hostname_of(url: str) -> str | None:
    """Extract the hostname from a URL, or None if it has none."""
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def validate_name(name: str) -> str:
    """
    Trim and validate a folder or tag name.

    Raises:
        ValueError: If the name is empty or too long.
    """
    settings = get_settings()
    normalized = name.strip()
    if not normalized:
        raise ValueError("Name cannot be empty")
    if len(normalized) > settings.max_name_length:
        raise ValueError(
            f"Name exceeds maximum length of {settings.max_name_length:,} characters.",
        )
    return normalized


def validate_color(color: str) -> str:
    """Validate a #RRGGBB color and return it upper-cased."""
    value = color.strip()
    if not COLOR_PATTERN.match(value):
        raise ValueError(f"Invalid color: '{value}'. Use a hex color such as '#4ECDC4'.")
    return value.upper()


def validate_title_length(title: str | None) -> str | None:
    """Validate that title doesn't exceed maximum length."""
    settings = get_settings()
    if title is not None and len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


def validate_description_length(description: str | None) -> str | None:
    """Validate that description doesn't exceed maximum length."""
    settings = get_settings()
    if description is not None and len(description) > settings.max_description_length:
        max_len = settings.max_description_length
        raise ValueError(
            f"Description exceeds maximum length of {max_len:,} characters "
            f"(got {len(description):,} characters).",
        )
    return description
