"""Client for the external AI categorization service."""
import logging

import httpx
from pydantic import ValidationError

from core.config import Settings
from schemas.categorize import CategorySuggestion

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; Bookmarks/1.0)"


class CategorizationError(Exception):
    """Raised when the categorization service is unavailable or returns garbage."""

    pass


async def categorize_bookmark(
    settings: Settings,
    url: str,
    title: str,
    description: str | None = None,
    bookmark_id: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> CategorySuggestion:
    """
    Ask the categorization service for a folder name and tag names.

    Suggestions are advisory only; nothing is written to the store here.

    Args:
        settings: Application settings with the service URL and API key.
        url: Bookmark URL.
        title: Bookmark title.
        description: Optional bookmark description.
        bookmark_id: Optional opaque bookmark id, forwarded unchanged.
        client: Optional HTTP client (a new one is created per call otherwise).

    Returns:
        The parsed suggestion.

    Raises:
        CategorizationError: If the service is not configured, the request
            fails, or the response cannot be parsed.
    """
    if not settings.categorizer_configured:
        raise CategorizationError("Categorization service is not configured")

    headers = {"User-Agent": USER_AGENT}
    if settings.categorizer_api_key:
        headers["Authorization"] = f"Bearer {settings.categorizer_api_key}"
    payload = {
        "bookmark_id": bookmark_id,
        "url": url,
        "title": title,
        "description": description,
    }

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.categorizer_timeout) as owned:
                response = await owned.post(settings.categorizer_url, json=payload, headers=headers)
        else:
            response = await client.post(settings.categorizer_url, json=payload, headers=headers)
        response.raise_for_status()
        return CategorySuggestion.model_validate(response.json())
    except httpx.HTTPError as e:
        logger.warning("Categorization request failed: %s", e)
        raise CategorizationError(f"Categorization request failed: {e}") from e
    except (ValueError, ValidationError) as e:
        # ValueError covers invalid JSON bodies
        logger.warning("Categorization service returned an invalid payload: %s", e)
        raise CategorizationError("Categorization service returned an invalid payload") from e
