"""Tests for the categorization endpoint."""
import json
from collections.abc import Callable

import httpx
import pytest
import respx
from httpx import AsyncClient

from core.config import Settings

CATEGORIZER_URL = "https://categorizer.test/categorize"


@pytest.fixture
def categorizer_settings(override_settings: Callable[..., Settings]) -> Settings:
    return override_settings(categorizer_url=CATEGORIZER_URL)


async def test_categorize_requires_url_and_title(
    client: AsyncClient,
    categorizer_settings: Settings,  # noqa: ARG001
) -> None:
    """Missing or blank url/title returns 400 with an error body."""
    for body in (
        {"title": "Example"},
        {"url": "https://example.com"},
        {"url": "https://example.com", "title": "   "},
    ):
        response = await client.post("/api/bookmarks/categorize", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "URL and title are required"}


async def test_categorize_accepts_opaque_bookmark_id(
    client: AsyncClient,
    categorizer_settings: Settings,  # noqa: ARG001
) -> None:
    """A bookmarkId that is not a UUID is forwarded as-is, not rejected."""
    response = await client.post(
        "/api/bookmarks/categorize",
        json={"bookmarkId": "draft-1", "url": "", "title": ""},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "URL and title are required"}


@respx.mock
async def test_categorize_forwards_bookmark_id(
    client: AsyncClient,
    categorizer_settings: Settings,  # noqa: ARG001
) -> None:
    """The bookmarkId reaches the categorization service unchanged."""
    route = respx.post(CATEGORIZER_URL).mock(
        return_value=httpx.Response(200, json={"folderName": "Reading", "tags": []}),
    )

    response = await client.post(
        "/api/bookmarks/categorize",
        json={"bookmarkId": "draft-1", "url": "https://example.com", "title": "Example"},
    )

    assert response.status_code == 200
    assert json.loads(route.calls.last.request.content)["bookmark_id"] == "draft-1"


@respx.mock
async def test_categorize_returns_suggestions(
    client: AsyncClient,
    categorizer_settings: Settings,  # noqa: ARG001
) -> None:
    """Suggestions are passed through and nothing is saved."""
    respx.post(CATEGORIZER_URL).mock(
        return_value=httpx.Response(200, json={"folderName": "Cooking", "tags": ["recipes"]}),
    )

    response = await client.post(
        "/api/bookmarks/categorize",
        json={"url": "https://www.seriouseats.com", "title": "Serious Eats"},
    )

    assert response.status_code == 200
    assert response.json() == {"suggestions": {"folderName": "Cooking", "tags": ["recipes"]}}
    assert (await client.get("/folders/")).json()["folders"] == []
    assert (await client.get("/tags/")).json()["tags"] == []


@respx.mock
async def test_categorize_service_failure(
    client: AsyncClient,
    categorizer_settings: Settings,  # noqa: ARG001
) -> None:
    """Categorizer errors are answered with a generic 500."""
    respx.post(CATEGORIZER_URL).mock(return_value=httpx.Response(503))

    response = await client.post(
        "/api/bookmarks/categorize",
        json={"url": "https://example.com", "title": "Example"},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to categorize bookmark"}


async def test_categorize_not_configured(
    client: AsyncClient,
    override_settings: Callable[..., Settings],
) -> None:
    """Without a categorizer URL the endpoint fails with 500."""
    override_settings(categorizer_url="")
    response = await client.post(
        "/api/bookmarks/categorize",
        json={"url": "https://example.com", "title": "Example"},
    )
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to categorize bookmark"}


async def test_categorize_malformed_body(
    client: AsyncClient,
    categorizer_settings: Settings,  # noqa: ARG001
) -> None:
    """A body that is not JSON is an internal error, not a validation error."""
    response = await client.post(
        "/api/bookmarks/categorize",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
