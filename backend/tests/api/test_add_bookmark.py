"""Tests for the add-bookmark deep link target."""
from httpx import AsyncClient

from services.deep_link import EXTENSION_SOURCE, build_add_bookmark_link


async def test_add_bookmark_form_prefill(client: AsyncClient) -> None:
    """The form is prefilled from the extension's deep link."""
    link = build_add_bookmark_link("http://test", "https://example.com/article", "")

    response = await client.get(link)

    assert response.status_code == 200
    assert response.json() == {
        "url": "https://example.com/article",
        "title": "example.com",
        "source": EXTENSION_SOURCE,
        "from_extension": True,
    }


async def test_add_bookmark_from_extension_closes_window(client: AsyncClient) -> None:
    """A successful save that came from the extension asks the tab to close."""
    link = build_add_bookmark_link("http://test", "https://example.com/a", "An Article")

    response = await client.post(link)

    assert response.status_code == 200
    data = response.json()
    assert data["saved"] is True
    assert data["close_window"] is True
    assert data["bookmark"]["title"] == "An Article"
    assert (await client.get("/bookmarks/")).json()["total"] == 1


async def test_add_bookmark_manual_keeps_window(client: AsyncClient) -> None:
    """Manual saves never close the window."""
    response = await client.post(
        "/bookmark/add",
        params={"url": "https://example.com/a", "title": "Manual"},
        json={"description": "notes", "tag_ids": []},
    )

    data = response.json()
    assert data["saved"] is True
    assert data["close_window"] is False
    assert data["bookmark"]["description"] == "notes"


async def test_add_bookmark_invalid_url_reports_error(client: AsyncClient) -> None:
    """An invalid URL keeps the form open with an error."""
    response = await client.post(
        "/bookmark/add", params={"url": "chrome://settings", "source": EXTENSION_SOURCE},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["saved"] is False
    assert data["close_window"] is False
    assert data["error"]
    assert (await client.get("/bookmarks/")).json()["total"] == 0


async def test_add_bookmark_unknown_folder_reports_error(client: AsyncClient) -> None:
    """Test that an unknown folder is reported instead of saving."""
    response = await client.post(
        "/bookmark/add",
        params={"url": "https://example.com", "source": EXTENSION_SOURCE},
        json={"folder_id": "00000000-0000-0000-0000-000000000000"},
    )

    data = response.json()
    assert data["saved"] is False
    assert "Folder" in data["error"]
