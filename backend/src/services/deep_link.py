"""
Add-bookmark deep links.

The browser extension reads the active tab, builds a link to the app's
/bookmark/add page and opens it in a new tab. The app reads the same query
parameters back and, when the request came from the extension popup, closes
the tab after a successful save.
"""
from urllib.parse import quote, urlencode, urlparse

from pydantic import BaseModel

from schemas.bookmark import default_title_for

ADD_BOOKMARK_PATH = "/bookmark/add"
EXTENSION_SOURCE = "extension-popup"
MANUAL_SOURCE = "manual"


class UnsupportedPageError(ValueError):
    """Raised when the active tab cannot be bookmarked (no URL or non-http scheme)."""

    pass


def is_bookmarkable(url: str | None) -> bool:
    """Check that a URL parses and uses the http or https scheme."""
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def build_add_bookmark_link(app_url: str, tab_url: str | None, tab_title: str | None) -> str:
    """
    Build the deep link the extension opens for the active tab.

    Args:
        app_url: Origin of the web app (configured, not hard-coded).
        tab_url: URL of the active tab.
        tab_title: Title of the active tab (may be empty).

    Returns:
        The absolute add-bookmark URL with url, title and source encoded.

    Raises:
        UnsupportedPageError: If the tab has no URL or is not http(s).
    """
    if not tab_url:
        raise UnsupportedPageError("No active tab found")
    if not is_bookmarkable(tab_url):
        raise UnsupportedPageError("This page cannot be bookmarked")

    query = urlencode(
        {"url": tab_url, "title": tab_title or "", "source": EXTENSION_SOURCE},
        quote_via=quote,
    )
    return f"{app_url.rstrip('/')}{ADD_BOOKMARK_PATH}?{query}"


class AddBookmarkPrefill(BaseModel):
    """Form values derived from the deep link query string."""

    url: str
    title: str
    source: str
    from_extension: bool


def prefill_from_query(url: str | None, title: str | None, source: str | None) -> AddBookmarkPrefill:
    """Turn deep-link query parameters into form values."""
    url = (url or "").strip()
    title = (title or "").strip()
    if not title and url:
        title = default_title_for(url) if is_bookmarkable(url) else ""
    source = source or MANUAL_SOURCE
    return AddBookmarkPrefill(
        url=url,
        title=title,
        source=source,
        from_extension=source == EXTENSION_SOURCE,
    )


def should_close_window(source: str | None, saved: bool) -> bool:
    """The tab closes itself only after a successful save started from the extension."""
    return saved and source == EXTENSION_SOURCE
