"""
OAuth sign-in helpers.

The identity provider owns the OAuth flow. This module only builds the
authorize URL, exchanges the callback code for tokens, and guards the
``returnTo`` continuation path against open redirects and callback loops.
"""
import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from core.config import Settings

logger = logging.getLogger(__name__)

AUTH_CALLBACK_PATH = "/auth/callback"
DEFAULT_RETURN_TO = "/"


class OAuthExchangeError(Exception):
    """Raised when the provider rejects or fails the code exchange."""

    pass


@dataclass
class OAuthSession:
    """Tokens returned by the provider for a completed sign-in."""

    access_token: str
    expires_in: int | None = None
    id_token: str | None = None
    refresh_token: str | None = None


def get_safe_return_to(return_to: str | None) -> str:
    """
    Validate a continuation path, failing closed to the root path.

    Only same-origin relative paths are accepted. Protocol-relative values
    ("//evil.example") and paths pointing back at the callback route are
    rejected.
    """
    if not return_to or not return_to.startswith("/"):
        return DEFAULT_RETURN_TO
    if return_to.startswith("//") or return_to.startswith("/\\"):
        return DEFAULT_RETURN_TO
    if return_to.startswith(AUTH_CALLBACK_PATH):
        return DEFAULT_RETURN_TO
    return return_to


def build_callback_url(app_url: str, return_to: str | None = None) -> str:
    """Build the callback URL, carrying returnTo unless it is the callback itself."""
    callback = f"{app_url.rstrip('/')}{AUTH_CALLBACK_PATH}"
    if return_to and return_to != AUTH_CALLBACK_PATH:
        callback = f"{callback}?{urlencode({'returnTo': return_to})}"
    return callback


def build_authorize_url(settings: Settings, return_to: str | None = None) -> str:
    """Build the provider authorize URL for the configured social connection."""
    params = {
        "response_type": "code",
        "client_id": settings.auth0_client_id,
        "redirect_uri": build_callback_url(settings.app_url, return_to),
        "scope": "openid profile email",
        "connection": settings.auth0_connection,
    }
    if settings.auth0_audience:
        params["audience"] = settings.auth0_audience
    return f"{settings.auth0_authorize_url}?{urlencode(params)}"


async def exchange_code_for_session(
    settings: Settings,
    code: str,
    redirect_uri: str,
    client: httpx.AsyncClient | None = None,
) -> OAuthSession:
    """
    Exchange an authorization code for provider tokens.

    Raises:
        OAuthExchangeError: If the provider is unreachable or rejects the code.
    """
    payload = {
        "grant_type": "authorization_code",
        "client_id": settings.auth0_client_id,
        "client_secret": settings.auth0_client_secret,
        "code": code,
        "redirect_uri": redirect_uri,
    }
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=10.0) as owned:
                response = await owned.post(settings.auth0_token_url, data=payload)
        else:
            response = await client.post(settings.auth0_token_url, data=payload)
        response.raise_for_status()
        body = response.json()
    except httpx.HTTPError as e:
        raise OAuthExchangeError(f"Code exchange failed: {e}") from e
    except ValueError as e:
        raise OAuthExchangeError("Code exchange returned an invalid body") from e

    access_token = body.get("access_token")
    if not access_token:
        raise OAuthExchangeError("Code exchange response has no access_token")
    return OAuthSession(
        access_token=access_token,
        expires_in=body.get("expires_in"),
        id_token=body.get("id_token"),
        refresh_token=body.get("refresh_token"),
    )
