"""OAuth sign-in endpoints (login redirect, code callback, logout)."""
import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from api.dependencies import get_settings
from core.config import Settings
from core.oauth import (
    OAuthExchangeError,
    build_authorize_url,
    build_callback_url,
    exchange_code_for_session,
    get_safe_return_to,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def app_redirect(settings: Settings, path: str) -> RedirectResponse:
    """Redirect to a path on the web app origin."""
    return RedirectResponse(
        url=f"{settings.app_url.rstrip('/')}{path}",
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get("/login")
async def login(
    return_to: str | None = Query(default=None, alias="returnTo"),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Send the browser to the identity provider's Google sign-in."""
    safe_return_to = get_safe_return_to(return_to)
    if not settings.oauth_configured:
        logger.warning("OAuth login requested but the identity provider is not configured")
        return app_redirect(settings, "/")
    return RedirectResponse(
        url=build_authorize_url(settings, safe_return_to),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get("/callback")
async def callback(
    code: str | None = None,
    return_to: str | None = Query(default=None, alias="returnTo"),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """
    Complete sign-in and continue to the requested page.

    The browser always lands on a safe same-origin path. Exchange failures
    are logged and leave the user signed out.
    """
    response = app_redirect(settings, get_safe_return_to(return_to))

    if not code:
        logger.warning("OAuth callback without an authorization code")
        return response
    if not settings.oauth_configured:
        logger.warning("OAuth callback received but the identity provider is not configured")
        return response

    redirect_uri = build_callback_url(settings.app_url, return_to)
    try:
        session = await exchange_code_for_session(settings, code, redirect_uri)
    except OAuthExchangeError:
        logger.exception("OAuth code exchange failed")
        return response

    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.access_token,
        max_age=session.expires_in,
        httponly=True,
        secure=settings.app_url.startswith("https://"),
        samesite="lax",
    )
    return response


@router.post("/logout")
async def logout(settings: Settings = Depends(get_settings)) -> RedirectResponse:
    """Clear the session cookie."""
    response = app_redirect(settings, "/")
    response.delete_cookie(key=settings.session_cookie_name)
    return response
