"""
Request authentication.

A request carries an Auth0 access token either as a bearer header (API
clients, the browser extension) or in the session cookie written by
``/auth/callback``. The token is verified against the tenant's JWKS and its
``sub`` claim is mapped to a local user row, created on first sight.
"""
import logging

import httpx
import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# JWKS url -> client; clients cache the key set themselves
_jwks_clients: dict[str, PyJWKClient] = {}

DEV_AUTH0_ID = "dev|local-development-user"
DEV_EMAIL = "dev@localhost"

# Checked in order; the first matching type picks the 401 detail
_TOKEN_ERRORS: tuple[tuple[type[jwt.PyJWTError], str], ...] = (
    (jwt.ExpiredSignatureError, "Token has expired"),
    (jwt.InvalidAudienceError, "Invalid audience"),
    (jwt.InvalidIssuerError, "Invalid issuer"),
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_jwks_client(settings: Settings) -> PyJWKClient:
    url = settings.auth0_jwks_url
    if url not in _jwks_clients:
        _jwks_clients[url] = PyJWKClient(url, cache_jwk_set=True, lifespan=3600)
    return _jwks_clients[url]


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Verify an RS256 access token and return its claims.

    Raises:
        HTTPException: 401 for any token problem, 503 when the signing keys
            cannot be fetched.
    """
    try:
        signing_key = get_jwks_client(settings).get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.auth0_audience,
            issuer=settings.auth0_issuer,
        )
    except jwt.PyJWTError as e:
        for error_type, detail in _TOKEN_ERRORS:
            if isinstance(e, error_type):
                raise _unauthorized(detail) from e
        logger.warning("Rejected access token: %s", e)
        raise _unauthorized("Invalid token") from e
    except httpx.HTTPError as e:
        logger.error("JWKS fetch from %s failed: %s", settings.auth0_jwks_url, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not validate credentials",
        ) from e


async def get_or_create_user(
    db: AsyncSession,
    auth0_id: str,
    email: str | None = None,
) -> User:
    """
    Map an identity-provider subject to a local user, creating it if needed.

    Two first requests from a new user can race on the unique ``auth0_id``;
    the loser rolls back and reads the winner's row. Only ``flush()`` is
    called; the request's unit of work commits. The email is refreshed when
    the provider reports a new one.
    """
    query = select(User).where(User.auth0_id == auth0_id)
    user = (await db.execute(query)).scalar_one_or_none()

    if user is None:
        user = User(auth0_id=auth0_id, email=email)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Nothing else has run in this session yet
            await db.rollback()
            user = (await db.execute(query)).scalar_one()

    if email and user.email != email:
        user.email = email
        await db.flush()

    return user


async def get_or_create_dev_user(db: AsyncSession) -> User:
    return await get_or_create_user(db, auth0_id=DEV_AUTH0_ID, email=DEV_EMAIL)


def extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
    settings: Settings,
) -> str | None:
    """Bearer header first, then the session cookie."""
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """Resolve the signed-in user, or the local user when DEV_MODE is on."""
    if settings.dev_mode:
        return await get_or_create_dev_user(db)

    token = extract_token(request, credentials, settings)
    if not token:
        raise _unauthorized("Not authenticated")

    claims = decode_jwt(token, settings)
    auth0_id = claims.get("sub")
    if not auth0_id:
        raise _unauthorized("Invalid token: missing sub claim")

    return await get_or_create_user(db, auth0_id=auth0_id, email=claims.get("email"))
