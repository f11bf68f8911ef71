"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import (
    add_bookmark,
    auth,
    bookmark_tags,
    bookmarks,
    categorize,
    changes,
    folders,
    health,
    tags,
)
from core.change_feed import ChangeFeed, set_change_feed
from core.config import get_settings
from services.categorizer import CategorizationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    # Startup: one change feed per process
    change_feed = ChangeFeed()
    set_change_feed(change_feed)

    yield

    # Shutdown: end open change streams
    change_feed.close_all()
    set_change_feed(None)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # The add-bookmark page must not be embeddable
        response.headers["X-Frame-Options"] = "DENY"
        return response


app_settings = get_settings()

app = FastAPI(
    title="Smart Bookmarks API",
    description="Personal bookmarks with folders, tags, live sync and AI categorization.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(CategorizationError)
async def categorization_exception_handler(
    _request: Request, exc: CategorizationError,
) -> JSONResponse:
    """Answer categorizer failures with the generic categorize error body."""
    logger.error("Categorization failed: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to categorize bookmark"},
    )


# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(add_bookmark.router)
app.include_router(categorize.router)
app.include_router(bookmarks.router)
app.include_router(folders.router)
app.include_router(tags.router)
app.include_router(bookmark_tags.router)
app.include_router(changes.router)
