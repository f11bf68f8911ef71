"""AI categorization endpoint."""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.dependencies import get_current_user, get_settings
from core.config import Settings
from models.user import User
from schemas.categorize import CategorizeRequest, CategorizeResponse
from services.categorizer import CategorizationError, categorize_bookmark

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookmarks", tags=["categorize"])

MISSING_FIELDS_ERROR = "URL and title are required"
INTERNAL_ERROR = "Internal server error"


@router.post("/categorize", response_model=CategorizeResponse)
async def categorize(
    request: Request,
    current_user: User = Depends(get_current_user),  # noqa: ARG001
    settings: Settings = Depends(get_settings),
) -> CategorizeResponse | JSONResponse:
    """
    Suggest a folder name and tag names for a bookmark.

    Nothing is saved. Apply the suggestions explicitly through
    `POST /bookmarks/{id}/suggestions/apply`.

    Returns 400 `{"error": ...}` when url or title is missing or empty.
    Categorizer failures are answered with 500 by the application's
    CategorizationError handler.
    """
    try:
        body = CategorizeRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        logger.exception("Invalid categorize request body")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": INTERNAL_ERROR},
        )

    if not (body.url or "").strip() or not (body.title or "").strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": MISSING_FIELDS_ERROR},
        )

    try:
        suggestion = await categorize_bookmark(
            settings,
            url=body.url.strip(),
            title=body.title.strip(),
            description=body.description,
            bookmark_id=body.bookmark_id,
        )
    except CategorizationError:
        raise
    except Exception:
        logger.exception("Unexpected error while categorizing bookmark")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": INTERNAL_ERROR},
        )
    return CategorizeResponse(suggestions=suggestion)
