"""Translation of service-layer exceptions into HTTP errors."""
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, status

from services.exceptions import DuplicateNameError, EntityNotFoundError


@contextmanager
def service_errors() -> Iterator[None]:
    """
    Map domain exceptions raised inside the block to HTTP errors.

    EntityNotFoundError (including folder and tag lookups) becomes 404 and
    DuplicateNameError becomes 409.
    """
    try:
        yield
    except EntityNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except DuplicateNameError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e
