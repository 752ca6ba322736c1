"""Translation of domain errors into HTTP responses."""

from typing import NoReturn

from fastapi import HTTPException, status

from src.domain.entities.errors import (
    DemandDependencyError,
    DemandOperationError,
    DemandValidationError,
    PredictionNotFoundError,
)
from src.shared import get_logger

logger = get_logger(__name__)


def raise_http_error(exc: Exception, event: str, **context) -> NoReturn:
    """Raise the ``HTTPException`` matching a failure raised by a use case."""

    if isinstance(exc, DemandValidationError):
        logger.info(event, error=exc.message, details=exc.details, **context)
        detail = {"message": exc.message, **exc.details} if exc.details else str(exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=detail
        ) from exc
    if isinstance(exc, PredictionNotFoundError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
        ) from exc
    if isinstance(exc, DemandDependencyError):
        logger.error(event, error=exc.message, details=exc.details, **context)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message
        ) from exc
    if isinstance(exc, DemandOperationError):
        logger.error(event, error=exc.message, details=exc.details, **context)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message
        ) from exc

    logger.error(event, error=str(exc), exc_info=exc, **context)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    ) from exc
