"""Translation of domain errors into HTTP responses."""
import logging

from fastapi import HTTPException

from tableside.core.errors import (
    InvalidTransitionError,
    NotFoundError,
    OrderConflictError,
    OrderingError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def http_error(area: str, error: Exception) -> HTTPException:
    """Map an exception raised by a service to the HTTPException to raise."""
    if isinstance(error, ValidationError):
        logger.info(f"[{area}] Rejected: {error}")
        return HTTPException(status_code=422, detail={"message": str(error), "errors": error.errors})
    if isinstance(error, NotFoundError):
        logger.info(f"[{area}] Not found: {error}")
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (InvalidTransitionError, OrderConflictError)):
        logger.info(f"[{area}] Conflict: {error}")
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, StorageError):
        logger.warning(f"[{area}] Storage unavailable: {error}")
        return HTTPException(status_code=503, detail=str(error))
    if isinstance(error, OrderingError):
        logger.warning(f"[{area}] {error}")
        return HTTPException(status_code=400, detail=str(error))
    logger.error(f"[{area}] Error - {type(error).__name__}: {str(error)}", exc_info=error)
    return HTTPException(status_code=500, detail=f"Internal error: {str(error)}")
