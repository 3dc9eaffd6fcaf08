"""HTTP mapping for application exceptions."""
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


def to_http_exception(error: Exception) -> HTTPException:
    """
    Convert an exception into an HTTPException.

    Exceptions that carry an ``http_status`` attribute keep their status and
    message; anything else becomes an opaque 500.
    """
    status_code = getattr(error, "http_status", None)
    if status_code is None:
        logger.error(f"Unhandled {type(error).__name__}: {error}", exc_info=error)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Internal server error", "type": type(error).__name__},
        )

    detail = {"message": getattr(error, "message", str(error)), "type": type(error).__name__}
    details = getattr(error, "details", None)
    if details:
        detail["details"] = details
    return HTTPException(status_code=status_code, detail=detail)
