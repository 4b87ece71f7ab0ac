"""Domain errors for bookings, milestones and tasks, and their HTTP rendering."""

import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ProgressError(Exception):
    """Base class for errors raised by the progress service."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.code, "message": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(ProgressError):
    """Referenced booking, milestone or task does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ValidationError(ProgressError):
    """Input outside the permitted values."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class AuthorizationError(ProgressError):
    """Caller is not a party to the booking and not an admin."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class AggregationError(ProgressError):
    """Recomputing derived progress failed; the whole mutation is rolled back."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "AGGREGATION_FAILED"


async def progress_error_handler(request: Request, exc: ProgressError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
