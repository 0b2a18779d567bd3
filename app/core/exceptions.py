# app/core/exceptions.py
"""
Exception hierarchy for the marketplace service.

crud and service functions raise these; the handlers registered in
app.main turn them into structured JSON error responses.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, OperationalError, IntegrityError

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "MARKETPLACE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"{resource} {resource_id} not found",
            details={"resource": resource, "id": resource_id},
        )


class PermissionDeniedError(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "PERMISSION_DENIED"


class DomainValidationError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"


class InvalidTransitionError(MarketplaceError):
    """A status change that the state machine does not allow."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "INVALID_TRANSITION"

    def __init__(self, entity: str, old_status: str, new_status: str):
        super().__init__(
            f"{entity} cannot move from '{old_status}' to '{new_status}'",
            details={"from": old_status, "to": new_status},
        )


class NegotiationConflictError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "NEGOTIATION_CONFLICT"


class DuplicateError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "DUPLICATE"


class InsufficientPointsError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INSUFFICIENT_POINTS"

    def __init__(self, user_id: str, amount: int):
        super().__init__(
            f"Not enough loyalty points to spend {amount}",
            details={"user_id": user_id, "amount": amount},
        )


class ExternalServiceError(MarketplaceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, message: str, service: str, upstream_status: Optional[int] = None):
        details = {"service": service}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(message, details=details)


class ServiceUnavailableError(ExternalServiceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "SERVICE_UNAVAILABLE"


class UpstreamRateLimitError(ExternalServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "UPSTREAM_RATE_LIMITED"


def _error_body(request: Request, code: str, message: str, details: dict) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
            **details,
        }
    }


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "%s %s -> %s %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.error_code,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.error_code, exc.message, exc.details),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    if isinstance(exc, OperationalError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        message = "Database connection failed. Please try again."
    elif isinstance(exc, IntegrityError):
        status_code = status.HTTP_409_CONFLICT
        message = "Database constraint violation. Check your input data."
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        message = "Database operation failed. Please try again."

    logger.error(
        "Database error on %s %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status_code,
        content=_error_body(request, "DATABASE_ERROR", message, {"type": type(exc).__name__}),
    )
