# =============================================================================
# errors.py - Error taxonomy and exception handlers
# =============================================================================
# Services raise AppError subclasses; the handlers registered in main.py turn
# them into the standard envelope:
#   {"success": false, "message": "...", "error": "..."}
# "error" carries raw detail and is only filled outside production.
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """
    Base class for errors that map to an HTTP response.

    Args:
        message: Human-readable message returned to the client.
        detail: Optional raw detail, exposed only outside production.
    """

    status_code = 500

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": False, "message": self.message}
        if self.detail and not settings.is_production:
            result["error"] = self.detail
        return result


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(AppError):
    """Referenced entity does not exist."""

    status_code = 404


class ConflictError(AppError):
    """State or uniqueness violation."""

    status_code = 409


class AuthError(AppError):
    """Missing, invalid or expired credentials."""

    status_code = 401


class ForbiddenError(AppError):
    """Authenticated but not permitted."""

    status_code = 403


class InternalError(AppError):
    """Unexpected failure, e.g. the datastore is unreachable."""

    status_code = 500


# =============================================================================
# Exception Handlers
# =============================================================================

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.detail})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # loc looks like ("body", "email") or ("query", "minAge")
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location)
    message = first.get("msg", "Invalid value")
    if first.get("type") == "extra_forbidden":
        message = "Unknown field"
    return f"{field}: {message}" if field else message


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Pydantic request validation failures are reported as 400 with the offending field."""
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": _describe_validation_error(exc)},
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=InternalError("Database error", detail=str(exc)).to_dict(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=InternalError("Internal server error", detail=str(exc)).to_dict(),
    )
