"""
Secure Error Handling

Provides the API error type, the JSON error envelope, and exception handlers
that translate store-driver failures into client-safe responses without
leaking sensitive information.
"""

import logging
import os
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.shared.validation import format_validation_errors

logger = logging.getLogger(__name__)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


class ApiError(Exception):
    """An expected failure with an HTTP status and a client-facing message."""

    def __init__(self, message: str, status_code: int = 500, details: Optional[list[dict]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


def error_response(status_code: int, message: str, details: Optional[list[dict]] = None) -> JSONResponse:
    body = {"success": False, "error": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def log_and_sanitize_error(
    error: Exception,
    context: str,
    user_message: Optional[str] = None
) -> tuple[str, str]:
    """
    Log full error details server-side and return sanitized message for client.

    Args:
        error: The exception that occurred
        context: Description of what operation failed (e.g., "GET /api/posts")
        user_message: Optional custom message to show user. If None, uses generic message.

    Returns:
        Tuple of (sanitized_message, error_id) for client response
    """
    # Generate unique error ID for correlation
    error_id = str(uuid.uuid4())[:8]

    # Log full error server-side
    logger.error(
        f"{context} failed [{error_id}]: {type(error).__name__}: {str(error)}",
        exc_info=error
    )

    # Return sanitized message for client
    if user_message:
        sanitized = f"{user_message} (Error ID: {error_id})"
    else:
        sanitized = f"{context} failed. Please try again later. (Error ID: {error_id})"

    return sanitized, error_id


def duplicate_field(error: IntegrityError) -> Optional[str]:
    """Best-effort extraction of the offending column from a unique violation."""
    orig = str(getattr(error, "orig", error))
    # sqlite: "UNIQUE constraint failed: categories.name"
    if "UNIQUE constraint failed:" in orig:
        return orig.split("UNIQUE constraint failed:")[1].strip().split(",")[0].split(".")[-1]
    # postgres: 'Key (name)=(Tech) already exists.'
    if "Key (" in orig:
        return orig.split("Key (")[1].split(")")[0]
    return None


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc.status_code, exc.message, exc.details)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, "Validation failed", format_validation_errors(exc.errors()))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        return error_response(404, f"Route {request.url.path} not found")
    return error_response(exc.status_code, str(exc.detail))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    field = duplicate_field(exc)
    if field:
        return error_response(400, f"Duplicate {field} value. Please use another value!")
    return error_response(400, "Duplicate value. Please use another value!")


async def cast_error_handler(request: Request, exc: DataError) -> JSONResponse:
    logger.warning(f"Rejected malformed value on {request.method} {request.url.path}: {exc.orig}")
    return error_response(400, "Invalid input data")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    sanitized_msg, error_id = log_and_sanitize_error(
        exc,
        f"{request.method} {request.url.path}",
        "Something went wrong!"
    )
    if ENVIRONMENT == "development":
        return error_response(500, str(exc) or type(exc).__name__)
    return error_response(500, sanitized_msg)


def setup_error_handlers(app: FastAPI) -> None:
    """Register the JSON error envelope for every failure class."""
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(DataError, cast_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
