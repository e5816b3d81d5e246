"""Typed application errors and the global exception handlers.

Services raise the :class:`InkwellError` subclasses below. The handlers
registered by :func:`register_exception_handlers` turn those, framework HTTP
errors, validation failures and database errors into one JSON envelope::

    {"success": false,
     "error": {"code", "message", "statusCode", "timestamp", "path", "details"?}}
"""

from __future__ import annotations

import logging
import re
import traceback
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from inkwell.core.rate_limit import RATE_LIMIT_MESSAGE
from inkwell.core.settings import settings

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR_MESSAGE = "An error occurred while processing your request"

# PostgreSQL: 'Key (email)=(a@b.c) already exists.'  SQLite: 'UNIQUE constraint failed: users.email'
_PG_DUPLICATE = re.compile(r"Key \((?P<field>[^)]+)\)=\((?P<value>[^)]*)\)")
_SQLITE_DUPLICATE = re.compile(r"UNIQUE constraint failed: (?P<field>[\w.]+)")

ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    429: "TOO_MANY_REQUESTS",
    500: "INTERNAL_SERVER_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
}


class InkwellError(RuntimeError):
    """Base exception for failures reported to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class BadRequestError(InkwellError):
    """Raised when a request violates validation or a business rule."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(InkwellError):
    """Raised when credentials or tokens are missing or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(InkwellError):
    """Raised when the caller does not own the resource they are mutating."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(InkwellError):
    """Raised when a requested resource does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(InkwellError):
    """Raised when a unique value is already taken."""

    status_code = status.HTTP_409_CONFLICT


def error_code_for(status_code: int) -> str:
    """Return the machine-readable code for an HTTP status."""
    return ERROR_CODES.get(status_code, "UNKNOWN_ERROR")


def build_error_body(
    status_code: int,
    message: str,
    path: str,
    details: Any | None = None,
) -> dict[str, Any]:
    """Assemble the error envelope, scrubbing server errors in production."""
    if settings.is_production and status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        message = GENERIC_SERVER_ERROR_MESSAGE
        details = None

    error: dict[str, Any] = {
        "code": error_code_for(status_code),
        "message": message,
        "statusCode": status_code,
        "timestamp": datetime.now(UTC).isoformat(),
        "path": path,
    }
    if details is not None:
        error["details"] = jsonable_encoder(details)
    return {"success": False, "error": error}


def _request_context(request: Request) -> dict[str, Any]:
    body = getattr(request.state, "request_body", b"") or b""
    return {
        "method": request.method,
        "url": str(request.url),
        "body": body.decode("utf-8", errors="replace"),
        "user_id": getattr(request.state, "user_id", None),
    }


def _respond(
    request: Request,
    exc: Exception,
    status_code: int,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    context = _request_context(request)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "%s %s failed with %s: %s (user=%s body=%s)",
            context["method"],
            context["url"],
            status_code,
            message,
            context["user_id"],
            context["body"],
            exc_info=(type(exc), exc, exc.__traceback__),
        )
    else:
        logger.warning(
            "%s %s failed with %s: %s (user=%s body=%s)",
            context["method"],
            context["url"],
            status_code,
            message,
            context["user_id"],
            context["body"],
        )
    body = build_error_body(status_code, message, request.url.path, details)
    headers = getattr(exc, "headers", None)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def inkwell_error_handler(request: Request, exc: InkwellError) -> JSONResponse:
    return _respond(request, exc, exc.status_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, str):
        message, details = exc.detail, None
    else:
        message, details = "Request failed", exc.detail
    return _respond(request, exc, exc.status_code, message, details)


def duplicate_key_info(exc: IntegrityError) -> dict[str, str] | None:
    """Return the offending ``field`` (and ``value`` when the driver reports it)."""
    message = str(exc.orig)
    match = _PG_DUPLICATE.search(message)
    if match:
        return {"field": match["field"], "value": match["value"]}
    match = _SQLITE_DUPLICATE.search(message)
    if match:
        return {"field": match["field"].rsplit(".", 1)[-1]}
    return None


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _respond(request, exc, status.HTTP_400_BAD_REQUEST, "Validation failed", exc.errors())


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    return _respond(
        request, exc, status.HTTP_409_CONFLICT, "Duplicate key error", duplicate_key_info(exc)
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    # Plain function: SlowAPIMiddleware calls it without awaiting.
    return _respond(
        request,
        exc,
        status.HTTP_429_TOO_MANY_REQUESTS,
        RATE_LIMIT_MESSAGE,
        {"limit": exc.detail},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    details = None if settings.is_production else {"error": str(exc)}
    return _respond(
        request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error", details
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    details = {
        "name": type(exc).__name__,
        "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }
    return _respond(
        request,
        exc,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(exc) or "Internal server error",
        details,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the envelope-producing handlers to ``app``."""
    app.add_exception_handler(InkwellError, inkwell_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, database_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
