"""Error taxonomy and the FastAPI exception handlers that turn it into JSON.

Every error body has the shape ``{"message": str}``. Unexpected exceptions are
logged with their traceback and reported as a generic 500 so that no internal
detail reaches the client.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)


class TrackerError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"


class Unauthorized(TrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(TrackerError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(TrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InternalError(TrackerError):
    pass


def format_validation_errors(errors: Sequence[dict[str, Any]]) -> str:
    """Render pydantic's error list as one readable sentence."""
    parts = []
    for error in errors:
        if error.get("type") == "json_invalid":
            parts.append("Invalid JSON body")
            continue
        # drop the "body" prefix FastAPI puts on request-body locations
        loc = [str(item) for item in error.get("loc", ()) if item != "body"]
        msg = error.get("msg", "Invalid value")
        parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "Validation error: " + "; ".join(parts)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("Internal error", path=request.url.path, error=exc.message)
        return _error_response(exc.status_code, InternalError.default_message)
    return _error_response(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Imported here: dependencies pulls in storage, which imports this module
    from dependencies import SESSION_USER_KEY, requires_login

    # FastAPI parses the body before resolving dependencies; login still wins
    session = request.scope.get("session") or {}
    if requires_login(request.scope.get("route")) and session.get(SESSION_USER_KEY) is None:
        return _error_response(Unauthorized.status_code, Unauthorized.default_message)

    message = format_validation_errors(exc.errors())
    logger.info("Request validation failed", path=request.url.path, detail=message)
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = _error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, exc_type=type(exc).__name__)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, InternalError.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TrackerError, tracker_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
