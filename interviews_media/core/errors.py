"""API error taxonomy and the exception handlers that render it.

JSON endpoints answer failures with ``{"success": false, "message": ...}``.
Unexpected exceptions are logged with their stack trace and surface as a
generic 500 message.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from interviews_media.core.logging import log_error

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"


class APIError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = GENERIC_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None, headers: Optional[dict] = None):
        self.message = message or self.default_message
        self.headers = headers or {}
        super().__init__(self.message)


class Unauthenticated(APIError):
    """No valid bearer token was presented."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class BadRequest(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class RangeNotSatisfiable(APIError):
    """Requested byte range lies outside the file."""

    status_code = 416
    default_message = "Requested range not satisfiable"

    def __init__(self, file_size: int, message: Optional[str] = None):
        self.file_size = file_size
        super().__init__(message, headers={"Content-Range": f"bytes */{file_size}"})


class InternalError(APIError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(message: str) -> dict:
    return {"success": False, "message": message}


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message),
        headers=exc.headers or None,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error(
        logger,
        "Unhandled exception",
        exception=exc,
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(GENERIC_ERROR_MESSAGE),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-producing handlers on the application."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
