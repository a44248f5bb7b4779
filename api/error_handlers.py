"""Global exception handlers for FastAPI.

Every error leaves the API as {"message": ..., "errorCode": ...}. Request
validation failures add an "errors" list. Internal server errors are
logged with their traceback and reach the client only as a generic 500.
"""

import logging
import traceback
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.exceptions import TeamSyncException

logger = logging.getLogger(__name__)

# Error codes for HTTPExceptions raised by FastAPI itself or by dependencies
STATUS_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_FAILED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_ERROR",
}


def create_error_response(
    error_code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
    errors: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    """Build the error body shared by every handler."""
    body: dict[str, Any] = {"message": message, "errorCode": error_code}
    if details:
        body["details"] = details
    if errors is not None:
        body["errors"] = errors
    return body


async def teamsync_exception_handler(
    request: Request, exc: TeamSyncException
) -> JSONResponse:
    """Handle TeamSyncException and subclasses."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "API error: %s (code=%s, status=%d, path=%s)",
        exc.message,
        exc.error_code,
        exc.status_code,
        request.url.path,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
        ),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors as 400 VALIDATION_ERROR."""
    errors = []
    for error in exc.errors():
        # Drop the "body"/"path" prefix so the field reads like the payload key
        loc = [str(part) for part in error.get("loc", [])]
        if loc and loc[0] in ("body", "path", "query"):
            loc = loc[1:]
        errors.append(
            {
                "field": ".".join(loc),
                "message": error.get("msg", "Invalid value"),
            }
        )

    logger.info(
        "Validation error: %d field errors (path=%s)",
        len(errors),
        request.url.path,
    )

    return JSONResponse(
        status_code=400,
        content=create_error_response(
            error_code="VALIDATION_ERROR",
            message="Validation failed",
            errors=errors,
        ),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Map HTTPExceptions onto the standard body."""
    error_code = STATUS_ERROR_CODES.get(exc.status_code, "ERROR")
    message = str(exc.detail) if exc.detail else "An error occurred"

    logger.info(
        "HTTP error %d: %s (path=%s)",
        exc.status_code,
        message,
        request.url.path,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(error_code=error_code, message=message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions.

    Logs the full traceback but never exposes internal details.
    """
    logger.error(
        "Unhandled exception: %s (path=%s)\n%s",
        str(exc),
        request.url.path,
        traceback.format_exc(),
    )

    return JSONResponse(
        status_code=500,
        content=create_error_response(
            error_code="INTERNAL_ERROR",
            message="Internal Server Error",
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI app."""
    app.add_exception_handler(TeamSyncException, teamsync_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
