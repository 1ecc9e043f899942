"""Global exception handlers for consistent error responses.

Every error leaves the API in the same envelope the metered endpoints use:
``{"success": false, "error": <message>, "code": <code>, "request_id": <id>}``.

Design:
- AppError subclasses → appropriate HTTP status (400, 401, 404, 502, 503)
- Request body/parameter validation → 400 "Invalid request"
- Unexpected Exception → generic 500 (safety net)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import (
    AppError,
    AuthenticationAppError,
    CredentialStoreError,
    LLMAppError,
    NotFoundAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (AuthenticationAppError, 401),
    (NotFoundAppError, 404),
    (LLMAppError, 502),
    (CredentialStoreError, 503),
)


def status_for(exc: AppError) -> int:
    """Return the HTTP status for a domain error (400 when unmapped)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _error_body(code: str, message: str, details: dict | None = None) -> dict:
    body = {
        "success": False,
        "error": message,
        "code": code,
        "request_id": get_request_id(),
    }
    if details:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with the standard envelope.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the mapped status code.
    """
    status_code = status_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, dict(exc.details) if exc.details else None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed bodies and parameters with 400 instead of FastAPI's 422."""
    logger.warning(
        "request_validation_failed",
        extra={"request_path": request.url.path, "error_count": len(exc.errors())},
    )
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content=_error_body("invalid_request", "Invalid request", {"context": {"fields": fields}}),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message;
    no stack traces reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=_error_body("internal_server_error", "An unexpected error occurred. Please try again later."),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(validation_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
