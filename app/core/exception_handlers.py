"""Global exception handlers for consistent error responses.

Every error leaves the service as::

    {"error": {"code": ..., "message": ..., "request_id": ..., "details": ...}}

Design:
- AppError subclasses → 400 / 403 / 404 / 429 depending on type
- StoreAppError → 400 with a generic message; driver detail is logged only
- Request body validation → 400
- Routing misses (unknown path, wrong method) → 404 / 405 in the same envelope
- Unexpected Exception → generic 500 (safety net)
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import (
    AppError,
    AuthorizationAppError,
    NotFoundAppError,
    RateLimitExceededAppError,
    StoreAppError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Checked in order; first match wins. Anything else is a client error.
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (AuthorizationAppError, 403),
    (NotFoundAppError, 404),
    (RateLimitExceededAppError, 429),
    (StoreAppError, 400),
    (ValidationAppError, 400),
)


def status_code_for(exc: AppError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def build_error_response(
    exc: AppError,
    status_code: int | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render an AppError with the service-wide error envelope.

    Details are included only for non-store errors; store error details name
    internal operations and stay in the logs.
    """

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details and not isinstance(exc, StoreAppError):
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code or status_code_for(exc),
        content={"error": error_content},
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors.

    Logging policy:
    - StoreAppError: error level, with the chained driver exception
    - NotFoundAppError: not logged (a normal outcome)
    - everything else: warning level, without details

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_code_for(exc)

    if isinstance(exc, StoreAppError):
        cause = exc.__cause__
        logger.error(
            "store_error",
            extra={
                "error_code": exc.code,
                "operation": (exc.details or {}).get("operation"),
                "cause_type": type(cause).__name__ if cause else None,
                "cause_msg": str(cause) if cause else None,
                "request_path": request.url.path,
                "request_method": request.method,
                "status_code": status_code,
            },
            exc_info=(type(cause), cause, cause.__traceback__) if cause else None,
        )
    elif not isinstance(exc, NotFoundAppError):
        logger.warning(
            "app_error_handled",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "status_code": status_code,
                "request_path": request.url.path,
            },
        )

    return build_error_response(exc, status_code)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies/params as 400 instead of FastAPI's 422."""

    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    logger.warning(
        "request_validation_failed",
        extra={"request_path": request.url.path, "error_count": len(errors)},
    )
    return build_error_response(
        ValidationAppError(
            code="invalid_request",
            message="Request body or parameters are malformed",
            details={"errors": errors},
        ),
        400,
    )


_HTTP_ERROR_CODES = {
    404: ("not_found", "No route matches this path"),
    405: ("method_not_allowed", "Method not allowed for this path"),
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap routing errors (404/405 and friends) in the service error envelope."""

    code, message = _HTTP_ERROR_CODES.get(exc.status_code, ("http_error", str(exc.detail)))
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "request_id": get_request_id(),
            }
        },
        headers=getattr(exc, "headers", None),
    )


def _request_id_for(request: Request) -> str | None:
    # Runs outside the request id middleware, after the context var is cleared
    request_id = getattr(request.state, "request_id", None)
    return request_id if isinstance(request_id, str) else get_request_id()


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    No stack traces or exception text reach the client.
    """
    request_id = _request_id_for(request)
    logger.error(
        "unhandled_exception",
        extra={
            "request_id": request_id,
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
        exc_info=(type(exc), exc, exc.__traceback__),
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": request_id,
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
