"""
Error handling and sanitization

Every error leaves the API in the response envelope:

    {"success": false, "error": "<client-safe message>"}

- CourierError subclasses → their status_code and message
- HTTPException → its status and detail
- Request validation → 400 with "field: msg; ..." joined messages
- Anything unhandled → generic 500, full details logged only
"""
import logging
import math
import traceback
from typing import Union

from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.exceptions import CourierError, RateLimitExceededError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."

# Patterns that indicate internal/sensitive error information
SENSITIVE_PATTERNS = [
    "password",
    "secret",
    "token",
    "credential",
    "sqlalchemy",
    "asyncpg",
    "psycopg",
    "postgresql",
    "sqlite",
    "botocore",
    "traceback",
    "file \"",
    "/app/",
]


def is_sensitive_error(message: str) -> bool:
    """Check if error message contains sensitive information."""
    message_lower = message.lower()
    return any(pattern in message_lower for pattern in SENSITIVE_PATTERNS)


def sanitize_error_message(error: Union[str, Exception]) -> str:
    """
    Sanitize an error message for safe client exposure.

    In debug mode the message is returned unchanged.
    """
    message = error if isinstance(error, str) else str(error)

    if settings.DEBUG:
        return message

    if is_sensitive_error(message):
        return "An internal error occurred. Please try again later."

    if len(message) > 200:
        return message[:200] + "..."

    return message


def error_response(status_code: int, error: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


async def courier_error_handler(request: Request, exc: CourierError) -> JSONResponse:
    """Render domain errors; 5xx are logged with their details and sanitized."""
    if exc.status_code >= 500:
        logger.error(
            f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
            extra={"error": exc.to_dict()},
        )
        return error_response(exc.status_code, sanitize_error_message(exc.message))

    logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.message)


async def rate_limit_error_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    return error_response(
        429,
        exc.message,
        headers={
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(math.ceil(exc.reset_at)),
            "Retry-After": str(exc.retry_after),
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, detail, headers=getattr(exc, "headers", None))


def format_validation_errors(exc: RequestValidationError) -> str:
    """Flatten pydantic errors to "field: msg; field: msg"."""
    messages = []
    for error in exc.errors():
        # Drop the "body"/"query"/"path" location prefix
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location)
        message = error.get("msg", "Invalid value")
        messages.append(f"{field}: {message}" if field else message)
    return "; ".join(messages) or "Invalid request"


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, format_validation_errors(exc))


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Catch unhandled exceptions and sanitize error responses.

    - In production: Returns generic error, logs full details
    - In development: Returns the exception text for debugging
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            # Let FastAPI handle HTTPExceptions normally
            raise
        except Exception as e:
            error_id = f"{request.client.host if request.client else 'unknown'}-{id(e)}"
            logger.error(
                f"Unhandled exception [{error_id}]: {type(e).__name__}: {str(e)}\n"
                f"Path: {request.url.path}\n"
                f"Method: {request.method}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            if settings.DEBUG:
                return JSONResponse(
                    status_code=500,
                    content={
                        "success": False,
                        "error": str(e),
                        "type": type(e).__name__,
                        "errorId": error_id,
                    },
                )
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": GENERIC_ERROR_MESSAGE,
                    "errorId": error_id,
                },
            )


def register_exception_handlers(app) -> None:
    # Most specific first; Starlette walks the MRO so order is informational
    app.add_exception_handler(RateLimitExceededError, rate_limit_error_handler)
    app.add_exception_handler(CourierError, courier_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
