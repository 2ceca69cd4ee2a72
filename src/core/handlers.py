"""
Exception handlers for FastAPI application.

Every failure, whatever its type, is classified by core.errors and rendered
as the same JSON error envelope:

    {success, message, statusCode, errorCode, path, method, timestamp,
     requestId, additionalData?, stack?}
"""

import logging
import traceback
from datetime import UTC, datetime
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import JWTError
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import Settings, get_settings
from core.errors import GENERIC_MESSAGE, ProcessedError, process_error
from core.exceptions import AppException, RecordValidationError
from core.logging import request_id_ctx

logger = logging.getLogger(__name__)


def _settings_for(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request_id_ctx.get()


def log_error(
    processed: ProcessedError,
    exc: BaseException,
    request: Request,
    settings: Settings,
) -> None:
    """
    Log a handled failure.

    Outside production: operational -> warning, programming -> error with
    traceback. In production: operational -> info, programming -> error
    without traceback.
    """
    message = (
        f"{processed.error_code} ({processed.status_code}) "
        f"{request.method} {request.url.path}: {processed.message} "
        f"(request_id={_request_id(request)}, "
        f"user_agent={request.headers.get('User-Agent', 'unknown')})"
    )

    if processed.is_operational:
        if settings.is_production:
            logger.info(message)
        else:
            logger.warning(message)
        return

    logger.error(
        f"Unhandled error: {message}",
        exc_info=None if settings.is_production else exc,
    )


def build_error_body(
    processed: ProcessedError,
    exc: BaseException,
    request: Request,
    settings: Settings,
) -> dict[str, Any]:
    """
    Build the error envelope for a processed failure.

    In production a non-operational failure is reduced to a generic
    message and code, and the stack is never included.
    """
    message = processed.message
    error_code = processed.error_code
    additional_data = processed.additional_data

    if settings.is_production and not processed.is_operational:
        message = GENERIC_MESSAGE
        error_code = "INTERNAL_ERROR"
        additional_data = None

    body: dict[str, Any] = {
        "success": False,
        "message": message,
        "statusCode": processed.status_code,
        "errorCode": error_code,
        "path": request.url.path,
        "method": request.method,
        "timestamp": datetime.now(UTC).isoformat(),
        "requestId": _request_id(request),
    }
    if additional_data:
        body["additionalData"] = additional_data
    if not settings.is_production:
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return body


async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle any exception raised while serving a request.

    Registered for every exception family the application can produce,
    including the bare Exception fallback.
    """
    settings = _settings_for(request)
    processed = process_error(exc)
    log_error(processed, exc, request, settings)

    headers = None
    if processed.status_code == 429:
        headers = {"Retry-After": "60"}

    return JSONResponse(
        status_code=processed.status_code,
        content=build_error_body(processed, exc, request, settings),
        headers=headers,
    )


# Specific classes are registered one by one so Starlette's
# ExceptionMiddleware answers them; only the Exception fallback goes through
# ServerErrorMiddleware, which re-raises after responding.
HANDLED_EXCEPTIONS: tuple[type[BaseException], ...] = (
    AppException,
    RecordValidationError,
    RequestValidationError,
    ValidationError,
    StarletteHTTPException,
    RateLimitExceeded,
    SQLAlchemyError,
    JWTError,
    httpx.HTTPError,
    httpx.InvalidURL,
    Exception,
)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the error handler on the application.

    Args:
        app: FastAPI application
    """
    for exc_class in HANDLED_EXCEPTIONS:
        app.add_exception_handler(exc_class, handle_exception)
