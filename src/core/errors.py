"""
Error classification.

Turns any caught failure into a ProcessedError record that the exception
handler renders as the JSON error envelope.

Classification is a closed set of ErrorKind values matched on exception
class, tried in priority order:

    application -> record validation -> cast -> duplicate key -> strict schema
    -> database connection -> token -> malformed JSON -> schema validation
    -> rate limit -> framework HTTP -> upstream HTTP -> generic -> unknown
"""

import enum
import re
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable

import httpx
from fastapi.exceptions import RequestValidationError
from jose import ExpiredSignatureError, JWTError
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import (
    DataError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    StatementError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import AppException, RecordValidationError

GENERIC_MESSAGE = "Something went wrong!"

# Leading loc entries FastAPI adds to request validation errors
REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}

# "Key (email)=(a@b.com) already exists." (PostgreSQL)
PG_DUPLICATE_PATTERN = re.compile(r"Key \((?P<field>[^)]+)\)=\((?P<value>[^)]*)\)")
# "UNIQUE constraint failed: users.email" (SQLite)
SQLITE_DUPLICATE_PATTERN = re.compile(r"UNIQUE constraint failed: (?:\w+\.)?(?P<field>\w+)")


class ErrorKind(str, enum.Enum):
    """Every failure shape the classifier knows about."""

    APPLICATION = "application"
    RECORD_VALIDATION = "record_validation"
    RECORD_CAST = "record_cast"
    DUPLICATE_KEY = "duplicate_key"
    STRICT_SCHEMA = "strict_schema"
    DB_CONNECTION = "db_connection"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    MALFORMED_JSON = "malformed_json"
    SCHEMA_VALIDATION = "schema_validation"
    RATE_LIMIT = "rate_limit"
    HTTP = "http"
    UPSTREAM_HTTP = "upstream_http"
    GENERIC = "generic"
    UNKNOWN = "unknown"


@dataclass
class ProcessedError:
    """Normalized failure, ready to be rendered."""

    status_code: int = 500
    message: str = GENERIC_MESSAGE
    error_code: str = "INTERNAL_ERROR"
    additional_data: dict[str, Any] | None = field(default=None)
    is_operational: bool = False


# =============================================================================
# Identification
# =============================================================================


def _validation_errors(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, (RequestValidationError, ValidationError)):
        return list(value.errors())
    return []


def _is_unique_violation(exc: IntegrityError) -> bool:
    text = str(exc.orig).lower()
    return "unique" in text or "duplicate key" in text


def identify_error(value: Any) -> ErrorKind:
    """
    Classify a caught value.

    Args:
        value: Anything raised (usually an Exception)

    Returns:
        The matching ErrorKind; UNKNOWN for values that are not Exceptions
    """
    if isinstance(value, AppException):
        return ErrorKind.APPLICATION
    if isinstance(value, RecordValidationError):
        return ErrorKind.RECORD_VALIDATION
    if isinstance(value, DataError):
        return ErrorKind.RECORD_CAST
    if isinstance(value, StatementError) and isinstance(
        value.orig, (ValueError, TypeError)
    ):
        return ErrorKind.RECORD_CAST
    if isinstance(value, IntegrityError) and _is_unique_violation(value):
        return ErrorKind.DUPLICATE_KEY

    errors = _validation_errors(value)
    if errors and all(e.get("type") == "extra_forbidden" for e in errors):
        return ErrorKind.STRICT_SCHEMA

    if isinstance(value, (OperationalError, InterfaceError, PoolTimeoutError)):
        return ErrorKind.DB_CONNECTION
    if isinstance(value, ExpiredSignatureError):
        return ErrorKind.TOKEN_EXPIRED
    if isinstance(value, JWTError):
        return ErrorKind.TOKEN_INVALID
    if isinstance(value, RequestValidationError) and any(
        e.get("type") == "json_invalid" for e in errors
    ):
        return ErrorKind.MALFORMED_JSON
    if isinstance(value, (RequestValidationError, ValidationError)):
        return ErrorKind.SCHEMA_VALIDATION
    # RateLimitExceeded is itself an HTTPException, so it goes first
    if isinstance(value, RateLimitExceeded):
        return ErrorKind.RATE_LIMIT
    if isinstance(value, StarletteHTTPException):
        return ErrorKind.HTTP
    if isinstance(value, (httpx.HTTPError, httpx.InvalidURL)):
        return ErrorKind.UPSTREAM_HTTP
    if isinstance(value, Exception):
        return ErrorKind.GENERIC
    return ErrorKind.UNKNOWN


# =============================================================================
# Transformers
# =============================================================================


def _field_from_loc(loc: tuple[Any, ...] | list[Any]) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in REQUEST_LOCATIONS:
        parts = parts[1:]
    return ".".join(parts) or "unknown"


def _from_application(exc: AppException) -> ProcessedError:
    return ProcessedError(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        additional_data=dict(exc.details) if exc.details else None,
        is_operational=exc.is_operational,
    )


def _from_record_validation(exc: RecordValidationError) -> ProcessedError:
    return ProcessedError(
        status_code=400,
        message="Validation failed",
        error_code="VALIDATION_ERROR",
        additional_data={
            "errors": [
                {
                    "field": exc.field,
                    "message": exc.message,
                    "kind": exc.kind,
                    "value": exc.value if isinstance(exc.value, (str, int, float, bool)) else None,
                }
            ]
        },
        is_operational=True,
    )


def _from_record_cast(exc: StatementError) -> ProcessedError:
    reason = str(exc.orig) if exc.orig is not None else "malformed value"
    return ProcessedError(
        status_code=400,
        message=f"Invalid value: {reason}",
        error_code="INVALID_ID",
        is_operational=True,
    )


def _from_duplicate_key(exc: IntegrityError) -> ProcessedError:
    text = str(exc.orig)
    column, value = "field", "unknown"

    match = PG_DUPLICATE_PATTERN.search(text)
    if match:
        column, value = match.group("field"), match.group("value")
    else:
        match = SQLITE_DUPLICATE_PATTERN.search(text)
        if match:
            column = match.group("field")
            if isinstance(exc.params, dict) and column in exc.params:
                value = str(exc.params[column])

    return ProcessedError(
        status_code=409,
        message=f"{column} '{value}' already exists. Please use another value.",
        error_code="DUPLICATE_FIELD",
        additional_data={"field": column, "value": value},
        is_operational=True,
    )


def _from_strict_schema(exc: RequestValidationError | ValidationError) -> ProcessedError:
    column = _field_from_loc(exc.errors()[0].get("loc", ()))
    return ProcessedError(
        status_code=400,
        message=f"Field '{column}' is not allowed in the schema",
        error_code="STRICT_MODE_ERROR",
        additional_data={"field": column},
        is_operational=True,
    )


def _from_db_connection(_: Exception) -> ProcessedError:
    return ProcessedError(
        status_code=503,
        message="Database connection failed. Please try again later.",
        error_code="DB_CONNECTION_ERROR",
        is_operational=False,
    )


def _from_token_expired(_: Exception) -> ProcessedError:
    return ProcessedError(
        status_code=401,
        message="Your token has expired. Please log in again.",
        error_code="TOKEN_EXPIRED",
        is_operational=True,
    )


def _from_token_invalid(_: Exception) -> ProcessedError:
    return ProcessedError(
        status_code=401,
        message="Invalid token. Please log in again.",
        error_code="INVALID_TOKEN",
        is_operational=True,
    )


def _from_malformed_json(_: Exception) -> ProcessedError:
    return ProcessedError(
        status_code=400,
        message="Invalid JSON format in request body",
        error_code="INVALID_JSON",
        is_operational=True,
    )


def _from_schema_validation(exc: RequestValidationError | ValidationError) -> ProcessedError:
    errors = [
        {
            "field": _field_from_loc(error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
            "code": error.get("type", "value_error"),
        }
        for error in exc.errors()
    ]
    return ProcessedError(
        status_code=400,
        message="Validation failed",
        error_code="VALIDATION_ERROR",
        additional_data={"errors": errors},
        is_operational=True,
    )


def _from_rate_limit(exc: RateLimitExceeded) -> ProcessedError:
    detail = getattr(exc, "detail", None)
    return ProcessedError(
        status_code=429,
        message="Too many requests from this IP, please try again later.",
        error_code="RATE_LIMIT_EXCEEDED",
        additional_data={"limit": detail} if isinstance(detail, str) else None,
        is_operational=True,
    )


def _from_http(exc: StarletteHTTPException) -> ProcessedError:
    try:
        phrase = HTTPStatus(exc.status_code).phrase
    except ValueError:
        phrase = "HTTP Error"
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else phrase
    return ProcessedError(
        status_code=exc.status_code,
        message=message,
        error_code=phrase.upper().replace(" ", "_").replace("-", "_"),
        is_operational=exc.status_code < 500,
    )


def _request_url(exc: httpx.HTTPError) -> str | None:
    try:
        return str(exc.request.url)
    except RuntimeError:
        return None


def _from_upstream_http(exc: Exception) -> ProcessedError:
    if isinstance(exc, httpx.HTTPStatusError):
        upstream_status = exc.response.status_code
        message = "External API request failed"
        try:
            body = exc.response.json()
            if isinstance(body, dict) and isinstance(body.get("message"), str):
                message = body["message"]
        except (ValueError, httpx.ResponseNotRead):
            pass
        return ProcessedError(
            status_code=upstream_status,
            message=message,
            error_code="EXTERNAL_API_ERROR",
            additional_data={
                "apiUrl": _request_url(exc),
                "statusCode": upstream_status,
            },
            is_operational=True,
        )

    if isinstance(exc, httpx.RequestError) and not isinstance(
        exc, httpx.UnsupportedProtocol
    ):
        return ProcessedError(
            status_code=503,
            message="No response from external service",
            error_code="SERVICE_UNAVAILABLE",
            additional_data={"apiUrl": _request_url(exc)},
            is_operational=True,
        )

    return ProcessedError(
        status_code=500,
        message="Request setup failed",
        error_code="REQUEST_SETUP_ERROR",
        is_operational=False,
    )


def _from_generic(exc: Exception) -> ProcessedError:
    return ProcessedError(
        status_code=500,
        message=str(exc) or "Internal server error",
        error_code="INTERNAL_ERROR",
        is_operational=False,
    )


def _from_unknown(_: Any) -> ProcessedError:
    return ProcessedError()


TRANSFORMERS: dict[ErrorKind, Callable[[Any], ProcessedError]] = {
    ErrorKind.APPLICATION: _from_application,
    ErrorKind.RECORD_VALIDATION: _from_record_validation,
    ErrorKind.RECORD_CAST: _from_record_cast,
    ErrorKind.DUPLICATE_KEY: _from_duplicate_key,
    ErrorKind.STRICT_SCHEMA: _from_strict_schema,
    ErrorKind.DB_CONNECTION: _from_db_connection,
    ErrorKind.TOKEN_EXPIRED: _from_token_expired,
    ErrorKind.TOKEN_INVALID: _from_token_invalid,
    ErrorKind.MALFORMED_JSON: _from_malformed_json,
    ErrorKind.SCHEMA_VALIDATION: _from_schema_validation,
    ErrorKind.RATE_LIMIT: _from_rate_limit,
    ErrorKind.HTTP: _from_http,
    ErrorKind.UPSTREAM_HTTP: _from_upstream_http,
    ErrorKind.GENERIC: _from_generic,
    ErrorKind.UNKNOWN: _from_unknown,
}


def process_error(value: Any) -> ProcessedError:
    """
    Classify and normalize a caught value.

    Args:
        value: Anything raised

    Returns:
        ProcessedError for the handler to render
    """
    return TRANSFORMERS[identify_error(value)](value)
