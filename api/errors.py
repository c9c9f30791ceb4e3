"""Error formatting: turn any caught failure into the canonical error envelope.

The formatter is request-unaware.  Callers stamp ``requestId`` and ``path``
onto the returned :class:`ErrorResponse` with :meth:`ErrorResponse.for_request`.
"""

from __future__ import annotations

import sqlite3
import traceback
from typing import Any, Literal

import jwt
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as SchemaValidationError
from pydantic.alias_generators import to_camel
from werkzeug.exceptions import Forbidden, HTTPException, NotFound

from api.exceptions import AppError, ErrorCode, ValidationError
from config import settings
from database.models import now_iso

DATABASE_CODE_PREFIX = "SQLITE_"

_GENERIC_SUGGESTIONS = ["Try again later"]

ERROR_CODE_SUGGESTIONS: dict[ErrorCode, list[str]] = {
    ErrorCode.VALIDATION_ERROR: [
        "Check your input data",
        "Verify required fields are provided",
        "Ensure data format is correct",
    ],
    ErrorCode.AUTHENTICATION_ERROR: [
        "Check your credentials",
        "Verify your token is valid",
        "Try logging in again",
    ],
    ErrorCode.AUTHORIZATION_ERROR: [
        "Check your permissions",
        "Verify your user role",
        "Contact administrator",
    ],
    ErrorCode.NOT_FOUND_ERROR: [
        "Check if the resource exists",
        "Verify the resource ID",
        "Check your access permissions",
    ],
    ErrorCode.CONFLICT_ERROR: [
        "The resource was modified or already exists",
        "Reload the resource and retry",
    ],
    ErrorCode.RATE_LIMIT_ERROR: [
        "Slow down your requests",
        "Retry after a short delay",
    ],
    ErrorCode.BUSINESS_LOGIC_ERROR: [
        "Check business rules",
        "Verify data constraints",
        "Review operation requirements",
    ],
}

DATABASE_SUGGESTIONS: dict[str, list[str]] = {
    "SQLITE_CONSTRAINT_UNIQUE": [
        "The record already exists",
        "Check for duplicate data",
        "Use unique identifiers",
    ],
    "SQLITE_CONSTRAINT_PRIMARYKEY": [
        "The record already exists",
        "Check for duplicate data",
        "Use unique identifiers",
    ],
    "SQLITE_CONSTRAINT_FOREIGNKEY": [
        "Referenced record does not exist",
        "Check foreign key relationships",
        "Verify related data exists",
    ],
    # Raised by the delete-guard triggers in schema.sql.
    "SQLITE_CONSTRAINT_TRIGGER": [
        "Cannot delete referenced record",
        "Remove dependent records first",
        "Check for related data",
    ],
}

# Known payload fields -> hint shown when that field failed validation.
VALIDATION_FIELD_SUGGESTIONS: dict[str, str] = {
    "title": "Title must be 3-100 characters long",
    "description": "Description must be 10-2000 characters long",
    "price": "Price must be between $0.01 and $999,999.99",
    "stock": "Stock must be between 0 and 99,999",
    "discount": "Discount must be between 0% and 100%",
    "sizes": "Size must be one of: s, m, l, xl, xxl",
    "gender": "Gender must be one of: men, women, unisex",
    "email": "Please provide a valid email address",
    "password": "Password must be at least 6 characters long",
}


class ErrorMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    suggestions: list[str]
    documentation: str


class ErrorResponse(BaseModel):
    """The error envelope written for every failed request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    status: Literal["error"] = "error"
    status_code: int
    error_code: str
    message: str
    details: Any = None
    path: str | None = None
    request_id: str | None = None
    timestamp: str
    meta: ErrorMeta

    def for_request(self, request_id: str, path: str) -> ErrorResponse:
        """Return a copy stamped with request tracing metadata."""
        return self.model_copy(update={"request_id": request_id, "path": path})

    def to_dict(self) -> dict[str, Any]:
        """Wire representation; optional top-level fields are omitted when unset."""
        body = self.model_dump(by_alias=True)
        return {key: value for key, value in body.items() if value is not None}


def _response(
    status_code: int,
    error_code: ErrorCode | str,
    message: str,
    suggestions: list[str],
    documentation: str,
    details: Any = None,
) -> ErrorResponse:
    return ErrorResponse(
        status_code=status_code,
        error_code=str(getattr(error_code, "value", error_code)),
        message=message,
        details=details,
        timestamp=now_iso(),
        meta=ErrorMeta(suggestions=suggestions, documentation=documentation),
    )


# ---------------------------------------------------------------------------
# Shape detection
# ---------------------------------------------------------------------------


def database_error_code(error: BaseException) -> str | None:
    """Return the driver error code when *error* is a database failure."""
    if not isinstance(error, sqlite3.Error):
        return None
    code = getattr(error, "sqlite_errorname", None)
    if isinstance(code, str) and code.startswith(DATABASE_CODE_PREFIX):
        return code
    return None


def is_validation_failure(error: BaseException) -> bool:
    """True for framework schema errors and the application's ValidationError."""
    return isinstance(error, (SchemaValidationError, ValidationError))


def parse_schema_errors(error: SchemaValidationError) -> dict[str, list[dict[str, Any]]]:
    """Group pydantic errors by dotted field path."""
    errors: dict[str, list[dict[str, Any]]] = {}
    for item in error.errors(include_url=False):
        field = ".".join(str(part) for part in item.get("loc", ())) or "data"
        value = item.get("input")
        if not isinstance(value, (str, int, float, bool, type(None))):
            value = None
        errors.setdefault(field, []).append(
            {"message": item.get("msg", ""), "code": item.get("type", "VALIDATION_ERROR"), "value": value}
        )
    return errors


def validation_suggestions(details: Any) -> list[str]:
    """Hints for the known fields present in a validation details map."""
    if not isinstance(details, dict):
        return list(ERROR_CODE_SUGGESTIONS[ErrorCode.VALIDATION_ERROR])
    hints = [hint for name, hint in VALIDATION_FIELD_SUGGESTIONS.items() if name in details]
    return hints or list(ERROR_CODE_SUGGESTIONS[ErrorCode.VALIDATION_ERROR])


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_validation_error(error: SchemaValidationError | ValidationError) -> ErrorResponse:
    """Format a validation-shaped failure with field-derived suggestions."""
    if isinstance(error, SchemaValidationError):
        message = "Validation failed"
        details: Any = parse_schema_errors(error)
    else:
        message = error.message
        details = error.details
    return _response(
        400,
        ErrorCode.VALIDATION_ERROR,
        message,
        validation_suggestions(details),
        "/docs/validation",
        details,
    )


def format_error(error: BaseException, *, production: bool | None = None) -> ErrorResponse:
    """Translate any caught failure into an :class:`ErrorResponse`.

    Dispatch order: framework schema validation, framework forbidden,
    framework not-found, other framework HTTP errors, application errors,
    database errors, token errors, anything else.
    """
    if isinstance(error, SchemaValidationError):
        return format_validation_error(error)

    if isinstance(error, Forbidden):
        return _response(
            403,
            ErrorCode.AUTHORIZATION_ERROR,
            _http_message(error, "Insufficient permissions"),
            [
                "Check if you have the required permissions",
                "Verify your user role",
                "Contact administrator if you believe this is an error",
            ],
            "/docs/authentication",
        )

    if isinstance(error, NotFound):
        return _response(
            404,
            ErrorCode.NOT_FOUND_ERROR,
            _http_message(error, "Resource not found"),
            [
                "Check if the resource ID is correct",
                "Verify the resource exists",
                "Check if you have access to this resource",
            ],
            "/docs/api-reference",
        )

    if isinstance(error, HTTPException):
        return _response(
            error.code or 500,
            ErrorCode.HTTP_ERROR,
            _http_message(error, error.name),
            ["Check the request method and URL", "Verify the request body format"],
            "/docs/api-reference",
        )

    if isinstance(error, AppError):
        return _response(
            error.status_code,
            error.error_code,
            error.message,
            list(ERROR_CODE_SUGGESTIONS.get(error.error_code, _GENERIC_SUGGESTIONS)),
            "/docs/error-codes",
            error.details,
        )

    db_code = database_error_code(error)
    if db_code is not None:
        return _response(
            500,
            ErrorCode.DATABASE_ERROR,
            "Database operation failed",
            list(DATABASE_SUGGESTIONS.get(db_code, ["Check database constraints"])),
            "/docs/database",
            {"code": db_code, "sqlMessage": str(error)},
        )

    if isinstance(error, jwt.InvalidTokenError):
        return _response(
            401,
            ErrorCode.AUTHENTICATION_ERROR,
            "Invalid or expired token",
            [
                "Check if your token is valid",
                "Try logging in again",
                "Verify token expiration",
            ],
            "/docs/authentication",
            {"jwtError": str(error)},
        )

    if production is None:
        production = settings.is_production
    details = None
    if not production:
        details = {
            "message": str(error),
            "stack": "".join(traceback.format_exception(error)),
        }
    return _response(
        500,
        ErrorCode.INTERNAL_ERROR,
        "An unexpected error occurred",
        ["Try again later", "Contact support if the problem persists"],
        "/docs/support",
        details,
    )


def _http_message(error: HTTPException, default: str) -> str:
    """Use a custom description when one was given, otherwise *default*."""
    description = error.description
    if description and description != type(error).description:
        return description
    return default
