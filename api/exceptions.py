"""Typed application errors.

Every failure the core raises on purpose is one of the ``AppError`` variants
below.  The variant set is closed: the ``error_code`` discriminant identifies
the kind, and each kind carries a default HTTP status and message.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes exposed in the error envelope."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
    CONFLICT_ERROR = "CONFLICT_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    BUSINESS_LOGIC_ERROR = "BUSINESS_LOGIC_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    HTTP_ERROR = "HTTP_ERROR"


class AppError(Exception):
    """Base application error with an HTTP status code and error code.

    Instances are immutable once constructed.
    """

    status_code: int = 500
    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        is_operational: bool = True,
    ) -> None:
        message = message or self.default_message
        super().__init__(message)
        object.__setattr__(self, "message", message)
        object.__setattr__(self, "details", details)
        object.__setattr__(self, "is_operational", is_operational)

    def __setattr__(self, name: str, value: Any) -> None:
        # Exception machinery sets these while raising and chaining.
        if name in ("__traceback__", "__cause__", "__context__", "__suppress_context__", "__notes__"):
            object.__setattr__(self, name, value)
            return
        msg = f"{type(self).__name__} is immutable"
        raise AttributeError(msg)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


class ValidationError(AppError):
    status_code = 400
    error_code = ErrorCode.VALIDATION_ERROR
    default_message = "Validation failed"


class AuthenticationError(AppError):
    status_code = 401
    error_code = ErrorCode.AUTHENTICATION_ERROR
    default_message = "Authentication required"


class AuthorizationError(AppError):
    status_code = 403
    error_code = ErrorCode.AUTHORIZATION_ERROR
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = 404
    error_code = ErrorCode.NOT_FOUND_ERROR
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    error_code = ErrorCode.CONFLICT_ERROR
    default_message = "Resource conflict"


class RateLimitError(AppError):
    status_code = 429
    error_code = ErrorCode.RATE_LIMIT_ERROR
    default_message = "Rate limit exceeded"


class DatabaseError(AppError):
    status_code = 500
    error_code = ErrorCode.DATABASE_ERROR
    default_message = "Database operation failed"


class ExternalServiceError(AppError):
    status_code = 502
    error_code = ErrorCode.EXTERNAL_SERVICE_ERROR
    default_message = "External service error"


class BusinessLogicError(AppError):
    status_code = 422
    error_code = ErrorCode.BUSINESS_LOGIC_ERROR
    default_message = "Business rule violated"
