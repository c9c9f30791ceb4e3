"""Tests for api.exceptions."""

from __future__ import annotations

import pytest

from api.exceptions import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    BusinessLogicError,
    ConflictError,
    DatabaseError,
    ErrorCode,
    ExternalServiceError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("cls", "status", "code"),
    [
        (ValidationError, 400, ErrorCode.VALIDATION_ERROR),
        (AuthenticationError, 401, ErrorCode.AUTHENTICATION_ERROR),
        (AuthorizationError, 403, ErrorCode.AUTHORIZATION_ERROR),
        (NotFoundError, 404, ErrorCode.NOT_FOUND_ERROR),
        (ConflictError, 409, ErrorCode.CONFLICT_ERROR),
        (RateLimitError, 429, ErrorCode.RATE_LIMIT_ERROR),
        (DatabaseError, 500, ErrorCode.DATABASE_ERROR),
        (ExternalServiceError, 502, ErrorCode.EXTERNAL_SERVICE_ERROR),
        (BusinessLogicError, 422, ErrorCode.BUSINESS_LOGIC_ERROR),
    ],
)
def test_variant_defaults(cls, status, code) -> None:
    err = cls()
    assert isinstance(err, AppError)
    assert err.status_code == status
    assert err.error_code is code
    assert err.message == cls.default_message
    assert err.details is None
    assert err.is_operational is True


class TestAppError:
    def test_message_and_details(self) -> None:
        err = ValidationError("Bad input", {"title": ["is required"]})
        assert str(err) == "Bad input"
        assert err.details == {"title": ["is required"]}

    def test_error_code_is_a_string(self) -> None:
        assert NotFoundError().error_code == "NOT_FOUND_ERROR"

    def test_non_operational(self) -> None:
        assert DatabaseError(is_operational=False).is_operational is False

    def test_immutable(self) -> None:
        err = NotFoundError("gone")
        with pytest.raises(AttributeError):
            err.message = "changed"
        with pytest.raises(AttributeError):
            err.status_code = 500
        assert err.message == "gone"

    def test_can_be_chained(self) -> None:
        with pytest.raises(BusinessLogicError) as exc_info:
            try:
                raise KeyError("x")
            except KeyError as exc:
                raise BusinessLogicError("wrapped") from exc
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_repr(self) -> None:
        assert repr(ConflictError("dup", {"id": 1})) == "ConflictError('dup', details={'id': 1})"
