"""Request middleware: error interceptors, principal resolution, validation helpers.

Views are wrapped outermost-first as::

    handle_errors(handle_validation_errors(authenticate(install_validation(view))))

``handle_validation_errors`` writes the response for validation failures
itself, so ``handle_errors`` only ever sees what is left.  Either way exactly
one error envelope is written per failed request.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any

from flask import Response, g, jsonify, request

from api.errors import ErrorResponse, format_error, format_validation_error, is_validation_failure
from database.models import now_iso
from services.auth import bearer_token, decode_token
from services.monitoring import report_error
from services.users import load_principal
from utils.identifiers import generate_request_id
from utils.validation import helpers, validate, validate_at

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
ERROR_CODE_HEADER = "X-Error-Code"


def write_error_response(formatted: ErrorResponse) -> tuple[Response, ErrorResponse]:
    """Stamp tracing metadata onto *formatted* and build the HTTP response."""
    stamped = formatted.for_request(generate_request_id(), request.path)
    resp = jsonify(stamped.to_dict())
    resp.status_code = stamped.status_code
    resp.headers[REQUEST_ID_HEADER] = stamped.request_id or ""
    resp.headers[ERROR_CODE_HEADER] = stamped.error_code
    return resp, stamped


def _monitoring_context() -> dict[str, Any]:
    ctx = g.get("ctx")
    return {
        "url": request.url,
        "method": request.method,
        "userAgent": request.headers.get("User-Agent"),
        "ip": request.remote_addr,
        "user": ctx.user_id if ctx is not None else None,
    }


def handle_unexpected(error: Exception) -> Response:
    """Format, log, write and report a failure nothing else handled."""
    resp, stamped = write_error_response(format_error(error))
    context = _monitoring_context()
    logger.error(
        "Request %s failed: %s",
        stamped.request_id,
        error,
        exc_info=error,
        extra={
            "context": {
                "message": str(error),
                "url": context["url"],
                "method": context["method"],
                "userId": context["user"],
                "timestamp": now_iso(),
            }
        },
    )
    report_error(error, stamped.request_id or "", context)
    return resp


def handle_errors(f: Callable[..., Any]) -> Callable[..., Any]:
    """Outermost interceptor: turn any exception into the error envelope."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except Exception as exc:
            return handle_unexpected(exc)

    return wrapper


def handle_validation_errors(f: Callable[..., Any]) -> Callable[..., Any]:
    """Write the envelope for validation failures; re-raise everything else."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except Exception as exc:
            if not is_validation_failure(exc):
                raise
            resp, stamped = write_error_response(format_validation_error(exc))  # type: ignore[arg-type]
            logger.warning(
                "Validation failed for %s %s (%s)", request.method, request.path, stamped.request_id
            )
            return resp

    return wrapper


def authenticate(f: Callable[..., Any]) -> Callable[..., Any]:
    """Resolve ``Authorization: Bearer`` into ``g.ctx.user``.

    Requests without a token continue anonymously; a token that does not
    decode raises and is reported as an authentication failure.
    """

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        token = bearer_token(request.headers.get("Authorization"))
        if token:
            claims = decode_token(token)
            g.ctx.user = load_principal(g.ctx.db, claims["id"])
        return f(*args, **kwargs)

    return wrapper


def install_validation(f: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the validation helpers to ``g.ctx``."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        ctx = g.ctx
        ctx.validate = helpers
        ctx.validate_request = functools.partial(validate, ctx.body)
        ctx.validate_request_at = functools.partial(validate_at, ctx.body)
        return f(*args, **kwargs)

    return wrapper


def middleware_chain(f: Callable[..., Any]) -> Callable[..., Any]:
    """Apply the full chain to a view."""
    return handle_errors(handle_validation_errors(authenticate(install_validation(f))))
