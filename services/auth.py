"""JWT issue/decode for API bearer tokens.

Tokens are HS256-signed with ``settings.jwt_secret`` and carry the user ID
in the ``id`` claim.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from config import settings

ALGORITHM = "HS256"


def issue_token(user_id: int, expires_in_minutes: int | None = None) -> str:
    """Return a signed bearer token for *user_id*."""
    minutes = expires_in_minutes if expires_in_minutes is not None else settings.jwt_expiration_minutes
    now = datetime.now(UTC)
    payload = {
        "id": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and verify *token*.

    Raises jwt.InvalidTokenError (or a subclass such as ExpiredSignatureError)
    when the token is malformed, tampered with, expired or lacks an ``id``.
    """
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[ALGORITHM],
        options={"require": ["exp", "id"]},
    )
    if not isinstance(payload.get("id"), int):
        msg = "Token id claim must be an integer"
        raise jwt.InvalidTokenError(msg)
    return payload


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None
