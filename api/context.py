"""Per-request state handed from the middleware chain to controllers."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

from flask import request

from utils.validation import ValidationRules


@dataclass
class RequestContext:
    """What a controller sees of the current request.

    ``validate``, ``validate_request`` and ``validate_request_at`` stay unset
    until the validation middleware installs them.
    """

    db: sqlite3.Connection
    url: str
    method: str
    body: Any = None
    params: dict[str, Any] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    user: dict[str, Any] | None = None
    user_agent: str | None = None
    ip: str | None = None
    validate: SimpleNamespace | None = None
    validate_request: Callable[[ValidationRules], None] | None = None
    validate_request_at: Callable[[str, ValidationRules], None] | None = None

    @property
    def user_id(self) -> int | None:
        return self.user["id"] if self.user else None

    @property
    def role_type(self) -> str | None:
        role = (self.user or {}).get("role") or {}
        return role.get("type")

    @classmethod
    def from_request(cls, db: sqlite3.Connection) -> RequestContext:
        """Snapshot the active Flask request."""
        return cls(
            db=db,
            url=request.url,
            method=request.method,
            body=request.get_json(silent=True),
            params=dict(request.view_args or {}),
            query=request.args.to_dict(),
            user_agent=request.headers.get("User-Agent"),
            ip=request.remote_addr,
        )
