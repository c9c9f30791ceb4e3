"""Role and user management on top of the users/roles tables."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

import database.models as models

logger = logging.getLogger(__name__)


def _public_user(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": user["id"],
        "username": user["username"],
        "email": user["email"],
        "confirmed": bool(user["confirmed"]),
        "blocked": bool(user["blocked"]),
        "createdAt": user["created_at"],
    }


def load_principal(conn: sqlite3.Connection, user_id: int) -> dict[str, Any] | None:
    """Return the authenticated principal for *user_id*, with its role.

    Blocked and unknown users resolve to None.
    """
    user = models.get_user(conn, user_id)
    if user is None or user["blocked"]:
        return None
    principal = _public_user(user)
    role = models.get_role(conn, user["role_id"]) if user["role_id"] is not None else None
    principal["role"] = role
    return principal


def get_all_roles(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    return models.list_roles(conn)


def get_role_by_id(conn: sqlite3.Connection, role_id: int) -> dict[str, Any] | None:
    """Role with its permissions, or None."""
    role = models.get_role(conn, role_id)
    if role is None:
        return None
    role["permissions"] = models.list_role_permissions(conn, role_id)
    return role


def get_users_by_role(conn: sqlite3.Connection, role_id: int) -> list[dict[str, Any]]:
    role = models.get_role(conn, role_id)
    users = []
    for user in models.list_users_by_role(conn, role_id):
        public = _public_user(user)
        public["role"] = {"id": role["id"], "name": role["name"], "type": role["type"]} if role else None
        users.append(public)
    return users


def get_user_permissions(conn: sqlite3.Connection, user_id: int) -> dict[str, Any] | None:
    """The user's identity, role and the role's permissions, or None."""
    user = models.get_user(conn, user_id)
    if user is None:
        return None
    role = None
    permissions: list[dict[str, Any]] = []
    if user["role_id"] is not None:
        role = models.get_role(conn, user["role_id"])
        permissions = models.list_role_permissions(conn, user["role_id"])
    return {
        "user": {"id": user["id"], "username": user["username"], "email": user["email"]},
        "role": role,
        "permissions": permissions,
    }


def create_role(
    conn: sqlite3.Connection,
    name: str,
    role_type: str,
    description: str = "",
    permissions: list[str] | None = None,
) -> dict[str, Any]:
    """Create a role, optionally granting permission actions.

    Propagates sqlite3.IntegrityError for a duplicate role type.
    """
    role = models.create_role(conn, name=name, role_type=role_type, description=description)
    for action in permissions or []:
        models.add_permission(conn, role["id"], action)
    logger.info("Created role %s (%s)", role["name"], role["type"])
    role["permissions"] = models.list_role_permissions(conn, role["id"])
    return role


def create_user(
    conn: sqlite3.Connection,
    username: str,
    email: str,
    role_type: str = "authenticated",
) -> dict[str, Any]:
    """Create a user holding the role of the given type."""
    role = models.get_role_by_type(conn, role_type)
    if role is None:
        msg = f"Unknown role type: {role_type}"
        raise ValueError(msg)
    return models.create_user(conn, username=username, email=email, role_id=role["id"])


def assign_role_to_user(conn: sqlite3.Connection, user_id: int, role_id: int) -> dict[str, Any] | None:
    """Assign a role; None when the user does not exist."""
    user = models.assign_role(conn, user_id, role_id)
    if user is None:
        return None
    logger.info("Assigned role %s to user %s", role_id, user_id)
    return load_principal(conn, user_id) or _public_user(user)
