"""Database CRUD operations.

Implements the data-access functions for content entries, roles,
permissions and users.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from typing import Any

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _row_to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
    """Convert a sqlite3.Row to a plain dict, or return None."""
    if row is None:
        return None
    return dict(row)


def _rows_to_list(rows: list[sqlite3.Row]) -> list[dict[str, Any]]:
    """Convert a list of sqlite3.Row to a list of dicts."""
    return [dict(r) for r in rows]


def now_iso() -> str:
    """Return the current UTC timestamp as an ISO-8601 string."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _entry_from_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
    """Decode the JSON attributes column of an entries row."""
    entry = _row_to_dict(row)
    if entry is None:
        return None
    entry["data"] = json.loads(entry["data"] or "{}")
    return entry


# ---------------------------------------------------------------------------
# Content entries
# ---------------------------------------------------------------------------


def insert_entry(
    conn: sqlite3.Connection,
    content_type: str,
    data: dict[str, Any],
    publish: bool = True,
) -> dict[str, Any]:
    """Insert a new entry and return it."""
    now = now_iso()
    cur = conn.execute(
        """
        INSERT INTO entries (content_type, data, created_at, updated_at, published_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (content_type, json.dumps(data), now, now, now if publish else None),
    )
    conn.commit()
    entry = get_entry(conn, content_type, cur.lastrowid)
    assert entry is not None
    return entry


def get_entry(
    conn: sqlite3.Connection,
    content_type: str,
    entry_id: int,
) -> dict[str, Any] | None:
    """Return a single entry by ID, or None."""
    return _entry_from_row(
        conn.execute(
            "SELECT * FROM entries WHERE id = ? AND content_type = ?",
            (entry_id, content_type),
        ).fetchone()
    )


def list_entries(conn: sqlite3.Connection, content_type: str) -> list[dict[str, Any]]:
    """Return all entries of a content type ordered by ID."""
    rows = conn.execute(
        "SELECT * FROM entries WHERE content_type = ? ORDER BY id",
        (content_type,),
    ).fetchall()
    return [_entry_from_row(r) for r in rows]  # type: ignore[misc]


def update_entry(
    conn: sqlite3.Connection,
    content_type: str,
    entry_id: int,
    data: dict[str, Any],
) -> dict[str, Any] | None:
    """Replace an entry's attributes and return the updated entry."""
    cur = conn.execute(
        "UPDATE entries SET data = ?, updated_at = ? WHERE id = ? AND content_type = ?",
        (json.dumps(data), now_iso(), entry_id, content_type),
    )
    conn.commit()
    if cur.rowcount == 0:
        return None
    return get_entry(conn, content_type, entry_id)


def delete_entry(
    conn: sqlite3.Connection,
    content_type: str,
    entry_id: int,
) -> dict[str, Any] | None:
    """Delete an entry and return what was deleted, or None if it did not exist."""
    existing = get_entry(conn, content_type, entry_id)
    if existing is None:
        return None
    try:
        conn.execute(
            "DELETE FROM entries WHERE id = ? AND content_type = ?",
            (entry_id, content_type),
        )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    return existing


# ---------------------------------------------------------------------------
# Roles & permissions
# ---------------------------------------------------------------------------


def list_roles(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    """Return all roles ordered by name."""
    return _rows_to_list(
        conn.execute("SELECT id, name, description, type FROM roles ORDER BY name").fetchall()
    )


def get_role(conn: sqlite3.Connection, role_id: int) -> dict[str, Any] | None:
    """Return a single role by ID."""
    return _row_to_dict(
        conn.execute(
            "SELECT id, name, description, type FROM roles WHERE id = ?", (role_id,)
        ).fetchone()
    )


def get_role_by_type(conn: sqlite3.Connection, role_type: str) -> dict[str, Any] | None:
    """Return a single role by its type (e.g. 'authenticated')."""
    return _row_to_dict(
        conn.execute(
            "SELECT id, name, description, type FROM roles WHERE type = ?", (role_type,)
        ).fetchone()
    )


def create_role(
    conn: sqlite3.Connection,
    name: str,
    role_type: str,
    description: str = "",
) -> dict[str, Any]:
    """Insert a new role and return it.

    Raises sqlite3.IntegrityError when the role type already exists.
    """
    cur = conn.execute(
        "INSERT INTO roles (name, description, type) VALUES (?, ?, ?)",
        (name, description, role_type),
    )
    conn.commit()
    role = get_role(conn, cur.lastrowid)
    assert role is not None
    return role


def list_role_permissions(conn: sqlite3.Connection, role_id: int) -> list[dict[str, Any]]:
    """Return the permissions granted to a role."""
    return _rows_to_list(
        conn.execute(
            "SELECT id, action, subject FROM permissions WHERE role_id = ? ORDER BY action",
            (role_id,),
        ).fetchall()
    )


def add_permission(
    conn: sqlite3.Connection,
    role_id: int,
    action: str,
    subject: str | None = None,
) -> dict[str, Any]:
    """Grant *action* to a role (idempotent) and return the permission row."""
    conn.execute(
        "INSERT OR IGNORE INTO permissions (role_id, action, subject) VALUES (?, ?, ?)",
        (role_id, action, subject),
    )
    conn.commit()
    row = conn.execute(
        "SELECT id, action, subject FROM permissions WHERE role_id = ? AND action = ?",
        (role_id, action),
    ).fetchone()
    return dict(row)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

_USER_COLUMNS = "id, username, email, confirmed, blocked, role_id, created_at"


def create_user(
    conn: sqlite3.Connection,
    username: str,
    email: str,
    role_id: int | None = None,
) -> dict[str, Any]:
    """Insert a new user and return it."""
    cur = conn.execute(
        "INSERT INTO users (username, email, role_id) VALUES (?, ?, ?)",
        (username, email, role_id),
    )
    conn.commit()
    user = get_user(conn, cur.lastrowid)
    assert user is not None
    return user


def get_user(conn: sqlite3.Connection, user_id: int) -> dict[str, Any] | None:
    """Return a single user by ID."""
    return _row_to_dict(
        conn.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()  # noqa: S608
    )


def list_users_by_role(conn: sqlite3.Connection, role_id: int) -> list[dict[str, Any]]:
    """Return users holding the given role."""
    return _rows_to_list(
        conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE role_id = ? ORDER BY id",  # noqa: S608
            (role_id,),
        ).fetchall()
    )


def assign_role(conn: sqlite3.Connection, user_id: int, role_id: int) -> dict[str, Any] | None:
    """Set a user's role and return the updated user, or None if no such user."""
    cur = conn.execute("UPDATE users SET role_id = ? WHERE id = ?", (role_id, user_id))
    conn.commit()
    if cur.rowcount == 0:
        return None
    return get_user(conn, user_id)
