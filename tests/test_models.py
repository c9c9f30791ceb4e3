"""Tests for database.models CRUD operations."""

from __future__ import annotations

import sqlite3

import pytest

from database.models import (
    add_permission,
    assign_role,
    create_role,
    create_user,
    delete_entry,
    get_entry,
    get_role_by_type,
    get_user,
    insert_entry,
    list_entries,
    list_role_permissions,
    list_roles,
    list_users_by_role,
    now_iso,
    update_entry,
)

# ===========================================================================
# Entries
# ===========================================================================


class TestEntries:
    def test_insert_published(self, db: sqlite3.Connection) -> None:
        entry = insert_entry(db, "product", {"title": "Shirt"})
        assert entry["data"] == {"title": "Shirt"}
        assert entry["published_at"] == entry["created_at"]

    def test_insert_draft(self, db: sqlite3.Connection) -> None:
        assert insert_entry(db, "product", {}, publish=False)["published_at"] is None

    def test_get_checks_content_type(self, db: sqlite3.Connection) -> None:
        entry = insert_entry(db, "product", {"title": "Shirt"})
        assert get_entry(db, "product", entry["id"]) is not None
        assert get_entry(db, "order", entry["id"]) is None

    def test_list_ordered(self, db: sqlite3.Connection) -> None:
        for title in ("a", "b"):
            insert_entry(db, "product", {"title": title})
        insert_entry(db, "category", {"name": "c"})
        assert [e["data"]["title"] for e in list_entries(db, "product")] == ["a", "b"]

    def test_update(self, db: sqlite3.Connection) -> None:
        entry = insert_entry(db, "product", {"title": "Shirt"})
        updated = update_entry(db, "product", entry["id"], {"title": "Tee"})
        assert updated["data"] == {"title": "Tee"}
        assert update_entry(db, "product", 999, {}) is None

    def test_delete_returns_deleted(self, db: sqlite3.Connection) -> None:
        entry = insert_entry(db, "product", {"title": "Shirt"})
        assert delete_entry(db, "product", entry["id"])["id"] == entry["id"]
        assert delete_entry(db, "product", entry["id"]) is None


# ===========================================================================
# Roles, permissions, users
# ===========================================================================


class TestRoles:
    def test_list_sorted_by_name(self, db: sqlite3.Connection) -> None:
        assert [r["name"] for r in list_roles(db)] == ["Admin", "Authenticated", "Public"]

    def test_create_duplicate_type(self, db: sqlite3.Connection) -> None:
        create_role(db, "Editor", "editor")
        with pytest.raises(sqlite3.IntegrityError):
            create_role(db, "Editor 2", "editor")

    def test_permissions_idempotent(self, db: sqlite3.Connection) -> None:
        role = get_role_by_type(db, "admin")
        first = add_permission(db, role["id"], "product.delete")
        again = add_permission(db, role["id"], "product.delete")
        assert first == again
        assert [p["action"] for p in list_role_permissions(db, role["id"])] == ["product.delete"]


class TestUsers:
    def test_create_and_get(self, db: sqlite3.Connection) -> None:
        role = get_role_by_type(db, "authenticated")
        user = create_user(db, "ann", "ann@example.com", role["id"])
        assert get_user(db, user["id"]) == user
        assert user["blocked"] == 0

    def test_duplicate_email(self, db: sqlite3.Connection) -> None:
        create_user(db, "ann", "ann@example.com")
        with pytest.raises(sqlite3.IntegrityError):
            create_user(db, "ann2", "ann@example.com")

    def test_assign_role(self, db: sqlite3.Connection) -> None:
        admin = get_role_by_type(db, "admin")
        user = create_user(db, "ann", "ann@example.com")
        assert assign_role(db, user["id"], admin["id"])["role_id"] == admin["id"]
        assert [u["username"] for u in list_users_by_role(db, admin["id"])] == ["ann"]
        assert assign_role(db, 999, admin["id"]) is None


def test_now_iso_format() -> None:
    stamp = now_iso()
    assert stamp.endswith("Z")
    assert "T" in stamp
