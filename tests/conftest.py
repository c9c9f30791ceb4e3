"""Shared test fixtures."""

from __future__ import annotations

import sqlite3
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from services.auth import issue_token
from services.content import ContentService
from services.products import ProductService
from services.users import create_user

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "database" / "schema.sql"


class _NoCloseConnection:
    """Wrapper that ignores .close() on shared test connection."""

    def __init__(self, conn):
        object.__setattr__(self, "_conn", conn)

    def close(self):
        pass

    def __getattr__(self, name):
        return getattr(self._conn, name)

    def __setattr__(self, name, value):
        setattr(self._conn, name, value)


@pytest.fixture
def db() -> Generator[sqlite3.Connection, None, None]:
    """In-memory SQLite database with the full schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    schema = _SCHEMA_PATH.read_text()
    conn.executescript(schema)
    yield conn
    conn.close()


@pytest.fixture
def client(db, monkeypatch):
    """Flask test client sharing the in-memory database."""
    from api.app import create_app

    wrapper = _NoCloseConnection(db)
    monkeypatch.setattr("api.routes.get_db", lambda _path: wrapper)
    monkeypatch.setattr("config.settings.cloudinary_name", "")
    app = create_app()
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


def bearer(user: dict[str, Any]) -> dict[str, str]:
    """Authorization header for *user*."""
    return {"Authorization": f"Bearer {issue_token(user['id'])}"}


@pytest.fixture
def customer(db: sqlite3.Connection) -> dict[str, Any]:
    """A user holding the 'authenticated' role."""
    return create_user(db, "jane", "jane@example.com", "authenticated")


@pytest.fixture
def admin(db: sqlite3.Connection) -> dict[str, Any]:
    return create_user(db, "root", "root@example.com", "admin")


@pytest.fixture
def visitor(db: sqlite3.Connection) -> dict[str, Any]:
    """A user holding only the 'public' role."""
    return create_user(db, "guest", "guest@example.com", "public")


@pytest.fixture
def customer_headers(customer: dict[str, Any]) -> dict[str, str]:
    return bearer(customer)


@pytest.fixture
def admin_headers(admin: dict[str, Any]) -> dict[str, str]:
    return bearer(admin)


@pytest.fixture
def visitor_headers(visitor: dict[str, Any]) -> dict[str, str]:
    return bearer(visitor)


@pytest.fixture
def product_data() -> dict[str, Any]:
    return {
        "title": "Linen Shirt",
        "description": "A breathable linen shirt for summer.",
        "price": 100,
        "discount": 25,
        "stock": 12,
        "sizes": "m",
        "gender": "men",
        "images": [{"url": "https://res.cloudinary.com/demo/image/upload/v1712/shirts/linen.jpg"}],
    }


@pytest.fixture
def sample_product(db: sqlite3.Connection, product_data: dict[str, Any]) -> dict[str, Any]:
    """Insert and return a published product entry."""
    return ProductService(db).create(product_data)


@pytest.fixture
def sample_category(db: sqlite3.Connection) -> dict[str, Any]:
    return ContentService(db, "category").create({"name": "Shirts", "slug": "shirts"})


@pytest.fixture
def cart_item() -> dict[str, Any]:
    return {"product": 1, "quantity": 2, "size": "M", "color": "Blue"}
