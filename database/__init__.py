"""Database package: connection helpers and schema management."""

from database.connection import apply_schema, get_db, init_database

__all__ = ["apply_schema", "get_db", "init_database"]
