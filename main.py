"""CLI entry point for the shop backend."""

from __future__ import annotations

import sqlite3

import click

from config import settings
from database import init_database


@click.group()
def cli() -> None:
    """Shop backend API."""


@cli.command()
def init_db() -> None:
    """Initialise the SQLite database (creates tables if missing)."""
    init_database(settings.database_path)
    print(f"Database initialised at {settings.database_path}")


@cli.command()
def web() -> None:
    """Start the Flask API server."""
    from api.app import create_app

    app = create_app()
    app.run(
        host=settings.flask_host,
        port=settings.flask_port,
        debug=settings.flask_debug,
    )


@cli.command()
@click.option("--name", required=True, help="Display name of the role.")
@click.option("--type", "role_type", required=True, help="Unique role type, e.g. 'editor'.")
@click.option("--description", default="", help="Role description.")
@click.option("--permission", "permissions", multiple=True, help="Permission action to grant (repeatable).")
def create_role(name: str, role_type: str, description: str, permissions: tuple[str, ...]) -> None:
    """Create a role."""
    from database.connection import get_db
    from services.users import create_role as _create_role

    conn = get_db(settings.database_path)
    try:
        role = _create_role(conn, name, role_type, description, list(permissions))
    except sqlite3.IntegrityError:
        print(f"Error: a role of type '{role_type}' already exists")
        return
    finally:
        conn.close()
    print(f"Created role {role['name']} ({role['type']}) with id {role['id']}")


@cli.command()
@click.argument("username")
@click.argument("email")
@click.option("--role", "role_type", default="authenticated", help="Role type to assign.")
def create_user(username: str, email: str, role_type: str) -> None:
    """Create a user and print a bearer token for it."""
    from database.connection import get_db
    from services.auth import issue_token
    from services.users import create_user as _create_user

    conn = get_db(settings.database_path)
    try:
        user = _create_user(conn, username, email, role_type)
    except ValueError as exc:
        print(f"Error: {exc}")
        return
    except sqlite3.IntegrityError:
        print(f"Error: user '{username}' or email '{email}' already exists")
        return
    finally:
        conn.close()

    print(f"Created user {user['username']} with id {user['id']} ({role_type})")
    print(f"Token: {issue_token(user['id'])}")


@cli.command()
@click.option("--count", default=1, help="Number of identifiers to generate.")
@click.option("--kind", type=click.Choice(["session", "order"]), default="order", help="Identifier kind.")
def generate_ids(count: int, kind: str) -> None:
    """Print new cart session IDs or order numbers."""
    from utils.identifiers import generate_order_number, generate_session_id

    generate = generate_order_number if kind == "order" else generate_session_id
    for _ in range(count):
        print(generate())


if __name__ == "__main__":
    cli()
