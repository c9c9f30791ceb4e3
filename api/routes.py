"""API endpoints for the shop backend."""

from __future__ import annotations

import logging

from flask import Blueprint, g, jsonify

from api import controllers, users
from api.context import RequestContext
from api.controllers import CoreController
from api.middleware import middleware_chain
from config import settings
from database.connection import get_db

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")


# ---------------------------------------------------------------------------
# DB lifecycle
# ---------------------------------------------------------------------------


@api_bp.before_request
def _open_db() -> None:
    """Open a database connection and build the request context on flask.g."""
    g.db = get_db(settings.database_path)
    g.ctx = RequestContext.from_request(g.db)


@api_bp.teardown_request
def _close_db(exc: BaseException | None = None) -> None:
    """Close the per-request database connection."""
    db = g.pop("db", None)
    if db is not None:
        db.close()


@api_bp.route("/health", methods=["GET"])
def health() -> dict[str, str]:
    return {"status": "ok"}


# ===========================================================================
# Content resources
# ===========================================================================


def _register_resource(name: str, controller: CoreController) -> None:
    """Mount the five CRUD routes for *controller* under ``/<name>``."""

    @middleware_chain
    def find() -> tuple:
        body, status = controller.find(g.ctx)
        return jsonify(body), status

    @middleware_chain
    def create() -> tuple:
        body, status = controller.create(g.ctx)
        return jsonify(body), status

    @middleware_chain
    def find_one(entry_id: int) -> tuple:
        body, status = controller.find_one(g.ctx, entry_id)
        return jsonify(body), status

    @middleware_chain
    def update(entry_id: int) -> tuple:
        body, status = controller.update(g.ctx, entry_id)
        return jsonify(body), status

    @middleware_chain
    def delete(entry_id: int) -> tuple:
        body, status = controller.delete(g.ctx, entry_id)
        return jsonify(body), status

    api_bp.add_url_rule(f"/{name}", f"find_{name}", find, methods=["GET"])
    api_bp.add_url_rule(f"/{name}", f"create_{name}", create, methods=["POST"])
    api_bp.add_url_rule(f"/{name}/<int:entry_id>", f"find_one_{name}", find_one, methods=["GET"])
    api_bp.add_url_rule(f"/{name}/<int:entry_id>", f"update_{name}", update, methods=["PUT"])
    api_bp.add_url_rule(f"/{name}/<int:entry_id>", f"delete_{name}", delete, methods=["DELETE"])


_register_resource("products", controllers.products)
_register_resource("carts", controllers.carts)
_register_resource("orders", controllers.orders)
_register_resource("addresses", controllers.addresses)
_register_resource("reviews", controllers.reviews)
_register_resource("categories", controllers.categories)


@api_bp.route("/carts/<int:entry_id>/items", methods=["POST"])
@middleware_chain
def add_cart_item(entry_id: int) -> tuple:
    """Add one line to a stored cart."""
    body, status = controllers.carts.add_item(g.ctx, entry_id)
    return jsonify(body), status


@api_bp.route("/carts/<int:entry_id>/merge", methods=["POST"])
@middleware_chain
def merge_cart(entry_id: int) -> tuple:
    """Merge a guest cart's items into a stored cart."""
    body, status = controllers.carts.merge(g.ctx, entry_id)
    return jsonify(body), status


# ===========================================================================
# Users & roles
# ===========================================================================


@api_bp.route("/users/roles", methods=["GET"])
@middleware_chain
def get_roles() -> tuple:
    body, status = users.get_roles(g.ctx)
    return jsonify(body), status


@api_bp.route("/users/roles", methods=["POST"])
@middleware_chain
def create_role() -> tuple:
    body, status = users.create_role(g.ctx)
    return jsonify(body), status


@api_bp.route("/users/roles/<int:role_id>", methods=["GET"])
@middleware_chain
def get_role(role_id: int) -> tuple:
    body, status = users.get_role(g.ctx, role_id)
    return jsonify(body), status


@api_bp.route("/users/by-role/<int:role_id>", methods=["GET"])
@middleware_chain
def get_users_by_role(role_id: int) -> tuple:
    body, status = users.get_users_by_role(g.ctx, role_id)
    return jsonify(body), status


@api_bp.route("/users/<int:user_id>/permissions", methods=["GET"])
@middleware_chain
def get_user_permissions(user_id: int) -> tuple:
    body, status = users.get_user_permissions(g.ctx, user_id)
    return jsonify(body), status


@api_bp.route("/users/<int:user_id>/assign-role", methods=["PUT"])
@middleware_chain
def assign_role(user_id: int) -> tuple:
    body, status = users.assign_role(g.ctx, user_id)
    return jsonify(body), status
