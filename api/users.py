"""User and role management endpoints.

These handlers raise Werkzeug HTTP errors and parse bodies with pydantic, so
their failures reach the error formatter in framework shape.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import abort
from pydantic import BaseModel, Field

from api.context import RequestContext
from services import users as user_service

logger = logging.getLogger(__name__)


class CreateRoleRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: str = Field(min_length=1, max_length=50, pattern=r"^[a-z0-9_-]+$")
    description: str = ""
    permissions: list[str] = []


class AssignRoleRequest(BaseModel):
    roleId: int = Field(gt=0)  # noqa: N815


def _require_user(ctx: RequestContext) -> None:
    if ctx.user is None:
        abort(401, description="Authentication required")


def _require_admin(ctx: RequestContext) -> None:
    _require_user(ctx)
    if ctx.role_type != "admin":
        abort(403, description="Only administrators can manage roles")


def get_roles(ctx: RequestContext) -> tuple[dict[str, Any], int]:
    _require_user(ctx)
    roles = user_service.get_all_roles(ctx.db)
    return {"data": roles, "meta": {"count": len(roles)}}, 200


def get_role(ctx: RequestContext, role_id: int) -> tuple[dict[str, Any], int]:
    _require_user(ctx)
    role = user_service.get_role_by_id(ctx.db, role_id)
    if role is None:
        abort(404, description="Role not found")
    return {"data": role}, 200


def get_users_by_role(ctx: RequestContext, role_id: int) -> tuple[dict[str, Any], int]:
    _require_user(ctx)
    users = user_service.get_users_by_role(ctx.db, role_id)
    return {"data": users, "meta": {"count": len(users)}}, 200


def get_user_permissions(ctx: RequestContext, user_id: int) -> tuple[dict[str, Any], int]:
    _require_user(ctx)
    result = user_service.get_user_permissions(ctx.db, user_id)
    if result is None:
        abort(404, description="User not found")
    return {"data": result}, 200


def create_role(ctx: RequestContext) -> tuple[dict[str, Any], int]:
    """Create a role; a duplicate role type fails in the database."""
    _require_admin(ctx)
    req = CreateRoleRequest.model_validate(ctx.body if ctx.body is not None else {})
    role = user_service.create_role(
        ctx.db,
        name=req.name,
        role_type=req.type,
        description=req.description,
        permissions=req.permissions,
    )
    return {"data": role}, 201


def assign_role(ctx: RequestContext, user_id: int) -> tuple[dict[str, Any], int]:
    _require_admin(ctx)
    req = AssignRoleRequest.model_validate(ctx.body if ctx.body is not None else {})
    if user_service.get_role_by_id(ctx.db, req.roleId) is None:
        abort(404, description="Role not found")
    user = user_service.assign_role_to_user(ctx.db, user_id, req.roleId)
    if user is None:
        abort(404, description="User not found")
    return {"data": user}, 200
