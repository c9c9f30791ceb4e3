"""Resource controllers.

:class:`CoreController` implements create/update/delete/find/find_one on top
of a content service.  Subclasses pick the service, the rule sets and the role
gate, and may post-process entries.  Application errors and schema rejections
raised anywhere below a controller pass through unchanged; anything else is
wrapped as a :class:`BusinessLogicError` tagged with the failing operation.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from api.context import RequestContext
from api.envelope import deletion_envelope, enrich_entry, success_envelope
from api.errors import database_error_code
from api.exceptions import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    BusinessLogicError,
    NotFoundError,
    ValidationError,
)
from api.rules import (
    ADDRESS_RULES,
    CART_CREATE_RULES,
    CART_ITEM_RULES,
    CART_UPDATE_RULES,
    CATEGORY_RULES,
    ORDER_CREATE_RULES,
    ORDER_UPDATE_RULES,
    PRODUCT_RULES,
    REVIEW_RULES,
)
from config import settings
from services.carts import CartService
from services.content import ContentService, parse_query_params
from services.orders import OrderService
from services.products import ProductService, normalize_choices
from utils.validation import POSTAL_CODE_PATTERNS, ValidationRules, is_postal_code, partial_rules

logger = logging.getLogger(__name__)

Payload = tuple[dict[str, Any], int]


def wrap_failures(operation: str) -> Callable[[Callable[..., Payload]], Callable[..., Payload]]:
    """Re-raise AppError and schema failures as is; wrap anything else as BusinessLogicError."""

    def decorator(method: Callable[..., Payload]) -> Callable[..., Payload]:
        @functools.wraps(method)
        def wrapper(self: CoreController, ctx: RequestContext, *args: Any, **kwargs: Any) -> Payload:
            try:
                return method(self, ctx, *args, **kwargs)
            except (AppError, SchemaValidationError):
                raise
            except Exception as exc:
                if database_error_code(exc) is not None:
                    raise
                logger.error(
                    "%s %s error: %s",
                    self.label,
                    operation,
                    exc,
                    exc_info=True,
                    extra={"context": {"user": ctx.user_id, "params": ctx.params}},
                )
                raise BusinessLogicError(
                    f"Failed to {operation} {self.label.lower()}",
                    {"originalError": str(exc), "operation": f"{operation}_{self.resource}"},
                ) from exc

        return wrapper

    return decorator


class CoreController:
    """Generic controller for one content type."""

    resource = ""
    label = ""
    plural = ""
    service_class: type[ContentService] = ContentService
    create_rules: ValidationRules = {}
    update_rules: ValidationRules | None = None
    # role types allowed to write; None means any authenticated user
    write_roles: tuple[str, ...] | None = None

    def service(self, ctx: RequestContext) -> ContentService:
        return self.service_class(ctx.db, self.resource)

    # -- gates -------------------------------------------------------------

    def require_user(self, ctx: RequestContext, action: str) -> None:
        if ctx.user is None:
            raise AuthenticationError(f"Authentication required to {action} {self.plural}")
        if self.write_roles is not None and ctx.role_type not in self.write_roles:
            raise AuthorizationError("Insufficient permissions", {"requiredRoles": list(self.write_roles)})

    def require_data(self, ctx: RequestContext) -> dict[str, Any]:
        body = ctx.body if isinstance(ctx.body, dict) else {}
        data = body.get("data")
        if not isinstance(data, dict) or not data:
            raise ValidationError("Validation failed", {"data": ["is required"]})
        return data

    # -- hooks -------------------------------------------------------------

    def before_create(self, ctx: RequestContext, data: dict[str, Any]) -> dict[str, Any]:
        return data

    def present(self, ctx: RequestContext, entry: dict[str, Any]) -> dict[str, Any]:
        return entry

    def _not_found(self, entry_id: int) -> NotFoundError:
        return NotFoundError(f"{self.label} not found", {"id": entry_id})

    # -- operations --------------------------------------------------------

    @wrap_failures("create")
    def create(self, ctx: RequestContext) -> Payload:
        self.require_user(ctx, "create")
        data = self.require_data(ctx)
        ctx.validate_request_at("data", self.create_rules)
        entry = self.service(ctx).create(self.before_create(ctx, data))
        logger.info("%s %s created by user %s", self.label, entry["id"], ctx.user_id)
        return success_envelope(self.present(ctx, entry), f"{self.label} created successfully"), 201

    @wrap_failures("update")
    def update(self, ctx: RequestContext, entry_id: int) -> Payload:
        self.require_user(ctx, "update")
        data = self.require_data(ctx)
        rules = self.update_rules if self.update_rules is not None else self.create_rules
        ctx.validate_request_at("data", partial_rules(rules, data))
        entry = self.service(ctx).update(entry_id, data)
        if entry is None:
            raise self._not_found(entry_id)
        return success_envelope(self.present(ctx, entry), f"{self.label} updated successfully"), 200

    @wrap_failures("delete")
    def delete(self, ctx: RequestContext, entry_id: int) -> Payload:
        self.require_user(ctx, "delete")
        if self.service(ctx).delete(entry_id) is None:
            raise self._not_found(entry_id)
        return deletion_envelope(f"{self.label} deleted successfully"), 200

    @wrap_failures("fetch")
    def find(self, ctx: RequestContext) -> Payload:
        entries, pagination = self.service(ctx).find(**parse_query_params(ctx.query))
        data = [self.present(ctx, entry) for entry in entries]
        return {"data": data, "meta": {"pagination": pagination}}, 200

    @wrap_failures("fetch")
    def find_one(self, ctx: RequestContext, entry_id: int) -> Payload:
        entry = self.service(ctx).find_one(entry_id)
        if entry is None:
            raise self._not_found(entry_id)
        return {"data": self.present(ctx, entry), "meta": {}}, 200


class ProductController(CoreController):
    resource = "product"
    label = "Product"
    plural = "products"
    service_class = ProductService
    create_rules = PRODUCT_RULES
    write_roles = ("authenticated", "admin")

    def require_data(self, ctx: RequestContext) -> dict[str, Any]:
        # Enum rules compare lowercase values; the body is normalized in place.
        data = super().require_data(ctx)
        data.update(normalize_choices(data))
        return data

    def present(self, ctx: RequestContext, entry: dict[str, Any]) -> dict[str, Any]:
        return enrich_entry(entry, ctx.db, settings.get("cloudinary_name"))


class CartController(CoreController):
    resource = "cart"
    label = "Cart"
    plural = "carts"
    create_rules = CART_CREATE_RULES
    update_rules = CART_UPDATE_RULES

    def service(self, ctx: RequestContext) -> CartService:
        return CartService(ctx.db)

    def before_create(self, ctx: RequestContext, data: dict[str, Any]) -> dict[str, Any]:
        return {**data, "user": ctx.user_id}

    @wrap_failures("update")
    def add_item(self, ctx: RequestContext, entry_id: int) -> Payload:
        self.require_user(ctx, "update")
        item = self.require_data(ctx)
        ctx.validate_request_at("data", CART_ITEM_RULES)
        entry = self.service(ctx).add_item(entry_id, item)
        if entry is None:
            raise self._not_found(entry_id)
        return success_envelope(entry, "Item added to cart"), 200

    @wrap_failures("update")
    def merge(self, ctx: RequestContext, entry_id: int) -> Payload:
        self.require_user(ctx, "update")
        data = self.require_data(ctx)
        ctx.validate_request_at("data", {"items": CART_CREATE_RULES["items"]})
        entry = self.service(ctx).merge(entry_id, data["items"])
        if entry is None:
            raise self._not_found(entry_id)
        return success_envelope(entry, "Carts merged successfully"), 200


class OrderController(CoreController):
    resource = "order"
    label = "Order"
    plural = "orders"
    service_class = OrderService
    create_rules = ORDER_CREATE_RULES
    update_rules = ORDER_UPDATE_RULES

    def before_create(self, ctx: RequestContext, data: dict[str, Any]) -> dict[str, Any]:
        return {**data, "user": ctx.user_id}


class AddressController(CoreController):
    resource = "address"
    label = "Address"
    plural = "addresses"
    create_rules = ADDRESS_RULES

    def before_create(self, ctx: RequestContext, data: dict[str, Any]) -> dict[str, Any]:
        country = str(data.get("country", "")).upper()
        if country in POSTAL_CODE_PATTERNS and not is_postal_code(str(data["postalCode"]), country):
            raise ValidationError(
                "Validation failed",
                {"postalCode": [f"is not a valid postal code for {country}"]},
            )
        return {**data, "user": ctx.user_id}


class ReviewController(CoreController):
    resource = "review"
    label = "Review"
    plural = "reviews"
    create_rules = REVIEW_RULES

    def before_create(self, ctx: RequestContext, data: dict[str, Any]) -> dict[str, Any]:
        return {**data, "user": ctx.user_id}


class CategoryController(CoreController):
    resource = "category"
    label = "Category"
    plural = "categories"
    create_rules = CATEGORY_RULES
    write_roles = ("admin",)


products = ProductController()
carts = CartController()
orders = OrderController()
addresses = AddressController()
reviews = ReviewController()
categories = CategoryController()
