"""Cart business rules.

Two duplicate policies live here on purpose.  ``validate_cart_data`` rejects a
cart whose lines repeat a (product, size, color) key, which is what create and
update go through.  ``merge_cart_items`` is used when a guest cart is folded
into a stored one and sums repeated lines instead, capped at
``MAX_ITEM_QUANTITY``.
"""

from __future__ import annotations

import logging
import math
import re
from collections import defaultdict
from collections.abc import Mapping, Sequence
from typing import Any

from api.exceptions import NotFoundError, ValidationError
from services.content import ContentService
from utils.identifiers import generate_session_id
from utils.pricing import line_total
from utils.validation import to_number

logger = logging.getLogger(__name__)

CART_SIZES = ("XXXL", "XXL", "XL", "L", "M", "S", "XS")
MAX_CART_ITEMS = 20
MAX_ITEM_QUANTITY = 99
NEARLY_FULL_THRESHOLD = 18

_SESSION_ID_RE = re.compile(r"^[A-Z0-9-]+$", re.IGNORECASE)

CartKey = tuple[Any, Any, Any]


def cart_item_key(item: Mapping[str, Any]) -> CartKey:
    """The (product, size, color) identity of a cart line."""
    product = item.get("product")
    if isinstance(product, Mapping):
        product = product.get("id")
    return (product, item.get("size"), item.get("color"))


def _item_errors(index: int, item: Any) -> list[str]:
    prefix = f"Item {index}:"
    if not isinstance(item, Mapping):
        return [f"{prefix} Item must be an object"]
    errors = []
    quantity = to_number(item.get("quantity"))
    if not quantity or quantity < 1:
        errors.append(f"{prefix} Quantity must be at least 1")
    elif quantity > MAX_ITEM_QUANTITY:
        errors.append(f"{prefix} Quantity cannot exceed 99")
    size = item.get("size")
    if not size:
        errors.append(f"{prefix} Size is required")
    elif size not in CART_SIZES:
        errors.append(f"{prefix} Invalid size")
    color = item.get("color")
    if not isinstance(color, str) or len(color.strip()) < 2:
        errors.append(f"{prefix} Color must be at least 2 characters")
    return errors


def validate_cart_data(data: Mapping[str, Any], action: str = "create") -> None:
    """Check cart semantics for the fields present in *data*.

    Repeated (product, size, color) lines are rejected.
    """
    errors: dict[str, list[str]] = defaultdict(list)

    if "sessionId" in data:
        session_id = data["sessionId"]
        if not isinstance(session_id, str) or len(session_id) < 10:
            errors["sessionId"].append("Session ID must be at least 10 characters")
        else:
            if len(session_id) > 100:
                errors["sessionId"].append("Session ID must not exceed 100 characters")
            if not _SESSION_ID_RE.match(session_id):
                errors["sessionId"].append("Session ID must contain only letters, numbers, and dashes")

    if "items" in data:
        items = data["items"]
        if not isinstance(items, list):
            errors["items"].append("Items must be an array")
        else:
            if len(items) > MAX_CART_ITEMS:
                errors["items"].append("Cart cannot contain more than 20 items")
            for index, item in enumerate(items, start=1):
                errors["items"].extend(_item_errors(index, item))
            keys = [cart_item_key(item) for item in items if isinstance(item, Mapping)]
            if len(set(keys)) != len(keys):
                errors["items"].append("Cart contains duplicate items")

    errors = {field: messages for field, messages in errors.items() if messages}
    if errors:
        raise ValidationError(f"Cart validation failed on {action}", errors)


def validate_cart_item_addition(cart_items: Sequence[Mapping[str, Any]], new_item: Mapping[str, Any]) -> None:
    """Check that *new_item* can be added to a cart holding *cart_items*."""
    errors: dict[str, list[str]] = defaultdict(list)
    if len(cart_items) >= MAX_CART_ITEMS:
        errors["items"].append("Cart is full (maximum 20 items)")

    new_quantity = to_number(new_item.get("quantity")) or 0
    key = cart_item_key(new_item)
    existing = next((item for item in cart_items if cart_item_key(item) == key), None)
    if existing is not None:
        total = (to_number(existing.get("quantity")) or 0) + new_quantity
        if total > MAX_ITEM_QUANTITY:
            errors["quantity"].append("Total quantity for this item cannot exceed 99")
    if new_quantity > MAX_ITEM_QUANTITY:
        errors["quantity"].append("Item quantity cannot exceed 99")

    if errors:
        raise ValidationError("Cart item validation failed", dict(errors))


def merge_cart_items(
    existing_items: Sequence[Mapping[str, Any]],
    new_items: Sequence[Mapping[str, Any]],
) -> list[dict[str, Any]]:
    """Fold *new_items* into *existing_items*, summing repeated lines.

    Quantities are capped at 99.  Neither input is modified.
    """
    merged = [dict(item) for item in existing_items]
    positions = {cart_item_key(item): i for i, item in enumerate(merged)}
    for item in new_items:
        key = cart_item_key(item)
        if key in positions:
            line = merged[positions[key]]
            total = (to_number(line.get("quantity")) or 0) + (to_number(item.get("quantity")) or 0)
            line["quantity"] = int(min(total, MAX_ITEM_QUANTITY))
        else:
            positions[key] = len(merged)
            merged.append(dict(item))
    return merged


def calculate_cart_total(items: Sequence[Mapping[str, Any]]) -> float:
    """Sum of product price times quantity; missing prices count as zero."""
    total = 0.0
    for item in items:
        product = item.get("product")
        price = product.get("price") if isinstance(product, Mapping) else None
        total += line_total(price, item.get("quantity"))
    return total


def sanitize_cart_data(data: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize the session ID and item fields."""
    sanitized = dict(data)
    if isinstance(sanitized.get("sessionId"), str):
        sanitized["sessionId"] = sanitized["sessionId"].strip().upper()
    if isinstance(sanitized.get("items"), list):
        items = []
        for item in sanitized["items"]:
            if not isinstance(item, Mapping):
                items.append(item)
                continue
            line = dict(item)
            if isinstance(line.get("color"), str):
                line["color"] = line["color"].strip()
            quantity = to_number(line.get("quantity"))
            line["quantity"] = math.floor(quantity) if quantity is not None else 1
            items.append(line)
        sanitized["items"] = items
    return sanitized


def cart_warnings(data: Mapping[str, Any]) -> list[str]:
    items = data.get("items")
    if not isinstance(items, list):
        return []
    warnings = [
        f"Item {index} is at the maximum quantity ({MAX_ITEM_QUANTITY})"
        for index, item in enumerate(items, start=1)
        if isinstance(item, Mapping) and to_number(item.get("quantity")) == MAX_ITEM_QUANTITY
    ]
    if len(items) >= NEARLY_FULL_THRESHOLD:
        warnings.append(f"Cart is almost full ({len(items)} of {MAX_CART_ITEMS} items)")
    return warnings


class CartService(ContentService):
    """Cart CRUD plus line-item operations."""

    content_type = "cart"

    def _prepare(self, data: Mapping[str, Any], action: str) -> dict[str, Any]:
        validate_cart_data(data, action)
        sanitized = sanitize_cart_data(data)
        warnings = cart_warnings(sanitized)
        if warnings:
            logger.warning("Cart %s warnings: %s", action, ", ".join(warnings))
        return sanitized

    def create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        if not data.get("sessionId"):
            data = {**data, "sessionId": generate_session_id()}
        return super().create(self._prepare(data, "create"))

    def update(self, entry_id: int, data: Mapping[str, Any]) -> dict[str, Any] | None:
        return super().update(entry_id, self._prepare(data, "update"))

    def _stored_items(self, entry_id: int) -> list[dict[str, Any]]:
        entry = self.find_one(entry_id)
        if entry is None:
            raise NotFoundError("Cart not found", {"id": entry_id})
        return list(entry["attributes"].get("items") or [])

    def add_item(self, entry_id: int, item: Mapping[str, Any]) -> dict[str, Any] | None:
        """Add one line, summing it into an existing line with the same key."""
        items = self._stored_items(entry_id)
        validate_cart_data({"items": [item]}, "add_item")
        line = sanitize_cart_data({"items": [item]})["items"][0]
        validate_cart_item_addition(items, line)
        return self.update(entry_id, {"items": merge_cart_items(items, [line])})

    def merge(self, entry_id: int, guest_items: Sequence[Mapping[str, Any]]) -> dict[str, Any] | None:
        """Merge a guest cart's lines into the stored cart."""
        items = self._stored_items(entry_id)
        if not isinstance(guest_items, list):
            raise ValidationError("Cart validation failed on merge", {"items": ["Items must be an array"]})
        # Repeats inside the guest cart are summed below, not rejected.
        errors = [msg for i, item in enumerate(guest_items, start=1) for msg in _item_errors(i, item)]
        if errors:
            raise ValidationError("Cart validation failed on merge", {"items": errors})
        guest = sanitize_cart_data({"items": guest_items})["items"]
        return self.update(entry_id, {"items": merge_cart_items(items, guest)})
