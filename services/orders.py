"""Order business rules and the order status workflow."""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Mapping, Sequence
from typing import Any

from api.exceptions import BusinessLogicError, NotFoundError, ValidationError
from services.content import ContentService
from utils.pricing import line_total
from utils.validation import round_decimal, to_number

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("complete", "pending", "paid", "failed", "refunded")

# current status -> statuses it may move to; delivered and cancelled are final
ORDER_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("processing", "cancelled"),
    "processing": ("shipped", "cancelled"),
    "shipped": ("delivered",),
    "delivered": (),
    "cancelled": (),
}

MIN_TOTAL = 0.01
MAX_TOTAL = 999999.99
MAX_ORDER_ITEMS = 50
MAX_ITEM_QUANTITY = 999
HIGH_VALUE_TOTAL = 10000

_TRACKING_RE = re.compile(r"^[A-Z0-9]+$", re.IGNORECASE)
_ORDER_NUMBER_RE = re.compile(r"^[A-Z0-9-]+$", re.IGNORECASE)


def _code_errors(value: Any, label: str, low: int, high: int, regex: re.Pattern[str], charset: str) -> list[str]:
    if not isinstance(value, str) or len(value) < low:
        return [f"{label} must be at least {low} characters"]
    errors = []
    if len(value) > high:
        errors.append(f"{label} must not exceed {high} characters")
    if not regex.match(value):
        errors.append(f"{label} must contain only {charset}")
    return errors


def validate_order_data(data: Mapping[str, Any], action: str = "create") -> None:
    """Check order semantics, including the cross-field status rules."""
    errors: dict[str, list[str]] = defaultdict(list)

    if "orderStatus" in data and data["orderStatus"] not in ORDER_STATUSES:
        errors["orderStatus"].append("Invalid order status")
    if "paymentStatus" in data and data["paymentStatus"] not in PAYMENT_STATUSES:
        errors["paymentStatus"].append("Invalid payment status")

    if "totalAmount" in data:
        total = to_number(data["totalAmount"])
        if total is None:
            errors["totalAmount"].append("Total amount must be a valid number")
        elif total < MIN_TOTAL:
            errors["totalAmount"].append("Total amount must be at least $0.01")
        elif total > MAX_TOTAL:
            errors["totalAmount"].append("Total amount must not exceed $999,999.99")

    if data.get("trackingNumber"):
        errors["trackingNumber"].extend(
            _code_errors(data["trackingNumber"], "Tracking number", 5, 50, _TRACKING_RE, "letters and numbers")
        )
    if "orderNumber" in data:
        errors["orderNumber"].extend(
            _code_errors(
                data["orderNumber"], "Order number", 8, 20, _ORDER_NUMBER_RE, "letters, numbers, and dashes"
            )
        )

    if "items" in data:
        items = data["items"]
        if not isinstance(items, list):
            errors["items"].append("Items must be an array")
        else:
            if not items:
                errors["items"].append("Order must contain at least one item")
            if len(items) > MAX_ORDER_ITEMS:
                errors["items"].append("Order cannot contain more than 50 items")
            for index, item in enumerate(items, start=1):
                if not isinstance(item, Mapping):
                    errors["items"].append(f"Item {index}: Item must be an object")
                    continue
                quantity = to_number(item.get("quantity"))
                if not quantity or quantity < 1:
                    errors["items"].append(f"Item {index}: Quantity must be at least 1")
                elif quantity > MAX_ITEM_QUANTITY:
                    errors["items"].append(f"Item {index}: Quantity cannot exceed 999")
                if not item.get("size"):
                    errors["items"].append(f"Item {index}: Size is required")

    if data.get("orderStatus") == "delivered" and not data.get("trackingNumber"):
        errors["trackingNumber"].append("Delivered orders must have a tracking number")
    if data.get("paymentStatus") == "paid" and data.get("orderStatus") == "pending":
        errors["paymentStatus"].append("Paid orders cannot have pending status")

    errors = {field: messages for field, messages in errors.items() if messages}
    if errors:
        raise ValidationError(f"Order validation failed on {action}", errors)


def validate_order_workflow(current_status: str, new_status: str) -> None:
    """Raise BusinessLogicError unless *current_status* may move to *new_status*."""
    if new_status not in ORDER_TRANSITIONS.get(current_status, ()):
        raise BusinessLogicError(
            f"Invalid status transition from {current_status} to {new_status}",
            {"currentStatus": current_status, "newStatus": new_status},
        )


def calculate_order_total(items: Sequence[Mapping[str, Any]]) -> float:
    """Sum of item price times quantity."""
    return sum(line_total(item.get("price"), item.get("quantity")) for item in items)


def sanitize_order_data(data: Mapping[str, Any]) -> dict[str, Any]:
    sanitized = dict(data)
    for field in ("trackingNumber", "orderNumber"):
        if isinstance(sanitized.get(field), str):
            sanitized[field] = sanitized[field].strip().upper()
    total = to_number(sanitized.get("totalAmount"))
    if total is not None:
        sanitized["totalAmount"] = round_decimal(total, 2)
    return sanitized


def order_warnings(data: Mapping[str, Any]) -> list[str]:
    warnings = []
    total = to_number(data.get("totalAmount"))
    if total is not None and total > HIGH_VALUE_TOTAL:
        warnings.append("High value order detected (>$10,000)")
    if data.get("orderStatus") == "cancelled" and data.get("paymentStatus") == "paid":
        warnings.append("Cancelled order is marked as paid")
    return warnings


class OrderService(ContentService):
    """Order CRUD; status changes on update follow ``ORDER_TRANSITIONS``."""

    content_type = "order"

    def _prepare(self, data: Mapping[str, Any], action: str) -> dict[str, Any]:
        validate_order_data(data, action)
        sanitized = sanitize_order_data(data)
        warnings = order_warnings(sanitized)
        if warnings:
            logger.warning("Order %s warnings: %s", action, ", ".join(warnings))
        return sanitized

    def create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return super().create(self._prepare(data, "create"))

    def update(self, entry_id: int, data: Mapping[str, Any]) -> dict[str, Any] | None:
        entry = self.find_one(entry_id)
        if entry is None:
            raise NotFoundError("Order not found", {"id": entry_id})
        stored = entry["attributes"]
        current_status = stored.get("orderStatus", "pending")
        new_status = data.get("orderStatus", current_status)
        if new_status not in ORDER_STATUSES:
            raise ValidationError("Order validation failed on update", {"orderStatus": ["Invalid order status"]})
        if new_status != current_status:
            validate_order_workflow(current_status, new_status)
        # Cross-field rules see the stored record with the update applied.
        self._prepare({**stored, **data}, "update")
        return super().update(entry_id, sanitize_order_data(data))
