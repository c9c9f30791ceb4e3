"""Price computations shared by controllers and services."""

from __future__ import annotations

from typing import Any

from utils.validation import to_number


def discounted_price(price: Any, discount: Any) -> float | None:
    """Return ``price * (1 - discount / 100)``, or None if either is absent."""
    price_value = to_number(price) if price is not None else None
    discount_value = to_number(discount) if discount is not None else None
    if price_value is None or discount_value is None:
        return None
    return price_value * (1 - discount_value / 100)


def line_total(price: Any, quantity: Any) -> float:
    """Price times quantity, treating missing or non-numeric values as zero."""
    return (to_number(price) or 0.0) * (to_number(quantity) or 0.0)
