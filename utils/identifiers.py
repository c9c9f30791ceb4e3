"""Identifier generation for carts, orders and requests."""

from __future__ import annotations

import secrets
import string
import time

_BASE36 = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    if number < 0:
        msg = "number must not be negative"
        raise ValueError(msg)
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def generate_session_id() -> str:
    """Return a cart session ID: CART-<time>-<random>, upper-cased."""
    return f"CART-{to_base36(_timestamp_ms())}-{_random_base36(8)}".upper()


def generate_order_number() -> str:
    """Return an order number: ORD-<time>-<random>, upper-cased."""
    return f"ORD-{to_base36(_timestamp_ms())}-{_random_base36(5)}".upper()


def generate_request_id() -> str:
    """Return a request ID for error tracing: req_<ms>_<random>."""
    return f"req_{_timestamp_ms()}_{_random_base36(9)}"
