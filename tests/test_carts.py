"""Tests for services.carts."""

from __future__ import annotations

import pytest

from api.exceptions import NotFoundError, ValidationError
from services.carts import (
    CartService,
    calculate_cart_total,
    cart_item_key,
    cart_warnings,
    merge_cart_items,
    sanitize_cart_data,
    validate_cart_data,
    validate_cart_item_addition,
)


def _line(**overrides) -> dict:
    return {"product": 1, "quantity": 1, "size": "M", "color": "Blue", **overrides}


class TestCartItemKey:
    def test_product_id_or_object(self) -> None:
        assert cart_item_key(_line()) == (1, "M", "Blue")
        assert cart_item_key(_line(product={"id": 1, "price": 10})) == (1, "M", "Blue")


class TestValidateCartData:
    def test_valid(self) -> None:
        assert validate_cart_data({"sessionId": "CART-ABC-123", "items": [_line()]}) is None

    def test_session_id(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_cart_data({"sessionId": "short"})
        assert exc_info.value.details == {"sessionId": ["Session ID must be at least 10 characters"]}
        with pytest.raises(ValidationError) as exc_info:
            validate_cart_data({"sessionId": "CART_ABC_123"})
        assert exc_info.value.details == {
            "sessionId": ["Session ID must contain only letters, numbers, and dashes"]
        }

    def test_item_messages_are_numbered(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_cart_data({"items": [_line(), _line(quantity=0, size="XXXXL", color="B")]}, "update")
        err = exc_info.value
        assert err.message == "Cart validation failed on update"
        assert err.details == {
            "items": [
                "Item 2: Quantity must be at least 1",
                "Item 2: Invalid size",
                "Item 2: Color must be at least 2 characters",
            ]
        }

    def test_quantity_upper_bound(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_cart_data({"items": [_line(quantity=100)]})
        assert exc_info.value.details == {"items": ["Item 1: Quantity cannot exceed 99"]}

    def test_too_many_items(self) -> None:
        items = [_line(product=i) for i in range(21)]
        with pytest.raises(ValidationError) as exc_info:
            validate_cart_data({"items": items})
        assert exc_info.value.details == {"items": ["Cart cannot contain more than 20 items"]}

    def test_duplicates_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_cart_data({"items": [_line(), _line(quantity=4)]})
        assert exc_info.value.details == {"items": ["Cart contains duplicate items"]}

    def test_same_product_other_color_is_not_duplicate(self) -> None:
        assert validate_cart_data({"items": [_line(), _line(color="Red")]}) is None


class TestItemAddition:
    def test_full_cart(self) -> None:
        items = [_line(product=i) for i in range(20)]
        with pytest.raises(ValidationError) as exc_info:
            validate_cart_item_addition(items, _line(product=99))
        assert exc_info.value.details == {"items": ["Cart is full (maximum 20 items)"]}

    def test_total_quantity(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_cart_item_addition([_line(quantity=50)], _line(quantity=50))
        assert exc_info.value.details == {"quantity": ["Total quantity for this item cannot exceed 99"]}

    def test_within_limits(self) -> None:
        assert validate_cart_item_addition([_line(quantity=49)], _line(quantity=50)) is None


class TestMerge:
    def test_sums_and_caps(self) -> None:
        existing = [_line(quantity=60)]
        merged = merge_cart_items(existing, [_line(quantity=60), _line(size="L")])
        assert merged == [_line(quantity=99), _line(size="L")]

    def test_inputs_untouched(self) -> None:
        existing = [_line(quantity=2)]
        new = [_line(quantity=3)]
        merge_cart_items(existing, new)
        assert existing == [_line(quantity=2)]
        assert new == [_line(quantity=3)]

    def test_repeats_within_new_items_are_summed(self) -> None:
        assert merge_cart_items([], [_line(), _line(quantity=2)]) == [_line(quantity=3)]


class TestHelpers:
    def test_total(self) -> None:
        items = [
            {"product": {"price": 10.5}, "quantity": 2},
            {"product": {"price": 3}, "quantity": 1},
            {"product": 7, "quantity": 5},
        ]
        assert calculate_cart_total(items) == 24.0

    def test_sanitize(self) -> None:
        data = {"sessionId": "  cart-abc-123 ", "items": [_line(color=" Blue ", quantity="2.8"), {"product": 2}]}
        sanitized = sanitize_cart_data(data)
        assert sanitized["sessionId"] == "CART-ABC-123"
        assert sanitized["items"][0]["color"] == "Blue"
        assert sanitized["items"][0]["quantity"] == 2
        assert sanitized["items"][1]["quantity"] == 1

    @pytest.mark.parametrize("quantity", [0.5, "2.8", None, "many"])
    def test_sanitize_is_idempotent(self, quantity) -> None:
        data = {"sessionId": " cart-abc-123", "items": [_line(color=" Red ", quantity=quantity)]}
        once = sanitize_cart_data(data)
        assert sanitize_cart_data(once) == once

    def test_fractional_quantity_is_floored(self) -> None:
        assert sanitize_cart_data({"items": [_line(quantity=0.5)]})["items"][0]["quantity"] == 0


    def test_warnings(self) -> None:
        items = [_line(product=i) for i in range(17)] + [_line(product=17, quantity=99)]
        assert cart_warnings({"items": items}) == [
            "Item 18 is at the maximum quantity (99)",
            "Cart is almost full (18 of 20 items)",
        ]
        assert cart_warnings({}) == []


class TestCartService:
    def test_create_generates_session_id(self, db) -> None:
        entry = CartService(db).create({"items": [_line()]})
        assert entry["attributes"]["sessionId"].startswith("CART-")

    def test_add_item_new_line(self, db) -> None:
        service = CartService(db)
        cart = service.create({"sessionId": "cart-abc-123", "items": [_line()]})
        entry = service.add_item(cart["id"], _line(color="Red", quantity=2))
        assert [(i["color"], i["quantity"]) for i in entry["attributes"]["items"]] == [("Blue", 1), ("Red", 2)]

    def test_add_item_missing_cart(self, db) -> None:
        with pytest.raises(NotFoundError, match="Cart not found"):
            CartService(db).add_item(404, _line())

    def test_merge_rejects_bad_guest_items(self, db) -> None:
        service = CartService(db)
        cart = service.create({"sessionId": "cart-abc-123", "items": [_line()]})
        with pytest.raises(ValidationError) as exc_info:
            service.merge(cart["id"], [_line(quantity=0)])
        assert exc_info.value.details == {"items": ["Item 1: Quantity must be at least 1"]}

    def test_merge_caps_quantity(self, db) -> None:
        service = CartService(db)
        cart = service.create({"sessionId": "cart-abc-123", "items": [_line(quantity=90)]})
        entry = service.merge(cart["id"], [_line(quantity=20)])
        assert entry["attributes"]["items"][0]["quantity"] == 99
