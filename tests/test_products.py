"""Tests for services.products."""

from __future__ import annotations

import sqlite3
from unittest.mock import patch

import pytest

from api.exceptions import BusinessLogicError, DatabaseError, NotFoundError, ValidationError
from services.content import ContentService
from services.products import (
    ProductService,
    product_warnings,
    sanitize_product_data,
    validate_product_data,
)


class TestValidateProductData:
    def test_valid(self, product_data) -> None:
        assert validate_product_data(product_data) is None

    def test_collects_every_field(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_product_data({"title": "AB", "description": "Short", "price": -10, "stock": -5})
        err = exc_info.value
        assert err.message == "Product validation failed on create"
        assert err.details == {
            "title": ["Title must be at least 3 characters long"],
            "description": ["Description must be at least 10 characters long"],
            "price": ["Price must be at least $0.01"],
            "stock": ["Stock cannot be negative"],
        }

    def test_action_in_message(self) -> None:
        with pytest.raises(ValidationError, match="on update"):
            validate_product_data({"price": "free"}, "update")

    def test_upper_bounds(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_product_data({"price": 1000000, "discount": 101, "stock": 100000})
        assert exc_info.value.details == {
            "price": ["Price must not exceed $999,999.99"],
            "discount": ["Discount cannot exceed 100%"],
            "stock": ["Stock cannot exceed 99,999 units"],
        }

    def test_discounted_price_floor(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_product_data({"price": 0.01, "discount": 60})
        assert exc_info.value.details == {"discount": ["Discounted price cannot be less than $0.01"]}

    def test_size_case_insensitive(self) -> None:
        assert validate_product_data({"sizes": "XL"}) is None
        with pytest.raises(ValidationError):
            validate_product_data({"sizes": "xxxl"})

    def test_images(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_product_data({"images": []})
        assert exc_info.value.details == {"images": ["At least one image is required"]}
        with pytest.raises(ValidationError):
            validate_product_data({"images": [{"url": "x"}] * 11})

    def test_ai_fields(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_product_data(
                {"aiTags": "tags", "aiDescription": "x" * 1001, "vectorEmbedding": []}
            )
        assert set(exc_info.value.details) == {"aiTags", "aiDescription", "vectorEmbedding"}


class TestSanitizeAndWarnings:
    def test_sanitize(self) -> None:
        data = {"title": "  Shirt ", "price": "19.999", "discount": 12.345, "stock": 4.7, "category": {"id": 3}}
        assert sanitize_product_data(data) == {
            "title": "Shirt",
            "price": 20.0,
            "discount": 12.35,
            "stock": 4,
            "category": 3,
        }

    def test_sanitize_is_idempotent(self, product_data) -> None:
        once = sanitize_product_data({**product_data, "title": " Linen Shirt ", "sizes": " XL", "gender": "Men"})
        assert once["sizes"] == "xl"
        assert once["gender"] == "men"
        assert sanitize_product_data(once) == once

    def test_sanitize_does_not_mutate(self) -> None:
        data = {"title": " x "}
        sanitize_product_data(data)
        assert data == {"title": " x "}

    def test_warnings(self) -> None:
        assert product_warnings({"stock": 0, "discount": 60, "price": 0.5}) == [
            "Product is out of stock",
            "High discount detected (>50%)",
            "Very low price detected (<$1)",
        ]
        assert product_warnings({"stock": 3, "discount": 10, "price": 20}) == []


class TestProductService:
    def test_create_sanitizes(self, db, product_data) -> None:
        entry = ProductService(db).create({**product_data, "title": "  Linen Shirt  ", "price": "99.999"})
        assert entry["attributes"]["title"] == "Linen Shirt"
        assert entry["attributes"]["price"] == 100.0
        assert entry["attributes"]["publishedAt"] is not None

    def test_create_empty(self, db) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ProductService(db).create({})
        assert exc_info.value.message == "Product data is required"

    def test_create_logs_warnings(self, db, product_data, caplog) -> None:
        with caplog.at_level("WARNING", logger="services.products"):
            ProductService(db).create({**product_data, "stock": 0})
        assert "Product is out of stock" in caplog.text

    def test_create_database_failure(self, db, product_data) -> None:
        err = sqlite3.IntegrityError("UNIQUE constraint failed")
        err.sqlite_errorname = "SQLITE_CONSTRAINT_UNIQUE"
        with patch("services.content.models.insert_entry", side_effect=err):
            with pytest.raises(DatabaseError) as exc_info:
                ProductService(db).create(product_data)
        assert exc_info.value.message == "Failed to create product in database"
        assert exc_info.value.details["databaseError"] == "SQLITE_CONSTRAINT_UNIQUE"

    def test_create_unexpected_failure(self, db, product_data) -> None:
        with patch("services.content.models.insert_entry", side_effect=OSError("disk")):
            with pytest.raises(BusinessLogicError) as exc_info:
                ProductService(db).create(product_data)
        assert exc_info.value.details == {"originalError": "disk", "operation": "create_product_service"}

    def test_update_validates_present_fields(self, db, sample_product) -> None:
        with pytest.raises(ValidationError):
            ProductService(db).update(sample_product["id"], {"stock": -1})
        entry = ProductService(db).update(sample_product["id"], {"stock": 3})
        assert entry["attributes"]["stock"] == 3
        assert entry["attributes"]["title"] == "Linen Shirt"

    def test_update_discount_floor_uses_stored_price(self, db, sample_product) -> None:
        service = ProductService(db)
        with pytest.raises(ValidationError) as exc_info:
            service.update(sample_product["id"], {"discount": 100})
        assert exc_info.value.details == {"discount": ["Discounted price cannot be less than $0.01"]}
        with pytest.raises(ValidationError):
            service.update(sample_product["id"], {"price": 0.01})
        assert service.find_one(sample_product["id"])["attributes"]["discount"] == 25

    def test_update_missing(self, db) -> None:
        assert ProductService(db).update(999, {"discount": 10}) is None

    def test_find_published_only(self, db, product_data, sample_product) -> None:
        db.execute("UPDATE entries SET published_at = NULL WHERE id = ?", (sample_product["id"],))
        db.commit()
        ContentService(db, "product").create({**product_data, "title": "Wool Shirt"})
        entries, pagination = ProductService(db).find()
        assert [e["attributes"]["title"] for e in entries] == ["Wool Shirt"]
        assert pagination["total"] == 1

    def test_find_one_missing(self, db) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            ProductService(db).find_one(42)
        assert exc_info.value.details == {"id": 42}
