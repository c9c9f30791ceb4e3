"""Product business rules: semantic validation, sanitizing, warnings."""

from __future__ import annotations

import logging
import math
import sqlite3
from collections import defaultdict
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from api.errors import database_error_code
from api.exceptions import AppError, BusinessLogicError, DatabaseError, NotFoundError, ValidationError
from services.content import DEFAULT_PAGE_SIZE, ContentService
from utils.pricing import discounted_price
from utils.validation import round_decimal, to_number

logger = logging.getLogger(__name__)

PRODUCT_SIZES = ("s", "m", "l", "xl", "xxl")
PRODUCT_GENDERS = ("men", "women", "unisex")

MIN_PRICE = 0.01
MAX_PRICE = 999999.99
MAX_STOCK = 99999
MAX_IMAGES = 10
MAX_AI_DESCRIPTION = 1000


def _number_errors(
    errors: dict[str, list[str]],
    field: str,
    value: Any,
    label: str,
    low: tuple[float, str],
    high: tuple[float, str],
) -> None:
    number = to_number(value)
    if number is None:
        errors[field].append(f"{label} must be a valid number")
        return
    if number < low[0]:
        errors[field].append(low[1])
    if number > high[0]:
        errors[field].append(high[1])


def validate_product_data(data: Mapping[str, Any], action: str = "create") -> None:
    """Check product semantics for the fields present in *data*.

    Raises ValidationError whose details map each failing field to its messages.
    """
    errors: dict[str, list[str]] = defaultdict(list)

    if "title" in data:
        title = data["title"]
        if not isinstance(title, str) or len(title.strip()) < 3:
            errors["title"].append("Title must be at least 3 characters long")
        elif len(title) > 100:
            errors["title"].append("Title must not exceed 100 characters")

    if "description" in data:
        description = data["description"]
        if not isinstance(description, str) or len(description.strip()) < 10:
            errors["description"].append("Description must be at least 10 characters long")
        elif len(description) > 2000:
            errors["description"].append("Description must not exceed 2000 characters")

    if "price" in data:
        _number_errors(
            errors, "price", data["price"], "Price",
            (MIN_PRICE, "Price must be at least $0.01"),
            (MAX_PRICE, "Price must not exceed $999,999.99"),
        )
    if "discount" in data and data["discount"] is not None:
        _number_errors(
            errors, "discount", data["discount"], "Discount",
            (0, "Discount cannot be negative"),
            (100, "Discount cannot exceed 100%"),
        )
    if "stock" in data:
        _number_errors(
            errors, "stock", data["stock"], "Stock",
            (0, "Stock cannot be negative"),
            (MAX_STOCK, "Stock cannot exceed 99,999 units"),
        )

    if data.get("sizes") is not None:
        sizes = data["sizes"]
        if not isinstance(sizes, str) or sizes.strip().lower() not in PRODUCT_SIZES:
            errors["sizes"].append("Size must be one of: s, m, l, xl, xxl")

    if isinstance(data.get("images"), list):
        if not data["images"]:
            errors["images"].append("At least one image is required")
        elif len(data["images"]) > MAX_IMAGES:
            errors["images"].append("Maximum 10 images allowed per product")

    for field, label in (("aiTags", "AI Tags"), ("aiRecommendations", "AI Recommendations")):
        if data.get(field) is not None and not isinstance(data[field], dict):
            errors[field].append(f"{label} must be a valid JSON object")

    ai_description = data.get("aiDescription")
    if isinstance(ai_description, str) and len(ai_description) > MAX_AI_DESCRIPTION:
        errors["aiDescription"].append("AI Description must not exceed 1000 characters")

    embedding = data.get("vectorEmbedding")
    if embedding is not None:
        if not isinstance(embedding, list):
            errors["vectorEmbedding"].append("Vector Embedding must be an array")
        elif not embedding:
            errors["vectorEmbedding"].append("Vector Embedding cannot be empty")

    if not errors.get("price") and not errors.get("discount"):
        floor = discount_floor_errors(data.get("price"), data.get("discount"))
        if floor:
            errors["discount"].extend(floor)

    if errors:
        raise ValidationError(f"Product validation failed on {action}", dict(errors))


def discount_floor_errors(price: Any, discount: Any) -> list[str]:
    final_price = discounted_price(price, discount)
    if final_price is not None and final_price < MIN_PRICE:
        return ["Discounted price cannot be less than $0.01"]
    return []


def product_warnings(data: Mapping[str, Any]) -> list[str]:
    """Non-blocking observations about a (sanitized) product payload."""
    warnings = []
    stock = to_number(data.get("stock"))
    discount = to_number(data.get("discount"))
    price = to_number(data.get("price"))
    if stock == 0:
        warnings.append("Product is out of stock")
    if discount is not None and discount > 50:
        warnings.append("High discount detected (>50%)")
    if price is not None and 0 < price < 1:
        warnings.append("Very low price detected (<$1)")
    return warnings


def normalize_choices(data: Mapping[str, Any]) -> dict[str, str]:
    """Lowercased copies of the enumerated fields present in *data*."""
    return {
        field: data[field].strip().lower()
        for field in ("sizes", "gender")
        if isinstance(data.get(field), str)
    }


def sanitize_product_data(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a trimmed, rounded copy of *data*; applying it twice changes nothing."""
    sanitized = dict(data)
    for field in ("title", "description", "aiDescription"):
        if isinstance(sanitized.get(field), str):
            sanitized[field] = sanitized[field].strip()
    for field in ("price", "discount"):
        number = to_number(sanitized.get(field))
        if number is not None:
            sanitized[field] = round_decimal(number, 2)
    stock = to_number(sanitized.get("stock"))
    if stock is not None:
        sanitized["stock"] = math.floor(stock)
    sanitized.update(normalize_choices(sanitized))
    category = sanitized.get("category")
    if isinstance(category, Mapping) and "id" in category:
        sanitized["category"] = category["id"]
    return sanitized


class ProductService(ContentService):
    """Product CRUD with semantic validation and published-only reads."""

    content_type = "product"

    def _prepare(self, data: Mapping[str, Any], action: str) -> dict[str, Any]:
        validate_product_data(data, action)
        sanitized = sanitize_product_data(data)
        warnings = product_warnings(sanitized)
        if warnings:
            logger.warning("Product %s warnings: %s", action, ", ".join(warnings))
        return sanitized

    def create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        if not data:
            raise ValidationError(
                "Product data is required",
                {"data": ["Product data must be provided"]},
            )
        try:
            sanitized = self._prepare(data, "create")
            entry = super().create(sanitized)
        except (AppError, SchemaValidationError):
            raise
        except sqlite3.Error as exc:
            code = database_error_code(exc)
            if code is None:
                raise
            raise DatabaseError(
                "Failed to create product in database",
                {"databaseError": code, "message": str(exc)},
            ) from exc
        except Exception as exc:
            logger.error("Product creation service error: %s", exc, exc_info=True)
            raise BusinessLogicError(
                "Failed to create product",
                {"originalError": str(exc), "operation": "create_product_service"},
            ) from exc
        logger.info(
            "Product created",
            extra={"context": {"productId": entry["id"], "title": sanitized.get("title")}},
        )
        return entry

    def update(self, entry_id: int, data: Mapping[str, Any]) -> dict[str, Any] | None:
        sanitized = self._prepare(data, "update")
        stored = super().find_one(entry_id)
        if stored is None:
            return None
        # The discount floor applies to the stored price and discount with the update applied.
        merged = {**stored["attributes"], **sanitized}
        floor = discount_floor_errors(merged.get("price"), merged.get("discount"))
        if floor:
            raise ValidationError("Product validation failed on update", {"discount": floor})
        return super().update(entry_id, sanitized)

    def find(
        self,
        filters: Mapping[str, Any] | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[dict[str, Any]], dict[str, int]]:
        published = {**(filters or {}), "publishedAt": {"$notNull": True}}
        return super().find(published, page, page_size)

    def find_one(self, entry_id: int) -> dict[str, Any]:
        entry = super().find_one(entry_id)
        if entry is None:
            raise NotFoundError("Product not found", {"id": entry_id})
        return entry

