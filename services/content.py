"""Generic content CRUD.

Every resource (product, cart, order, address, review, category) is stored
as a JSON document in the ``entries`` table and validated against a pydantic
content-type schema.  Entries are returned in the ``{id, attributes}`` shape
used by the API envelopes.  Domain services subclass :class:`ContentService`
to add their own rules around these operations.
"""

from __future__ import annotations

import math
import re
import sqlite3
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

import database.models as models

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100

_FILTER_KEY_RE = re.compile(r"^filters\[(\w+)\](?:\[(\$\w+)\])?$")

# ---------------------------------------------------------------------------
# Content-type schemas
# ---------------------------------------------------------------------------


class ContentSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ProductSchema(ContentSchema):
    title: str
    description: str
    price: float
    stock: int
    discount: float | None = None
    sizes: str | None = None
    gender: str | None = None
    images: list[dict[str, Any]] | None = None
    category: int | None = None
    aiTags: dict[str, Any] | None = None  # noqa: N815
    aiDescription: str | None = None  # noqa: N815
    aiRecommendations: dict[str, Any] | None = None  # noqa: N815
    vectorEmbedding: list[float] | None = None  # noqa: N815


class CartItemSchema(BaseModel):
    model_config = ConfigDict(extra="allow")

    product: int | dict[str, Any]
    quantity: int
    size: str
    color: str


class CartSchema(ContentSchema):
    sessionId: str  # noqa: N815
    items: list[CartItemSchema]
    user: int | None = None


class OrderSchema(ContentSchema):
    orderNumber: str  # noqa: N815
    totalAmount: float  # noqa: N815
    items: list[dict[str, Any]]
    orderStatus: str = "pending"  # noqa: N815
    paymentStatus: str = "pending"  # noqa: N815
    trackingNumber: str | None = None  # noqa: N815
    address: int | dict[str, Any] | None = None
    user: int | None = None


class AddressSchema(ContentSchema):
    street: str
    city: str
    postalCode: str  # noqa: N815
    country: str
    state: str | None = None
    user: int | None = None


class ReviewSchema(ContentSchema):
    rating: int
    comment: str | None = None
    product: int | None = None
    user: int | None = None


class CategorySchema(ContentSchema):
    name: str
    slug: str | None = None
    description: str | None = None


CONTENT_TYPES: dict[str, type[ContentSchema]] = {
    "product": ProductSchema,
    "cart": CartSchema,
    "order": OrderSchema,
    "address": AddressSchema,
    "review": ReviewSchema,
    "category": CategorySchema,
}

_SYSTEM_ATTRIBUTES = ("createdAt", "updatedAt", "publishedAt")


# ---------------------------------------------------------------------------
# Query parsing
# ---------------------------------------------------------------------------


def _positive_int(raw: Any, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def parse_query_params(args: Mapping[str, str]) -> dict[str, Any]:
    """Turn ``filters[...]`` and ``pagination[...]`` query args into find() kwargs."""
    filters: dict[str, Any] = {}
    for key, value in args.items():
        match = _FILTER_KEY_RE.match(key)
        if not match:
            continue
        field, operator = match.group(1), match.group(2)
        if operator in (None, "$eq"):
            filters[field] = value
        elif operator in ("$notNull", "$null"):
            filters[field] = {operator: str(value).lower() in ("1", "true", "yes")}
    page = _positive_int(args.get("pagination[page]"), 1)
    page_size = min(_positive_int(args.get("pagination[pageSize]"), DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
    return {"filters": filters, "page": page, "page_size": page_size}


def _matches(attributes: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    for field, expected in filters.items():
        actual = attributes.get(field)
        if isinstance(expected, Mapping):
            if "$notNull" in expected and (actual is not None) != bool(expected["$notNull"]):
                return False
            if "$null" in expected and (actual is None) != bool(expected["$null"]):
                return False
            if "$eq" in expected and not _equal(actual, expected["$eq"]):
                return False
        elif not _equal(actual, expected):
            return False
    return True


def _equal(actual: Any, expected: Any) -> bool:
    return actual == expected or (actual is not None and str(actual) == str(expected))


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ContentService:
    """Generic CRUD for one content type."""

    content_type: str = ""

    def __init__(self, conn: sqlite3.Connection, content_type: str | None = None) -> None:
        self.conn = conn
        if content_type is not None:
            self.content_type = content_type
        if self.content_type not in CONTENT_TYPES:
            msg = f"Unknown content type: {self.content_type!r}"
            raise ValueError(msg)
        self.schema = CONTENT_TYPES[self.content_type]

    @staticmethod
    def to_entry(row: dict[str, Any]) -> dict[str, Any]:
        attributes = dict(row["data"])
        attributes["createdAt"] = row["created_at"]
        attributes["updatedAt"] = row["updated_at"]
        attributes["publishedAt"] = row["published_at"]
        return {"id": row["id"], "attributes": attributes}

    def _clean(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Validate against the content-type schema (raises pydantic.ValidationError)."""
        payload = {k: v for k, v in data.items() if k not in _SYSTEM_ATTRIBUTES}
        return self.schema.model_validate(payload).model_dump(mode="json", exclude_none=True)

    def create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        row = models.insert_entry(self.conn, self.content_type, self._clean(data))
        return self.to_entry(row)

    def update(self, entry_id: int, data: Mapping[str, Any]) -> dict[str, Any] | None:
        """Merge *data* into the stored attributes; None if the entry is missing."""
        existing = models.get_entry(self.conn, self.content_type, entry_id)
        if existing is None:
            return None
        merged = {**existing["data"], **data}
        row = models.update_entry(self.conn, self.content_type, entry_id, self._clean(merged))
        return self.to_entry(row) if row is not None else None

    def delete(self, entry_id: int) -> dict[str, Any] | None:
        row = models.delete_entry(self.conn, self.content_type, entry_id)
        return self.to_entry(row) if row is not None else None

    def find_one(self, entry_id: int) -> dict[str, Any] | None:
        row = models.get_entry(self.conn, self.content_type, entry_id)
        return self.to_entry(row) if row is not None else None

    def find(
        self,
        filters: Mapping[str, Any] | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[dict[str, Any]], dict[str, int]]:
        """Return one page of matching entries plus pagination metadata."""
        entries = [self.to_entry(row) for row in models.list_entries(self.conn, self.content_type)]
        if filters:
            entries = [e for e in entries if _matches(e["attributes"], filters)]
        total = len(entries)
        start = (page - 1) * page_size
        pagination = {
            "page": page,
            "pageSize": page_size,
            "pageCount": math.ceil(total / page_size) if page_size else 0,
            "total": total,
        }
        return entries[start : start + page_size], pagination
