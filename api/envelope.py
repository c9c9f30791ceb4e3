"""Success envelopes and post-persistence enrichment.

Enrichment steps return a :class:`~utils.result.Result`; a failed step logs a
warning and contributes its fallback, so the primary response always goes out.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from database.models import now_iso
from services.content import ContentService
from utils.image_processing import process_images
from utils.pricing import discounted_price
from utils.result import Failure, Result, Success, unwrap_or_fallback

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Envelope:
    data: Any
    meta: Mapping[str, Any] = field(default_factory=dict)

    def with_meta(self, **extra: Any) -> Envelope:
        return Envelope(self.data, {**self.meta, **extra})

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "meta": dict(self.meta)}


def success_envelope(data: Any, message: str, meta: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Envelope for create/update: the payload plus ``meta.message`` and ``meta.timestamp``."""
    return Envelope(data, meta or {}).with_meta(message=message, timestamp=now_iso()).to_dict()


def deletion_envelope(message: str) -> dict[str, Any]:
    """Deletes always acknowledge with ``data: null``."""
    return success_envelope(None, message)


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


def derive_images(images: Any, cloud_name: str) -> Result[Any, Exception]:
    try:
        return Success(process_images(images, cloud_name))
    except (ValueError, TypeError, AttributeError) as exc:
        return Failure(exc, images)


def lookup_category(conn: sqlite3.Connection, category: Any) -> Result[Any, Exception]:
    """Replace a category id with the stored category entry when there is one."""
    if not isinstance(category, int) or isinstance(category, bool):
        return Success(category)
    try:
        entry = ContentService(conn, "category").find_one(category)
    except sqlite3.Error as exc:
        return Failure(exc, category)
    return Success(entry if entry is not None else category)


def enrich_entry(entry: Mapping[str, Any], conn: sqlite3.Connection, cloud_name: str | None) -> dict[str, Any]:
    """Return a copy of a product entry with pricing, image and category data added."""
    attributes = dict(entry.get("attributes") or {})

    price = discounted_price(attributes.get("price"), attributes.get("discount"))
    if price is not None:
        attributes["discountedPrice"] = price

    if cloud_name and attributes.get("images"):
        result = derive_images(attributes["images"], cloud_name)
        if isinstance(result, Failure):
            logger.warning("Failed to process images for entry %s: %s", entry.get("id"), result.error)
        attributes["images"] = unwrap_or_fallback(result)

    if attributes.get("category") is not None:
        result = lookup_category(conn, attributes["category"])
        if isinstance(result, Failure):
            logger.warning("Failed to load category for entry %s: %s", entry.get("id"), result.error)
        attributes["category"] = unwrap_or_fallback(result)

    return {**entry, "attributes": attributes}
