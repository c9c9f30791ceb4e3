"""Image URL variants for media hosted on Cloudinary.

Stored media records carry the URL of the original upload.  When the
Cloudinary account name is configured and the URL belongs to Cloudinary, the
asset's public ID is pulled out of the URL and transformation URLs are built
for a fixed set of sizes.  Anything else falls back to the original URL.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

CLOUDINARY_BASE_URL = "https://res.cloudinary.com"

_PUBLIC_ID_RE = re.compile(r"cloudinary\.com/[^/]+/image/upload/(?:[^/]+/)?(.+?)(?:\.[^.]+)?$")


@dataclass(frozen=True)
class ImageTransformation:
    width: int | str = "auto"
    height: int | str = "auto"
    crop: str = "limit"
    quality: str = "auto:good"
    format: str = "auto"
    gravity: str | None = "auto"
    radius: int | None = None
    effect: str | None = None

    def to_param(self) -> str:
        parts = [
            f"w_{self.width}",
            f"h_{self.height}",
            f"c_{self.crop}",
            f"q_{self.quality}",
            f"f_{self.format}",
        ]
        if self.gravity:
            parts.append(f"g_{self.gravity}")
        if self.radius:
            parts.append(f"r_{self.radius}")
        if self.effect:
            parts.append(f"e_{self.effect}")
        return ",".join(parts)


# name -> (width, height, crop)
VARIANT_SIZES: dict[str, tuple[int, int, str]] = {
    "thumbnail": (150, 150, "fill"),
    "small": (300, 300, "limit"),
    "medium": (600, 600, "limit"),
    "large": (1200, 1200, "limit"),
}

USE_CASE_PRESETS: dict[str, ImageTransformation] = {
    "thumbnail": ImageTransformation(width=150, height=150, crop="fill"),
    "card": ImageTransformation(width=400, height=400, crop="limit"),
    "hero": ImageTransformation(width=1200, height=600, crop="fill", gravity="auto"),
    "gallery": ImageTransformation(width=800, height=800, crop="limit"),
}


def generate_cloudinary_url(
    public_id: str,
    cloud_name: str,
    transformation: ImageTransformation | None = None,
) -> str:
    """Build a delivery URL applying *transformation* to *public_id*."""
    transformation = transformation or ImageTransformation()
    return f"{CLOUDINARY_BASE_URL}/{cloud_name}/image/upload/{transformation.to_param()}/{public_id}"


def extract_public_id(url: Any) -> str | None:
    """Return the Cloudinary public ID embedded in *url*, or None."""
    if not url or not isinstance(url, str):
        return None
    match = _PUBLIC_ID_RE.search(url)
    return match.group(1) if match else None


def _with_variants(image: dict[str, Any], urls: dict[str, str]) -> dict[str, Any]:
    processed = dict(image)
    processed.update(urls)
    processed["formats"] = {
        name: {"url": urls[name], "width": width, "height": height}
        for name, (width, height, _crop) in VARIANT_SIZES.items()
    }
    return processed


def process_image(image: dict[str, Any], cloud_name: str | None) -> dict[str, Any]:
    """Return a copy of *image* with thumbnail/small/medium/large variants.

    Raises ValueError if *image* has no URL.  Without an account name, or for a
    URL Cloudinary does not host, every variant is the original URL.
    """
    if not isinstance(image, dict) or not image.get("url"):
        msg = "Invalid image data provided"
        raise ValueError(msg)

    original = image["url"]
    public_id = extract_public_id(original) if cloud_name else None
    if not public_id:
        return _with_variants(image, {name: original for name in VARIANT_SIZES})

    urls = {
        name: generate_cloudinary_url(
            public_id,
            cloud_name,  # type: ignore[arg-type]
            ImageTransformation(width=width, height=height, crop=crop),
        )
        for name, (width, height, crop) in VARIANT_SIZES.items()
    }
    return _with_variants(image, urls)


def process_images(images: Any, cloud_name: str | None) -> list[dict[str, Any]]:
    """Process a list of media records; anything that is not a list yields []."""
    if not isinstance(images, list):
        return []
    return [process_image(image, cloud_name) for image in images]


def get_optimized_image_url(
    image: dict[str, Any] | None,
    cloud_name: str | None,
    use_case: str = "card",
) -> str:
    """URL for one of the named presets (thumbnail, card, hero, gallery)."""
    original = (image or {}).get("url") or ""
    if not cloud_name:
        return original
    public_id = extract_public_id(original)
    if not public_id:
        return original
    return generate_cloudinary_url(public_id, cloud_name, USE_CASE_PRESETS[use_case])
