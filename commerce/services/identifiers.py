# commerce/services/identifiers.py
"""
Human-readable identifiers: slugs and SKUs.

Uniqueness is checked through an `exists(candidate) -> bool` predicate
supplied by the caller (usually a repository lookup that may exclude the
row being updated). Both generators are bounded: after MAX_ATTEMPTS
collisions they fall back to a millisecond timestamp suffix. The database
unique constraint remains the final guard.
"""
import logging
import re
import secrets
import time
import unicodedata
from typing import Callable

from commerce.models.catalogue import Manufacturer
from commerce.models.product import Product

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 10
MAX_SLUG_LENGTH = 100
SKU_PREFIX = "SSEW"

ExistsCheck = Callable[[str], bool]


def _millis() -> int:
    return int(time.time() * 1000)


def generate_slug(name: str | None, fallback: str = "product") -> str:
    """
    "Arc Welder 200A (Pro)" -> "arc-welder-200a-pro"

      - accents stripped, lowercased
      - whitespace -> '-'
      - anything outside [a-z0-9_-] dropped
      - repeated '-' collapsed, edge '-' trimmed
      - truncated to 100 characters
    """
    if not name or not name.strip():
        return fallback

    value = unicodedata.normalize("NFKD", name)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = value.strip().lower()
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"[^a-z0-9_-]", "", value)
    value = re.sub(r"-{2,}", "-", value)
    value = value.strip("-")
    value = value[:MAX_SLUG_LENGTH].strip("-")
    return value or fallback


def ensure_unique_slug(base: str, exists: ExistsCheck) -> str:
    """
    Return `base`, or `base-1`, `base-2`, ... for the first free candidate.
    """
    if not exists(base):
        return base

    for counter in range(1, MAX_ATTEMPTS + 1):
        candidate = f"{base}-{counter}"
        if not exists(candidate):
            return candidate

    candidate = f"{base}-{_millis()}"
    logger.warning("Slug %r still colliding, using %r", base, candidate)
    return candidate


def _code(value: str | None, fallback: str) -> str:
    if not value:
        return fallback
    cleaned = re.sub(r"[^A-Za-z0-9]", "", value).upper()
    return cleaned[:3] if cleaned else fallback


def base_sku(
    manufacturer: Manufacturer | None,
    parent: Product | None,
    name: str | None,
) -> str:
    """
    SKU without its random suffix.

      - variant:  parent SKU minus its last "-segment", plus "-V"
      - otherwise SSEW-<category>-<manufacturer>-<product>
    """
    if parent is not None and parent.sku:
        head, sep, _ = parent.sku.rpartition("-")
        return f"{head if sep else parent.sku}-V"

    category = None
    if manufacturer is not None and manufacturer.categories:
        category = manufacturer.categories[0].name

    category_code = _code(category, "GEN")
    manufacturer_code = _code(manufacturer.name if manufacturer else None, "UNK")
    product_code = _code(name, "UNK")
    return f"{SKU_PREFIX}-{category_code}-{manufacturer_code}-{product_code}"


def generate_unique_sku(
    manufacturer: Manufacturer | None,
    parent: Product | None,
    name: str | None,
    exists: ExistsCheck,
) -> str:
    """
    base + "-XXXX" (4 uppercase hex digits), retried while taken.
    """
    base = base_sku(manufacturer, parent, name)

    for _ in range(MAX_ATTEMPTS):
        candidate = f"{base}-{secrets.randbelow(0x10000):04X}"
        if not exists(candidate):
            return candidate

    candidate = f"{base}-{_millis()}"
    logger.warning("SKU base %r kept colliding, using %r", base, candidate)
    return candidate
