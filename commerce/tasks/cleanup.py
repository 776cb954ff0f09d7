# commerce/tasks/cleanup.py
"""
Daily maintenance sweeps.

Both sweeps are idempotent: they only remove what is already stale, so a
second run right after the first does nothing.
"""
import logging
from datetime import datetime, timedelta, timezone

from sqlmodel import Session

from commerce.core.config import get_settings
from commerce.core.outcome import attempt
from commerce.core.storage import SupabaseObjectStorage
from commerce.repositories.cart_repo import CartRepository
from commerce.repositories.product_repo import ProductRepository

settings = get_settings()
logger = logging.getLogger(__name__)

cart_repo = CartRepository()
product_repo = ProductRepository()


def cleanup_stale_carts(
    session: Session,
    now: datetime | None = None,
    retention_days: int | None = None,
) -> int:
    """
    Delete inactive carts not updated within the retention window.

    Returns the number of carts removed.
    """
    now = now or datetime.now(timezone.utc)
    days = settings.CART_RETENTION_DAYS if retention_days is None else retention_days
    cutoff = now - timedelta(days=days)

    stale = cart_repo.list_stale(session, cutoff)
    for cart in stale:
        cart_repo.delete(session, cart)
    session.commit()

    logger.info("Stale cart cleanup: removed %d carts older than %s", len(stale), cutoff)
    return len(stale)


def cleanup_orphaned_image_references(
    session: Session,
    storage: SupabaseObjectStorage,
) -> dict[str, int]:
    """
    Drop thumbnail and catalogue references whose blob no longer exists.

    Keys whose existence cannot be checked (storage error) are kept.
    """
    known: dict[str, bool | None] = {}

    def blob_exists(key: str) -> bool | None:
        if key not in known:
            outcome = attempt(f"Existence check for {key}", storage.exists, key)
            known[key] = outcome.value if outcome.ok else None
        return known[key]

    thumbnails = 0
    for product in product_repo.list_with_thumbnail(session):
        if blob_exists(product.thumbnail_object_key) is False:
            logger.info(
                "Clearing missing thumbnail %s from product %s",
                product.thumbnail_object_key, product.id,
            )
            product.clear_thumbnail()
            thumbnails += 1

    images = 0
    for image in product_repo.list_all_images(session):
        if blob_exists(image.object_key) is False:
            logger.info(
                "Removing missing image %s from product %s",
                image.object_key, image.product_id,
            )
            image.product.remove_image(image)
            images += 1

    session.commit()
    result = {"thumbnails_cleared": thumbnails, "images_removed": images}
    logger.info("Orphaned image cleanup: %s", result)
    return result
