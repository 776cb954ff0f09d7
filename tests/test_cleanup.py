# tests/test_cleanup.py
from datetime import datetime, timedelta, timezone

from commerce.models.cart import Cart, CartItem, CartType
from commerce.models.product import Product
from commerce.tasks.cleanup import cleanup_orphaned_image_references, cleanup_stale_carts
from tests.conftest import PNG_BYTES

NOW = datetime(2026, 10, 19, 2, 0, tzinfo=timezone.utc)


def _cart(session, user, cart_type, active, age_days, product=None) -> Cart:
    cart = Cart(
        user_id=user.id,
        cart_type=cart_type,
        is_active=active,
        updated_at=NOW - timedelta(days=age_days),
    )
    if product is not None:
        cart.items.append(CartItem(product_id=product.id, quantity=1, price_at_time=product.price))
    session.add(cart)
    session.commit()
    return cart


# --- Stale carts ---


def test_removes_only_inactive_carts_past_retention(session, customer, other_customer, make_product):
    welder = make_product("Arc Welder")
    stale = _cart(session, customer, CartType.CART, active=False, age_days=45, product=welder)
    active_old = _cart(session, customer, CartType.WISHLIST, active=True, age_days=90)
    recent = _cart(session, other_customer, CartType.CART, active=False, age_days=5)
    stale_id, active_id, recent_id = stale.id, active_old.id, recent.id

    removed = cleanup_stale_carts(session, now=NOW, retention_days=30)

    assert removed == 1
    assert session.get(Cart, stale_id) is None
    assert session.get(Cart, active_id) is not None
    assert session.get(Cart, recent_id) is not None
    assert session.get(Product, welder.id) is not None


def test_stale_cart_cleanup_is_idempotent(session, customer):
    _cart(session, customer, CartType.CART, active=False, age_days=45)

    assert cleanup_stale_carts(session, now=NOW, retention_days=30) == 1
    assert cleanup_stale_carts(session, now=NOW, retention_days=30) == 0


# --- Orphaned image references ---


def _with_images(session, image_service, product):
    image_service.upload_thumbnail(session, product.id, "image/png", PNG_BYTES)
    image_service.upload_catalog_images(session, product.id, [("image/png", PNG_BYTES)] * 3)
    return session.get(Product, product.id)


def test_drops_references_to_missing_blobs(session, image_service, make_product, storage):
    product = _with_images(session, image_service, make_product("Bench Grinder"))
    kept = make_product("Drill Press")
    kept = _with_images(session, image_service, kept)

    del storage.blobs[product.thumbnail_object_key]
    missing_image = product.images[1].object_key
    del storage.blobs[missing_image]

    result = cleanup_orphaned_image_references(session, storage)

    assert result == {"thumbnails_cleared": 1, "images_removed": 1}
    product = session.get(Product, product.id)
    assert product.thumbnail_object_key is None
    assert missing_image not in [image.object_key for image in product.images]
    assert [image.display_order for image in product.images] == [1, 2]

    kept = session.get(Product, kept.id)
    assert kept.thumbnail_object_key is not None
    assert len(kept.images) == 3


def test_orphan_cleanup_is_idempotent(session, image_service, make_product, storage):
    product = _with_images(session, image_service, make_product("Bench Grinder"))
    del storage.blobs[product.images[0].object_key]

    cleanup_orphaned_image_references(session, storage)

    assert cleanup_orphaned_image_references(session, storage) == {
        "thumbnails_cleared": 0,
        "images_removed": 0,
    }


def test_storage_outage_keeps_references(session, image_service, make_product, storage):
    product = _with_images(session, image_service, make_product("Bench Grinder"))
    storage.broken = True

    result = cleanup_orphaned_image_references(session, storage)

    assert result == {"thumbnails_cleared": 0, "images_removed": 0}
    product = session.get(Product, product.id)
    assert product.thumbnail_object_key is not None
    assert len(product.images) == 3
