# tests/test_image_ownership.py
import uuid

import pytest
from fastapi import HTTPException

from commerce.core.config import get_settings
from commerce.models.product import Product
from commerce.schemas.product import VariantCreate
from commerce.services.product_image_service import (
    ProductImageService,
    extract_product_id_from_object_key,
    is_image_owned_by_product,
)
from tests.conftest import JPEG_BYTES, PNG_BYTES

settings = get_settings()


def _with_gallery(session, image_service, product: Product, count: int = 2) -> Product:
    image_service.upload_thumbnail(session, product.id, "image/png", PNG_BYTES)
    image_service.upload_catalog_images(
        session,
        product.id,
        [("image/jpeg", JPEG_BYTES)] * count,
    )
    return session.get(Product, product.id)


@pytest.fixture
def parent_with_variant(session, image_service, product_service, make_product):
    parent = _with_gallery(session, image_service, make_product("Bench Grinder"))
    variant = product_service.create_variant(
        session, parent.id, VariantCreate(name="Bench Grinder 8in")
    )
    return parent, session.get(Product, variant.id)


# --- Key layout ---


def test_extract_product_id_from_key():
    product_id = uuid.uuid4()
    assert extract_product_id_from_object_key(f"products/{product_id}/images/a.jpg") == str(product_id)
    assert extract_product_id_from_object_key("manufacturers/bosch/logo-a.png") is None
    assert extract_product_id_from_object_key("products/") is None
    assert extract_product_id_from_object_key(None) is None


def test_ownership_from_key_layout():
    product = Product(id=uuid.uuid4(), name="A", slug="a", sku="A", price=1.0)
    other = Product(id=uuid.uuid4(), name="B", slug="b", sku="B", price=1.0)
    key = f"products/{product.id}/thumbnails/x.png"

    assert is_image_owned_by_product(key, product)
    assert not is_image_owned_by_product(key, other)
    assert not is_image_owned_by_product(None, product)


def test_recorded_owner_wins_over_key_layout():
    product = Product(id=uuid.uuid4(), name="A", slug="a", sku="A", price=1.0)
    key = f"products/{product.id}/images/x.png"

    assert not is_image_owned_by_product(key, product, recorded_owner=uuid.uuid4())
    assert is_image_owned_by_product("legacy/x.png", product, recorded_owner=product.id)


# --- Validation ---


def test_rejects_unsupported_type():
    with pytest.raises(HTTPException) as exc:
        ProductImageService.validate_image("image/gif", PNG_BYTES)
    assert exc.value.status_code == 400


def test_rejects_empty_file():
    with pytest.raises(HTTPException) as exc:
        ProductImageService.validate_image("image/png", b"")
    assert exc.value.status_code == 400


def test_rejects_oversized_file():
    with pytest.raises(HTTPException) as exc:
        ProductImageService.validate_image("image/png", b"0" * (settings.MAX_IMAGE_BYTES + 1))
    assert exc.value.status_code == 413


# --- Uploads ---


def test_catalog_images_respect_cap(session, image_service, make_product):
    product = make_product("Bench Grinder")
    image_service.upload_catalog_images(
        session, product.id, [("image/png", PNG_BYTES)] * settings.MAX_CATALOG_IMAGES
    )

    with pytest.raises(HTTPException) as exc:
        image_service.upload_catalog_images(session, product.id, [("image/png", PNG_BYTES)])
    assert exc.value.status_code == 400


def test_catalog_image_inserted_at_position(session, image_service, make_product, storage):
    product = _with_gallery(session, image_service, make_product("Bench Grinder"))
    [inserted] = image_service.upload_catalog_images(
        session, product.id, [("image/png", PNG_BYTES)], position=1
    )

    product = session.get(Product, product.id)
    assert product.images[0].id == inserted.id
    assert [image.display_order for image in product.images] == [1, 2, 3]
    assert inserted.object_key in storage.blobs
    assert inserted.owner_product_id == product.id


def test_reorder_requires_every_image(session, image_service, make_product):
    product = _with_gallery(session, image_service, make_product("Bench Grinder"), count=3)
    ids = [image.id for image in product.images]

    reordered = image_service.reorder_images(session, product.id, list(reversed(ids)))
    assert [image.id for image in reordered] == list(reversed(ids))

    with pytest.raises(HTTPException) as exc:
        image_service.reorder_images(session, product.id, ids[:2])
    assert exc.value.status_code == 400


# --- Inheritance ---


def test_variant_inherits_parent_images_by_reference(parent_with_variant, storage):
    parent, variant = parent_with_variant

    assert variant.thumbnail_object_key == parent.thumbnail_object_key
    assert variant.thumbnail_owner_id == parent.id
    assert [i.object_key for i in variant.images] == [i.object_key for i in parent.images]
    assert all(image.owner_product_id == parent.id for image in variant.images)
    # no blobs were copied
    assert len(storage.blobs) == 3


def test_inheritance_skips_missing_blobs(session, image_service, product_service, make_product, storage):
    parent = _with_gallery(session, image_service, make_product("Bench Grinder"))
    del storage.blobs[parent.images[0].object_key]

    read = product_service.create_variant(session, parent.id, VariantCreate(name="Bench Grinder 8in"))

    assert [image.object_key for image in read.images] == [parent.images[1].object_key]
    assert read.images[0].display_order == 1
    assert read.images[0].inherited


def test_variant_can_opt_out_of_inheritance(session, image_service, product_service, make_product):
    parent = _with_gallery(session, image_service, make_product("Bench Grinder"))
    read = product_service.create_variant(
        session, parent.id, VariantCreate(name="Bench Grinder 8in", inherit_images=False)
    )
    assert read.images == []
    assert read.thumbnail_object_key is None


# --- Deletion ---


def test_deleting_inherited_image_keeps_blob(session, image_service, parent_with_variant, storage):
    parent, variant = parent_with_variant
    inherited = variant.images[0]
    key = inherited.object_key

    image_service.delete_catalog_image(session, variant.id, inherited.id)

    assert key in storage.blobs
    assert len(session.get(Product, variant.id).images) == 1
    assert len(session.get(Product, parent.id).images) == 2


def test_deleting_owned_image_removes_blob_and_variant_rows(session, image_service, parent_with_variant, storage):
    parent, variant = parent_with_variant
    owned = parent.images[0]
    key = owned.object_key

    image_service.delete_catalog_image(session, parent.id, owned.id)

    assert key not in storage.blobs
    assert key in storage.deleted
    variant = session.get(Product, variant.id)
    assert key not in [image.object_key for image in variant.images]
    assert len(variant.images) == 1
    assert variant.images[0].display_order == 1


def test_deleting_owned_image_only_touches_variants_that_used_it(
    session, image_service, product_service, parent_with_variant
):
    parent, first = parent_with_variant
    second = session.get(
        Product,
        product_service.create_variant(session, parent.id, VariantCreate(name="Bench Grinder 10in")).id,
    )
    shared_key = parent.images[0].object_key
    own_copy = next(image for image in second.images if image.object_key == shared_key)
    image_service.delete_catalog_image(session, second.id, own_copy.id)
    second = session.get(Product, second.id)
    for image in second.images:
        image.is_primary = False
    session.commit()

    image_service.delete_catalog_image(session, parent.id, session.get(Product, parent.id).images[0].id)

    first = session.get(Product, first.id)
    assert shared_key not in [image.object_key for image in first.images]
    assert first.images[0].is_primary
    second = session.get(Product, second.id)
    assert [image.is_primary for image in second.images] == [False]


def test_deleting_inherited_thumbnail_keeps_blob(session, image_service, parent_with_variant, storage):
    parent, variant = parent_with_variant
    key = parent.thumbnail_object_key

    image_service.delete_thumbnail(session, variant.id)

    assert key in storage.blobs
    assert session.get(Product, parent.id).thumbnail_object_key == key
    assert session.get(Product, variant.id).thumbnail_object_key is None


def test_replacing_parent_thumbnail_clears_variants(session, image_service, parent_with_variant, storage):
    parent, variant = parent_with_variant
    old_key = parent.thumbnail_object_key

    image_service.upload_thumbnail(session, parent.id, "image/jpeg", JPEG_BYTES)

    assert old_key not in storage.blobs
    assert session.get(Product, variant.id).thumbnail_object_key is None
    new_key = session.get(Product, parent.id).thumbnail_object_key
    assert new_key != old_key
    assert new_key in storage.blobs


def test_delete_by_key_handles_thumbnail_and_gallery(session, image_service, make_product, storage):
    product = _with_gallery(session, image_service, make_product("Bench Grinder"))
    thumbnail_key = product.thumbnail_object_key
    image_key = product.images[1].object_key

    image_service.delete_image_by_key(session, product.id, thumbnail_key)
    image_service.delete_image_by_key(session, product.id, image_key)

    assert thumbnail_key not in storage.blobs
    assert image_key not in storage.blobs
    with pytest.raises(HTTPException) as exc:
        image_service.delete_image_by_key(session, product.id, "products/unknown/images/x.png")
    assert exc.value.status_code == 404


def test_deleting_variant_keeps_parent_blobs(session, product_service, parent_with_variant, storage):
    parent, variant = parent_with_variant
    before = set(storage.blobs)

    product_service.delete_product(session, variant.id)

    assert set(storage.blobs) == before
    assert len(session.get(Product, parent.id).images) == 2


def test_deleting_product_removes_owned_blobs(session, image_service, product_service, make_product, storage):
    product = _with_gallery(session, image_service, make_product("Bench Grinder"))
    keys = [product.thumbnail_object_key] + [image.object_key for image in product.images]

    product_service.delete_product(session, product.id)

    assert all(key not in storage.blobs for key in keys)


# --- Detach ---


def test_detach_drops_inherited_references(session, image_service, product_service, parent_with_variant, storage):
    parent, variant = parent_with_variant
    image_service.upload_catalog_images(session, variant.id, [("image/png", PNG_BYTES)])
    own_key = session.get(Product, variant.id).images[-1].object_key

    product_service.detach_variant(session, parent.id, variant.id)

    variant = session.get(Product, variant.id)
    assert variant.thumbnail_object_key is None
    assert [image.object_key for image in variant.images] == [own_key]
    assert variant.images[0].display_order == 1
    assert variant.images[0].is_primary
    parent = session.get(Product, parent.id)
    assert parent.thumbnail_object_key in storage.blobs
    assert len(parent.images) == 2


def test_detached_product_never_points_at_deleted_parent_blob(
    session, image_service, product_service, parent_with_variant, storage
):
    parent, variant = parent_with_variant
    product_service.detach_variant(session, parent.id, variant.id)
    parent = session.get(Product, parent.id)
    key = parent.images[0].object_key

    image_service.delete_catalog_image(session, parent.id, parent.images[0].id)

    assert key not in storage.blobs
    variant = session.get(Product, variant.id)
    assert key not in [image.object_key for image in variant.images]


# --- Read URLs ---


def test_url_failure_does_not_fail_read(session, image_service, product_service, make_product, storage):
    product = _with_gallery(session, image_service, make_product("Bench Grinder"))
    storage.fail_urls = True

    read = product_service.get_product(session, product.id)

    assert read.thumbnail_url is None
    assert all(image.url is None for image in read.images)


def test_read_url_for_missing_blob_is_404(image_service):
    with pytest.raises(HTTPException) as exc:
        image_service.get_read_url("products/x/images/missing.png")
    assert exc.value.status_code == 404
