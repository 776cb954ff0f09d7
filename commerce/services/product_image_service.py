# commerce/services/product_image_service.py
"""
Image ownership between products and their variants.

A stored object belongs to the product that uploaded it. The owner is
recorded on the row (ProductImage.owner_product_id,
Product.thumbnail_owner_id); rows written before owners were recorded fall
back to the key layout products/<product_id>/...

Variants inherit a parent's images by reference: new rows, same object
key, parent recorded as owner. Deleting such a row never deletes the blob;
deleting an owned image deletes the blob and clears every variant row
that pointed at it.
"""
import logging
import uuid
from typing import Iterable

from fastapi import HTTPException, status
from sqlmodel import Session

from commerce.core.config import get_settings
from commerce.core.outcome import attempt
from commerce.core.storage import (
    PRODUCT_PREFIX,
    SupabaseObjectStorage,
    product_image_key,
    product_thumbnail_key,
)
from commerce.database import commit_or_conflict
from commerce.models.product import Product, ProductImage
from commerce.repositories.product_repo import ProductRepository

settings = get_settings()
logger = logging.getLogger(__name__)

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def extract_product_id_from_object_key(object_key: str | None) -> str | None:
    """
    "products/<id>/thumbnails/x.jpg" -> "<id>"; None for any other layout.
    """
    if not object_key or not object_key.startswith(f"{PRODUCT_PREFIX}/"):
        return None
    parts = object_key.split("/")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


def _owner_from_key(object_key: str | None) -> uuid.UUID | None:
    raw = extract_product_id_from_object_key(object_key)
    if raw is None:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        return None


def is_image_owned_by_product(
    object_key: str | None,
    product: Product,
    recorded_owner: uuid.UUID | None = None,
) -> bool:
    """
    Recorded owner wins; otherwise compare the id encoded in the key.
    """
    if not object_key:
        return False
    if recorded_owner is not None:
        return recorded_owner == product.id
    extracted = extract_product_id_from_object_key(object_key)
    return extracted is not None and extracted == str(product.id)


def thumbnail_owner(product: Product) -> uuid.UUID | None:
    return product.thumbnail_owner_id or _owner_from_key(product.thumbnail_object_key)


def image_owner(image: ProductImage) -> uuid.UUID | None:
    return image.owner_product_id or _owner_from_key(image.object_key)


class ProductImageService:
    """
    Thumbnail and catalogue image operations plus ownership bookkeeping.
    """

    def __init__(self, repo: ProductRepository, storage: SupabaseObjectStorage):
        self.repo = repo
        self.storage = storage

    # ----- Helpers -----

    def _get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    @staticmethod
    def validate_image(content_type: str, file_bytes: bytes) -> str:
        """
        Check type and size; return the file extension for the key.
        """
        if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unsupported image type. Allowed: JPEG, PNG, WEBP.",
            )
        if not file_bytes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Image file is empty",
            )
        if len(file_bytes) > settings.MAX_IMAGE_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"Image too large (max {settings.MAX_IMAGE_BYTES} bytes).",
            )
        return ALLOWED_IMAGE_CONTENT_TYPES[content_type]

    def object_exists(self, object_key: str) -> bool:
        return attempt(
            f"Existence check for {object_key}",
            self.storage.exists,
            object_key,
        ).value_or(False)

    def read_url(self, object_key: str | None) -> str | None:
        """
        Signed URL for `object_key`, or None when generation fails.
        """
        if not object_key:
            return None
        outcome = attempt(
            f"Read URL generation for {object_key}",
            self.storage.generate_read_url,
            object_key,
            settings.IMAGE_URL_TTL_MINUTES,
        )
        return outcome.value["url"] if outcome.ok and outcome.value else None

    # ----- Ownership -----

    def is_thumbnail_owned(self, product: Product) -> bool:
        return is_image_owned_by_product(
            product.thumbnail_object_key,
            product,
            product.thumbnail_owner_id,
        )

    def is_catalog_image_owned(self, image: ProductImage, product: Product) -> bool:
        return is_image_owned_by_product(
            image.object_key,
            product,
            image.owner_product_id,
        )

    def owned_object_keys(self, product: Product) -> list[str]:
        keys: list[str] = []
        if product.thumbnail_object_key and self.is_thumbnail_owned(product):
            keys.append(product.thumbnail_object_key)
        for image in product.images:
            if self.is_catalog_image_owned(image, product) and image.object_key not in keys:
                keys.append(image.object_key)
        return keys

    def delete_objects(self, keys: Iterable[str]) -> list[str]:
        keys = list(keys)
        if not keys:
            return []
        failed = self.storage.delete_batch(keys)
        logger.info(
            "Deleted %d stored objects (%d failed)",
            len(keys) - len(failed), len(failed),
        )
        return failed

    def delete_product_owned_images(self, product: Product) -> list[str]:
        """
        Bulk delete the blobs `product` owns. Inherited keys are left alone
        because the owner still references them.

        Returns the keys storage failed to delete.
        """
        return self.delete_objects(self.owned_object_keys(product))

    # ----- Parent -> variant propagation -----

    def inherit_parent_images(self, parent: Product, variant: Product) -> int:
        """
        Point `variant` at the parent's thumbnail and catalogue images.

        Only objects that still exist in storage are copied. Returns the
        number of catalogue image rows created.
        """
        key = parent.thumbnail_object_key
        if key and self.object_exists(key):
            variant.set_thumbnail(
                object_key=key,
                file_size=parent.thumbnail_file_size,
                content_type=parent.thumbnail_content_type,
                width=parent.thumbnail_width,
                height=parent.thumbnail_height,
                owner_id=thumbnail_owner(parent) or parent.id,
            )
        elif key:
            logger.warning(
                "Parent %s thumbnail %s missing in storage, not inherited",
                parent.id, key,
            )

        created = 0
        for image in parent.images:
            if not self.object_exists(image.object_key):
                logger.warning(
                    "Parent %s image %s missing in storage, not inherited",
                    parent.id, image.object_key,
                )
                continue
            variant.images.append(
                ProductImage(
                    product_id=variant.id,
                    object_key=image.object_key,
                    file_size=image.file_size,
                    content_type=image.content_type,
                    width=image.width,
                    height=image.height,
                    alt_text=image.alt_text,
                    display_order=image.display_order,
                    is_primary=image.is_primary,
                    owner_product_id=image_owner(image) or parent.id,
                )
            )
            created += 1

        variant.renumber_images()
        logger.info(
            "Variant %s inherited %d images from %s", variant.id, created, parent.id
        )
        return created

    def clear_thumbnail_from_variants(self, parent: Product, object_key: str) -> int:
        cleared = 0
        for variant in parent.variants:
            if variant.thumbnail_object_key == object_key:
                variant.clear_thumbnail()
                cleared += 1
        return cleared

    def remove_image_from_variants(self, parent: Product, object_key: str) -> int:
        removed = 0
        for variant in parent.variants:
            matches = [i for i in variant.images if i.object_key == object_key]
            for image in matches:
                variant.remove_image(image)
            if matches:
                self._ensure_primary(variant)
            removed += len(matches)
        return removed

    def release_inherited_images(self, product: Product) -> int:
        """
        Drop every reference `product` holds to a blob it does not own.

        Run when a variant leaves its parent: the owner no longer sees it
        as a variant and would not clear it when the blob is deleted.
        Returns the number of references dropped.
        """
        released = 0
        if product.thumbnail_object_key and not self.is_thumbnail_owned(product):
            product.clear_thumbnail()
            released += 1
        for image in [i for i in product.images if not self.is_catalog_image_owned(i, product)]:
            product.remove_image(image)
            released += 1
        if released:
            self._ensure_primary(product)
        return released

    @staticmethod
    def _ensure_primary(product: Product) -> None:
        if product.images and not any(image.is_primary for image in product.images):
            product.images[0].is_primary = True

    # ----- Thumbnail -----

    def upload_thumbnail(
        self,
        session: Session,
        product_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
        width: int | None = None,
        height: int | None = None,
    ) -> Product:
        """
        Upload or replace the thumbnail.

        A replaced thumbnail the product owned is deleted from storage after
        the commit and cleared from variants that inherited it. A replaced
        inherited thumbnail is only dereferenced.
        """
        product = self._get_product(session, product_id)
        ext = self.validate_image(content_type, file_bytes)

        old_key = product.thumbnail_object_key
        old_owned = bool(old_key) and self.is_thumbnail_owned(product)

        key = self.storage.upload(
            product_thumbnail_key(product.id, ext),
            file_bytes,
            content_type,
        )
        product.set_thumbnail(
            object_key=key,
            file_size=len(file_bytes),
            content_type=content_type,
            width=width,
            height=height,
            owner_id=product.id,
        )
        if old_owned:
            self.clear_thumbnail_from_variants(product, old_key)

        commit_or_conflict(session, "Thumbnail update conflicted")
        if old_owned:
            self.storage.delete(old_key)

        logger.info("Thumbnail of product %s set to %s", product.id, key)
        session.refresh(product)
        return product

    def delete_thumbnail(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self._get_product(session, product_id)
        key = product.thumbnail_object_key
        if not key:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product has no thumbnail",
            )

        owned = self.is_thumbnail_owned(product)
        product.clear_thumbnail()
        if owned:
            self.clear_thumbnail_from_variants(product, key)

        commit_or_conflict(session, "Thumbnail delete conflicted")
        if owned:
            self.storage.delete(key)

        logger.info(
            "Thumbnail %s removed from product %s (blob deleted: %s)",
            key, product.id, owned,
        )
        session.refresh(product)
        return product

    # ----- Catalogue images -----

    def upload_catalog_images(
        self,
        session: Session,
        product_id: uuid.UUID,
        files: list[tuple[str, bytes]],
        position: int | None = None,
        alt_text: str | None = None,
    ) -> list[ProductImage]:
        """
        Upload images and insert them at `position` (1-based, appended
        when None). At most MAX_CATALOG_IMAGES per product.

        Args:
            files: list of (content_type, file_bytes)
        """
        product = self._get_product(session, product_id)
        if not files:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No image files provided",
            )
        if len(product.images) + len(files) > settings.MAX_CATALOG_IMAGES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"A product can have at most {settings.MAX_CATALOG_IMAGES} "
                    f"catalogue images ({len(product.images)} already present)"
                ),
            )
        if position is not None and position < 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="position must be >= 1",
            )

        extensions = [self.validate_image(ct, data) for ct, data in files]

        created: list[ProductImage] = []
        for offset, ((content_type, file_bytes), ext) in enumerate(zip(files, extensions)):
            key = self.storage.upload(
                product_image_key(product.id, ext),
                file_bytes,
                content_type,
            )
            image = ProductImage(
                product_id=product.id,
                object_key=key,
                file_size=len(file_bytes),
                content_type=content_type,
                alt_text=alt_text,
                owner_product_id=product.id,
            )
            product.add_image(image, None if position is None else position + offset)
            created.append(image)

        self._ensure_primary(product)
        commit_or_conflict(session, "Image upload conflicted")

        logger.info("Added %d catalogue images to product %s", len(created), product.id)
        for image in created:
            session.refresh(image)
        return created

    def delete_catalog_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        image_id: uuid.UUID,
    ) -> None:
        """
        Remove one catalogue image row.

        The blob is deleted (and the key cleared from variants) only when
        this product owns it.
        """
        product = self._get_product(session, product_id)
        image = self.repo.get_image_by_id(session, image_id)
        if not image or image.product_id != product.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found for this product",
            )
        self._delete_image_row(session, product, image)

    def delete_image_by_key(
        self,
        session: Session,
        product_id: uuid.UUID,
        object_key: str,
    ) -> None:
        """
        Delete whichever reference of this product uses `object_key`:
        the thumbnail or a catalogue image.
        """
        product = self._get_product(session, product_id)
        if product.thumbnail_object_key == object_key:
            self.delete_thumbnail(session, product.id)
            return

        for image in product.images:
            if image.object_key == object_key:
                self._delete_image_row(session, product, image)
                return

        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Image not found for this product",
        )

    def _delete_image_row(
        self,
        session: Session,
        product: Product,
        image: ProductImage,
    ) -> None:
        key = image.object_key
        owned = self.is_catalog_image_owned(image, product)

        product.remove_image(image)
        self._ensure_primary(product)
        if owned:
            self.remove_image_from_variants(product, key)

        commit_or_conflict(session, "Image delete conflicted")
        if owned:
            self.storage.delete(key)

        logger.info(
            "Image %s removed from product %s (blob deleted: %s)",
            key, product.id, owned,
        )

    def reorder_images(
        self,
        session: Session,
        product_id: uuid.UUID,
        image_ids: list[uuid.UUID],
    ) -> list[ProductImage]:
        product = self._get_product(session, product_id)
        try:
            product.reorder_images(image_ids)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            )
        commit_or_conflict(session, "Image reorder conflicted")
        return self.repo.list_images_for_product(session, product.id)

    def get_read_url(self, object_key: str) -> dict:
        """
        Signed URL for a stored object; 404 when the blob is gone.
        """
        if not self.object_exists(object_key):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found in storage",
            )
        return self.storage.generate_read_url(object_key, settings.IMAGE_URL_TTL_MINUTES)
