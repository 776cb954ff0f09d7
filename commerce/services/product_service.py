# commerce/services/product_service.py
import logging
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from commerce.database import commit_or_conflict
from commerce.models.catalogue import CompatibilityBrand, Manufacturer
from commerce.models.product import (
    ParentRole,
    Product,
    VariantRole,
    VariantStructureError,
)
from commerce.repositories.cart_repo import CartRepository
from commerce.repositories.catalogue_repo import CatalogueRepository
from commerce.repositories.order_repo import OrderRepository
from commerce.repositories.product_repo import ProductRepository
from commerce.schemas.product import (
    ProductCreate,
    ProductImageRead,
    ProductRead,
    ProductStats,
    ProductUpdate,
    VariantCreate,
    VariantSummary,
)
from commerce.services.identifiers import (
    ensure_unique_slug,
    generate_slug,
    generate_unique_sku,
)
from commerce.services.product_image_service import ProductImageService

logger = logging.getLogger(__name__)


class ProductService:
    """
    Business logic for products and the variant hierarchy.

    Responsibilities:
      - slug / SKU generation & uniqueness
      - variant creation, detachment and deletion rules
      - product deletion (cart lines removed, order snapshots unlinked,
        owned blobs deleted after commit)
      - read models with best-effort image URLs
    """

    def __init__(
        self,
        repo: ProductRepository,
        catalogue_repo: CatalogueRepository,
        cart_repo: CartRepository,
        order_repo: OrderRepository,
        images: ProductImageService,
    ):
        self.repo = repo
        self.catalogue_repo = catalogue_repo
        self.cart_repo = cart_repo
        self.order_repo = order_repo
        self.images = images

    # ----- Helpers -----

    def _get(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def _get_manufacturer(self, session: Session, manufacturer_id: uuid.UUID) -> Manufacturer:
        manufacturer = self.catalogue_repo.get(session, Manufacturer, manufacturer_id)
        if not manufacturer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Manufacturer not found",
            )
        return manufacturer

    def _get_compatibility_brands(
        self,
        session: Session,
        brand_ids: list[uuid.UUID],
    ) -> list[CompatibilityBrand]:
        unique_ids = list(dict.fromkeys(brand_ids))
        brands = self.catalogue_repo.get_many(session, CompatibilityBrand, unique_ids)
        if len(brands) != len(unique_ids):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="One or more compatibility brands not found",
            )
        return brands

    def _unique_slug(
        self,
        session: Session,
        raw: str,
        exclude_id: uuid.UUID | None = None,
    ) -> str:
        return ensure_unique_slug(
            generate_slug(raw),
            lambda candidate: self.repo.exists_by_slug(session, candidate, exclude_id),
        )

    def _check_model_number(
        self,
        session: Session,
        model_number: str | None,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if model_number and self.repo.exists_by_model_number(session, model_number, exclude_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Product with model number '{model_number}' already exists",
            )

    # ----- Read models -----

    def to_read(self, product: Product) -> ProductRead:
        """
        Build the client representation.

        Image URLs are best effort: a failed signature leaves the URL None
        and the product is still returned.
        """
        images = [
            ProductImageRead(
                id=image.id,
                product_id=image.product_id,
                object_key=image.object_key,
                file_size=image.file_size,
                content_type=image.content_type,
                width=image.width,
                height=image.height,
                alt_text=image.alt_text,
                display_order=image.display_order,
                is_primary=image.is_primary,
                inherited=not self.images.is_catalog_image_owned(image, product),
                url=self.images.read_url(image.object_key),
            )
            for image in product.images
        ]
        variants = [
            VariantSummary(
                id=variant.id,
                name=variant.name,
                slug=variant.slug,
                sku=variant.sku,
                price=variant.price,
                is_active=variant.is_active,
                variant_position=variant.variant_position,
            )
            for variant in product.variants
        ]
        return ProductRead(
            id=product.id,
            name=product.name,
            slug=product.slug,
            sku=product.sku,
            model_number=product.model_number,
            description=product.description,
            short_description=product.short_description,
            price=product.price,
            compare_at_price=product.compare_at_price,
            cost_price=product.cost_price,
            specifications=product.specifications,
            is_active=product.is_active,
            is_featured=product.is_featured,
            display_order=product.display_order,
            manufacturer_id=product.manufacturer_id,
            manufacturer_name=product.manufacturer.name if product.manufacturer else None,
            compatibility_brand_ids=[brand.id for brand in product.compatibility_brands],
            variant_type=product.variant_type,
            variant_position=product.variant_position,
            parent_id=product.parent_id,
            variants=variants,
            thumbnail_object_key=product.thumbnail_object_key,
            thumbnail_url=self.images.read_url(product.thumbnail_object_key),
            images=images,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )

    # ----- Reads -----

    def list_products(
        self,
        session: Session,
        *,
        search: str | None = None,
        manufacturer_id: uuid.UUID | None = None,
        category_id: uuid.UUID | None = None,
        is_active: bool | None = True,
        is_featured: bool | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        include_variants: bool = False,
        skip: int = 0,
        limit: int = 50,
    ) -> list[ProductRead]:
        if min_price is not None and max_price is not None and min_price > max_price:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="min_price cannot be greater than max_price",
            )
        products = self.repo.list_products(
            session,
            search=search,
            manufacturer_id=manufacturer_id,
            category_id=category_id,
            is_active=is_active,
            is_featured=is_featured,
            min_price=min_price,
            max_price=max_price,
            include_variants=include_variants,
            skip=skip,
            limit=limit,
        )
        logger.debug("Listed %d products", len(products))
        return [self.to_read(product) for product in products]

    def get_product(self, session: Session, product_id: uuid.UUID) -> ProductRead:
        return self.to_read(self._get(session, product_id))

    def get_by_slug(self, session: Session, slug: str) -> ProductRead:
        product = self.repo.get_by_slug(session, slug)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return self.to_read(product)

    def get_by_sku(self, session: Session, sku: str) -> ProductRead:
        product = self.repo.get_by_sku(session, sku)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return self.to_read(product)

    def list_variants(self, session: Session, parent_id: uuid.UUID) -> list[ProductRead]:
        parent = self._get(session, parent_id)
        return [self.to_read(variant) for variant in parent.variants]

    def get_stats(self, session: Session) -> ProductStats:
        return ProductStats(**self.repo.stats(session))

    # ----- Writes -----

    def create_product(self, session: Session, payload: ProductCreate) -> ProductRead:
        """
        Create a STANDALONE product with a unique slug and generated SKU.
        """
        manufacturer = self._get_manufacturer(session, payload.manufacturer_id)
        self._check_model_number(session, payload.model_number)
        brands = self._get_compatibility_brands(session, payload.compatibility_brand_ids)

        product = Product(
            name=payload.name,
            slug=self._unique_slug(session, payload.slug or payload.name),
            sku=generate_unique_sku(
                manufacturer,
                None,
                payload.name,
                lambda candidate: self.repo.exists_by_sku(session, candidate),
            ),
            model_number=payload.model_number,
            description=payload.description,
            short_description=payload.short_description,
            price=payload.price,
            compare_at_price=payload.compare_at_price,
            cost_price=payload.cost_price,
            specifications=payload.specifications,
            is_active=payload.is_active,
            is_featured=payload.is_featured,
            display_order=payload.display_order,
            manufacturer_id=manufacturer.id,
        )
        product.manufacturer = manufacturer
        product.compatibility_brands = brands
        self.repo.add(session, product)

        commit_or_conflict(session, "Product with this slug, SKU or model number already exists")
        session.refresh(product)
        logger.info("Created product %s (%s)", product.id, product.sku)
        return self.to_read(product)

    def create_variant(
        self,
        session: Session,
        parent_id: uuid.UUID,
        payload: VariantCreate,
    ) -> ProductRead:
        """
        Create a variant under `parent_id`.

        The variant takes the parent's manufacturer and compatibility
        brands, a "<parent base>-V-XXXX" SKU, the next position, and (unless
        disabled) references to the parent's images.
        """
        parent = self._get(session, parent_id)
        if isinstance(parent.role, VariantRole):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot create variant for a variant product",
            )
        self._check_model_number(session, payload.model_number)

        variant = Product(
            name=payload.name,
            slug=self._unique_slug(session, payload.name),
            sku=generate_unique_sku(
                parent.manufacturer,
                parent,
                payload.name,
                lambda candidate: self.repo.exists_by_sku(session, candidate),
            ),
            model_number=payload.model_number,
            description=payload.description or parent.description,
            short_description=payload.short_description or parent.short_description,
            price=payload.price if payload.price is not None else parent.price,
            compare_at_price=payload.compare_at_price or parent.compare_at_price,
            cost_price=payload.cost_price or parent.cost_price,
            specifications=(
                payload.specifications
                if payload.specifications is not None
                else dict(parent.specifications or {})
            ),
            is_active=payload.is_active,
            is_featured=False,
            manufacturer_id=parent.manufacturer_id,
        )
        variant.manufacturer = parent.manufacturer
        variant.compatibility_brands = list(parent.compatibility_brands)

        try:
            parent.add_variant(variant)
        except VariantStructureError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            )
        self.repo.add(session, variant)

        if payload.inherit_images:
            self.images.inherit_parent_images(parent, variant)

        parent.updated_at = datetime.now(timezone.utc)
        commit_or_conflict(session, "Variant with this slug, SKU or model number already exists")
        session.refresh(variant)
        logger.info(
            "Created variant %s (%s) under %s at position %s",
            variant.id, variant.sku, parent.id, variant.variant_position,
        )
        return self.to_read(variant)

    def detach_variant(
        self,
        session: Session,
        parent_id: uuid.UUID,
        variant_id: uuid.UUID,
    ) -> ProductRead:
        """
        Turn a variant back into a STANDALONE product. References to the
        parent's blobs are dropped; images the variant uploaded itself stay.
        """
        parent = self._get(session, parent_id)
        variant = self._get(session, variant_id)
        try:
            parent.remove_variant(variant)
        except VariantStructureError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            )
        released = self.images.release_inherited_images(variant)
        commit_or_conflict(session, "Variant detach conflicted")
        session.refresh(variant)
        logger.info(
            "Detached variant %s from %s (%d inherited images released)",
            variant.id, parent.id, released,
        )
        return self.to_read(variant)

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> ProductRead:
        """
        Partial update of a product.

        - If slug is changed, enforce uniqueness.
        - Manufacturer of a variant always follows its parent.
        """
        product = self._get(session, product_id)

        if payload.name is not None:
            product.name = payload.name

        if payload.slug is not None:
            new_slug = generate_slug(payload.slug)
            if new_slug != product.slug:
                product.slug = self._unique_slug(session, new_slug, exclude_id=product.id)

        if payload.model_number is not None and payload.model_number != product.model_number:
            self._check_model_number(session, payload.model_number, exclude_id=product.id)
            product.model_number = payload.model_number

        for field in (
            "description",
            "short_description",
            "price",
            "compare_at_price",
            "cost_price",
            "specifications",
            "is_active",
            "is_featured",
            "display_order",
        ):
            value = getattr(payload, field)
            if value is not None:
                setattr(product, field, value)

        if payload.manufacturer_id is not None and payload.manufacturer_id != product.manufacturer_id:
            if isinstance(product.role, VariantRole):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Manufacturer of a variant follows its parent",
                )
            manufacturer = self._get_manufacturer(session, payload.manufacturer_id)
            product.manufacturer = manufacturer
            for variant in product.variants:
                variant.manufacturer = manufacturer

        if payload.compatibility_brand_ids is not None:
            product.compatibility_brands = self._get_compatibility_brands(
                session, payload.compatibility_brand_ids
            )

        product.updated_at = datetime.now(timezone.utc)
        commit_or_conflict(session, "Product with this slug or model number already exists")
        session.refresh(product)
        logger.info("Updated product %s", product.id)
        return self.to_read(product)

    def delete_product(self, session: Session, product_id: uuid.UUID) -> None:
        """
        Delete a product.

        - PARENT with variants: rejected.
        - VARIANT: removed from its parent, siblings renumbered.
        - Cart lines referencing it are removed; order snapshots keep their
          copied fields and lose the product link.
        - Blobs it owns are deleted once the rows are gone.
        """
        product = self._get(session, product_id)
        role = product.role

        if isinstance(role, ParentRole):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Cannot delete product with {len(role.variant_ids)} variants. "
                    "Delete variants first."
                ),
            )

        if isinstance(role, VariantRole):
            product.parent.remove_variant(product)

        owned_keys = self.images.owned_object_keys(product)

        for item in self.cart_repo.list_items_for_product(session, product.id):
            self.cart_repo.delete_item(session, item)
        for item in self.order_repo.list_items_for_product(session, product.id):
            item.product = None
            item.product_id = None

        product.compatibility_brands = []
        self.repo.delete(session, product)
        commit_or_conflict(session, "Product delete conflicted")

        failed = self.images.delete_objects(owned_keys)
        if failed:
            logger.warning("Product %s deleted, stale blobs left: %s", product_id, failed)
        logger.info("Deleted product %s", product_id)
