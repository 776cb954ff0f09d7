# commerce/models/product.py
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field, Relationship

from commerce.models.catalogue import ProductCompatibilityBrandLink

if TYPE_CHECKING:
    from commerce.models.catalogue import CompatibilityBrand, Manufacturer


class VariantType(str, Enum):
    STANDALONE = "STANDALONE"
    PARENT = "PARENT"
    VARIANT = "VARIANT"


class VariantStructureError(ValueError):
    """Raised when a change would break the one-level variant hierarchy."""


# Role of a product inside the variant hierarchy, derived from the stored
# columns. A VariantRole carries no children, so code that dispatches on the
# role cannot hand a variant its own variants.
@dataclass(frozen=True)
class Standalone:
    pass


@dataclass(frozen=True)
class ParentRole:
    variant_ids: tuple[uuid.UUID, ...]


@dataclass(frozen=True)
class VariantRole:
    parent_id: uuid.UUID
    position: int


ProductRole = Union[Standalone, ParentRole, VariantRole]


class Product(SQLModel, table=True):
    """
    Catalogue product.

    Variant hierarchy is one level deep:
      - STANDALONE: no parent, no variants
      - PARENT:     no parent, >= 1 variant
      - VARIANT:    has a parent, never has variants

    variant_position is 1..N contiguous within the parent's variant list.

    Thumbnail fields describe a single stored object. thumbnail_owner_id is
    the product that uploaded it; a variant that inherited the parent's
    thumbnail points at the same key with the parent as owner.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=200,
        index=True,
        description="Display name of the product",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    sku: str = Field(
        max_length=100,
        unique=True,
        index=True,
        description="Stock keeping unit (unique)",
    )

    model_number: str | None = Field(
        default=None,
        max_length=100,
        unique=True,
        description="Manufacturer model number (unique when present)",
    )

    description: str | None = None
    short_description: str | None = Field(default=None, max_length=500)

    price: float = Field(description="Selling price")
    compare_at_price: float | None = Field(
        default=None,
        description="Crossed-out reference price",
    )
    cost_price: float | None = Field(
        default=None,
        description="Purchase cost, admin only",
    )

    specifications: dict[str, str] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )

    is_active: bool = Field(default=True, index=True)
    is_featured: bool = Field(default=False, index=True)
    display_order: int = Field(default=0)

    # Thumbnail reference
    thumbnail_object_key: str | None = Field(default=None, max_length=500)
    thumbnail_file_size: int | None = None
    thumbnail_content_type: str | None = Field(default=None, max_length=50)
    thumbnail_width: int | None = None
    thumbnail_height: int | None = None
    thumbnail_owner_id: uuid.UUID | None = Field(default=None, index=True)

    manufacturer_id: uuid.UUID = Field(
        foreign_key="manufacturers.id",
        index=True,
    )

    # Variant hierarchy
    parent_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="products.id",
        index=True,
    )
    variant_type: VariantType = Field(default=VariantType.STANDALONE, index=True)
    variant_position: int | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last modification timestamp (UTC)",
    )

    manufacturer: Optional["Manufacturer"] = Relationship(back_populates="products")

    parent: Optional["Product"] = Relationship(
        back_populates="variants",
        sa_relationship_kwargs={"remote_side": "Product.id"},
    )
    variants: list["Product"] = Relationship(
        back_populates="parent",
        sa_relationship_kwargs={"order_by": "Product.variant_position"},
    )

    images: list["ProductImage"] = Relationship(
        back_populates="product",
        sa_relationship_kwargs={
            "order_by": "ProductImage.display_order",
            "cascade": "all, delete-orphan",
        },
    )

    compatibility_brands: list["CompatibilityBrand"] = Relationship(
        back_populates="products",
        link_model=ProductCompatibilityBrandLink,
    )

    # -------- Variant hierarchy --------

    @property
    def role(self) -> ProductRole:
        if self.parent is not None:
            return VariantRole(
                parent_id=self.parent.id,
                position=self.variant_position or 0,
            )
        if self.variants:
            return ParentRole(variant_ids=tuple(v.id for v in self.variants))
        return Standalone()

    def has_variants(self) -> bool:
        return isinstance(self.role, ParentRole)

    def is_variant(self) -> bool:
        return isinstance(self.role, VariantRole)

    def add_variant(self, variant: "Product") -> None:
        """
        Append `variant` to this product's variants.

        The variant gets position = new list size. A STANDALONE product
        becomes PARENT.
        """
        if isinstance(self.role, VariantRole):
            raise VariantStructureError(
                "Cannot create variant for a variant product"
            )
        if variant is self:
            raise VariantStructureError("A product cannot be its own variant")
        if variant.variants:
            raise VariantStructureError(
                "A product with variants cannot become a variant"
            )
        if variant.parent is not None and variant.parent is not self:
            raise VariantStructureError(
                "Product is already a variant of another product"
            )

        if variant not in self.variants:
            self.variants.append(variant)
        variant.parent = self
        variant.variant_type = VariantType.VARIANT
        variant.variant_position = len(self.variants)
        self.variant_type = VariantType.PARENT

    def remove_variant(self, variant: "Product") -> None:
        """
        Detach `variant`, make it STANDALONE and renumber the remaining
        variants 1..N. The last removal turns this product STANDALONE.
        """
        if variant not in self.variants:
            raise VariantStructureError("Product is not a variant of this product")

        self.variants.remove(variant)
        variant.parent = None
        variant.parent_id = None
        variant.variant_position = None
        variant.variant_type = VariantType.STANDALONE

        if not self.variants:
            self.variant_type = VariantType.STANDALONE
        self.renumber_variants()

    def renumber_variants(self) -> None:
        for position, variant in enumerate(self.variants, start=1):
            variant.variant_position = position

    # -------- Thumbnail --------

    def set_thumbnail(
        self,
        *,
        object_key: str,
        file_size: int | None,
        content_type: str | None,
        width: int | None = None,
        height: int | None = None,
        owner_id: uuid.UUID | None = None,
    ) -> None:
        self.thumbnail_object_key = object_key
        self.thumbnail_file_size = file_size
        self.thumbnail_content_type = content_type
        self.thumbnail_width = width
        self.thumbnail_height = height
        self.thumbnail_owner_id = owner_id or self.id

    def clear_thumbnail(self) -> None:
        self.thumbnail_object_key = None
        self.thumbnail_file_size = None
        self.thumbnail_content_type = None
        self.thumbnail_width = None
        self.thumbnail_height = None
        self.thumbnail_owner_id = None

    # -------- Catalogue images --------

    def add_image(self, image: "ProductImage", position: int | None = None) -> None:
        """
        Insert `image` at 1-based `position` (append when None or past the
        end) and renumber display_order 1..N.
        """
        if position is None or position > len(self.images):
            self.images.append(image)
        else:
            self.images.insert(max(position, 1) - 1, image)
        self.renumber_images()

    def remove_image(self, image: "ProductImage") -> None:
        self.images.remove(image)
        self.renumber_images()

    def reorder_images(self, image_ids: list[uuid.UUID]) -> None:
        """
        Put images in the order given by `image_ids`, which must name every
        image of this product exactly once.
        """
        by_id = {image.id: image for image in self.images}
        if len(image_ids) != len(by_id) or set(image_ids) != set(by_id):
            raise ValueError("Image ids must list every image of the product once")
        for position, image_id in enumerate(image_ids, start=1):
            by_id[image_id].display_order = position
        self.images.sort(key=lambda image: image.display_order)

    def renumber_images(self) -> None:
        for position, image in enumerate(self.images, start=1):
            image.display_order = position


class ProductImage(SQLModel, table=True):
    """
    Catalogue (gallery) image of a product.

    owner_product_id records which product uploaded the stored object.
    Rows copied onto a variant keep the parent's key and the parent as
    owner, so deleting them must not remove the blob.
    """

    __tablename__ = "product_images"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
        description="FK to products.id",
    )

    object_key: str = Field(
        max_length=500,
        index=True,
        description="Key of the stored object in the catalogue bucket",
    )
    file_size: int | None = None
    content_type: str | None = Field(default=None, max_length=50)
    width: int | None = None
    height: int | None = None
    alt_text: str | None = Field(default=None, max_length=255)

    display_order: int = Field(
        default=1,
        description="1-based position within the product gallery",
    )
    is_primary: bool = Field(default=False)

    owner_product_id: uuid.UUID | None = Field(default=None, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    product: Optional[Product] = Relationship(back_populates="images")
