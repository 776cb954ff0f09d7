# commerce/schemas/product.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from commerce.models.product import VariantType


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - slug is optional: if omitted, generated from `name`.
    - sku is always generated.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=200)
    slug: str | None = None
    model_number: str | None = Field(default=None, max_length=100)
    description: str | None = None
    short_description: str | None = Field(default=None, max_length=500)
    price: float = Field(gt=0)
    compare_at_price: float | None = Field(default=None, gt=0)
    cost_price: float | None = Field(default=None, ge=0)
    specifications: dict[str, str] | None = None
    is_active: bool = True
    is_featured: bool = False
    display_order: int = 0
    manufacturer_id: uuid.UUID
    compatibility_brand_ids: list[uuid.UUID] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("slug", "model_number")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class VariantCreate(SQLModel):
    """
    Payload for creating a variant under a parent product.

    Manufacturer and compatibility brands come from the parent; omitted
    prices fall back to the parent's. Images are inherited unless
    inherit_images is False.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=200)
    model_number: str | None = Field(default=None, max_length=100)
    description: str | None = None
    short_description: str | None = Field(default=None, max_length=500)
    price: float | None = Field(default=None, gt=0)
    compare_at_price: float | None = Field(default=None, gt=0)
    cost_price: float | None = Field(default=None, ge=0)
    specifications: dict[str, str] | None = None
    is_active: bool = True
    inherit_images: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("model_number")
    @classmethod
    def normalize_model_number(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    slug: str | None = None
    model_number: str | None = Field(default=None, max_length=100)
    description: str | None = None
    short_description: str | None = Field(default=None, max_length=500)
    price: float | None = Field(default=None, gt=0)
    compare_at_price: float | None = Field(default=None, gt=0)
    cost_price: float | None = Field(default=None, ge=0)
    specifications: dict[str, str] | None = None
    is_active: bool | None = None
    is_featured: bool | None = None
    display_order: int | None = None
    manufacturer_id: uuid.UUID | None = None
    compatibility_brand_ids: list[uuid.UUID] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _strip_required(v)

    @field_validator("slug", "model_number")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class ProductImageRead(SQLModel):
    """
    Catalogue image with a short-lived read URL.

    url is None when the URL could not be generated.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    object_key: str
    file_size: int | None = None
    content_type: str | None = None
    width: int | None = None
    height: int | None = None
    alt_text: str | None = None
    display_order: int
    is_primary: bool
    inherited: bool = False
    url: str | None = None


class VariantSummary(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    sku: str
    price: float
    is_active: bool
    variant_position: int | None = None


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: uuid.UUID
    name: str
    slug: str
    sku: str
    model_number: str | None = None
    description: str | None = None
    short_description: str | None = None
    price: float
    compare_at_price: float | None = None
    cost_price: float | None = None
    specifications: dict[str, str] | None = None
    is_active: bool
    is_featured: bool
    display_order: int

    manufacturer_id: uuid.UUID
    manufacturer_name: str | None = None
    compatibility_brand_ids: list[uuid.UUID] = []

    variant_type: VariantType
    variant_position: int | None = None
    parent_id: uuid.UUID | None = None
    variants: list[VariantSummary] = []

    thumbnail_object_key: str | None = None
    thumbnail_url: str | None = None
    images: list[ProductImageRead] = []

    created_at: datetime
    updated_at: datetime


class ImageReorder(SQLModel):
    """
    New gallery order: every image id of the product, once.
    """

    model_config = ConfigDict(extra="forbid")

    image_ids: list[uuid.UUID]


class ReadUrl(SQLModel):
    url: str
    expires_at: datetime


class ProductStats(SQLModel):
    total_products: int
    active_products: int
    featured_products: int
    products_with_variants: int
    variant_products: int
    average_price: float
