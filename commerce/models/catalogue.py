# commerce/models/catalogue.py
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlmodel import SQLModel, Field, Relationship

if TYPE_CHECKING:
    from commerce.models.product import Product


class ManufacturerCategoryLink(SQLModel, table=True):
    """
    Many-to-many: a manufacturer is listed under one or more categories.
    """

    __tablename__ = "manufacturer_categories"

    manufacturer_id: uuid.UUID = Field(
        foreign_key="manufacturers.id",
        primary_key=True,
    )
    category_id: uuid.UUID = Field(
        foreign_key="categories.id",
        primary_key=True,
    )


class ProductCompatibilityBrandLink(SQLModel, table=True):
    """
    Many-to-many: brands a product is compatible with.
    """

    __tablename__ = "product_compatibility_brands"

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        primary_key=True,
    )
    compatibility_brand_id: uuid.UUID = Field(
        foreign_key="compatibility_brands.id",
        primary_key=True,
    )


class Category(SQLModel, table=True):
    """
    Top-level catalogue grouping (e.g. "Welding Machines").

    The first category of a manufacturer feeds the SKU category code.
    """

    __tablename__ = "categories"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        unique=True,
        index=True,
    )

    slug: str = Field(
        max_length=120,
        unique=True,
        index=True,
    )

    description: str | None = None

    display_order: int = Field(default=0)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    manufacturers: list["Manufacturer"] = Relationship(
        back_populates="categories",
        link_model=ManufacturerCategoryLink,
    )


class Manufacturer(SQLModel, table=True):
    """
    Brand that makes products. Every product has exactly one.

    Logo is stored under manufacturers/<slug>/logo-<uuid>.<ext>.
    """

    __tablename__ = "manufacturers"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        unique=True,
        index=True,
    )

    slug: str = Field(
        max_length=120,
        unique=True,
        index=True,
    )

    description: str | None = None
    website_url: str | None = None

    logo_object_key: str | None = Field(default=None, max_length=500)
    logo_file_size: int | None = None
    logo_content_type: str | None = Field(default=None, max_length=50)

    display_order: int = Field(default=0)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    categories: list[Category] = Relationship(
        back_populates="manufacturers",
        link_model=ManufacturerCategoryLink,
        sa_relationship_kwargs={"order_by": "Category.display_order"},
    )

    products: list["Product"] = Relationship(back_populates="manufacturer")

    def clear_logo(self) -> None:
        self.logo_object_key = None
        self.logo_file_size = None
        self.logo_content_type = None


class CompatibilityBrand(SQLModel, table=True):
    """
    Brand a product can be used with (e.g. spare part fits "Bosch").
    """

    __tablename__ = "compatibility_brands"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        unique=True,
        index=True,
    )

    slug: str = Field(
        max_length=120,
        unique=True,
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    products: list["Product"] = Relationship(
        back_populates="compatibility_brands",
        link_model=ProductCompatibilityBrandLink,
    )
