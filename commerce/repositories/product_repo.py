# commerce/repositories/product_repo.py
import uuid

from sqlalchemy import func, or_
from sqlmodel import Session, select

from commerce.models.catalogue import ManufacturerCategoryLink
from commerce.models.product import Product, ProductImage, VariantType


class ProductRepository:
    """
    Data access layer for Product & ProductImage.

    - Pure DB operations (queries + add/delete).
    - Writes are flushed, never committed; the service owns the commit.
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        stmt = select(Product).where(Product.slug == slug)
        return session.exec(stmt).first()

    def get_by_sku(self, session: Session, sku: str) -> Product | None:
        stmt = select(Product).where(Product.sku == sku)
        return session.exec(stmt).first()

    def exists_by_slug(
        self,
        session: Session,
        slug: str,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        stmt = select(Product.id).where(Product.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        return session.exec(stmt).first() is not None

    def exists_by_sku(
        self,
        session: Session,
        sku: str,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        stmt = select(Product.id).where(Product.sku == sku)
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        return session.exec(stmt).first() is not None

    def exists_by_model_number(
        self,
        session: Session,
        model_number: str,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        stmt = select(Product.id).where(Product.model_number == model_number)
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        return session.exec(stmt).first() is not None

    def list_products(
        self,
        session: Session,
        *,
        search: str | None = None,
        manufacturer_id: uuid.UUID | None = None,
        category_id: uuid.UUID | None = None,
        is_active: bool | None = None,
        is_featured: bool | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        include_variants: bool = False,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Product]:
        stmt = select(Product)

        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(
                    Product.name.ilike(pattern),
                    Product.sku.ilike(pattern),
                    Product.model_number.ilike(pattern),
                )
            )
        if manufacturer_id is not None:
            stmt = stmt.where(Product.manufacturer_id == manufacturer_id)
        if category_id is not None:
            stmt = stmt.join(
                ManufacturerCategoryLink,
                ManufacturerCategoryLink.manufacturer_id == Product.manufacturer_id,
            ).where(ManufacturerCategoryLink.category_id == category_id)
        if is_active is not None:
            stmt = stmt.where(Product.is_active == is_active)
        if is_featured is not None:
            stmt = stmt.where(Product.is_featured == is_featured)
        if min_price is not None:
            stmt = stmt.where(Product.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Product.price <= max_price)
        if not include_variants:
            stmt = stmt.where(Product.parent_id.is_(None))

        stmt = (
            stmt.order_by(Product.display_order, Product.name)
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_with_thumbnail(self, session: Session) -> list[Product]:
        stmt = select(Product).where(Product.thumbnail_object_key.is_not(None))
        return list(session.exec(stmt).all())

    def add(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.flush()
        return product

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        session.flush()

    # ----- Product images -----

    def list_images_for_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[ProductImage]:
        stmt = (
            select(ProductImage)
            .where(ProductImage.product_id == product_id)
            .order_by(ProductImage.display_order)
        )
        return list(session.exec(stmt).all())

    def get_image_by_id(
        self,
        session: Session,
        image_id: uuid.UUID,
    ) -> ProductImage | None:
        return session.get(ProductImage, image_id)

    def list_all_images(self, session: Session) -> list[ProductImage]:
        return list(session.exec(select(ProductImage)).all())

    # ----- Aggregates -----

    def stats(self, session: Session) -> dict[str, float | int]:
        total = session.exec(select(func.count(Product.id))).one()
        active = session.exec(
            select(func.count(Product.id)).where(Product.is_active == True)  # noqa: E712
        ).one()
        featured = session.exec(
            select(func.count(Product.id)).where(Product.is_featured == True)  # noqa: E712
        ).one()
        with_variants = session.exec(
            select(func.count(Product.id)).where(
                Product.variant_type == VariantType.PARENT
            )
        ).one()
        variants = session.exec(
            select(func.count(Product.id)).where(
                Product.variant_type == VariantType.VARIANT
            )
        ).one()
        average_price = session.exec(select(func.avg(Product.price))).one()
        return {
            "total_products": int(total or 0),
            "active_products": int(active or 0),
            "featured_products": int(featured or 0),
            "products_with_variants": int(with_variants or 0),
            "variant_products": int(variants or 0),
            "average_price": round(float(average_price or 0.0), 2),
        }
