# commerce/repositories/catalogue_repo.py
import uuid
from typing import TypeVar

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from commerce.models.catalogue import Category, CompatibilityBrand, Manufacturer
from commerce.models.product import Product

NamedModel = TypeVar("NamedModel", Category, Manufacturer, CompatibilityBrand)


class CatalogueRepository:
    """
    Data access for categories, manufacturers and compatibility brands.

    The three share the same shape (unique name + unique slug), so lookups
    take the model class as first argument.
    """

    def get(
        self,
        session: Session,
        model: type[NamedModel],
        entity_id: uuid.UUID,
    ) -> NamedModel | None:
        return session.get(model, entity_id)

    def get_many(
        self,
        session: Session,
        model: type[NamedModel],
        ids: list[uuid.UUID],
    ) -> list[NamedModel]:
        if not ids:
            return []
        return list(session.exec(select(model).where(model.id.in_(ids))).all())

    def exists_by_name(
        self,
        session: Session,
        model: type[NamedModel],
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        stmt = select(model.id).where(func.lower(model.name) == name.strip().lower())
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        return session.exec(stmt).first() is not None

    def exists_by_slug(
        self,
        session: Session,
        model: type[NamedModel],
        slug: str,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        stmt = select(model.id).where(model.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        return session.exec(stmt).first() is not None

    def list_entities(
        self,
        session: Session,
        model: type[NamedModel],
        *,
        only_active: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> list[NamedModel]:
        stmt = select(model)
        if only_active and hasattr(model, "is_active"):
            stmt = stmt.where(model.is_active == True)  # noqa: E712
        if hasattr(model, "display_order"):
            stmt = stmt.order_by(model.display_order, model.name)
        else:
            stmt = stmt.order_by(model.name)
        return list(session.exec(stmt.offset(skip).limit(limit)).all())

    def count_products_for_manufacturer(
        self,
        session: Session,
        manufacturer_id: uuid.UUID,
    ) -> int:
        stmt = select(func.count(Product.id)).where(
            Product.manufacturer_id == manufacturer_id
        )
        return int(session.exec(stmt).one() or 0)

    def add(self, session: Session, entity: SQLModel) -> SQLModel:
        session.add(entity)
        session.flush()
        return entity

    def delete(self, session: Session, entity: SQLModel) -> None:
        session.delete(entity)
        session.flush()
