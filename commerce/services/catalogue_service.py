# commerce/services/catalogue_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from commerce.core.config import get_settings
from commerce.core.outcome import attempt
from commerce.core.storage import SupabaseObjectStorage, manufacturer_logo_key
from commerce.database import commit_or_conflict
from commerce.models.catalogue import Category, CompatibilityBrand, Manufacturer
from commerce.repositories.catalogue_repo import CatalogueRepository
from commerce.schemas.catalogue import (
    CategoryCreate,
    CategoryUpdate,
    CompatibilityBrandCreate,
    ManufacturerCreate,
    ManufacturerRead,
    ManufacturerUpdate,
)
from commerce.services.identifiers import ensure_unique_slug, generate_slug
from commerce.services.product_image_service import ProductImageService

settings = get_settings()
logger = logging.getLogger(__name__)


class CatalogueService:
    """
    Categories, manufacturers (with logos) and compatibility brands.

    Names are unique per kind (case-insensitive); duplicates are a 400,
    a race caught by the unique constraint at commit is a 409.
    """

    def __init__(self, repo: CatalogueRepository, storage: SupabaseObjectStorage):
        self.repo = repo
        self.storage = storage

    # ----- Helpers -----

    def _get_or_404(self, session: Session, model, entity_id: uuid.UUID, label: str):
        entity = self.repo.get(session, model, entity_id)
        if not entity:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{label} not found",
            )
        return entity

    def _check_name(
        self,
        session: Session,
        model,
        name: str,
        label: str,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if self.repo.exists_by_name(session, model, name, exclude_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{label} with name '{name}' already exists",
            )

    def _unique_slug(
        self,
        session: Session,
        model,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> str:
        return ensure_unique_slug(
            generate_slug(name, fallback=model.__tablename__),
            lambda candidate: self.repo.exists_by_slug(session, model, candidate, exclude_id),
        )

    def _categories(self, session: Session, ids: list[uuid.UUID]) -> list[Category]:
        unique_ids = list(dict.fromkeys(ids))
        found = {c.id: c for c in self.repo.get_many(session, Category, unique_ids)}
        if len(found) != len(unique_ids):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="One or more categories not found",
            )
        return [found[category_id] for category_id in unique_ids]

    # ----- Categories -----

    def list_categories(self, session: Session, only_active: bool = False) -> list[Category]:
        return self.repo.list_entities(session, Category, only_active=only_active)

    def get_category(self, session: Session, category_id: uuid.UUID) -> Category:
        return self._get_or_404(session, Category, category_id, "Category")

    def create_category(self, session: Session, payload: CategoryCreate) -> Category:
        self._check_name(session, Category, payload.name, "Category")
        category = Category(
            name=payload.name,
            slug=self._unique_slug(session, Category, payload.name),
            description=payload.description,
            display_order=payload.display_order,
            is_active=payload.is_active,
        )
        self.repo.add(session, category)
        commit_or_conflict(session, "Category already exists")
        session.refresh(category)
        logger.info("Created category %s", category.slug)
        return category

    def update_category(
        self,
        session: Session,
        category_id: uuid.UUID,
        payload: CategoryUpdate,
    ) -> Category:
        category = self.get_category(session, category_id)
        if payload.name is not None and payload.name != category.name:
            self._check_name(session, Category, payload.name, "Category", category.id)
            category.name = payload.name
            category.slug = self._unique_slug(session, Category, payload.name, category.id)
        if payload.description is not None:
            category.description = payload.description
        if payload.display_order is not None:
            category.display_order = payload.display_order
        if payload.is_active is not None:
            category.is_active = payload.is_active

        commit_or_conflict(session, "Category already exists")
        session.refresh(category)
        return category

    def delete_category(self, session: Session, category_id: uuid.UUID) -> None:
        category = self.get_category(session, category_id)
        category.manufacturers = []
        self.repo.delete(session, category)
        commit_or_conflict(session, "Category delete conflicted")
        logger.info("Deleted category %s", category_id)

    # ----- Manufacturers -----

    def to_read(self, manufacturer: Manufacturer) -> ManufacturerRead:
        logo_url = None
        if manufacturer.logo_object_key:
            outcome = attempt(
                f"Logo URL for {manufacturer.slug}",
                self.storage.generate_read_url,
                manufacturer.logo_object_key,
                settings.IMAGE_URL_TTL_MINUTES,
            )
            logo_url = outcome.value["url"] if outcome.ok and outcome.value else None

        return ManufacturerRead(
            id=manufacturer.id,
            name=manufacturer.name,
            slug=manufacturer.slug,
            description=manufacturer.description,
            website_url=manufacturer.website_url,
            display_order=manufacturer.display_order,
            is_active=manufacturer.is_active,
            category_ids=[category.id for category in manufacturer.categories],
            logo_object_key=manufacturer.logo_object_key,
            logo_url=logo_url,
            created_at=manufacturer.created_at,
        )

    def _get_manufacturer(self, session: Session, manufacturer_id: uuid.UUID) -> Manufacturer:
        return self._get_or_404(session, Manufacturer, manufacturer_id, "Manufacturer")

    def list_manufacturers(
        self,
        session: Session,
        only_active: bool = False,
    ) -> list[ManufacturerRead]:
        manufacturers = self.repo.list_entities(session, Manufacturer, only_active=only_active)
        return [self.to_read(m) for m in manufacturers]

    def get_manufacturer(self, session: Session, manufacturer_id: uuid.UUID) -> ManufacturerRead:
        return self.to_read(self._get_manufacturer(session, manufacturer_id))

    def create_manufacturer(
        self,
        session: Session,
        payload: ManufacturerCreate,
    ) -> ManufacturerRead:
        self._check_name(session, Manufacturer, payload.name, "Manufacturer")
        manufacturer = Manufacturer(
            name=payload.name,
            slug=self._unique_slug(session, Manufacturer, payload.name),
            description=payload.description,
            website_url=payload.website_url,
            display_order=payload.display_order,
            is_active=payload.is_active,
        )
        manufacturer.categories = self._categories(session, payload.category_ids)
        self.repo.add(session, manufacturer)
        commit_or_conflict(session, "Manufacturer already exists")
        session.refresh(manufacturer)
        logger.info("Created manufacturer %s", manufacturer.slug)
        return self.to_read(manufacturer)

    def update_manufacturer(
        self,
        session: Session,
        manufacturer_id: uuid.UUID,
        payload: ManufacturerUpdate,
    ) -> ManufacturerRead:
        """
        Partial update. The slug is kept on rename because logo keys are
        built from it.
        """
        manufacturer = self._get_manufacturer(session, manufacturer_id)
        if payload.name is not None and payload.name != manufacturer.name:
            self._check_name(session, Manufacturer, payload.name, "Manufacturer", manufacturer.id)
            manufacturer.name = payload.name
        if payload.description is not None:
            manufacturer.description = payload.description
        if payload.website_url is not None:
            manufacturer.website_url = payload.website_url
        if payload.display_order is not None:
            manufacturer.display_order = payload.display_order
        if payload.is_active is not None:
            manufacturer.is_active = payload.is_active
        if payload.category_ids is not None:
            manufacturer.categories = self._categories(session, payload.category_ids)

        commit_or_conflict(session, "Manufacturer already exists")
        session.refresh(manufacturer)
        return self.to_read(manufacturer)

    def delete_manufacturer(self, session: Session, manufacturer_id: uuid.UUID) -> None:
        manufacturer = self._get_manufacturer(session, manufacturer_id)
        product_count = self.repo.count_products_for_manufacturer(session, manufacturer.id)
        if product_count:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot delete manufacturer with {product_count} products",
            )

        logo_key = manufacturer.logo_object_key
        manufacturer.categories = []
        self.repo.delete(session, manufacturer)
        commit_or_conflict(session, "Manufacturer delete conflicted")
        if logo_key:
            self.storage.delete(logo_key)
        logger.info("Deleted manufacturer %s", manufacturer_id)

    def upload_logo(
        self,
        session: Session,
        manufacturer_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> ManufacturerRead:
        manufacturer = self._get_manufacturer(session, manufacturer_id)
        ext = ProductImageService.validate_image(content_type, file_bytes)

        old_key = manufacturer.logo_object_key
        key = self.storage.upload(
            manufacturer_logo_key(manufacturer.slug, ext),
            file_bytes,
            content_type,
        )
        manufacturer.logo_object_key = key
        manufacturer.logo_file_size = len(file_bytes)
        manufacturer.logo_content_type = content_type

        commit_or_conflict(session, "Logo update conflicted")
        if old_key:
            self.storage.delete(old_key)
        session.refresh(manufacturer)
        logger.info("Logo of manufacturer %s set to %s", manufacturer.slug, key)
        return self.to_read(manufacturer)

    def delete_logo(self, session: Session, manufacturer_id: uuid.UUID) -> ManufacturerRead:
        manufacturer = self._get_manufacturer(session, manufacturer_id)
        key = manufacturer.logo_object_key
        if not key:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Manufacturer has no logo",
            )
        manufacturer.clear_logo()
        commit_or_conflict(session, "Logo delete conflicted")
        self.storage.delete(key)
        session.refresh(manufacturer)
        return self.to_read(manufacturer)

    # ----- Compatibility brands -----

    def list_compatibility_brands(self, session: Session) -> list[CompatibilityBrand]:
        return self.repo.list_entities(session, CompatibilityBrand)

    def create_compatibility_brand(
        self,
        session: Session,
        payload: CompatibilityBrandCreate,
    ) -> CompatibilityBrand:
        self._check_name(session, CompatibilityBrand, payload.name, "Compatibility brand")
        brand = CompatibilityBrand(
            name=payload.name,
            slug=self._unique_slug(session, CompatibilityBrand, payload.name),
        )
        self.repo.add(session, brand)
        commit_or_conflict(session, "Compatibility brand already exists")
        session.refresh(brand)
        return brand

    def delete_compatibility_brand(self, session: Session, brand_id: uuid.UUID) -> None:
        brand = self._get_or_404(session, CompatibilityBrand, brand_id, "Compatibility brand")
        brand.products = []
        self.repo.delete(session, brand)
        commit_or_conflict(session, "Compatibility brand delete conflicted")
