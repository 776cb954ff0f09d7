# commerce/routers/catalogue.py
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlmodel import Session

from commerce.core.auth import require_admin
from commerce.database import get_session
from commerce.routers.deps import get_catalogue_service
from commerce.schemas.catalogue import (
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    CompatibilityBrandCreate,
    CompatibilityBrandRead,
    ManufacturerCreate,
    ManufacturerRead,
    ManufacturerUpdate,
)
from commerce.services.catalogue_service import CatalogueService

router = APIRouter(tags=["Catalogue"])


# -------- Categories --------


@router.get("/categories", response_model=list[CategoryRead])
def list_categories(
    only_active: bool = True,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.list_categories(session, only_active=only_active)


@router.get("/categories/{category_id}", response_model=CategoryRead)
def get_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.get_category(session, category_id)


@router.post(
    "/categories",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_category(
    payload: CategoryCreate,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.create_category(session, payload)


@router.patch(
    "/categories/{category_id}",
    response_model=CategoryRead,
    dependencies=[Depends(require_admin)],
)
def update_category(
    category_id: uuid.UUID,
    payload: CategoryUpdate,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.update_category(session, category_id, payload)


@router.delete(
    "/categories/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    service.delete_category(session, category_id)
    return None


# -------- Manufacturers --------


@router.get("/manufacturers", response_model=list[ManufacturerRead])
def list_manufacturers(
    only_active: bool = True,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.list_manufacturers(session, only_active=only_active)


@router.get("/manufacturers/{manufacturer_id}", response_model=ManufacturerRead)
def get_manufacturer(
    manufacturer_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.get_manufacturer(session, manufacturer_id)


@router.post(
    "/manufacturers",
    response_model=ManufacturerRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_manufacturer(
    payload: ManufacturerCreate,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.create_manufacturer(session, payload)


@router.patch(
    "/manufacturers/{manufacturer_id}",
    response_model=ManufacturerRead,
    dependencies=[Depends(require_admin)],
)
def update_manufacturer(
    manufacturer_id: uuid.UUID,
    payload: ManufacturerUpdate,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.update_manufacturer(session, manufacturer_id, payload)


@router.delete(
    "/manufacturers/{manufacturer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_manufacturer(
    manufacturer_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    """
    Delete a manufacturer and its logo. 400 while products reference it.
    """
    service.delete_manufacturer(session, manufacturer_id)
    return None


@router.post(
    "/manufacturers/{manufacturer_id}/logo",
    response_model=ManufacturerRead,
    dependencies=[Depends(require_admin)],
)
def upload_logo(
    manufacturer_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )
    return service.upload_logo(session, manufacturer_id, file.content_type, file.file.read())


@router.delete(
    "/manufacturers/{manufacturer_id}/logo",
    response_model=ManufacturerRead,
    dependencies=[Depends(require_admin)],
)
def delete_logo(
    manufacturer_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.delete_logo(session, manufacturer_id)


# -------- Compatibility brands --------


@router.get("/compatibility-brands", response_model=list[CompatibilityBrandRead])
def list_compatibility_brands(
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.list_compatibility_brands(session)


@router.post(
    "/compatibility-brands",
    response_model=CompatibilityBrandRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_compatibility_brand(
    payload: CompatibilityBrandCreate,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.create_compatibility_brand(session, payload)


@router.delete(
    "/compatibility-brands/{brand_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_compatibility_brand(
    brand_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: CatalogueService = Depends(get_catalogue_service),
):
    service.delete_compatibility_brand(session, brand_id)
    return None
