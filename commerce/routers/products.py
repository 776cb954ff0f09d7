# commerce/routers/products.py
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from sqlmodel import Session

from commerce.core.auth import require_admin
from commerce.database import get_session
from commerce.routers.deps import get_image_service, get_product_service
from commerce.schemas.product import (
    ImageReorder,
    ProductCreate,
    ProductRead,
    ProductStats,
    ProductUpdate,
    ReadUrl,
    VariantCreate,
)
from commerce.services.product_image_service import ProductImageService
from commerce.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])


def _read_upload(file: UploadFile) -> tuple[str, bytes]:
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )
    return file.content_type, file.file.read()


# -------- Public endpoints --------


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
    search: str | None = None,
    manufacturer_id: uuid.UUID | None = None,
    category_id: uuid.UUID | None = None,
    is_active: bool | None = True,
    is_featured: bool | None = None,
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    include_variants: bool = False,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
):
    """
    List products.

    - Public endpoint.
    - Variants are hidden unless include_variants=true.
    """
    return service.list_products(
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


@router.get(
    "/stats",
    response_model=ProductStats,
    dependencies=[Depends(require_admin)],
)
def product_stats(
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    return service.get_stats(session)


@router.get("/images/url", response_model=ReadUrl)
def image_read_url(
    key: str = Query(min_length=1),
    images: ProductImageService = Depends(get_image_service),
):
    """
    Short-lived read URL for a stored image; 404 when it no longer exists.
    """
    return images.get_read_url(key)


@router.get("/slug/{slug}", response_model=ProductRead)
def get_product_by_slug(
    slug: str,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    return service.get_by_slug(session, slug)


@router.get("/sku/{sku}", response_model=ProductRead)
def get_product_by_sku(
    sku: str,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    return service.get_by_sku(session, sku)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    return service.get_product(session, product_id)


@router.get("/{product_id}/variants", response_model=list[ProductRead])
def list_variants(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Variants of a product ordered by position.
    """
    return service.list_variants(session, product_id)


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Create a new product (admin only). SKU is generated.
    """
    return service.create_product(session, payload)


@router.post(
    "/{product_id}/variants",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_variant(
    product_id: uuid.UUID,
    payload: VariantCreate,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Create a variant of a product (admin only).

    - 400 when the product is itself a variant.
    """
    return service.create_variant(session, product_id, payload)


@router.delete(
    "/{product_id}/variants/{variant_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def detach_variant(
    product_id: uuid.UUID,
    variant_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Detach a variant; it becomes a standalone product.
    """
    return service.detach_variant(session, product_id, variant_id)


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    return service.update_product(session, product_id, payload)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: ProductService = Depends(get_product_service),
):
    """
    Delete a product (admin only).

    - 400 while it still has variants.
    - Only images the product owns are removed from storage.
    """
    service.delete_product(session, product_id)
    return None


# -------- Images (admin) --------


@router.post(
    "/{product_id}/thumbnail",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
    summary="Upload or replace the thumbnail of a product",
)
def upload_thumbnail(
    product_id: uuid.UUID,
    file: UploadFile = File(...),
    width: int | None = Form(default=None),
    height: int | None = Form(default=None),
    session: Session = Depends(get_session),
    images: ProductImageService = Depends(get_image_service),
    service: ProductService = Depends(get_product_service),
):
    content_type, file_bytes = _read_upload(file)
    product = images.upload_thumbnail(
        session,
        product_id,
        content_type,
        file_bytes,
        width=width,
        height=height,
    )
    return service.to_read(product)


@router.delete(
    "/{product_id}/thumbnail",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def delete_thumbnail(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    images: ProductImageService = Depends(get_image_service),
    service: ProductService = Depends(get_product_service),
):
    return service.to_read(images.delete_thumbnail(session, product_id))


@router.post(
    "/{product_id}/images",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
    summary="Upload one or more catalogue images for a product",
)
def upload_catalog_images(
    product_id: uuid.UUID,
    files: list[UploadFile] = File(...),
    position: int | None = Form(default=None),
    alt_text: str | None = Form(default=None),
    session: Session = Depends(get_session),
    images: ProductImageService = Depends(get_image_service),
    service: ProductService = Depends(get_product_service),
):
    """
    Upload catalogue images (max 5 per product).

    - position: 1-based insert position; appended when omitted.
    """
    images.upload_catalog_images(
        session,
        product_id,
        [_read_upload(f) for f in files],
        position=position,
        alt_text=alt_text,
    )
    return service.get_product(session, product_id)


@router.put(
    "/{product_id}/images/order",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def reorder_images(
    product_id: uuid.UUID,
    payload: ImageReorder,
    session: Session = Depends(get_session),
    images: ProductImageService = Depends(get_image_service),
    service: ProductService = Depends(get_product_service),
):
    images.reorder_images(session, product_id, payload.image_ids)
    return service.get_product(session, product_id)


@router.delete(
    "/{product_id}/images",
    dependencies=[Depends(require_admin)],
    summary="Delete the thumbnail or catalogue image using a storage key",
)
def delete_image_by_key(
    product_id: uuid.UUID,
    key: str = Query(min_length=1),
    session: Session = Depends(get_session),
    images: ProductImageService = Depends(get_image_service),
) -> dict[str, str]:
    images.delete_image_by_key(session, product_id, key)
    return {"message": "Image deleted successfully"}


@router.delete(
    "/{product_id}/images/{image_id}",
    dependencies=[Depends(require_admin)],
    summary="Delete a catalogue image by id",
)
def delete_catalog_image(
    product_id: uuid.UUID,
    image_id: uuid.UUID,
    session: Session = Depends(get_session),
    images: ProductImageService = Depends(get_image_service),
) -> dict[str, str]:
    """
    Delete a catalogue image (admin only).

    - The stored file is removed only if this product uploaded it.
    """
    images.delete_catalog_image(session, product_id, image_id)
    return {"message": "Image deleted successfully"}
