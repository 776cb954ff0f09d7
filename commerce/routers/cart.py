# commerce/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from commerce.core.auth import require_customer
from commerce.database import get_session
from commerce.models.cart import CartType
from commerce.models.user import User
from commerce.routers.deps import get_cart_service
from commerce.schemas.cart import (
    CartItemCreate,
    CartItemMove,
    CartItemUpdate,
    CartRead,
    CartSummaryRead,
)
from commerce.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=CartRead)
def get_my_cart(
    cart_type: CartType = CartType.CART,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: CartService = Depends(get_cart_service),
):
    """
    Current user's cart (default) or wishlist (?cart_type=WISHLIST).

    Auth:
      - Only role='user' (customer) can access.
    """
    return service.get_cart(session, current_user.id, cart_type)


@router.get("/all", response_model=list[CartSummaryRead])
def list_my_carts(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: CartService = Depends(get_cart_service),
):
    return service.list_carts(session, current_user.id)


@router.post("/items", response_model=CartRead)
def add_item(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: CartService = Depends(get_cart_service),
):
    """
    Add a product to the cart or wishlist.

    Returns the updated cart; item_already_exists=true when the wishlist
    already had the product.
    """
    return service.add_item(session, current_user.id, payload)


@router.patch("/items/{item_id}", response_model=CartRead)
def update_item_quantity(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: CartService = Depends(get_cart_service),
):
    return service.update_item_quantity(session, current_user.id, item_id, payload.quantity)


@router.delete("/items/{item_id}", response_model=CartRead)
def remove_item(
    item_id: uuid.UUID,
    cart_type: CartType = CartType.CART,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: CartService = Depends(get_cart_service),
):
    return service.remove_item(session, current_user.id, item_id, cart_type)


@router.post("/items/{item_id}/move", response_model=CartRead)
def move_item(
    item_id: uuid.UUID,
    payload: CartItemMove,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: CartService = Depends(get_cart_service),
):
    """
    Move a line between cart and wishlist; returns the target.
    """
    return service.move_item(session, current_user.id, item_id, payload.target_type)


@router.post("/sync-prices", response_model=CartRead)
def sync_prices(
    cart_type: CartType = CartType.CART,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: CartService = Depends(get_cart_service),
):
    return service.sync_prices(session, current_user.id, cart_type)


@router.delete("", response_model=CartRead)
def clear_cart(
    cart_type: CartType = CartType.CART,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: CartService = Depends(get_cart_service),
):
    return service.clear_cart(session, current_user.id, cart_type)
