# commerce/routers/orders.py
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from commerce.core.auth import require_admin, require_auth, require_customer
from commerce.database import get_session
from commerce.models.order import OrderStatus
from commerce.models.user import User
from commerce.routers.deps import get_order_service
from commerce.schemas.order import (
    BuyAgainResult,
    OrderCancel,
    OrderCreate,
    OrderRead,
    OrderStatistics,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from commerce.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

OrderSortField = Literal["created_at", "total_amount", "customer_name", "status"]


# -------- User-facing endpoints --------


@router.post(
    "/checkout",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
)
def checkout(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
):
    """
    Create an order from the current user's cart.

    Auth:
      - Only role='user' (customer) can checkout.
    """
    return service.create_order_from_cart(session, current_user.id, payload)


@router.get("/me", response_model=list[OrderRead])
def list_my_orders(
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
):
    """
    List the authenticated user's orders (without items).
    """
    return service.list_user_orders(session, current_user.id, status_filter, skip, limit)


@router.get("/me/statistics", response_model=OrderStatistics)
def my_order_statistics(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
):
    return service.get_statistics(session, current_user.id)


@router.get("/me/{order_id}", response_model=OrderWithItemsRead)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
):
    """
    Get a single order (with items and history) of the current user.
    """
    return service.get_user_order(session, current_user.id, order_id)


@router.post("/me/{order_id}/cancel", response_model=OrderRead)
def cancel_my_order(
    order_id: uuid.UUID,
    payload: OrderCancel | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
):
    """
    Cancel an order that is still PLACED.
    """
    remarks = payload.remarks if payload else None
    return service.cancel_by_user(session, current_user.id, order_id, remarks)


@router.post("/me/{order_id}/buy-again", response_model=BuyAgainResult)
def buy_again(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
    service: OrderService = Depends(get_order_service),
):
    """
    Re-add the products of a past order to the cart.
    """
    return service.buy_again(session, current_user.id, order_id)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    customer_name: str | None = None,
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    sort_by: OrderSortField = "created_at",
    descending: bool = True,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    List all orders (admin only).
    """
    return service.list_all_orders(
        session,
        customer_name=customer_name,
        status_filter=status_filter,
        sort_by=sort_by,
        descending=descending,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/statistics",
    response_model=OrderStatistics,
    dependencies=[Depends(require_admin)],
)
def order_statistics(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.get_statistics(session)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    return service.get_order_admin(session, order_id)


@router.patch("/{order_id}/status", response_model=OrderRead)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    service: OrderService = Depends(get_order_service),
):
    """
    Move an order forward:

      PLACED    -> CONFIRMED
      CONFIRMED -> SHIPPED, OUT_OF_STOCK
      SHIPPED   -> DELIVERED

    Cancellation has its own endpoints. Non-admin callers get 403.
    """
    return service.update_status(session, order_id, payload, current_user)


@router.post(
    "/{order_id}/cancel",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def cancel_order_admin(
    order_id: uuid.UUID,
    payload: OrderCancel | None = None,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    remarks = payload.remarks if payload else None
    return service.cancel_by_admin(session, order_id, remarks)


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    service.delete_order(session, order_id)
    return None
