# commerce/services/order_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from commerce.core.notifications import OrderEventPublisher
from commerce.core.outcome import attempt
from commerce.database import commit_or_conflict
from commerce.models.cart import CartType
from commerce.models.order import (
    TERMINAL_STATUSES,
    InvalidStatusTransition,
    Order,
    OrderItem,
    OrderStatus,
    is_status_upgrade,
)
from commerce.models.user import User
from commerce.repositories.cart_repo import CartRepository
from commerce.repositories.order_repo import OrderRepository
from commerce.repositories.stats_repo import StatsRepository
from commerce.schemas.order import (
    BuyAgainResult,
    OrderCreate,
    OrderItemRead,
    OrderRead,
    OrderStatistics,
    OrderStatusHistoryRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from commerce.services.cart_service import CartService
from commerce.services.product_image_service import ProductImageService

logger = logging.getLogger(__name__)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - convert the user's cart into an immutable order snapshot
      - drive the status state machine (admin updates, user/admin cancel)
      - "buy again" from a past order
      - publish order events (best effort)

    Status rules layered on the transition table:
      - CANCELLED is reachable only through the cancel operations
      - only admins drive any other transition
      - setting the current status again is an error
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        cart_service: CartService,
        stats_repo: StatsRepository,
        images: ProductImageService,
        publisher: OrderEventPublisher,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.cart_service = cart_service
        self.stats_repo = stats_repo
        self.images = images
        self.publisher = publisher

    # -------- Read models --------

    @staticmethod
    def _read_fields(order: Order) -> dict:
        return dict(
            id=order.id,
            user_id=order.user_id,
            customer_name=order.customer_name,
            phone_number=order.phone_number,
            full_address=order.full_address,
            status=order.status,
            total_amount=order.total_amount,
            total_items=order.total_items,
            admin_remarks=order.admin_remarks,
            status_updated_at=order.status_updated_at,
            cancelled_at=order.cancelled_at,
            cancelled_by_admin=order.cancelled_by_admin,
            can_be_cancelled=order.can_be_cancelled_by_user(),
            created_at=order.created_at,
        )

    def to_read(self, order: Order) -> OrderRead:
        return OrderRead(**self._read_fields(order))

    def to_detail(self, order: Order) -> OrderWithItemsRead:
        items = [
            OrderItemRead(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product_name,
                product_sku=item.product_sku,
                manufacturer_name=item.manufacturer_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                thumbnail_url=(
                    self.images.read_url(item.product.thumbnail_object_key)
                    if item.product is not None
                    else None
                ),
            )
            for item in order.items
        ]
        history = [
            OrderStatusHistoryRead(
                previous_status=entry.previous_status,
                new_status=entry.new_status,
                remarks=entry.remarks,
                changed_by_admin=entry.changed_by_admin,
                changed_at=entry.changed_at,
            )
            for entry in order.status_history
        ]
        return OrderWithItemsRead(
            **self._read_fields(order),
            street=order.street,
            city=order.city,
            state=order.state,
            pincode=order.pincode,
            items=items,
            status_history=history,
        )

    # -------- Helpers --------

    def _get_order(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    # -------- Checkout --------

    def create_order_from_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Convert the current user's cart into an Order.

        Steps:
          1. Load the active cart; error if empty.
          2. Every product must still exist and be active.
          3. Snapshot each line (name, SKU, manufacturer, quantity, price
             the line was added at) and accumulate totals.
          4. Record the PLACED status.
          5. Empty the cart (the cart row stays).
          6. Commit, then publish the new-order event.
        """
        cart = self.cart_repo.get_cart(session, user_id, CartType.CART)
        if cart is None or not cart.is_active or not cart.items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty",
            )

        for line in cart.items:
            product = line.product
            if product is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="A product in your cart no longer exists",
                )
            if not product.is_active:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Product '{product.name}' is no longer available",
                )

        order = Order(
            user_id=user_id,
            customer_name=payload.customer_name,
            phone_number=payload.phone_number,
            street=payload.street,
            city=payload.city,
            state=payload.state,
            pincode=payload.pincode,
        )

        total_amount = 0.0
        total_items = 0
        for line in cart.items:
            item = OrderItem.snapshot(line.product, line.quantity, line.price_at_time)
            order.items.append(item)
            total_amount += item.total_price
            total_items += item.quantity

        order.total_amount = round(total_amount, 2)
        order.total_items = total_items
        order.place()
        self.order_repo.add(session, order)

        cart.items.clear()
        cart.touch()

        commit_or_conflict(session, "Order could not be created")
        session.refresh(order)
        logger.info(
            "Order %s placed by %s: %d items, total %.2f",
            order.id, user_id, order.total_items, order.total_amount,
        )

        self.publisher.publish_new_order(order)
        return self.to_detail(order)

    # -------- Reads --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        status_filter: OrderStatus | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_for_user(session, user_id, status_filter, skip, limit)
        return [self.to_read(order) for order in orders]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        return self.to_detail(self._get_user_order(session, user_id, order_id))

    def list_all_orders(
        self,
        session: Session,
        customer_name: str | None = None,
        status_filter: OrderStatus | None = None,
        sort_by: str = "created_at",
        descending: bool = True,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        orders = self.order_repo.list_all(
            session,
            customer_name=customer_name,
            status=status_filter,
            sort_by=sort_by,
            descending=descending,
            skip=skip,
            limit=limit,
        )
        return [self.to_read(order) for order in orders]

    def get_order_admin(self, session: Session, order_id: uuid.UUID) -> OrderWithItemsRead:
        return self.to_detail(self._get_order(session, order_id))

    def get_statistics(
        self,
        session: Session,
        user_id: uuid.UUID | None = None,
    ) -> OrderStatistics:
        by_status = self.stats_repo.count_orders_by_status(session, user_id)
        return OrderStatistics(
            total_orders=sum(by_status.values()),
            by_status=by_status,
            total_revenue=round(self.stats_repo.total_revenue(session, user_id), 2),
        )

    # -------- State machine --------

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
        current_user: User,
    ) -> OrderRead:
        """
        Generic status update.

        Checked in order:
          - CANCELLED target        -> 400 (use a cancel operation)
          - unknown order           -> 404
          - same status             -> 400
          - terminal current status -> 400
          - non-admin caller        -> 403
          - not in the table        -> 400
        """
        new_status = payload.status
        if new_status == OrderStatus.CANCELLED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Use the cancel operation to cancel an order",
            )

        order = self._get_order(session, order_id)
        previous = order.status

        if previous == new_status:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Order is already {previous.value}",
            )
        if previous in TERMINAL_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot change status of a {previous.value} order",
            )
        if not current_user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only admins can update order status",
            )
        if not is_status_upgrade(previous, new_status):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status transition from {previous.value} to {new_status.value}",
            )

        order.update_status(new_status, payload.remarks, is_admin=True)
        commit_or_conflict(session, "Order status update conflicted")
        session.refresh(order)
        logger.info(
            "Order %s status %s -> %s by admin %s",
            order.id, previous.value, new_status.value, current_user.id,
        )

        self.publisher.publish_status_change(order, previous, "STATUS_UPDATE")
        return self.to_read(order)

    def cancel_by_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
        remarks: str | None = None,
    ) -> OrderRead:
        """
        Customer cancellation: only a PLACED order not yet cancelled.
        """
        order = self._get_user_order(session, user_id, order_id)
        if not order.can_be_cancelled_by_user():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Order cannot be cancelled in status {order.status.value}",
            )

        previous = order.status
        order.update_status(OrderStatus.CANCELLED, remarks, is_admin=False)
        commit_or_conflict(session, "Order cancel conflicted")
        session.refresh(order)
        logger.info("Order %s cancelled by user %s", order.id, user_id)

        self.publisher.publish_status_change(order, previous, "CANCELLED_BY_USER")
        return self.to_read(order)

    def cancel_by_admin(
        self,
        session: Session,
        order_id: uuid.UUID,
        remarks: str | None = None,
    ) -> OrderRead:
        """
        Admin cancellation from any status the transition table allows
        (PLACED, CONFIRMED, SHIPPED).
        """
        order = self._get_order(session, order_id)
        if order.is_cancelled():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Order is already cancelled",
            )

        previous = order.status
        try:
            order.update_status(OrderStatus.CANCELLED, remarks, is_admin=True)
        except InvalidStatusTransition as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            )
        commit_or_conflict(session, "Order cancel conflicted")
        session.refresh(order)
        logger.info("Order %s cancelled by admin", order.id)

        self.publisher.publish_status_change(order, previous, "CANCELLED_BY_ADMIN")
        return self.to_read(order)

    # -------- Buy again / delete --------

    def buy_again(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> BuyAgainResult:
        """
        Re-add every line of a past order to the user's cart.

        Lines whose product is gone or inactive are skipped and reported;
        the rest are still added.
        """
        order = self._get_user_order(session, user_id, order_id)

        added = 0
        failed: list[str] = []
        for item in order.items:
            if item.product_id is None:
                logger.warning(
                    "Buy again of %s skipped: product no longer exists", item.product_name
                )
                failed.append(item.product_name)
                continue

            outcome = attempt(
                f"Buy again of {item.product_name}",
                self.cart_service.add_product_to_cart,
                session,
                user_id,
                item.product_id,
                item.quantity,
            )
            if outcome.ok:
                added += 1
            else:
                failed.append(item.product_name)

        commit_or_conflict(session, "Cart update conflicted")

        requested = len(order.items)
        logger.info(
            "Buy again of order %s by %s: %d/%d items added",
            order_id, user_id, added, requested,
        )
        return BuyAgainResult(
            order_id=order_id,
            requested_items=requested,
            added_items=added,
            failed_products=failed,
            message=f"Added {added} of {requested} items to your cart",
        )

    def delete_order(self, session: Session, order_id: uuid.UUID) -> None:
        order = self._get_order(session, order_id)
        self.order_repo.delete(session, order)
        commit_or_conflict(session, "Order delete conflicted")
        logger.info("Deleted order %s", order_id)
