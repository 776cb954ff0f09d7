# commerce/repositories/order_repo.py
import uuid

from sqlmodel import Session, select

from commerce.models.order import Order, OrderItem, OrderStatus

ORDER_SORT_FIELDS = {
    "created_at": Order.created_at,
    "total_amount": Order.total_amount,
    "customer_name": Order.customer_name,
    "status": Order.status,
}


class OrderRepository:
    """
    Data access layer for orders, order items and status history.

    NOTE:
      - No commits here; checkout and status changes are multi-step.
        The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        status: OrderStatus | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order).where(Order.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def list_all(
        self,
        session: Session,
        customer_name: str | None = None,
        status: OrderStatus | None = None,
        sort_by: str = "created_at",
        descending: bool = True,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order)
        if customer_name:
            stmt = stmt.where(Order.customer_name.ilike(f"%{customer_name.strip()}%"))
        if status is not None:
            stmt = stmt.where(Order.status == status)

        column = ORDER_SORT_FIELDS.get(sort_by, Order.created_at)
        stmt = stmt.order_by(column.desc() if descending else column.asc())
        return list(session.exec(stmt.offset(skip).limit(limit)).all())

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def add(self, session: Session, order: Order) -> Order:
        """
        Insert an Order (and its cascaded items/history) without committing.
        """
        session.add(order)
        session.flush()
        return order

    def delete(self, session: Session, order: Order) -> None:
        session.delete(order)
        session.flush()

    # ---- Order items ----

    def list_items_for_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.product_id == product_id)
        return list(session.exec(stmt).all())
