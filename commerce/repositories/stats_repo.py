# commerce/repositories/stats_repo.py
import uuid
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from commerce.models.order import Order, OrderItem, OrderStatus
from commerce.models.user import ROLE_USER, User


class StatsRepository:
    """
    Read-only aggregated queries for order statistics and the admin
    dashboard.
    """

    def count_customers(self, session: Session) -> int:
        stmt = select(func.count()).select_from(User).where(User.role == ROLE_USER)
        value = session.exec(stmt).one()
        return int(value or 0)

    def count_orders_by_status(
        self,
        session: Session,
        user_id: uuid.UUID | None = None,
    ) -> dict[OrderStatus, int]:
        """
        Order count per status, every status present (0 when absent).
        """
        stmt = select(Order.status, func.count(Order.id)).group_by(Order.status)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)

        counts = {order_status: 0 for order_status in OrderStatus}
        for order_status, count in session.exec(stmt).all():
            counts[OrderStatus(order_status)] = int(count or 0)
        return counts

    def total_revenue(
        self,
        session: Session,
        user_id: uuid.UUID | None = None,
    ) -> float:
        """
        Sum of total_amount for all non-cancelled orders.
        """
        stmt = (
            select(func.coalesce(func.sum(Order.total_amount), 0.0))
            .where(Order.status != OrderStatus.CANCELLED)
        )
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        value = session.exec(stmt).one()
        return float(value or 0.0)

    def daily_sales(
        self,
        session: Session,
        start: datetime,
        end: datetime,
    ) -> list[tuple]:
        """
        Revenue and order count per day in [start, end), cancelled excluded.
        """
        day_expr = func.date(Order.created_at)

        stmt = (
            select(
                day_expr.label("day"),
                func.coalesce(func.sum(Order.total_amount), 0.0).label("revenue"),
                func.count(Order.id).label("order_count"),
            )
            .where(
                Order.status != OrderStatus.CANCELLED,
                Order.created_at >= start,
                Order.created_at < end,
            )
            .group_by(day_expr)
            .order_by(day_expr)
        )
        return list(session.exec(stmt).all())

    def top_products(
        self,
        session: Session,
        limit: int = 5,
    ) -> list[tuple]:
        """
        Top products by quantity sold, grouped on the order snapshot so
        deleted products still count.
        """
        qty_sum = func.coalesce(func.sum(OrderItem.quantity), 0)
        revenue_sum = func.coalesce(func.sum(OrderItem.total_price), 0.0)

        stmt = (
            select(
                OrderItem.product_sku,
                func.max(OrderItem.product_name),
                qty_sum.label("total_quantity"),
                revenue_sum.label("total_revenue"),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.status != OrderStatus.CANCELLED)
            .group_by(OrderItem.product_sku)
            .order_by(qty_sum.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def latest_orders(
        self,
        session: Session,
        limit: int = 5,
    ) -> list[Order]:
        stmt = select(Order).order_by(Order.created_at.desc()).limit(limit)
        return list(session.exec(stmt).all())
