# commerce/services/stats_service.py
from datetime import date, datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from commerce.repositories.product_repo import ProductRepository
from commerce.repositories.stats_repo import StatsRepository
from commerce.schemas.order import OrderStatistics
from commerce.schemas.product import ProductStats
from commerce.schemas.stats import (
    AdminDashboardStats,
    DailySales,
    LatestOrderSummary,
    TopProduct,
)


def _as_date(value) -> date:
    # func.date() yields a date on Postgres and an ISO string on SQLite
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class StatsService:
    """
    Orchestrates aggregated admin dashboard statistics.
    """

    def __init__(self, repo: StatsRepository, product_repo: ProductRepository):
        self.repo = repo
        self.product_repo = product_repo

    def get_admin_dashboard_stats(
        self,
        session: Session,
        year: int | None = None,
        month: int | None = None,
        top_n_products: int = 5,
        latest_n_orders: int = 5,
    ) -> AdminDashboardStats:
        today = datetime.now(timezone.utc).date()
        year = year or today.year
        month = month or today.month

        if not 1 <= month <= 12:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="month must be between 1 and 12",
            )

        start = datetime(year, month, 1, tzinfo=timezone.utc)
        end = (
            datetime(year + 1, 1, 1, tzinfo=timezone.utc)
            if month == 12
            else datetime(year, month + 1, 1, tzinfo=timezone.utc)
        )

        by_status = self.repo.count_orders_by_status(session)
        orders = OrderStatistics(
            total_orders=sum(by_status.values()),
            by_status=by_status,
            total_revenue=round(self.repo.total_revenue(session), 2),
        )

        daily_sales = [
            DailySales(
                date=_as_date(day),
                total_revenue=float(revenue or 0.0),
                order_count=int(order_count or 0),
            )
            for day, revenue, order_count in self.repo.daily_sales(session, start, end)
        ]

        top_products = [
            TopProduct(
                product_sku=sku,
                name=name,
                total_quantity=int(total_quantity or 0),
                total_revenue=float(revenue or 0.0),
            )
            for sku, name, total_quantity, revenue in self.repo.top_products(
                session, limit=top_n_products
            )
        ]

        latest_orders = [
            LatestOrderSummary(
                id=o.id,
                created_at=o.created_at,
                user_id=o.user_id,
                customer_name=o.customer_name,
                total_amount=o.total_amount,
                status=o.status,
            )
            for o in self.repo.latest_orders(session, limit=latest_n_orders)
        ]

        return AdminDashboardStats(
            total_customers=self.repo.count_customers(session),
            orders=orders,
            products=ProductStats(**self.product_repo.stats(session)),
            daily_sales=daily_sales,
            top_products=top_products,
            latest_orders=latest_orders,
        )
