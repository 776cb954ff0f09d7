# commerce/schemas/stats.py
import uuid
from datetime import date, datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel

from commerce.models.order import OrderStatus
from commerce.schemas.order import OrderStatistics
from commerce.schemas.product import ProductStats


class DailySales(SQLModel):
    """
    Revenue per day for a given month/year.
    """
    model_config = ConfigDict(extra="forbid")

    date: date
    total_revenue: float
    order_count: int


class TopProduct(SQLModel):
    """
    Best sellers, keyed by the SKU captured on the order.
    """
    model_config = ConfigDict(extra="forbid")

    product_sku: str
    name: str
    total_quantity: int
    total_revenue: float


class LatestOrderSummary(SQLModel):
    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    created_at: datetime
    user_id: uuid.UUID
    customer_name: str
    total_amount: float
    status: OrderStatus


class AdminDashboardStats(SQLModel):
    """
    Full payload for admin dashboard.
    """
    model_config = ConfigDict(extra="forbid")

    total_customers: int
    orders: OrderStatistics
    products: ProductStats
    daily_sales: list[DailySales]
    top_products: list[TopProduct]
    latest_orders: list[LatestOrderSummary]
