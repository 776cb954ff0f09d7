# commerce/schemas/order.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from commerce.models.order import OrderStatus


class OrderCreate(SQLModel):
    """
    Payload for creating an order from the current cart.

    User provides:
      - customer name and phone
      - delivery address (street, city, state, pincode)

    Backend derives:
      - user_id from token
      - status = PLACED
      - full_address, totals and line items from the cart
    """

    model_config = ConfigDict(extra="forbid")

    customer_name: str = Field(max_length=100)
    phone_number: str = Field(max_length=20)
    street: str = Field(max_length=255)
    city: str = Field(max_length=100)
    state: str = Field(max_length=100)
    pincode: str = Field(max_length=10)

    @field_validator("customer_name", "phone_number", "street", "city", "state", "pincode")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class OrderStatusUpdate(SQLModel):
    """
    Admin payload for moving an order forward.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    remarks: str | None = Field(default=None, max_length=500)


class OrderCancel(SQLModel):
    model_config = ConfigDict(extra="forbid")

    remarks: str | None = Field(default=None, max_length=500)


class OrderItemRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID | None
    product_name: str
    product_sku: str
    manufacturer_name: str | None
    quantity: int
    unit_price: float
    total_price: float
    thumbnail_url: str | None = None


class OrderStatusHistoryRead(SQLModel):
    previous_status: OrderStatus | None
    new_status: OrderStatus
    remarks: str | None
    changed_by_admin: bool
    changed_at: datetime


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_id: uuid.UUID
    customer_name: str
    phone_number: str
    full_address: str
    status: OrderStatus
    total_amount: float
    total_items: int
    admin_remarks: str | None
    status_updated_at: datetime | None
    cancelled_at: datetime | None
    cancelled_by_admin: bool
    can_be_cancelled: bool
    created_at: datetime


class OrderWithItemsRead(OrderRead):
    """
    Full order with snapshot items and status history.
    """

    street: str
    city: str
    state: str
    pincode: str
    items: list[OrderItemRead]
    status_history: list[OrderStatusHistoryRead]


class BuyAgainResult(SQLModel):
    order_id: uuid.UUID
    requested_items: int
    added_items: int
    failed_products: list[str]
    message: str


class OrderStatistics(SQLModel):
    """
    Order counts per status (global for admins, own orders for users).
    """

    total_orders: int
    by_status: dict[OrderStatus, int]
    total_revenue: float
