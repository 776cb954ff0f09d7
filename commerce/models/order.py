# commerce/models/order.py
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import event
from sqlmodel import SQLModel, Field, Relationship

from commerce.models.product import Product


class OrderStatus(str, Enum):
    PLACED = "PLACED"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    OUT_OF_STOCK = "OUT_OF_STOCK"


# previous -> statuses that may follow it. Missing keys are terminal.
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset(
        {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.OUT_OF_STOCK}
    ),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
}

TERMINAL_STATUSES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.OUT_OF_STOCK}
)


def is_status_upgrade(
    previous: OrderStatus | None,
    new: OrderStatus,
) -> bool:
    """
    Whether `previous -> new` is a legal transition.

    No previous status (a freshly placed order) accepts anything.
    """
    if previous is None:
        return True
    return new in ALLOWED_TRANSITIONS.get(previous, frozenset())


class InvalidStatusTransition(ValueError):
    def __init__(self, previous: OrderStatus | None, new: OrderStatus):
        self.previous = previous
        self.new = new
        super().__init__(
            f"Invalid status transition from "
            f"{previous.value if previous else 'NONE'} to {new.value}"
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
    """
    Customer order created from a cart.

    Line items and address are frozen at creation; afterwards the order
    only changes through update_status(), which appends one history row
    per change.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    customer_name: str = Field(
        max_length=100,
        index=True,
        description="Name of the person receiving the order",
    )
    phone_number: str = Field(
        max_length=20,
        description="Contact phone number for delivery",
    )

    street: str = Field(max_length=255)
    city: str = Field(max_length=100)
    state: str = Field(max_length=100)
    pincode: str = Field(max_length=10)

    # Recomputed from the four address fields on every insert/update
    full_address: str = Field(
        default="",
        description="Formatted delivery address",
    )

    status: OrderStatus = Field(
        default=OrderStatus.PLACED,
        index=True,
        description="Order status lifecycle",
    )

    total_amount: float = Field(default=0.0)
    total_items: int = Field(default=0)

    admin_remarks: str | None = None

    status_updated_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by_admin: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=_utcnow,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(default_factory=_utcnow)

    items: list["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    status_history: list["OrderStatusHistory"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={
            "order_by": "OrderStatusHistory.changed_at",
            "cascade": "all, delete-orphan",
        },
    )

    def formatted_address(self) -> str:
        return f"{self.street}, {self.city}, {self.state} - {self.pincode}"

    # -------- Derived state --------

    def can_be_cancelled_by_user(self) -> bool:
        return self.status == OrderStatus.PLACED and self.cancelled_at is None

    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED

    def is_delivered(self) -> bool:
        return self.status == OrderStatus.DELIVERED

    def is_pending(self) -> bool:
        return self.status in (OrderStatus.PLACED, OrderStatus.CONFIRMED)

    def is_in_transit(self) -> bool:
        return self.status == OrderStatus.SHIPPED

    # -------- State machine --------

    def place(self) -> "OrderStatusHistory":
        """
        Record the initial PLACED status.
        """
        now = _utcnow()
        self.status = OrderStatus.PLACED
        self.status_updated_at = now
        history = OrderStatusHistory(
            previous_status=None,
            new_status=OrderStatus.PLACED,
            remarks="Order placed successfully",
            changed_by_admin=False,
            changed_at=now,
        )
        self.status_history.append(history)
        return history

    def update_status(
        self,
        new_status: OrderStatus,
        remarks: str | None = None,
        is_admin: bool = False,
    ) -> "OrderStatusHistory":
        """
        Move to `new_status` if the transition table allows it.

        Raises InvalidStatusTransition and leaves the order untouched
        otherwise.
        """
        previous = self.status
        if not is_status_upgrade(previous, new_status):
            raise InvalidStatusTransition(previous, new_status)

        now = _utcnow()
        self.status = new_status
        self.status_updated_at = now
        self.updated_at = now
        if new_status == OrderStatus.CANCELLED:
            self.cancelled_at = now
            self.cancelled_by_admin = is_admin
        if remarks and is_admin:
            self.admin_remarks = remarks

        history = OrderStatusHistory(
            previous_status=previous,
            new_status=new_status,
            remarks=remarks,
            changed_by_admin=is_admin,
            changed_at=now,
        )
        self.status_history.append(history)
        return history


@event.listens_for(Order, "before_insert")
@event.listens_for(Order, "before_update")
def _compute_full_address(mapper, connection, target: Order) -> None:
    target.full_address = target.formatted_address()


class OrderItem(SQLModel, table=True):
    """
    Snapshot of one ordered product.

    Name, SKU, manufacturer and prices are copied at checkout so later
    catalogue edits never change historical orders. product_id stays as a
    weak link for "buy again" and is nulled when the product is deleted.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="products.id",
        index=True,
    )

    product_name: str = Field(max_length=200)
    product_sku: str = Field(max_length=100)
    manufacturer_name: str | None = Field(default=None, max_length=100)

    quantity: int = Field(description="Quantity ordered (>=1)")
    unit_price: float = Field(description="Unit price at time of order")
    total_price: float = Field(description="quantity * unit_price")

    order: Optional[Order] = Relationship(back_populates="items")
    product: Optional[Product] = Relationship()

    @classmethod
    def snapshot(
        cls,
        product: Product,
        quantity: int,
        unit_price: float,
    ) -> "OrderItem":
        return cls(
            product_id=product.id,
            product_name=product.name,
            product_sku=product.sku,
            manufacturer_name=product.manufacturer.name if product.manufacturer else None,
            quantity=quantity,
            unit_price=unit_price,
            total_price=round(quantity * unit_price, 2),
        )


class OrderStatusHistory(SQLModel, table=True):
    """
    Append-only log of status changes.
    """

    __tablename__ = "order_status_history"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    previous_status: OrderStatus | None = None
    new_status: OrderStatus

    remarks: str | None = None
    changed_by_admin: bool = Field(default=False)
    changed_at: datetime = Field(default_factory=_utcnow)

    order: Optional[Order] = Relationship(back_populates="status_history")

    def is_status_upgrade(self) -> bool:
        return is_status_upgrade(self.previous_status, self.new_status)
