# commerce/models/cart.py
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship

from commerce.models.product import Product


class CartType(str, Enum):
    CART = "CART"
    WISHLIST = "WISHLIST"


class Cart(SQLModel, table=True):
    """
    Cart or wishlist of a user.

    One row per (user, cart_type). An inactive cart is reactivated rather
    than duplicated; inactive carts past the retention window are removed
    by the daily sweep.
    """

    __tablename__ = "carts"
    __table_args__ = (
        UniqueConstraint("user_id", "cart_type", name="uq_carts_user_type"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    cart_type: CartType = Field(default=CartType.CART, index=True)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )

    items: list["CartItem"] = Relationship(
        back_populates="cart",
        sa_relationship_kwargs={
            "order_by": "CartItem.created_at",
            "cascade": "all, delete-orphan",
        },
    )

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_amount(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    def find_item(self, product_id: uuid.UUID) -> Optional["CartItem"]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)


class CartItem(SQLModel, table=True):
    """
    Line of a cart or wishlist.

    price_at_time is the product price when the line was added; it only
    changes through an explicit price sync.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(
        default=1,
        description="Must be >= 1",
    )

    price_at_time: float = Field(
        description="Product price when added to the cart",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    cart: Optional[Cart] = Relationship(back_populates="items")
    product: Optional[Product] = Relationship()

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.price_at_time, 2)
