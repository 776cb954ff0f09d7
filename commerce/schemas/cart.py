# commerce/schemas/cart.py
import uuid
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from commerce.models.cart import CartType


class CartItemCreate(SQLModel):
    """
    Payload for adding a product to the cart or the wishlist.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)
    cart_type: CartType = CartType.CART


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(gt=0)


class CartItemMove(SQLModel):
    model_config = ConfigDict(extra="forbid")

    target_type: CartType


class CartItemRead(SQLModel):
    """
    One line, with the price it was added at and the current price.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    product_sku: str
    product_is_active: bool
    quantity: int
    price_at_time: float
    current_price: float
    price_changed: bool
    line_total: float
    created_at: datetime


class CartRead(SQLModel):
    """
    Full cart response model with totals.

    item_already_exists is set when a wishlist add found the product
    already present; message carries the outcome of a price sync.
    """

    id: uuid.UUID
    cart_type: CartType
    items: list[CartItemRead]
    total_items: int
    total_amount: float
    item_already_exists: bool = False
    message: str | None = None
    updated_at: datetime


class CartSummaryRead(SQLModel):
    id: uuid.UUID
    cart_type: CartType
    item_count: int
    total_items: int
    total_amount: float
    updated_at: datetime
