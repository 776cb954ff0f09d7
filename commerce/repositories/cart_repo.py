# commerce/repositories/cart_repo.py
import uuid
from datetime import datetime

from sqlmodel import Session, select

from commerce.models.cart import Cart, CartItem, CartType


class CartRepository:

    def get_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        cart_type: CartType,
    ) -> Cart | None:
        """Cart row for (user, type), active or not."""
        stmt = select(Cart).where(Cart.user_id == user_id, Cart.cart_type == cart_type)
        return session.exec(stmt).first()

    def list_active_for_user(self, session: Session, user_id: uuid.UUID) -> list[Cart]:
        stmt = (
            select(Cart)
            .where(Cart.user_id == user_id, Cart.is_active == True)  # noqa: E712
            .order_by(Cart.cart_type)
        )
        return list(session.exec(stmt).all())

    def get_item(self, session: Session, item_id: uuid.UUID) -> CartItem | None:
        return session.get(CartItem, item_id)

    def list_items_for_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[CartItem]:
        stmt = select(CartItem).where(CartItem.product_id == product_id)
        return list(session.exec(stmt).all())

    def list_stale(self, session: Session, cutoff: datetime) -> list[Cart]:
        """Inactive carts not touched since `cutoff`."""
        stmt = select(Cart).where(
            Cart.is_active == False,  # noqa: E712
            Cart.updated_at < cutoff,
        )
        return list(session.exec(stmt).all())

    def add(self, session: Session, cart: Cart) -> Cart:
        session.add(cart)
        session.flush()
        return cart

    def delete(self, session: Session, cart: Cart) -> None:
        session.delete(cart)
        session.flush()

    def delete_item(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()
