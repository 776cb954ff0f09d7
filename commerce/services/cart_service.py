# commerce/services/cart_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from commerce.database import commit_or_conflict
from commerce.models.cart import Cart, CartItem, CartType
from commerce.models.product import Product
from commerce.repositories.cart_repo import CartRepository
from commerce.repositories.product_repo import ProductRepository
from commerce.schemas.cart import (
    CartItemCreate,
    CartItemRead,
    CartRead,
    CartSummaryRead,
)

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for carts and wishlists.

    Responsibilities:
      - one cart per (user, type), reactivated instead of duplicated
      - validate product existence and active flag on add
      - price_at_time taken from Product.price on add, changed only by
        sync_prices()
      - wishlist lines have no meaningful quantity
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # ---- internal helpers ----

    def _get_valid_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        if not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Product '{product.name}' is inactive",
            )
        return product

    def _get_user_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> CartItem:
        item = self.cart_repo.get_item(session, item_id)
        if not item or item.cart.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cart item not found",
            )
        return item

    def get_or_create_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        cart_type: CartType = CartType.CART,
    ) -> Cart:
        """
        Active cart of the given type; an inactive one is reactivated.
        Flushes but does not commit.
        """
        cart = self.cart_repo.get_cart(session, user_id, cart_type)
        if cart is None:
            cart = self.cart_repo.add(session, Cart(user_id=user_id, cart_type=cart_type))
            logger.debug("Created %s for user %s", cart_type.value, user_id)
        elif not cart.is_active:
            cart.is_active = True
            cart.touch()
        return cart

    def _add_product(
        self,
        session: Session,
        cart: Cart,
        product: Product,
        quantity: int,
    ) -> bool:
        """
        Put `product` into `cart` without committing.

        Returns False when a wishlist already holds it.
        """
        existing = cart.find_item(product.id)
        if existing is not None:
            if cart.cart_type == CartType.WISHLIST:
                return False
            existing.quantity += quantity
        else:
            cart.items.append(
                CartItem(
                    product_id=product.id,
                    quantity=1 if cart.cart_type == CartType.WISHLIST else quantity,
                    price_at_time=product.price,
                )
            )
        cart.touch()
        return True

    def add_product_to_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity: int,
    ) -> None:
        """
        Add to the active CART within the caller's unit of work.
        """
        if quantity < 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Quantity must be at least 1",
            )
        product = self._get_valid_product(session, product_id)
        cart = self.get_or_create_cart(session, user_id, CartType.CART)
        self._add_product(session, cart, product, quantity)
        session.flush()

    # ---- read models ----

    def to_read(
        self,
        cart: Cart,
        item_already_exists: bool = False,
        message: str | None = None,
    ) -> CartRead:
        items: list[CartItemRead] = []
        for item in cart.items:
            product = item.product
            items.append(
                CartItemRead(
                    id=item.id,
                    product_id=item.product_id,
                    product_name=product.name,
                    product_sku=product.sku,
                    product_is_active=product.is_active,
                    quantity=item.quantity,
                    price_at_time=item.price_at_time,
                    current_price=product.price,
                    price_changed=item.price_at_time != product.price,
                    line_total=item.line_total,
                    created_at=item.created_at,
                )
            )
        return CartRead(
            id=cart.id,
            cart_type=cart.cart_type,
            items=items,
            total_items=cart.total_items,
            total_amount=cart.total_amount,
            item_already_exists=item_already_exists,
            message=message,
            updated_at=cart.updated_at,
        )

    # ---- public operations ----

    def get_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        cart_type: CartType = CartType.CART,
    ) -> CartRead:
        cart = self.get_or_create_cart(session, user_id, cart_type)
        commit_or_conflict(session, "Cart already exists")
        session.refresh(cart)
        return self.to_read(cart)

    def list_carts(self, session: Session, user_id: uuid.UUID) -> list[CartSummaryRead]:
        return [
            CartSummaryRead(
                id=cart.id,
                cart_type=cart.cart_type,
                item_count=len(cart.items),
                total_items=cart.total_items,
                total_amount=cart.total_amount,
                updated_at=cart.updated_at,
            )
            for cart in self.cart_repo.list_active_for_user(session, user_id)
        ]

    def add_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CartItemCreate,
    ) -> CartRead:
        """
        Add a product to the cart or wishlist.

        Rules:
          - product must exist and be active
          - CART: an existing line gets its quantity increased
          - WISHLIST: an existing line is left alone and the response has
            item_already_exists=True
        """
        product = self._get_valid_product(session, payload.product_id)
        cart = self.get_or_create_cart(session, user_id, payload.cart_type)

        added = self._add_product(session, cart, product, payload.quantity)
        commit_or_conflict(session, "Product is already in the cart")
        session.refresh(cart)

        if added:
            logger.info(
                "User %s added %s x%d to %s",
                user_id, product.id, payload.quantity, cart.cart_type.value,
            )
        return self.to_read(cart, item_already_exists=not added)

    def update_item_quantity(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        quantity: int,
    ) -> CartRead:
        item = self._get_user_item(session, user_id, item_id)
        cart = item.cart
        if cart.cart_type == CartType.WISHLIST:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot update quantity for wishlist items",
            )
        if quantity < 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Quantity must be at least 1",
            )

        item.quantity = quantity
        cart.touch()
        commit_or_conflict(session, "Cart update conflicted")
        session.refresh(cart)
        return self.to_read(cart)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        cart_type: CartType = CartType.CART,
    ) -> CartRead:
        item = self._get_user_item(session, user_id, item_id)
        cart = item.cart
        if cart.cart_type != cart_type:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Item does not belong to your {cart_type.value.lower()}",
            )

        cart.items.remove(item)
        cart.touch()
        commit_or_conflict(session, "Cart update conflicted")
        session.refresh(cart)
        return self.to_read(cart)

    def move_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        target_type: CartType,
    ) -> CartRead:
        """
        Move a line between cart and wishlist. Returns the target cart.

        Moving into the cart takes the current product price; a product
        already present in the target is merged (cart) or kept (wishlist).
        """
        item = self._get_user_item(session, user_id, item_id)
        source = item.cart
        if source.cart_type == target_type:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Item is already in your {target_type.value.lower()}",
            )

        product = self._get_valid_product(session, item.product_id)
        target = self.get_or_create_cart(session, user_id, target_type)
        quantity = item.quantity if source.cart_type == CartType.CART else 1

        source.items.remove(item)
        source.touch()
        session.flush()
        self._add_product(session, target, product, quantity)

        commit_or_conflict(session, "Cart update conflicted")
        session.refresh(target)
        logger.info(
            "User %s moved %s from %s to %s",
            user_id, product.id, source.cart_type.value, target_type.value,
        )
        return self.to_read(target)

    def clear_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        cart_type: CartType = CartType.CART,
    ) -> CartRead:
        cart = self.get_or_create_cart(session, user_id, cart_type)
        cart.items.clear()
        cart.touch()
        commit_or_conflict(session, "Cart update conflicted")
        session.refresh(cart)
        return self.to_read(cart)

    def sync_prices(
        self,
        session: Session,
        user_id: uuid.UUID,
        cart_type: CartType = CartType.CART,
    ) -> CartRead:
        """
        Reset every price_at_time to the current product price.
        """
        cart = self.get_or_create_cart(session, user_id, cart_type)
        updated = 0
        for item in cart.items:
            if item.price_at_time != item.product.price:
                item.price_at_time = item.product.price
                updated += 1

        if updated:
            cart.touch()
        commit_or_conflict(session, "Cart update conflicted")
        session.refresh(cart)

        message = (
            f"Updated prices for {updated} items" if updated else "All prices are up to date"
        )
        logger.info("Price sync for user %s: %s", user_id, message)
        return self.to_read(cart, message=message)
