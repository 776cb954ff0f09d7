# tests/test_order_service.py
import uuid

import pytest
from fastapi import HTTPException

from commerce.core.notifications import OrderEventPublisher
from commerce.models.order import OrderStatus
from commerce.models.product import Product
from commerce.models.user import ROLE_ADMIN, ROLE_USER, User
from commerce.repositories.cart_repo import CartRepository
from commerce.repositories.order_repo import OrderRepository
from commerce.repositories.stats_repo import StatsRepository
from commerce.schemas.cart import CartItemCreate
from commerce.schemas.order import OrderCreate, OrderStatusUpdate
from commerce.schemas.product import ProductUpdate
from commerce.services.order_service import OrderService

ADDRESS = OrderCreate(
    customer_name="Ravi Kumar",
    phone_number="9876543210",
    street="12 Main St",
    city="Pune",
    state="Maharashtra",
    pincode="411001",
)

ADMIN = User(id=uuid.uuid4(), email="ops@example.com", name="ops", role=ROLE_ADMIN)
STAFF = User(id=uuid.uuid4(), email="staff@example.com", name="staff", role=ROLE_USER)


def _fill_cart(session, cart_service, user, *lines):
    for product, quantity in lines:
        cart_service.add_item(
            session, user.id, CartItemCreate(product_id=product.id, quantity=quantity)
        )


@pytest.fixture
def placed_order(session, order_service, cart_service, customer, make_product):
    welder = make_product("Arc Welder", price=250.0)
    _fill_cart(session, cart_service, customer, (welder, 1))
    return order_service.create_order_from_cart(session, customer.id, ADDRESS)


def _move(session, order_service, order_id, *statuses):
    for status in statuses:
        order_service.update_status(session, order_id, OrderStatusUpdate(status=status), ADMIN)


# --- Checkout ---


def test_checkout_snapshots_cart(session, order_service, cart_service, customer, make_product, publisher):
    welder = make_product("Arc Welder", price=250.0)
    mask = make_product("Welding Mask", price=40.5)
    _fill_cart(session, cart_service, customer, (welder, 2), (mask, 1))

    # later price change does not reach the order
    welder.price = 300.0
    session.commit()

    order = order_service.create_order_from_cart(session, customer.id, ADDRESS)

    assert order.status == OrderStatus.PLACED
    assert order.total_items == 3
    assert order.total_amount == 540.5
    assert order.full_address == "12 Main St, Pune, Maharashtra - 411001"
    by_name = {item.product_name: item for item in order.items}
    assert by_name["Arc Welder"].unit_price == 250.0
    assert by_name["Arc Welder"].total_price == 500.0
    assert by_name["Arc Welder"].product_sku == welder.sku
    assert by_name["Arc Welder"].manufacturer_name == "Lincoln Electric"
    assert [h.previous_status for h in order.status_history] == [None]

    assert cart_service.get_cart(session, customer.id).items == []
    assert publisher.new_orders == [order.id]


def test_checkout_with_empty_cart_fails(session, order_service, customer):
    with pytest.raises(HTTPException) as exc:
        order_service.create_order_from_cart(session, customer.id, ADDRESS)
    assert exc.value.status_code == 400


def test_checkout_rejects_inactive_product(session, order_service, cart_service, customer, make_product):
    welder = make_product("Arc Welder")
    _fill_cart(session, cart_service, customer, (welder, 1))
    welder.is_active = False
    session.commit()

    with pytest.raises(HTTPException) as exc:
        order_service.create_order_from_cart(session, customer.id, ADDRESS)
    assert exc.value.status_code == 400
    assert "Arc Welder" in exc.value.detail
    assert len(cart_service.get_cart(session, customer.id).items) == 1


def test_checkout_survives_notification_failure(session, cart_service, image_service, customer, make_product):
    service = OrderService(
        OrderRepository(),
        CartRepository(),
        cart_service,
        StatsRepository(),
        image_service,
        OrderEventPublisher(recipient=None),
    )
    _fill_cart(session, cart_service, customer, (make_product("Arc Welder"), 1))

    order = service.create_order_from_cart(session, customer.id, ADDRESS)

    assert order.status == OrderStatus.PLACED


def test_orders_are_private(session, order_service, placed_order, other_customer):
    with pytest.raises(HTTPException) as exc:
        order_service.get_user_order(session, other_customer.id, placed_order.id)
    assert exc.value.status_code == 404


# --- Status updates ---


def test_admin_moves_order_forward(session, order_service, placed_order, publisher):
    _move(session, order_service, placed_order.id, OrderStatus.CONFIRMED, OrderStatus.SHIPPED)

    detail = order_service.get_order_admin(session, placed_order.id)
    assert detail.status == OrderStatus.SHIPPED
    assert [h.new_status for h in detail.status_history] == [
        OrderStatus.PLACED,
        OrderStatus.CONFIRMED,
        OrderStatus.SHIPPED,
    ]
    assert all(h.changed_by_admin for h in detail.status_history[1:])
    assert [(prev, kind) for _, prev, _, kind in publisher.status_changes] == [
        (OrderStatus.PLACED, "STATUS_UPDATE"),
        (OrderStatus.CONFIRMED, "STATUS_UPDATE"),
    ]


def test_update_to_cancelled_is_rejected(session, order_service, placed_order):
    with pytest.raises(HTTPException) as exc:
        _move(session, order_service, placed_order.id, OrderStatus.CANCELLED)
    assert exc.value.status_code == 400


def test_update_to_same_status_is_rejected(session, order_service, placed_order):
    with pytest.raises(HTTPException) as exc:
        _move(session, order_service, placed_order.id, OrderStatus.PLACED)
    assert exc.value.status_code == 400


def test_skipping_a_step_is_rejected(session, order_service, placed_order):
    with pytest.raises(HTTPException) as exc:
        _move(session, order_service, placed_order.id, OrderStatus.SHIPPED)
    assert exc.value.status_code == 400
    assert order_service.get_order_admin(session, placed_order.id).status == OrderStatus.PLACED


def test_non_admin_cannot_update_status(session, order_service, placed_order):
    with pytest.raises(HTTPException) as exc:
        order_service.update_status(
            session, placed_order.id, OrderStatusUpdate(status=OrderStatus.CONFIRMED), STAFF
        )
    assert exc.value.status_code == 403


def test_terminal_order_cannot_change(session, order_service, placed_order):
    _move(session, order_service, placed_order.id, OrderStatus.CONFIRMED, OrderStatus.OUT_OF_STOCK)

    for user in (ADMIN, STAFF):
        with pytest.raises(HTTPException) as exc:
            order_service.update_status(
                session, placed_order.id, OrderStatusUpdate(status=OrderStatus.SHIPPED), user
            )
        assert exc.value.status_code == 400


def test_delivered_order_cannot_go_back_to_shipped(session, order_service, placed_order):
    _move(
        session, order_service, placed_order.id,
        OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.DELIVERED,
    )
    history_before = len(order_service.get_order_admin(session, placed_order.id).status_history)

    with pytest.raises(HTTPException) as exc:
        _move(session, order_service, placed_order.id, OrderStatus.SHIPPED)
    assert exc.value.status_code == 400

    detail = order_service.get_order_admin(session, placed_order.id)
    assert detail.status == OrderStatus.DELIVERED
    assert len(detail.status_history) == history_before


def test_unknown_order_is_404(session, order_service):
    with pytest.raises(HTTPException) as exc:
        _move(session, order_service, uuid.uuid4(), OrderStatus.CONFIRMED)
    assert exc.value.status_code == 404


# --- Cancellation ---


def test_user_cancels_placed_order(session, order_service, placed_order, customer, publisher):
    cancelled = order_service.cancel_by_user(session, customer.id, placed_order.id, "Ordered twice")

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert not cancelled.cancelled_by_admin
    assert publisher.status_changes[-1][3] == "CANCELLED_BY_USER"


def test_user_cannot_cancel_confirmed_order(session, order_service, placed_order, customer):
    _move(session, order_service, placed_order.id, OrderStatus.CONFIRMED)

    with pytest.raises(HTTPException) as exc:
        order_service.cancel_by_user(session, customer.id, placed_order.id)
    assert exc.value.status_code == 400


def test_admin_cancels_shipped_order(session, order_service, placed_order):
    _move(session, order_service, placed_order.id, OrderStatus.CONFIRMED, OrderStatus.SHIPPED)

    cancelled = order_service.cancel_by_admin(session, placed_order.id, "Courier lost parcel")

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.cancelled_by_admin
    assert cancelled.admin_remarks == "Courier lost parcel"


def test_admin_cannot_cancel_delivered_or_cancelled(session, order_service, placed_order):
    _move(
        session,
        order_service,
        placed_order.id,
        OrderStatus.CONFIRMED,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
    )
    with pytest.raises(HTTPException) as exc:
        order_service.cancel_by_admin(session, placed_order.id)
    assert exc.value.status_code == 400


def test_cancelling_twice_fails(session, order_service, placed_order):
    order_service.cancel_by_admin(session, placed_order.id)
    with pytest.raises(HTTPException) as exc:
        order_service.cancel_by_admin(session, placed_order.id)
    assert exc.value.status_code == 400


# --- Buy again ---


def test_buy_again_skips_unavailable_products(
    session, order_service, cart_service, product_service, customer, make_product
):
    drill = make_product("Cordless Drill", price=80.0)
    saw = make_product("Circular Saw", price=120.0)
    gloves = make_product("Work Gloves", price=5.0)
    _fill_cart(session, cart_service, customer, (drill, 1), (saw, 1), (gloves, 4))
    order = order_service.create_order_from_cart(session, customer.id, ADDRESS)

    saw.is_active = False
    session.commit()
    product_service.delete_product(session, drill.id)

    result = order_service.buy_again(session, customer.id, order.id)

    assert result.requested_items == 3
    assert result.added_items == 1
    assert sorted(result.failed_products) == ["Circular Saw", "Cordless Drill"]
    cart = cart_service.get_cart(session, customer.id)
    assert [(item.product_name, item.quantity) for item in cart.items] == [("Work Gloves", 4)]


def test_deleted_product_keeps_order_snapshot(session, order_service, product_service, placed_order):
    product_id = placed_order.items[0].product_id

    product_service.delete_product(session, product_id)

    detail = order_service.get_order_admin(session, placed_order.id)
    assert session.get(Product, product_id) is None
    assert detail.items[0].product_id is None
    assert detail.items[0].product_name == "Arc Welder"
    assert detail.items[0].thumbnail_url is None


def test_product_edits_do_not_reach_existing_order(session, order_service, product_service, placed_order):
    product_id = placed_order.items[0].product_id

    product_service.update_product(session, product_id, ProductUpdate(name="Renamed", price=999.0))

    detail = order_service.get_order_admin(session, placed_order.id)
    assert detail.items[0].product_name == "Arc Welder"
    assert detail.items[0].unit_price == 250.0
    assert detail.total_amount == 250.0


# --- Statistics ---


def test_statistics_count_every_status(session, order_service, placed_order, customer):
    stats = order_service.get_statistics(session, customer.id)

    assert stats.total_orders == 1
    assert stats.by_status[OrderStatus.PLACED] == 1
    assert stats.by_status[OrderStatus.DELIVERED] == 0
    assert stats.total_revenue == 250.0

    order_service.cancel_by_user(session, customer.id, placed_order.id)
    assert order_service.get_statistics(session, customer.id).total_revenue == 0.0
