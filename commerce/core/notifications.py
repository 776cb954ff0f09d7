# commerce/core/notifications.py
"""
Order event notifications.

Events are fire-and-forget: every publish goes through `attempt()`, so a
missing SMTP configuration or a mail server error is logged and never
reaches the order operation that triggered it.
"""
import logging
from functools import lru_cache

from commerce.core import email_client
from commerce.core.config import get_settings
from commerce.core.outcome import Outcome, attempt
from commerce.models.order import Order, OrderStatus

settings = get_settings()
logger = logging.getLogger(__name__)


def _order_summary(order: Order) -> str:
    lines = [
        f"Order: {order.id}",
        f"Customer: {order.customer_name} ({order.phone_number})",
        f"Address: {order.full_address or order.formatted_address()}",
        f"Status: {order.status.value}",
        f"Items: {order.total_items}",
        f"Total: {order.total_amount:.2f}",
    ]
    for item in order.items:
        lines.append(
            f"  - {item.product_name} [{item.product_sku}] "
            f"x{item.quantity} @ {item.unit_price:.2f}"
        )
    return "\n".join(lines)


class OrderEventPublisher:
    """
    Publishes order events as e-mails to ADMIN_NOTIFICATION_EMAIL.
    """

    def __init__(self, recipient: str | None = None):
        self.recipient = recipient or settings.ADMIN_NOTIFICATION_EMAIL

    def _send(self, subject: str, body: str) -> None:
        if not self.recipient:
            raise RuntimeError("ADMIN_NOTIFICATION_EMAIL is not configured")
        email_client.send_order_email(self.recipient, subject, body)

    def publish_new_order(self, order: Order) -> Outcome[None]:
        outcome = attempt(
            f"New order notification for {order.id}",
            self._send,
            f"New order {order.id}",
            _order_summary(order),
        )
        if outcome.ok:
            logger.info("Published new order event for %s", order.id)
        return outcome

    def publish_status_change(
        self,
        order: Order,
        previous_status: OrderStatus | None,
        kind: str = "STATUS_UPDATE",
    ) -> Outcome[None]:
        previous = previous_status.value if previous_status else "NONE"
        body = (
            f"{kind}: {previous} -> {order.status.value}\n\n"
            f"{_order_summary(order)}"
        )
        outcome = attempt(
            f"Status change notification for {order.id}",
            self._send,
            f"Order {order.id} is now {order.status.value}",
            body,
        )
        if outcome.ok:
            logger.info(
                "Published %s event for %s (%s -> %s)",
                kind, order.id, previous, order.status.value,
            )
        return outcome


@lru_cache
def get_event_publisher() -> OrderEventPublisher:
    """
    FastAPI dependency for the publisher; tests override it.
    """
    return OrderEventPublisher()
