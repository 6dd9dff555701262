"""Notifications react to committed order and flash sale events.

Handlers run after the originating unit of work has committed. Delivery
problems are logged here and never reach the customer-facing request.
"""

import json

import structlog
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.flash_sale.events import FlashSaleCreated, FlashSaleDeleted, FlashSaleUpdated
from marketplace.flash_sale.flash_sale import FlashSale
from marketplace.notifications.channel import get_channel
from marketplace.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)

# Flash sale announcements go to a broadcast audience rather than a single customer
FLASH_SALE_AUDIENCE = "flash-sale-subscribers"


def _send(event, recipient: str, subject: str, body: str, metadata: dict) -> None:
    event_type = event.__class__.__name__
    try:
        result = get_channel().send(recipient=recipient, subject=subject, body=body, metadata=metadata)
    except Exception as exc:
        logger.error("Notification channel raised", event_type=event_type, recipient=recipient, error=str(exc))
        return

    if result.get("status") != "sent":
        logger.warning(
            "Notification delivery failed",
            event_type=event_type,
            recipient=recipient,
            error=result.get("error"),
        )
        return

    logger.info(
        "Notification sent",
        event_type=event_type,
        recipient=recipient,
        message_id=result.get("message_id"),
    )


@marketplace.event_handler(part_of=Order)
class OrderNotifications:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        """Send order confirmation when an order is placed."""
        items = json.loads(event.items)
        lines = "\n".join(f"- {item['quantity']} x {item['product_name']} @ {item['unit_price']:.2f}" for item in items)
        _send(
            event,
            recipient=event.user_id,
            subject=f"Your order {event.order_number} has been placed",
            body=f"Order {event.order_number}\n{lines}\nTotal: {event.total_amount:.2f}",
            metadata={"order_id": event.order_id},
        )

    @handle(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        body = f"Order {event.order_number} is now {event.new_status}."
        if event.note:
            body += f"\n{event.note}"
        if event.tracking_number:
            body += f"\nTracking number: {event.tracking_number}"
        if event.estimated_delivery:
            body += f"\nEstimated delivery: {event.estimated_delivery:%Y-%m-%d}"
        _send(
            event,
            recipient=event.user_id,
            subject=f"Order {event.order_number} update: {event.new_status}",
            body=body,
            metadata={"order_id": event.order_id, "status": event.new_status},
        )

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        reason = f" Reason: {event.reason}" if event.reason else ""
        _send(
            event,
            recipient=event.user_id,
            subject=f"Your order {event.order_number} has been cancelled",
            body=f"Order {event.order_number} was cancelled.{reason}",
            metadata={"order_id": event.order_id},
        )


@marketplace.event_handler(part_of=FlashSale)
class FlashSaleAnnouncements:
    @handle(FlashSaleCreated)
    def on_flash_sale_created(self, event: FlashSaleCreated) -> None:
        _send(
            event,
            recipient=FLASH_SALE_AUDIENCE,
            subject=f"Flash sale: {event.title}",
            body=f"{event.product_count} products on sale from {event.start_date:%Y-%m-%d %H:%M} UTC "
            f"until {event.end_date:%Y-%m-%d %H:%M} UTC",
            metadata={"sale_id": event.sale_id},
        )

    @handle(FlashSaleUpdated)
    def on_flash_sale_updated(self, event: FlashSaleUpdated) -> None:
        _send(
            event,
            recipient=FLASH_SALE_AUDIENCE,
            subject=f"Flash sale updated: {event.title}",
            body=f"Now running until {event.end_date:%Y-%m-%d %H:%M} UTC",
            metadata={"sale_id": event.sale_id},
        )

    @handle(FlashSaleDeleted)
    def on_flash_sale_deleted(self, event: FlashSaleDeleted) -> None:
        _send(
            event,
            recipient=FLASH_SALE_AUDIENCE,
            subject=f"Flash sale withdrawn: {event.title}",
            body="This sale is no longer available.",
            metadata={"sale_id": event.sale_id},
        )
