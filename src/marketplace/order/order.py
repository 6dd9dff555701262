"""Order aggregate — a committed purchase whose stock is already reserved.

State Machine (forward only, skipping ahead allowed):
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    CANCELLED (from PENDING or CONFIRMED only)

Line prices and ``total_amount`` are frozen when the order is placed; later
catalogue price changes never touch an existing order. Every status the
order has been in is kept in ``status_history``.
"""

import json
import random
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.errors import InvalidStateError
from marketplace.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from marketplace.shared.money import as_amount, line_total, sum_amounts


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    MPESA = "mpesa"
    CARD = "card"
    CASH_ON_DELIVERY = "cash_on_delivery"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.DELIVERED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# States from which cancellation is allowed
_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}


def _order_number() -> str:
    return f"NV{int(datetime.now(UTC).timestamp() * 1000)}{random.randint(0, 999999):06d}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships. Captured at checkout and never changed afterwards."""

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)

    @classmethod
    def build(cls, data) -> "ShippingAddress":
        if isinstance(data, ShippingAddress):
            return data
        if not data:
            raise ValidationError({"shipping_address": ["Shipping address is required"]})

        missing = [key for key in ("street", "city", "postal_code", "country") if not data.get(key)]
        if missing:
            raise ValidationError({"shipping_address": [f"Missing fields: {', '.join(missing)}"]})
        return cls(
            street=data["street"],
            city=data["city"],
            state=data.get("state"),
            postal_code=data["postal_code"],
            country=data["country"],
        )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    position = Integer(default=0)
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    merchant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True)

    @property
    def subtotal(self) -> Decimal:
        return line_total(self.unit_price, self.quantity)


@marketplace.entity(part_of="Order")
class OrderStatusEntry:
    """One step of the order's history."""

    position = Integer(default=0)
    status = String(required=True, choices=OrderStatus)
    note = Text()
    tracking_number = String(max_length=100)
    estimated_delivery = DateTime()
    changed_by = Identifier()
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    order_number = String(required=True, max_length=32, unique=True)
    user_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    total_amount = Float(required=True)
    notes = Text()
    cancellation_reason = String(max_length=500)
    shipping_address = ValueObject(ShippingAddress, required=True)
    merchant_ids = Text()  # JSON array, one entry per merchant with a line on the order
    tracking_number = String(max_length=100)
    estimated_delivery = DateTime()
    items = HasMany(OrderItem)
    status_history = HasMany(OrderStatusEntry)
    created_at = DateTime()
    updated_at = DateTime()
    cancelled_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id, items_data, shipping_address, payment_method, notes=None):
        """Create a pending order from lines whose stock has already been reserved.

        Args:
            user_id: The customer placing the order.
            items_data: List of dicts with product_id, product_name,
                        merchant_id, quantity, unit_price.
            shipping_address: ShippingAddress or dict with street, city,
                              state, postal_code, country.
            payment_method: One of the PaymentMethod values.
            notes: Optional free text from the customer.
        """
        if not items_data:
            raise ValidationError({"items": ["Order items are required"]})
        for data in items_data:
            if data["quantity"] < 1:
                raise ValidationError({"items": [f"Quantity for product {data['product_id']} must be at least 1"]})

        address = ShippingAddress.build(shipping_address)
        method = cls._payment_method(payment_method)

        now = datetime.now(UTC)
        items = [
            OrderItem(
                position=index,
                product_id=str(data["product_id"]),
                product_name=data.get("product_name", ""),
                merchant_id=str(data.get("merchant_id", "")),
                quantity=data["quantity"],
                unit_price=as_amount(data["unit_price"]),
            )
            for index, data in enumerate(items_data)
        ]
        total = sum_amounts(item.subtotal for item in items)

        order = cls(
            order_number=_order_number(),
            user_id=str(user_id),
            status=OrderStatus.PENDING.value,
            payment_method=method.value,
            payment_status=PaymentStatus.PENDING.value,
            total_amount=float(total),
            notes=notes,
            shipping_address=address,
            merchant_ids=json.dumps(sorted({item.merchant_id for item in items})),
            items=items,
            status_history=[
                OrderStatusEntry(
                    position=0,
                    status=OrderStatus.PENDING.value,
                    note="Order placed",
                    changed_by=str(user_id),
                    changed_at=now,
                )
            ],
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                user_id=order.user_id,
                items=json.dumps(
                    [
                        {
                            "product_id": item.product_id,
                            "product_name": item.product_name,
                            "merchant_id": item.merchant_id,
                            "quantity": item.quantity,
                            "unit_price": item.unit_price,
                        }
                        for item in items
                    ]
                ),
                total_amount=order.total_amount,
                payment_method=method.value,
                placed_at=now,
            )
        )
        return order

    @staticmethod
    def _payment_method(value) -> PaymentMethod:
        if not value:
            raise ValidationError({"payment_method": ["Payment method is required"]})
        try:
            return PaymentMethod(value)
        except ValueError:
            allowed = ", ".join(m.value for m in PaymentMethod)
            raise ValidationError({"payment_method": [f"Payment method must be one of: {allowed}"]}) from None

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def lines(self) -> list[OrderItem]:
        return sorted(self.items, key=lambda item: item.position or 0)

    @property
    def timeline(self) -> list[OrderStatusEntry]:
        """History entries, oldest first."""
        return sorted(self.status_history, key=lambda entry: entry.position or 0)

    @property
    def merchants(self) -> list[str]:
        return json.loads(self.merchant_ids) if self.merchant_ids else []

    def lines_for_merchant(self, merchant_id) -> list[OrderItem]:
        return [item for item in self.lines if item.merchant_id == str(merchant_id)]

    @property
    def is_cancellable(self) -> bool:
        return OrderStatus(self.status) in _CANCELLABLE_STATES

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStateError(
                current.value,
                f"Cannot transition from {current.value} to {target_status.value}",
            )

    def _record(self, status, now, note=None, changed_by=None, tracking_number=None, estimated_delivery=None):
        self.add_status_history(
            OrderStatusEntry(
                position=max((entry.position or 0 for entry in self.status_history), default=-1) + 1,
                status=status.value,
                note=note,
                tracking_number=tracking_number,
                estimated_delivery=estimated_delivery,
                changed_by=changed_by,
                changed_at=now,
            )
        )

    def advance_to(self, target_status, note=None, tracking_number=None, estimated_delivery=None, changed_by=None):
        """Move the order forward. Cancellation goes through ``cancel``."""
        if target_status == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Use cancel() to cancel an order"]})
        self._assert_can_transition(target_status)

        previous = self.status
        now = datetime.now(UTC)
        self.status = target_status.value
        if tracking_number:
            self.tracking_number = tracking_number
        if estimated_delivery:
            self.estimated_delivery = estimated_delivery
        if target_status == OrderStatus.DELIVERED and self.payment_method == PaymentMethod.CASH_ON_DELIVERY.value:
            self.payment_status = PaymentStatus.PAID.value
        self.updated_at = now

        note = note or f"Status updated from {previous} to {self.status}"
        self._record(
            target_status,
            now,
            note=note,
            changed_by=changed_by,
            tracking_number=tracking_number,
            estimated_delivery=estimated_delivery,
        )
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                user_id=self.user_id,
                previous_status=previous,
                new_status=self.status,
                note=note,
                tracking_number=self.tracking_number,
                estimated_delivery=self.estimated_delivery,
            )
        )

    def cancel(self, reason="", changed_by=None):
        """Mark the order cancelled. The caller returns the reserved stock in the same transaction."""
        current = OrderStatus(self.status)
        if not self.is_cancellable:
            raise InvalidStateError(
                current.value,
                f"Cannot cancel order in {current.value} state. "
                f"Cancellation is only allowed from: "
                f"{', '.join(sorted(s.value for s in _CANCELLABLE_STATES))}",
            )

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason or None
        self.cancelled_at = now
        self.updated_at = now
        self._record(OrderStatus.CANCELLED, now, note=reason or "Order cancelled", changed_by=changed_by)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                user_id=self.user_id,
                previous_status=current.value,
                reason=reason or "",
                cancelled_at=now,
            )
        )
