"""Order placement — reserve every line or none of them.

All reservations for one order happen inside a single unit of work. Lines
for the same product are merged first, so each product is reserved once for
its combined quantity. The first refused product triggers compensating
releases of everything already reserved (newest first) before the unit of
work is rolled back, so a failed placement leaves every ``sold_quantity``
exactly as it found it.
"""

from decimal import Decimal

import structlog
from protean import UnitOfWork
from protean.domain import Domain
from protean.exceptions import ValidationError
from pydantic import BaseModel

from marketplace.errors import InsufficientStockError, ProductUnavailableError
from marketplace.order.order import Order, ShippingAddress
from marketplace.product.ledger import ProductLedger, ReservationFailure, ReservationResult
from marketplace.product.product import Product

logger = structlog.get_logger(__name__)


class Address(BaseModel):
    street: str
    city: str
    state: str | None = None
    postal_code: str
    country: str


class OrderLine(BaseModel):
    product_id: str
    quantity: int
    price: Decimal | None = None  # Ignored: lines are always charged the current price


class PlaceOrder(BaseModel):
    items: list[OrderLine] = []
    shipping_address: Address | None = None
    payment_method: str | None = None
    notes: str | None = None


def merge_lines(lines: list[OrderLine]) -> list[tuple[str, int]]:
    """``(product_id, total quantity)`` per product, in order of first appearance."""
    merged: dict[str, int] = {}
    for line in lines:
        merged[line.product_id] = merged.get(line.product_id, 0) + line.quantity
    return list(merged.items())


class OrderTransactionCoordinator:
    def __init__(self, domain: Domain):
        self.domain = domain
        self.ledger = ProductLedger()

    def create_order(self, user_id: str, command: PlaceOrder) -> Order:
        with self.domain.domain_context(), UnitOfWork():
            order = self.place(user_id, command)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            user_id=user_id,
            line_count=len(order.items),
            total_amount=order.total_amount,
        )
        return order

    def place(self, user_id: str, command: PlaceOrder) -> Order:
        """Reserve stock and add the order to the unit of work in progress."""
        address = self._validate(command)

        reserved: list[tuple[str, int]] = []
        for product_id, quantity in merge_lines(command.items):
            result = self.ledger.try_reserve(product_id, quantity)
            if not result.success:
                self._compensate(reserved)
                logger.info(
                    "Order placement refused",
                    user_id=user_id,
                    product_id=product_id,
                    requested=quantity,
                    reason=result.failure.value,
                )
                raise self._failure_error(result)
            reserved.append((product_id, quantity))

        try:
            repo = self.domain.repository_for(Product)
            products = {product_id: repo.get(product_id) for product_id, _ in reserved}
            items_data = [
                {
                    "product_id": product_id,
                    "product_name": products[product_id].name,
                    "merchant_id": products[product_id].merchant_id,
                    "quantity": quantity,
                    "unit_price": products[product_id].price,
                }
                for product_id, quantity in reserved
            ]
            order = Order.create(
                user_id=user_id,
                items_data=items_data,
                shipping_address=address,
                payment_method=command.payment_method,
                notes=command.notes,
            )
            self.domain.repository_for(Order).add(order)
        except Exception:
            self._compensate(reserved)
            raise

        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _validate(command: PlaceOrder) -> ShippingAddress:
        if not command.items:
            raise ValidationError({"items": ["Order items are required"]})
        for line in command.items:
            if line.quantity < 1:
                raise ValidationError({"items": [f"Quantity for product {line.product_id} must be at least 1"]})

        address = ShippingAddress.build(command.shipping_address.model_dump() if command.shipping_address else None)
        Order._payment_method(command.payment_method)
        return address

    def _compensate(self, reserved: list[tuple[str, int]]) -> None:
        for product_id, quantity in reversed(reserved):
            try:
                self.ledger.release(product_id, quantity)
            except Exception:
                # The unit of work rollback still discards this reservation
                logger.exception("Compensating release failed", product_id=product_id, quantity=quantity)
            else:
                logger.debug("Compensating release", product_id=product_id, quantity=quantity)

    @staticmethod
    def _failure_error(result: ReservationResult) -> Exception:
        if result.failure == ReservationFailure.INSUFFICIENT_STOCK:
            return InsufficientStockError(result.product_id, result.available, result.quantity)
        return ProductUnavailableError(result.product_id)
