"""Checkout — turn the caller's cart into an order and empty the cart."""

import structlog
from protean import UnitOfWork
from protean.domain import Domain
from protean.exceptions import ValidationError

from marketplace.cart.aggregator import evaluate_cart, load_cart
from marketplace.cart.cart import Cart
from marketplace.order.order import Order
from marketplace.order.placement import Address, OrderLine, OrderTransactionCoordinator, PlaceOrder

logger = structlog.get_logger(__name__)


class CheckoutService:
    def __init__(self, domain: Domain, coordinator: OrderTransactionCoordinator):
        self.domain = domain
        self.coordinator = coordinator

    def checkout(
        self,
        user_id: str,
        shipping_address: Address | dict | None,
        payment_method: str | None,
        notes: str | None = None,
    ) -> Order:
        """Place an order for every cart line, then clear the cart.

        Lines that are unavailable or short of stock abort the checkout.
        Price changes do not: the coordinator charges current prices.
        """
        with self.domain.domain_context(), UnitOfWork():
            cart = load_cart(user_id)
            validation = evaluate_cart(cart)

            blocking = validation.blocking_issues
            if blocking:
                raise ValidationError({"cart": [f"{issue.product_name}: {issue.message}" for issue in blocking]})

            command = PlaceOrder(
                items=[OrderLine(product_id=line.product_id, quantity=line.quantity) for line in validation.valid_items],
                shipping_address=shipping_address,
                payment_method=payment_method,
                notes=notes,
            )
            order = self.coordinator.place(user_id, command)
            cart.clear()
            self.domain.repository_for(Cart).add(cart)

        logger.info(
            "Cart checked out",
            user_id=user_id,
            order_id=str(order.id),
            total_amount=order.total_amount,
            price_changes=len(validation.issues),
        )
        return order
