from decimal import Decimal

import pytest
from protean.exceptions import ValidationError

from marketplace.cart.aggregator import AddToCart

USER = "user-001"


def _fill_cart(marketplace, *lines):
    for product, quantity in lines:
        marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=quantity))


class TestCheckout:
    def test_checkout_places_order_and_clears_cart(self, marketplace, make_product, reload_product, address):
        kikoy = make_product(name="Kikoy Towel", price="10.00", stock=10)
        basket = make_product(name="Sisal Basket", price="22.50", stock=4)
        _fill_cart(marketplace, (kikoy, 2), (basket, 1))

        order = marketplace.checkout.checkout(USER, address, "mpesa", notes="Leave at the gate")

        assert order.status == "pending"
        assert order.payment_method == "mpesa"
        assert order.notes == "Leave at the gate"
        assert order.total_amount == Decimal("42.50")
        assert sorted((item.product_name, item.quantity) for item in order.lines) == [
            ("Kikoy Towel", 2),
            ("Sisal Basket", 1),
        ]
        assert reload_product(kikoy.id).sold_quantity == 2
        assert reload_product(basket.id).sold_quantity == 1
        assert marketplace.carts.summary(USER).is_empty

    def test_price_change_is_charged_at_current_price(self, marketplace, make_product, address):
        product = make_product(price="10.00")
        _fill_cart(marketplace, (product, 3))
        marketplace.catalogue.change_price(product.id, Decimal("12.00"))

        order = marketplace.checkout.checkout(USER, address, "card")
        assert order.lines[0].unit_price == Decimal("12.00")
        assert order.total_amount == Decimal("36.00")

    def test_unavailable_product_blocks_checkout(self, marketplace, make_product, reload_product, address):
        good = make_product(name="Good")
        withdrawn = make_product(name="Withdrawn")
        _fill_cart(marketplace, (good, 1), (withdrawn, 1))
        marketplace.catalogue.deactivate(withdrawn.id)

        with pytest.raises(ValidationError) as exc:
            marketplace.checkout.checkout(USER, address, "card")

        assert exc.value.messages["cart"] == ["Withdrawn: Product is no longer available"]
        assert reload_product(good.id).sold_quantity == 0
        assert marketplace.carts.summary(USER).item_count == 2
        assert marketplace.lifecycle.list_orders(USER) == []

    def test_stock_sold_elsewhere_blocks_checkout(self, marketplace, make_product, address):
        product = make_product(stock=3)
        _fill_cart(marketplace, (product, 3))
        marketplace.carts.add_item("user-002", AddToCart(product_id=product.id, quantity=2))
        marketplace.checkout.checkout("user-002", address, "card")

        with pytest.raises(ValidationError) as exc:
            marketplace.checkout.checkout(USER, address, "card")
        assert "Only 1 items available, but 3 requested" in exc.value.messages["cart"][0]

    def test_empty_cart(self, marketplace, address):
        with pytest.raises(ValidationError) as exc:
            marketplace.checkout.checkout(USER, address, "card")
        assert exc.value.messages == {"cart": ["Cart is empty"]}

    def test_missing_payment_method_keeps_cart(self, marketplace, make_product, reload_product, address):
        product = make_product()
        _fill_cart(marketplace, (product, 1))

        with pytest.raises(ValidationError):
            marketplace.checkout.checkout(USER, address, None)
        assert reload_product(product.id).sold_quantity == 0
        assert marketplace.carts.summary(USER).item_count == 1

    def test_checkout_sends_confirmation(self, marketplace, make_product, address, notifier):
        product = make_product()
        _fill_cart(marketplace, (product, 1))

        order = marketplace.checkout.checkout(USER, address, "card")
        assert len(notifier.messages_for(USER)) == 1
        assert notifier.messages_for(USER)[0]["metadata"] == {"order_id": order.id}
