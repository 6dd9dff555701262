"""Application tests for cart operations."""

from decimal import Decimal

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.cart.aggregator import AddToCart, CartIssueKind, UpdateCartItem
from marketplace.errors import InsufficientStockError, ProductUnavailableError
from marketplace.order.placement import Address, OrderLine, PlaceOrder

USER = "user-001"


def _place(product_id, quantity):
    return PlaceOrder(
        items=[OrderLine(product_id=product_id, quantity=quantity)],
        shipping_address=Address(street="1 Rd", city="Mombasa", postal_code="80100", country="KE"),
        payment_method="card",
    )


class TestAddItem:
    def test_creates_cart_lazily(self, marketplace, make_product):
        product = make_product(price="12.00")
        item = marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=2))
        assert item.quantity == 2

        view = marketplace.carts.view(USER)
        assert [i.product_id for i in view.cart.lines] == [product.id]
        assert view.total_amount == Decimal("24.00")

    def test_unknown_product_is_not_found(self, marketplace):
        with pytest.raises(ObjectNotFoundError):
            marketplace.carts.add_item(USER, AddToCart(product_id="missing", quantity=1))

    def test_inactive_product(self, marketplace, make_product):
        product = make_product(is_active=False)
        with pytest.raises(ProductUnavailableError):
            marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=1))

    def test_stock_check_includes_existing_line(self, marketplace, make_product):
        product = make_product(stock=5)
        marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=4))
        with pytest.raises(InsufficientStockError):
            marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=2))
        assert marketplace.carts.summary(USER).item_count == 4

    def test_quantity_limit(self, marketplace, make_product):
        product = make_product(stock=50)
        with pytest.raises(ValidationError):
            marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=11))

    def test_adding_does_not_touch_stock(self, marketplace, make_product, reload_product):
        product = make_product(stock=5)
        marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=3))
        assert reload_product(product.id).sold_quantity == 0


class TestUpdateRemoveClear:
    def test_update_item(self, marketplace, make_product):
        product = make_product()
        item = marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=1))
        updated = marketplace.carts.update_item(USER, UpdateCartItem(item_id=item.id, quantity=3))
        assert updated.quantity == 3

    def test_update_without_cart(self, marketplace):
        with pytest.raises(ObjectNotFoundError):
            marketplace.carts.update_item(USER, UpdateCartItem(item_id="x", quantity=1))

    def test_update_unknown_item(self, marketplace, make_product):
        product = make_product()
        marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=1))
        with pytest.raises(ObjectNotFoundError):
            marketplace.carts.update_item(USER, UpdateCartItem(item_id="missing", quantity=1))

    def test_update_after_product_deactivated(self, marketplace, make_product):
        product = make_product()
        item = marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=1))
        marketplace.catalogue.deactivate(product.id)
        with pytest.raises(ProductUnavailableError):
            marketplace.carts.update_item(USER, UpdateCartItem(item_id=item.id, quantity=2))

    def test_remove_item(self, marketplace, make_product):
        product = make_product()
        item = marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=1))
        cart = marketplace.carts.remove_item(USER, item.id)
        assert cart.is_empty

    def test_remove_without_cart(self, marketplace):
        with pytest.raises(ObjectNotFoundError):
            marketplace.carts.remove_item(USER, "x")

    def test_clear(self, marketplace, make_product):
        marketplace.carts.add_item(USER, AddToCart(product_id=make_product(name="A").id, quantity=1))
        marketplace.carts.add_item(USER, AddToCart(product_id=make_product(name="B").id, quantity=2))
        marketplace.carts.clear(USER)
        assert marketplace.carts.summary(USER).is_empty

    def test_clear_without_cart(self, marketplace):
        with pytest.raises(ObjectNotFoundError):
            marketplace.carts.clear(USER)


class TestView:
    def test_empty_view_for_new_user(self, marketplace):
        view = marketplace.carts.view(USER)
        assert view.cart.is_empty
        assert view.total_amount == Decimal("0.00")
        assert view.dropped_item_ids == ()

    def test_drops_inactive_and_sold_out_lines(self, marketplace, make_product):
        keep = make_product(name="Keep", price="5.00", stock=10)
        inactive = make_product(name="Inactive", stock=10)
        sold_out = make_product(name="Sold out", stock=1)
        marketplace.carts.add_item(USER, AddToCart(product_id=keep.id, quantity=2))
        inactive_item = marketplace.carts.add_item(USER, AddToCart(product_id=inactive.id, quantity=1))
        sold_out_item = marketplace.carts.add_item(USER, AddToCart(product_id=sold_out.id, quantity=1))

        marketplace.catalogue.deactivate(inactive.id)
        marketplace.orders.create_order("someone-else", _place(sold_out.id, 1))

        view = marketplace.carts.view(USER)
        assert [i.product_id for i in view.cart.lines] == [keep.id]
        assert set(view.dropped_item_ids) == {inactive_item.id, sold_out_item.id}
        assert view.total_amount == Decimal("10.00")

        # The filtered cart was persisted
        assert marketplace.carts.summary(USER).item_count == 2

    def test_reprices_to_current_price(self, marketplace, make_product):
        product = make_product(price="10.00")
        marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=3))
        marketplace.catalogue.change_price(product.id, "8.00")

        view = marketplace.carts.view(USER)
        assert view.cart.lines[0].price == Decimal("8.00")
        assert view.total_amount == Decimal("24.00")

    def test_summary_for_user_without_cart(self, marketplace):
        summary = marketplace.carts.summary(USER)
        assert summary.item_count == 0
        assert summary.is_empty


class TestValidateForCheckout:
    def test_empty_cart(self, marketplace):
        with pytest.raises(ValidationError) as exc:
            marketplace.carts.validate_for_checkout(USER)
        assert exc.value.messages == {"cart": ["Cart is empty"]}

    def test_all_lines_valid(self, marketplace, make_product):
        product = make_product(price="7.50")
        marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=2))
        validation = marketplace.carts.validate_for_checkout(USER)
        assert validation.is_valid
        assert validation.total_valid_amount == Decimal("15.00")

    def test_reports_each_issue_kind(self, marketplace, make_product):
        repriced = make_product(name="Repriced", price="10.00", stock=10)
        gone = make_product(name="Gone", stock=10)
        short = make_product(name="Short", stock=3)
        marketplace.carts.add_item(USER, AddToCart(product_id=repriced.id, quantity=2))
        marketplace.carts.add_item(USER, AddToCart(product_id=gone.id, quantity=1))
        marketplace.carts.add_item(USER, AddToCart(product_id=short.id, quantity=3))

        marketplace.catalogue.change_price(repriced.id, "12.00")
        marketplace.catalogue.deactivate(gone.id)
        marketplace.orders.create_order("someone-else", _place(short.id, 2))

        validation = marketplace.carts.validate_for_checkout(USER)
        kinds = {issue.product_id: issue.kind for issue in validation.issues}
        assert kinds == {
            repriced.id: CartIssueKind.PRICE_CHANGED,
            gone.id: CartIssueKind.UNAVAILABLE,
            short.id: CartIssueKind.INSUFFICIENT_STOCK,
        }
        assert not validation.is_valid

        # Only the repriced line survives, at its current price
        assert [line.product_id for line in validation.valid_items] == [repriced.id]
        assert validation.valid_items[0].unit_price == Decimal("12.00")
        assert validation.total_valid_amount == Decimal("24.00")

        price_issue = next(i for i in validation.issues if i.kind == CartIssueKind.PRICE_CHANGED)
        assert price_issue.old_price == Decimal("10.00")
        assert price_issue.new_price == Decimal("12.00")

    def test_validation_does_not_mutate_cart(self, marketplace, make_product):
        product = make_product(price="10.00")
        marketplace.carts.add_item(USER, AddToCart(product_id=product.id, quantity=1))
        marketplace.catalogue.deactivate(product.id)

        marketplace.carts.validate_for_checkout(USER)
        assert marketplace.carts.summary(USER).item_count == 1
