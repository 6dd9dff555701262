"""Tests for the Cart aggregate."""

from decimal import Decimal

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.cart.cart import Cart
from marketplace.cart.events import CartCleared, CartItemAdded, CartItemRemoved
from marketplace.errors import InsufficientStockError, ProductUnavailableError
from marketplace.product.product import Product


def _product(price="10.00", stock=20, is_active=True, name="Kikoy Towel"):
    return Product.create(name=name, merchant_id="m-1", price=price, stock_quantity=stock, is_active=is_active)


class TestAddItem:
    def test_add_new_line_snapshots_price(self):
        cart = Cart.create("user-1")
        product = _product(price="12.50")
        item = cart.add_item(product, 2)
        assert item.quantity == 2
        assert item.price == Decimal("12.50")
        assert cart.total_amount == Decimal("25.00")
        assert cart.item_count == 2

    def test_adding_same_product_merges_lines(self):
        cart = Cart.create("user-1")
        product = _product()
        cart.add_item(product, 2)
        cart.add_item(product, 3)
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 5

    def test_merge_refreshes_price_snapshot(self):
        cart = Cart.create("user-1")
        product = _product(price="10.00")
        cart.add_item(product, 1)
        product.change_price("9.00")
        cart.add_item(product, 1)
        assert cart.lines[0].price == Decimal("9.00")

    @pytest.mark.parametrize("quantity", [0, -1, 11])
    def test_quantity_out_of_range(self, quantity):
        cart = Cart.create("user-1")
        with pytest.raises(ValidationError) as exc:
            cart.add_item(_product(), quantity)
        assert "quantity" in exc.value.messages

    def test_inactive_product_rejected(self):
        cart = Cart.create("user-1")
        with pytest.raises(ProductUnavailableError):
            cart.add_item(_product(is_active=False), 1)

    def test_insufficient_stock_counts_existing_line(self):
        cart = Cart.create("user-1")
        product = _product(stock=4)
        cart.add_item(product, 3)
        with pytest.raises(InsufficientStockError) as exc:
            cart.add_item(product, 2)
        assert exc.value.available == 4
        assert exc.value.requested == 5
        assert cart.lines[0].quantity == 3

    def test_line_capped_at_ten(self):
        cart = Cart.create("user-1")
        product = _product(stock=50)
        cart.add_item(product, 8)
        with pytest.raises(ValidationError):
            cart.add_item(product, 3)
        assert cart.lines[0].quantity == 8

    def test_add_raises_event(self):
        cart = Cart.create("user-1")
        product = _product()
        cart.add_item(product, 1)
        assert isinstance(cart._events[-1], CartItemAdded)
        assert cart._events[-1].product_id == product.id


class TestUpdateAndRemove:
    def test_update_quantity_and_price(self):
        cart = Cart.create("user-1")
        product = _product(price="10.00")
        item = cart.add_item(product, 1)
        product.change_price("11.00")
        cart.update_item(item.id, 4, product)
        updated = cart.find_item(item.id)
        assert updated.quantity == 4
        assert updated.price == Decimal("11.00")

    def test_update_unknown_item(self):
        cart = Cart.create("user-1")
        with pytest.raises(ObjectNotFoundError):
            cart.update_item("missing", 1, _product())

    def test_update_beyond_stock(self):
        cart = Cart.create("user-1")
        product = _product(stock=3)
        item = cart.add_item(product, 1)
        with pytest.raises(InsufficientStockError):
            cart.update_item(item.id, 4, product)

    def test_update_when_product_gone(self):
        cart = Cart.create("user-1")
        item = cart.add_item(_product(), 1)
        with pytest.raises(ProductUnavailableError):
            cart.update_item(item.id, 2, None)

    def test_remove_item(self):
        cart = Cart.create("user-1")
        item = cart.add_item(_product(), 1)
        cart.remove_item(item.id)
        assert cart.is_empty
        assert isinstance(cart._events[-1], CartItemRemoved)

    def test_remove_unknown_item(self):
        cart = Cart.create("user-1")
        with pytest.raises(ObjectNotFoundError):
            cart.remove_item("missing")

    def test_clear(self):
        cart = Cart.create("user-1")
        cart.add_item(_product(name="A"), 1)
        cart.add_item(_product(name="B"), 2)
        cart.clear()
        assert cart.is_empty
        assert cart.total_amount == Decimal("0.00")
        assert isinstance(cart._events[-1], CartCleared)
