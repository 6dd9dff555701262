"""Tests for the Product aggregate."""

from decimal import Decimal

import pytest
from protean.exceptions import ValidationError

from marketplace.product.events import ProductListed, ProductPriceChanged
from marketplace.product.product import Product


def _make_product(**overrides):
    defaults = {
        "name": "Soapstone Carving",
        "merchant_id": "merchant-001",
        "price": "32.00",
        "stock_quantity": 15,
    }
    defaults.update(overrides)
    return Product.create(**defaults)


class TestProductCreation:
    def test_create_sets_counters(self):
        product = _make_product()
        assert product.stock_quantity == 15
        assert product.sold_quantity == 0
        assert product.available == 15
        assert product.is_active is True

    def test_price_is_quantized(self):
        product = _make_product(price="19.999")
        assert product.price == Decimal("20.00")

    def test_create_raises_listed_event(self):
        product = _make_product()
        assert len(product._events) == 1
        event = product._events[0]
        assert isinstance(event, ProductListed)
        assert event.product_id == product.id
        assert event.stock_quantity == 15

    def test_name_required(self):
        with pytest.raises(ValidationError) as exc:
            _make_product(name="")
        assert "name" in exc.value.messages

    def test_price_must_be_positive(self):
        with pytest.raises(ValidationError):
            _make_product(price="0")

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError):
            _make_product(stock_quantity=-1)


class TestProductMutations:
    def test_change_price(self):
        product = _make_product()
        product._events.clear()
        product.change_price("28.50")
        assert product.price == Decimal("28.50")
        event = product._events[0]
        assert isinstance(event, ProductPriceChanged)
        assert event.previous_price == Decimal("32.00")
        assert event.new_price == Decimal("28.50")

    def test_deactivate_makes_product_unpurchasable(self):
        product = _make_product()
        product.deactivate()
        assert product.is_purchasable is False
        product.activate()
        assert product.is_purchasable is True

    def test_sold_out_product_is_not_purchasable(self):
        product = _make_product(stock_quantity=2)
        product.sold_quantity = 2
        assert product.available == 0
        assert product.is_purchasable is False

    def test_receive_stock(self):
        product = _make_product(stock_quantity=5)
        product.receive_stock(10)
        assert product.stock_quantity == 15

    def test_receive_stock_requires_positive_quantity(self):
        product = _make_product()
        with pytest.raises(ValidationError):
            product.receive_stock(0)
