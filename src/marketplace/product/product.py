"""Product aggregate — the stock counters behind every reservation.

Stock Level Model:
    stock_quantity: Total units ever stocked by the merchant
    sold_quantity:  Units committed to orders (cumulative)
    available:      stock_quantity - sold_quantity (what can be sold)

``sold_quantity`` is only ever written by the ProductLedger's conditional
updates; everything else about a product belongs to the merchant catalogue.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace
from marketplace.product.events import ProductListed, ProductPriceChanged
from marketplace.shared.money import as_amount, to_money


@marketplace.aggregate
class Product:
    name = String(required=True, max_length=255)
    merchant_id = Identifier(required=True)
    merchant_name = String(max_length=255, default="")
    price = Float(required=True)
    stock_quantity = Integer(default=0, min_value=0)
    sold_quantity = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def sold_quantity_cannot_exceed_stock(self):
        if (self.sold_quantity or 0) > (self.stock_quantity or 0):
            raise ValidationError({"sold_quantity": ["Sold quantity cannot exceed stock quantity"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, name, merchant_id, price, stock_quantity=0, merchant_name="", is_active=True):
        if not name:
            raise ValidationError({"name": ["Product name is required"]})
        if to_money(price) <= 0:
            raise ValidationError({"price": ["Price must be positive"]})
        if stock_quantity < 0:
            raise ValidationError({"stock_quantity": ["Stock quantity cannot be negative"]})

        now = datetime.now(UTC)
        product = cls(
            name=name,
            merchant_id=str(merchant_id),
            merchant_name=merchant_name or "",
            price=as_amount(price),
            stock_quantity=stock_quantity,
            sold_quantity=0,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductListed(
                product_id=str(product.id),
                merchant_id=product.merchant_id,
                price=product.price,
                stock_quantity=stock_quantity,
            )
        )
        return product

    @property
    def available(self) -> int:
        return self.stock_quantity - self.sold_quantity

    @property
    def is_purchasable(self) -> bool:
        return bool(self.is_active) and self.available > 0

    # -------------------------------------------------------------------
    # Catalogue-owned mutations
    # -------------------------------------------------------------------
    def change_price(self, new_price):
        if to_money(new_price) <= 0:
            raise ValidationError({"price": ["Price must be positive"]})

        previous = self.price
        self.price = as_amount(new_price)
        self.updated_at = datetime.now(UTC)
        self.raise_(ProductPriceChanged(product_id=str(self.id), previous_price=previous, new_price=self.price))

    def activate(self):
        self.is_active = True
        self.updated_at = datetime.now(UTC)

    def deactivate(self):
        self.is_active = False
        self.updated_at = datetime.now(UTC)

    def receive_stock(self, quantity):
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        self.stock_quantity += quantity
        self.updated_at = datetime.now(UTC)
