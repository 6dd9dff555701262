"""Cart aggregate — one per user, holding price snapshots of chosen products.

The snapshot price on a line is informational only. Reads reprice every line
against the catalogue and checkout always charges the current price, so
``total_amount`` is derived from the lines and never stored.
"""

from datetime import UTC, datetime
from decimal import Decimal

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from marketplace.cart.events import CartCleared, CartItemAdded, CartItemRemoved
from marketplace.domain import marketplace
from marketplace.errors import InsufficientStockError, ProductUnavailableError
from marketplace.shared.money import as_amount, line_total, sum_amounts, to_money

MAX_ITEM_QUANTITY = 10


def _check_quantity(quantity, max_quantity):
    if not isinstance(quantity, int) or quantity < 1 or quantity > max_quantity:
        raise ValidationError({"quantity": [f"Quantity must be between 1 and {max_quantity}"]})


@marketplace.entity(part_of="Cart")
class CartItem:
    position = Integer(default=0)
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    merchant_id = Identifier(required=True)
    merchant_name = String(max_length=255, default="")
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True)

    @property
    def subtotal(self) -> Decimal:
        return line_total(self.price, self.quantity)


@marketplace.aggregate
class Cart:
    user_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        return cls(user_id=str(user_id), created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def lines(self) -> list[CartItem]:
        """Lines in the order they were first added."""
        return sorted(self.items, key=lambda item: item.position or 0)

    @property
    def total_amount(self) -> Decimal:
        return sum_amounts(item.subtotal for item in self.items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find_item(self, item_id) -> CartItem:
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ObjectNotFoundError({"_entity": "Item not found in cart"})
        return item

    def item_for_product(self, product_id) -> CartItem | None:
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_item(self, product, quantity, max_quantity=MAX_ITEM_QUANTITY) -> CartItem:
        """Add ``quantity`` units of ``product``, merging into an existing line.

        Stock is checked against the combined quantity of the line, and the
        line snapshot is refreshed to the product's current price.
        """
        _check_quantity(quantity, max_quantity)
        if not product.is_active:
            raise ProductUnavailableError(str(product.id))

        available = product.available
        if available < quantity:
            raise InsufficientStockError(str(product.id), available, quantity)

        item = self.item_for_product(product.id)
        if item is not None:
            new_quantity = item.quantity + quantity
            if new_quantity > available:
                raise InsufficientStockError(str(product.id), available, new_quantity)
            if new_quantity > max_quantity:
                raise ValidationError({"quantity": [f"Maximum quantity per item is {max_quantity}"]})
            item.quantity = new_quantity
            item.price = product.price
        else:
            item = CartItem(
                position=max((i.position or 0 for i in self.items), default=-1) + 1,
                product_id=str(product.id),
                product_name=product.name,
                merchant_id=product.merchant_id,
                merchant_name=product.merchant_name or "",
                quantity=quantity,
                price=product.price,
            )
            self.add_items(item)

        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                user_id=self.user_id,
                item_id=str(item.id),
                product_id=item.product_id,
                quantity=quantity,
                unit_price=item.price,
            )
        )
        return item

    def update_item(self, item_id, quantity, product, max_quantity=MAX_ITEM_QUANTITY) -> CartItem:
        """Set a line's quantity; ``product`` is the line's product as it is now (or None)."""
        _check_quantity(quantity, max_quantity)
        item = self.find_item(item_id)

        if product is None or not product.is_active:
            raise ProductUnavailableError(item.product_id)
        if quantity > product.available:
            raise InsufficientStockError(str(product.id), product.available, quantity)

        item.quantity = quantity
        item.price = product.price
        self.updated_at = datetime.now(UTC)
        return item

    def remove_item(self, item_id) -> None:
        item = self.find_item(item_id)
        self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                user_id=self.user_id,
                item_id=str(item.id),
                product_id=item.product_id,
            )
        )

    def discard(self, item) -> None:
        """Drop a line whose product can no longer be bought. No event is raised."""
        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

    def reprice(self, item, price) -> None:
        if to_money(item.price) != to_money(price):
            item.price = as_amount(price)
            self.updated_at = datetime.now(UTC)

    def clear(self) -> None:
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCleared(cart_id=str(self.id), user_id=self.user_id))
