"""Cart operations — add/update/remove lines, repriced views and checkout validation.

Every read goes back to the product rows: lines whose product disappeared,
was deactivated or sold out are dropped from the view, and the remaining
lines are repriced to the current catalogue price before totals are taken.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

import structlog
from protean import UnitOfWork
from protean.domain import Domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain
from pydantic import BaseModel

from marketplace.cart.cart import MAX_ITEM_QUANTITY, Cart, CartItem
from marketplace.product.product import Product
from marketplace.shared.money import line_total, to_money

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------
class AddToCart(BaseModel):
    product_id: str
    quantity: int = 1


class UpdateCartItem(BaseModel):
    item_id: str
    quantity: int


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CartView:
    cart: Cart
    dropped_item_ids: tuple[str, ...] = ()

    @property
    def total_amount(self) -> Decimal:
        return self.cart.total_amount


@dataclass(frozen=True)
class CartSummary:
    item_count: int
    total_amount: Decimal
    is_empty: bool


class CartIssueKind(Enum):
    UNAVAILABLE = "Unavailable"
    INSUFFICIENT_STOCK = "InsufficientStock"
    PRICE_CHANGED = "PriceChanged"


@dataclass(frozen=True)
class CartIssue:
    kind: CartIssueKind
    item_id: str
    product_id: str
    product_name: str
    message: str
    available: int | None = None
    requested: int | None = None
    old_price: Decimal | None = None
    new_price: Decimal | None = None

    @property
    def blocks_checkout(self) -> bool:
        return self.kind is not CartIssueKind.PRICE_CHANGED


@dataclass(frozen=True)
class ValidCartLine:
    item_id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return line_total(self.unit_price, self.quantity)


@dataclass(frozen=True)
class CartValidation:
    issues: list[CartIssue] = field(default_factory=list)
    valid_items: list[ValidCartLine] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def blocking_issues(self) -> list[CartIssue]:
        return [issue for issue in self.issues if issue.blocks_checkout]

    @property
    def total_valid_amount(self) -> Decimal:
        return to_money(sum((line.subtotal for line in self.valid_items), Decimal("0")))



# ---------------------------------------------------------------------------
# Helpers shared with checkout
# ---------------------------------------------------------------------------
def load_cart(user_id: str) -> Cart | None:
    carts = current_domain.repository_for(Cart)._dao.query.filter(user_id=str(user_id)).all().items
    return carts[0] if carts else None


def products_for(items: list[CartItem]) -> dict[str, Product]:
    """Current products behind ``items``. Products that no longer exist are left out."""
    repo = current_domain.repository_for(Product)
    products = {}
    for product_id in {str(item.product_id) for item in items}:
        try:
            products[product_id] = repo.get(product_id)
        except ObjectNotFoundError:
            continue
    return products


def evaluate_cart(cart: Cart | None) -> CartValidation:
    """Dry-run every line against current product state. Nothing is written."""
    if cart is None or cart.is_empty:
        raise ValidationError({"cart": ["Cart is empty"]})

    products = products_for(cart.items)
    issues: list[CartIssue] = []
    valid_items: list[ValidCartLine] = []

    for item in cart.lines:
        item_id = str(item.id)
        product = products.get(str(item.product_id))
        if product is None or not product.is_active:
            issues.append(
                CartIssue(
                    kind=CartIssueKind.UNAVAILABLE,
                    item_id=item_id,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    message="Product is no longer available",
                )
            )
            continue

        available = product.available
        if item.quantity > available:
            issues.append(
                CartIssue(
                    kind=CartIssueKind.INSUFFICIENT_STOCK,
                    item_id=item_id,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    message=f"Only {available} items available, but {item.quantity} requested",
                    available=available,
                    requested=item.quantity,
                )
            )
            continue

        current_price = to_money(product.price)
        if to_money(item.price) != current_price:
            issues.append(
                CartIssue(
                    kind=CartIssueKind.PRICE_CHANGED,
                    item_id=item_id,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    message=f"Price changed from {to_money(item.price)} to {current_price}",
                    old_price=to_money(item.price),
                    new_price=current_price,
                )
            )

        valid_items.append(
            ValidCartLine(
                item_id=item_id,
                product_id=item.product_id,
                product_name=product.name,
                quantity=item.quantity,
                unit_price=current_price,
            )
        )

    return CartValidation(issues=issues, valid_items=valid_items)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
class CartAggregator:
    def __init__(self, domain: Domain, max_quantity: int = MAX_ITEM_QUANTITY):
        self.domain = domain
        self.max_quantity = max_quantity

    def add_item(self, user_id: str, command: AddToCart) -> CartItem:
        with self.domain.domain_context(), UnitOfWork():
            product = self.domain.repository_for(Product).get(command.product_id)
            cart = self._get_or_create(user_id)
            item = cart.add_item(product, command.quantity, max_quantity=self.max_quantity)
            self.domain.repository_for(Cart).add(cart)

        logger.info(
            "Item added to cart",
            user_id=user_id,
            product_id=command.product_id,
            quantity=command.quantity,
            line_quantity=item.quantity,
        )
        return item

    def update_item(self, user_id: str, command: UpdateCartItem) -> CartItem:
        with self.domain.domain_context(), UnitOfWork():
            cart = self._require_cart(user_id)
            line = cart.find_item(command.item_id)
            product = products_for([line]).get(str(line.product_id))
            item = cart.update_item(command.item_id, command.quantity, product, max_quantity=self.max_quantity)
            self.domain.repository_for(Cart).add(cart)
        return item

    def remove_item(self, user_id: str, item_id: str) -> Cart:
        with self.domain.domain_context(), UnitOfWork():
            cart = self._require_cart(user_id)
            cart.remove_item(item_id)
            self.domain.repository_for(Cart).add(cart)
        return cart

    def clear(self, user_id: str) -> Cart:
        with self.domain.domain_context(), UnitOfWork():
            cart = self._require_cart(user_id)
            cart.clear()
            self.domain.repository_for(Cart).add(cart)
        return cart

    def view(self, user_id: str) -> CartView:
        """The user's cart as it can be bought right now, persisted in that form."""
        with self.domain.domain_context(), UnitOfWork():
            cart = self._get_or_create(user_id)
            products = products_for(cart.items)

            dropped: list[str] = []
            for item in cart.lines:
                product = products.get(str(item.product_id))
                if product is None or not product.is_purchasable:
                    cart.discard(item)
                    dropped.append(str(item.id))
                else:
                    cart.reprice(item, product.price)
            self.domain.repository_for(Cart).add(cart)

        if dropped:
            logger.info("Unavailable items dropped from cart", user_id=user_id, item_ids=dropped)
        return CartView(cart=cart, dropped_item_ids=tuple(dropped))

    def summary(self, user_id: str) -> CartSummary:
        with self.domain.domain_context():
            cart = load_cart(user_id)
        if cart is None:
            return CartSummary(item_count=0, total_amount=to_money(0), is_empty=True)
        return CartSummary(item_count=cart.item_count, total_amount=cart.total_amount, is_empty=cart.is_empty)

    def validate_for_checkout(self, user_id: str) -> CartValidation:
        with self.domain.domain_context():
            return evaluate_cart(load_cart(user_id))

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _get_or_create(user_id: str) -> Cart:
        return load_cart(user_id) or Cart.create(user_id)

    @staticmethod
    def _require_cart(user_id: str) -> Cart:
        cart = load_cart(user_id)
        if cart is None:
            raise ObjectNotFoundError({"_entity": "Cart not found"})
        return cart
