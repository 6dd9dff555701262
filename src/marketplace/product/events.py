"""Domain events for the Product aggregate."""

from protean.fields import Float, Identifier, Integer

from marketplace.domain import marketplace


@marketplace.event(part_of="Product")
class ProductListed:
    """A merchant listed a new product."""

    __version__ = 1

    product_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    price = Float(required=True)
    stock_quantity = Integer(required=True)


@marketplace.event(part_of="Product")
class ProductPriceChanged:
    """The catalogue price of a product changed. Open carts are repriced on read."""

    __version__ = 1

    product_id = Identifier(required=True)
    previous_price = Float(required=True)
    new_price = Float(required=True)
