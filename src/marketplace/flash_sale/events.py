"""Domain events for the FlashSale aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="FlashSale")
class FlashSaleCreated:
    __version__ = 1

    sale_id = Identifier(required=True)
    title = String(required=True)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    product_count = Integer(required=True)
    created_by = Identifier(required=True)


@marketplace.event(part_of="FlashSale")
class FlashSaleUpdated:
    __version__ = 1

    sale_id = Identifier(required=True)
    title = String(required=True)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    is_active = Boolean()


@marketplace.event(part_of="FlashSale")
class FlashSaleDeleted:
    __version__ = 1

    sale_id = Identifier(required=True)
    title = String(required=True)
