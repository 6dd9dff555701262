"""FlashSale aggregate — a time-boxed set of discounted product prices.

Only the raw schedule (``start_date``, ``end_date``, ``is_active``) is
stored. Whether a sale is running right now is worked out on every read by
``marketplace.flash_sale.window``.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.flash_sale.events import FlashSaleCreated, FlashSaleUpdated
from marketplace.flash_sale.window import as_utc
from marketplace.shared.money import as_amount, discount_percentage, to_money

DEFAULT_MAX_QUANTITY_PER_USER = 5


@marketplace.entity(part_of="FlashSale")
class FlashSaleProduct:
    position = Integer(default=0)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    merchant_id = String(max_length=36, default="")
    merchant_name = String(max_length=255, default="")
    original_price = Float(required=True)
    sale_price = Float(required=True)
    discount_percentage = Integer()
    stock_quantity = Integer(default=0, min_value=0)
    sold_quantity = Integer(default=0, min_value=0)
    max_quantity_per_user = Integer(default=DEFAULT_MAX_QUANTITY_PER_USER, min_value=1)


@marketplace.aggregate
class FlashSale:
    title = String(required=True, max_length=255)
    description = Text(default="")
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    is_active = Boolean(default=True)
    total_views = Integer(default=0)
    total_sales = Integer(default=0)
    created_by = Identifier(required=True)
    products = HasMany(FlashSaleProduct)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, title, start_date, end_date, products_data, created_by, description="", now=None):
        """Schedule a new sale. It must start no earlier than ``now`` and end after it."""
        now = as_utc(now or datetime.now(UTC))
        start_date, end_date = as_utc(start_date), as_utc(end_date)

        if not title:
            raise ValidationError({"title": ["Title is required"]})
        cls._check_dates(start_date, end_date)
        if start_date < now:
            raise ValidationError({"start_date": ["Start date cannot be in the past"]})
        if end_date <= now:
            raise ValidationError({"end_date": ["End date must be in the future"]})

        sale = cls(
            title=title,
            description=description or "",
            start_date=start_date,
            end_date=end_date,
            is_active=True,
            total_views=0,
            total_sales=0,
            created_by=str(created_by),
            products=cls._build_products(products_data),
            created_at=now,
            updated_at=now,
        )
        sale.raise_(
            FlashSaleCreated(
                sale_id=str(sale.id),
                title=sale.title,
                start_date=start_date,
                end_date=end_date,
                product_count=len(sale.products),
                created_by=sale.created_by,
            )
        )
        return sale

    @property
    def lines(self) -> list[FlashSaleProduct]:
        return sorted(self.products, key=lambda product: product.position or 0)

    def update(self, title, start_date, end_date, products_data, description=None, is_active=None):
        """Reschedule and replace the product list. The start may already lie in the past."""
        start_date, end_date = as_utc(start_date), as_utc(end_date)
        if not title:
            raise ValidationError({"title": ["Title is required"]})
        self._check_dates(start_date, end_date)
        products = self._build_products(products_data)

        self.title = title
        if description is not None:
            self.description = description
        self.start_date = start_date
        self.end_date = end_date
        if is_active is not None:
            self.is_active = is_active
        for product in list(self.products):
            self.remove_products(product)
        self.add_products(products)
        self.updated_at = datetime.now(UTC)
        self.raise_(
            FlashSaleUpdated(
                sale_id=str(self.id),
                title=self.title,
                start_date=start_date,
                end_date=end_date,
                is_active=self.is_active,
            )
        )

    # -------------------------------------------------------------------
    # Validation helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _check_dates(start_date, end_date):
        if start_date >= end_date:
            raise ValidationError({"end_date": ["End date must be after start date"]})

    @staticmethod
    def _build_products(products_data):
        if not products_data:
            raise ValidationError({"products": ["At least one product is required"]})

        products = []
        for index, data in enumerate(products_data):
            original = to_money(data["original_price"])
            sale_price = to_money(data["sale_price"])
            if sale_price <= 0:
                raise ValidationError({"products": [f"Sale price for {data['name']} must be positive"]})
            if sale_price >= original:
                raise ValidationError(
                    {"products": [f"Sale price for {data['name']} must be lower than the original price"]}
                )

            products.append(
                FlashSaleProduct(
                    position=index,
                    product_id=str(data["product_id"]),
                    name=data["name"],
                    merchant_id=str(data.get("merchant_id") or ""),
                    merchant_name=data.get("merchant_name") or "",
                    original_price=as_amount(original),
                    sale_price=as_amount(sale_price),
                    discount_percentage=discount_percentage(original, sale_price),
                    stock_quantity=data.get("stock_quantity", 0),
                    sold_quantity=0,
                    max_quantity_per_user=data.get("max_quantity_per_user", DEFAULT_MAX_QUANTITY_PER_USER),
                )
            )
        return products
