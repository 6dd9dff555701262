"""Flash sale sales counters, fed by placed orders.

Units ordered while a sale is running count towards that sale's
``total_sales`` and the matching line's ``sold_quantity``. Both counters are
incremented in SQL so concurrent orders never lose an update.
"""

import json

import structlog
from protean import UnitOfWork
from protean.utils.globals import current_domain
from protean.utils.mixins import handle
from sqlalchemy import select, update

from marketplace.domain import marketplace
from marketplace.flash_sale import window
from marketplace.flash_sale.flash_sale import FlashSale, FlashSaleProduct
from marketplace.order.events import OrderPlaced
from marketplace.order.order import Order
from marketplace.utils.db import session_for, table_for, versioned

logger = structlog.get_logger(__name__)


@marketplace.event_handler(part_of=Order)
class FlashSaleSalesRecorder:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        quantities: dict[str, int] = {}
        for line in json.loads(event.items):
            quantities[line["product_id"]] = quantities.get(line["product_id"], 0) + line["quantity"]

        with UnitOfWork():
            sales_table = table_for(FlashSale)
            products_table = table_for(FlashSaleProduct)
            session = session_for(FlashSale)

            ids = list(session.scalars(select(sales_table.c.id).where(sales_table.c.is_active.is_(True))))
            repo = current_domain.repository_for(FlashSale)
            sales = [repo.get(sale_id) for sale_id in ids]
            running = [sale for sale in sales if window.is_currently_active(sale, event.placed_at)]

            for sale in running:
                matched = [product for product in sale.products if product.product_id in quantities]
                if not matched:
                    continue

                for product in matched:
                    session.execute(
                        update(products_table)
                        .where(products_table.c.id == str(product.id))
                        .values(sold_quantity=products_table.c.sold_quantity + quantities[product.product_id])
                    )
                units = sum(quantities[product.product_id] for product in matched)
                session.execute(
                    update(sales_table)
                    .where(sales_table.c.id == str(sale.id))
                    .values(**versioned(sales_table, {"total_sales": sales_table.c.total_sales + units}))
                )
                logger.info(
                    "Flash sale sales recorded",
                    sale_id=str(sale.id),
                    order_id=str(event.order_id),
                    units=units,
                )
