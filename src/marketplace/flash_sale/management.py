"""Flash sale management — public listings, admin CRUD and analytics."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

import structlog
from protean import UnitOfWork
from protean.domain import Domain
from protean.exceptions import ObjectNotFoundError
from pydantic import BaseModel
from sqlalchemy import func, select, update

from marketplace.errors import InvalidStateError
from marketplace.flash_sale import window
from marketplace.flash_sale.events import FlashSaleDeleted
from marketplace.flash_sale.flash_sale import DEFAULT_MAX_QUANTITY_PER_USER, FlashSale
from marketplace.flash_sale.window import SaleStatus, SaleWindow, as_utc
from marketplace.utils.db import session_for, table_for, utcnow, versioned

logger = structlog.get_logger(__name__)

RECENT_WINDOW = timedelta(days=7)
TOP_PERFORMERS = 5


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------
class FlashSaleProductData(BaseModel):
    product_id: str
    name: str
    original_price: Decimal
    sale_price: Decimal
    merchant_id: str = ""
    merchant_name: str = ""
    stock_quantity: int = 0
    max_quantity_per_user: int = DEFAULT_MAX_QUANTITY_PER_USER


class CreateFlashSale(BaseModel):
    title: str
    description: str = ""
    start_date: datetime
    end_date: datetime
    products: list[FlashSaleProductData]


class UpdateFlashSale(CreateFlashSale):
    is_active: bool | None = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class FlashSaleListing:
    sale: FlashSale
    window: SaleWindow


@dataclass(frozen=True)
class FlashSalePage:
    items: list[FlashSaleListing]
    total: int
    page: int
    limit: int


@dataclass(frozen=True)
class TopSale:
    id: str
    title: str
    total_sales: int
    total_views: int


@dataclass(frozen=True)
class FlashSaleAnalytics:
    total_sales: int
    total_views: int
    active_sales: int
    recent_sales: int
    top_performing_sales: list[TopSale] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
class FlashSaleManager:
    def __init__(self, domain: Domain):
        self.domain = domain

    def list_active(self, now: datetime | None = None) -> list[FlashSaleListing]:
        """Sales that are switched on and have not ended, newest first."""
        now = now or utcnow()
        with self.domain.domain_context(), UnitOfWork():
            table = table_for(FlashSale)
            ids = session_for(FlashSale).scalars(
                select(table.c.id).where(table.c.is_active.is_(True)).order_by(table.c.created_at.desc(), table.c.id)
            )
            sales = self._load_all(list(ids))

        return [
            FlashSaleListing(sale, window.evaluate(sale, now))
            for sale in sales
            if as_utc(sale.end_date) > as_utc(now)
        ]

    def get(self, sale_id: str, now: datetime | None = None) -> FlashSaleListing:
        """Fetch one sale and count the view."""
        now = now or utcnow()
        with self.domain.domain_context(), UnitOfWork():
            table = table_for(FlashSale)
            result = session_for(FlashSale).execute(
                update(table)
                .where(table.c.id == sale_id)
                .values(**versioned(table, {"total_views": table.c.total_views + 1}))
            )
            if result.rowcount == 0:
                raise ObjectNotFoundError({"_entity": "Flash sale not found"})
            session_for(FlashSale).expire_all()
            sale = self.domain.repository_for(FlashSale).get(sale_id)

        return FlashSaleListing(sale, window.evaluate(sale, now))

    def list_all(self, page: int = 1, limit: int = 10, now: datetime | None = None) -> FlashSalePage:
        now = now or utcnow()
        page = max(page, 1)
        limit = max(limit, 1)
        with self.domain.domain_context(), UnitOfWork():
            table = table_for(FlashSale)
            session = session_for(FlashSale)
            total = session.scalar(select(func.count()).select_from(table))
            ids = session.scalars(
                select(table.c.id)
                .order_by(table.c.created_at.desc(), table.c.id)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            sales = self._load_all(list(ids))

        items = [FlashSaleListing(sale, window.evaluate(sale, now)) for sale in sales]
        return FlashSalePage(items=items, total=total, page=page, limit=limit)

    def analytics(self, now: datetime | None = None) -> FlashSaleAnalytics:
        now = as_utc(now or utcnow())
        with self.domain.domain_context(), UnitOfWork():
            table = table_for(FlashSale)
            rows = (
                session_for(FlashSale)
                .execute(
                    select(
                        table.c.id,
                        table.c.title,
                        table.c.is_active,
                        table.c.start_date,
                        table.c.end_date,
                        table.c.total_sales,
                        table.c.total_views,
                        table.c.created_at,
                    )
                )
                .all()
            )

        top = sorted(rows, key=lambda row: (row.total_sales or 0, as_utc(row.created_at)), reverse=True)
        return FlashSaleAnalytics(
            total_sales=sum(row.total_sales or 0 for row in rows),
            total_views=sum(row.total_views or 0 for row in rows),
            active_sales=sum(1 for row in rows if window.is_currently_active(row, now)),
            recent_sales=sum(1 for row in rows if as_utc(row.created_at) >= now - RECENT_WINDOW),
            top_performing_sales=[
                TopSale(id=row.id, title=row.title, total_sales=row.total_sales or 0, total_views=row.total_views or 0)
                for row in top[:TOP_PERFORMERS]
            ],
        )

    def create(self, admin_id: str, command: CreateFlashSale, now: datetime | None = None) -> FlashSale:
        with self.domain.domain_context(), UnitOfWork():
            sale = FlashSale.create(
                title=command.title,
                description=command.description,
                start_date=command.start_date,
                end_date=command.end_date,
                products_data=[p.model_dump() for p in command.products],
                created_by=admin_id,
                now=now,
            )
            self.domain.repository_for(FlashSale).add(sale)

        logger.info(
            "Flash sale created",
            sale_id=str(sale.id),
            created_by=admin_id,
            start_date=sale.start_date.isoformat(),
            end_date=sale.end_date.isoformat(),
        )
        return sale

    def update(self, sale_id: str, command: UpdateFlashSale) -> FlashSale:
        with self.domain.domain_context(), UnitOfWork():
            repo = self.domain.repository_for(FlashSale)
            sale = self._load(sale_id)
            sale.update(
                title=command.title,
                description=command.description,
                start_date=command.start_date,
                end_date=command.end_date,
                products_data=[p.model_dump() for p in command.products],
                is_active=command.is_active,
            )
            repo.add(sale)

        logger.info("Flash sale updated", sale_id=sale_id)
        return sale

    def delete(self, sale_id: str, now: datetime | None = None) -> None:
        """Remove a sale that is not running right now."""
        now = now or utcnow()
        with self.domain.domain_context(), UnitOfWork():
            repo = self.domain.repository_for(FlashSale)
            sale = self._load(sale_id)
            if window.is_currently_active(sale, now):
                raise InvalidStateError(SaleStatus.ACTIVE.value, "Cannot delete a flash sale while it is active")

            for product in list(sale.products):
                sale.remove_products(product)
            sale.raise_(FlashSaleDeleted(sale_id=str(sale.id), title=sale.title))
            repo.add(sale)
            repo._dao.delete(sale)

        logger.info("Flash sale deleted", sale_id=sale_id)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _load(self, sale_id: str) -> FlashSale:
        try:
            return self.domain.repository_for(FlashSale).get(sale_id)
        except ObjectNotFoundError:
            raise ObjectNotFoundError({"_entity": "Flash sale not found"}) from None

    def _load_all(self, sale_ids: list[str]) -> list[FlashSale]:
        repo = self.domain.repository_for(FlashSale)
        return [repo.get(sale_id) for sale_id in sale_ids]
