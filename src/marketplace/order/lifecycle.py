"""Order lifecycle — status progression, stock-restoring cancellation and order reads."""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

import structlog
from protean import UnitOfWork
from protean.domain import Domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from sqlalchemy import func, select

from marketplace.order.order import Order, OrderItem, OrderStatus, OrderStatusEntry
from marketplace.product.ledger import ProductLedger
from marketplace.shared.money import sum_amounts
from marketplace.utils.db import session_for, table_for

logger = structlog.get_logger(__name__)


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": ["Invalid status"]}) from None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class TrackingInfo:
    """Public progress of an order, looked up by its order number."""

    order_number: str
    status: str
    created_at: datetime
    tracking_number: str | None
    estimated_delivery: datetime | None
    items: list[OrderItem]
    timeline: list[OrderStatusEntry]  # Newest first


@dataclass(frozen=True)
class MerchantOrder:
    """An order as one merchant sees it: only that merchant's lines."""

    order: Order
    items: list[OrderItem]

    @property
    def merchant_subtotal(self) -> Decimal:
        return sum_amounts(item.subtotal for item in self.items)


@dataclass(frozen=True)
class MerchantOrderPage:
    items: list[MerchantOrder] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
class OrderLifecycleManager:
    def __init__(self, domain: Domain):
        self.domain = domain
        self.ledger = ProductLedger()

    def list_orders(self, user_id: str) -> list[Order]:
        with self.domain.domain_context(), UnitOfWork():
            table = table_for(Order)
            ids = session_for(Order).scalars(
                select(table.c.id)
                .where(table.c.user_id == str(user_id))
                .order_by(table.c.created_at.desc(), table.c.id)
            )
            return self._load_all(list(ids))

    def get_order(self, user_id: str, order_id: str) -> Order:
        with self.domain.domain_context():
            return self._load_owned(user_id, order_id)

    def track(self, order_number: str) -> TrackingInfo:
        with self.domain.domain_context():
            orders = (
                self.domain.repository_for(Order)._dao.query.filter(order_number=order_number).all().items
            )
            if not orders:
                raise ObjectNotFoundError({"_entity": "Order not found"})

            order = orders[0]
            return TrackingInfo(
                order_number=order.order_number,
                status=order.status,
                created_at=order.created_at,
                tracking_number=order.tracking_number,
                estimated_delivery=order.estimated_delivery,
                items=order.lines,
                timeline=list(reversed(order.timeline)),
            )

    def list_merchant_orders(
        self, merchant_id: str, status: str | None = None, page: int = 1, limit: int = 10
    ) -> MerchantOrderPage:
        """Orders with at least one line from ``merchant_id``, newest first."""
        page = max(page, 1)
        limit = max(limit, 1)

        with self.domain.domain_context(), UnitOfWork():
            table = table_for(Order)
            conditions = [table.c.merchant_ids.contains(json.dumps(str(merchant_id)), autoescape=True)]
            if status:
                conditions.append(table.c.status == parse_status(status).value)

            session = session_for(Order)
            total = session.scalar(select(func.count()).select_from(table).where(*conditions))
            ids = session.scalars(
                select(table.c.id)
                .where(*conditions)
                .order_by(table.c.created_at.desc(), table.c.id)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            orders = self._load_all(list(ids))

        return MerchantOrderPage(
            items=[MerchantOrder(order=order, items=order.lines_for_merchant(merchant_id)) for order in orders],
            total=total,
            page=page,
            limit=limit,
        )

    def update_status(
        self,
        user_id: str,
        order_id: str,
        new_status,
        note: str | None = None,
        tracking_number: str | None = None,
        estimated_delivery: datetime | None = None,
    ) -> Order:
        target = parse_status(new_status)
        if target == OrderStatus.CANCELLED:
            return self.cancel(user_id, order_id, note or "")

        with self.domain.domain_context(), UnitOfWork():
            order = self._load_owned(user_id, order_id)
            previous = order.status
            order.advance_to(
                target,
                note=note,
                tracking_number=tracking_number,
                estimated_delivery=estimated_delivery,
                changed_by=user_id,
            )
            self.domain.repository_for(Order).add(order)

        logger.info("Order status changed", order_id=order_id, previous_status=previous, new_status=order.status)
        return order

    def cancel(self, user_id: str, order_id: str, reason: str = "") -> Order:
        """Cancel a pending or confirmed order and return every line's stock.

        Status change and releases share one unit of work: if any release
        fails the order keeps its previous status.
        """
        with self.domain.domain_context(), UnitOfWork():
            order = self._load_owned(user_id, order_id)
            order.cancel(reason, changed_by=user_id)

            for item in order.lines:
                self.ledger.release(item.product_id, item.quantity)
            self.domain.repository_for(Order).add(order)

        logger.info(
            "Order cancelled",
            order_id=order_id,
            user_id=user_id,
            released_lines=len(order.items),
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _load_all(self, order_ids: list[str]) -> list[Order]:
        repo = self.domain.repository_for(Order)
        return [repo.get(order_id) for order_id in order_ids]

    def _load_owned(self, user_id: str, order_id: str) -> Order:
        try:
            order = self.domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            order = None
        # Someone else's order is reported exactly like a missing one
        if order is None or order.user_id != str(user_id):
            raise ObjectNotFoundError({"_entity": "Order not found"})
        return order
