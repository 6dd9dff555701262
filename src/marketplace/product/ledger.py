"""Product ledger — atomic reserve/release of product stock.

A reservation is one conditional UPDATE evaluated by the storage engine::

    UPDATE product SET sold_quantity = sold_quantity + :qty
     WHERE id = :id AND is_active AND stock_quantity - sold_quantity >= :qty

One affected row means the units are ours; zero means the product is
missing, inactive, or short. Two checkouts racing for the last unit are
serialized by the database, not by application locks.

Statements run on the session of the unit of work in progress, so they
commit or roll back together with everything else the caller writes.
"""

from dataclasses import dataclass
from enum import Enum

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from sqlalchemy import case, select, update

from marketplace.product.product import Product
from marketplace.utils.db import session_for, table_for, utcnow, versioned

logger = structlog.get_logger(__name__)


class ReservationFailure(Enum):
    PRODUCT_NOT_FOUND = "ProductNotFound"
    PRODUCT_INACTIVE = "ProductInactive"
    INSUFFICIENT_STOCK = "InsufficientStock"


@dataclass(frozen=True)
class ReservationResult:
    """Outcome of a reservation attempt."""

    success: bool
    product_id: str
    quantity: int
    failure: ReservationFailure | None = None
    available: int | None = None


class ProductLedger:
    """Owns every write to ``Product.sold_quantity``.

    Must be used while a unit of work is in progress.
    """

    def try_reserve(self, product_id: str, quantity: int) -> ReservationResult:
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        table = table_for(Product)
        session = session_for(Product)
        stmt = (
            update(table)
            .where(
                table.c.id == product_id,
                table.c.is_active.is_(True),
                table.c.stock_quantity - table.c.sold_quantity >= quantity,
            )
            .values(
                **versioned(
                    table,
                    {"sold_quantity": table.c.sold_quantity + quantity, "updated_at": utcnow()},
                )
            )
        )
        result = session.execute(stmt)

        if result.rowcount == 1:
            session.expire_all()
            logger.debug("Stock reserved", product_id=product_id, quantity=quantity)
            return ReservationResult(success=True, product_id=product_id, quantity=quantity)

        failure = self._classify_failure(product_id, quantity)
        logger.info(
            "Stock reservation refused",
            product_id=product_id,
            quantity=quantity,
            reason=failure.failure.value,
            available=failure.available,
        )
        return failure

    def release(self, product_id: str, quantity: int) -> None:
        """Undo a prior successful reservation. ``sold_quantity`` never drops below 0."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        table = table_for(Product)
        session = session_for(Product)
        stmt = (
            update(table)
            .where(table.c.id == product_id)
            .values(
                **versioned(
                    table,
                    {
                        "sold_quantity": case(
                            (table.c.sold_quantity >= quantity, table.c.sold_quantity - quantity),
                            else_=0,
                        ),
                        "updated_at": utcnow(),
                    },
                )
            )
        )
        result = session.execute(stmt)
        if result.rowcount == 0:
            raise ObjectNotFoundError({"_entity": f"Product {product_id} does not exist"})

        session.expire_all()
        logger.debug("Stock released", product_id=product_id, quantity=quantity)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _classify_failure(self, product_id: str, quantity: int) -> ReservationResult:
        table = table_for(Product)
        row = (
            session_for(Product)
            .execute(
                select(table.c.is_active, table.c.stock_quantity, table.c.sold_quantity).where(
                    table.c.id == product_id
                )
            )
            .one_or_none()
        )

        if row is None:
            return ReservationResult(
                success=False,
                product_id=product_id,
                quantity=quantity,
                failure=ReservationFailure.PRODUCT_NOT_FOUND,
            )
        if not row.is_active:
            return ReservationResult(
                success=False,
                product_id=product_id,
                quantity=quantity,
                failure=ReservationFailure.PRODUCT_INACTIVE,
            )
        return ReservationResult(
            success=False,
            product_id=product_id,
            quantity=quantity,
            failure=ReservationFailure.INSUFFICIENT_STOCK,
            available=max(row.stock_quantity - row.sold_quantity, 0),
        )
