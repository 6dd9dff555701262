"""Money arithmetic.

Amounts are stored on aggregates as ``Float`` fields. Every calculation goes
through two-place ``Decimal`` values rounded half up, and only the result is
turned back into a float for storage.
"""

from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce ``value`` to a two-place Decimal, rounding half up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def as_amount(value) -> float:
    return float(to_money(value))


def line_total(unit_price, quantity: int) -> Decimal:
    return to_money(to_money(unit_price) * quantity)


def sum_amounts(values) -> Decimal:
    return to_money(sum((to_money(v) for v in values), Decimal("0")))


def discount_percentage(original_price, sale_price) -> int:
    """Whole-number percentage off ``original_price``, rounded half up."""
    original = to_money(original_price)
    off = (original - to_money(sale_price)) / original * 100
    return int(off.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
