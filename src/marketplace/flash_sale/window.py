"""Flash sale window evaluation.

Whether a sale is running is never stored: it is derived from the sale's
flag and dates against the ``now`` handed in by the caller. Every function
here is pure, so two calls with the same sale and the same ``now`` always
agree.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

_SECOND = timedelta(seconds=1)


class SaleStatus(Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"
    INACTIVE = "Inactive"
    SCHEDULED = "Scheduled"


@dataclass(frozen=True)
class TimeRemaining:
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    expired: bool = False


EXPIRED = TimeRemaining(expired=True)


@dataclass(frozen=True)
class SaleWindow:
    """The derived, read-time view of a sale's schedule."""

    time_remaining: TimeRemaining
    is_currently_active: bool
    status: SaleStatus


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def time_remaining(sale, now: datetime) -> TimeRemaining:
    end = as_utc(sale.end_date)
    now = as_utc(now)
    if end <= now:
        return EXPIRED

    total_seconds = (end - now) // _SECOND
    days, rest = divmod(total_seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return TimeRemaining(days=days, hours=hours, minutes=minutes, seconds=seconds)


def is_currently_active(sale, now: datetime) -> bool:
    return bool(sale.is_active) and as_utc(sale.start_date) <= as_utc(now) and not time_remaining(sale, now).expired


def status(sale, now: datetime) -> SaleStatus:
    if is_currently_active(sale, now):
        return SaleStatus.ACTIVE
    if as_utc(now) >= as_utc(sale.end_date):
        return SaleStatus.EXPIRED
    if not sale.is_active:
        return SaleStatus.INACTIVE
    return SaleStatus.SCHEDULED


def evaluate(sale, now: datetime) -> SaleWindow:
    return SaleWindow(
        time_remaining=time_remaining(sale, now),
        is_currently_active=is_currently_active(sale, now),
        status=status(sale, now),
    )
