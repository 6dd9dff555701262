"""Tests for flash sale window evaluation."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest

from marketplace.flash_sale.window import (
    EXPIRED,
    SaleStatus,
    TimeRemaining,
    evaluate,
    is_currently_active,
    status,
    time_remaining,
)

NOW = datetime(2026, 3, 14, 12, 0, 0, tzinfo=UTC)


@dataclass
class _Sale:
    start_date: datetime
    end_date: datetime
    is_active: bool = True


class TestTimeRemaining:
    def test_breaks_down_into_units(self):
        sale = _Sale(NOW - timedelta(hours=1), NOW + timedelta(days=2, hours=3, minutes=4, seconds=5))
        assert time_remaining(sale, NOW) == TimeRemaining(days=2, hours=3, minutes=4, seconds=5)

    def test_floors_partial_seconds(self):
        sale = _Sale(NOW, NOW + timedelta(seconds=59, milliseconds=999))
        assert time_remaining(sale, NOW) == TimeRemaining(seconds=59)

    def test_hours_are_remainders_within_a_day(self):
        sale = _Sale(NOW, NOW + timedelta(hours=49))
        remaining = time_remaining(sale, NOW)
        assert remaining.days == 2
        assert remaining.hours == 1

    def test_expired_at_end_instant(self):
        sale = _Sale(NOW - timedelta(days=1), NOW)
        assert time_remaining(sale, NOW) == EXPIRED
        assert EXPIRED.expired is True

    def test_expired_after_end(self):
        sale = _Sale(NOW - timedelta(days=2), NOW - timedelta(days=1))
        assert time_remaining(sale, NOW).expired

    def test_naive_datetimes_are_utc(self):
        sale = _Sale(datetime(2026, 3, 14, 11, 0), datetime(2026, 3, 14, 13, 0))
        assert time_remaining(sale, NOW) == TimeRemaining(hours=1)


class TestStatus:
    def test_active(self):
        sale = _Sale(NOW - timedelta(hours=1), NOW + timedelta(hours=1))
        assert is_currently_active(sale, NOW)
        assert status(sale, NOW) == SaleStatus.ACTIVE

    def test_starts_exactly_now(self):
        sale = _Sale(NOW, NOW + timedelta(hours=1))
        assert status(sale, NOW) == SaleStatus.ACTIVE

    def test_scheduled(self):
        sale = _Sale(NOW + timedelta(hours=1), NOW + timedelta(hours=2))
        assert not is_currently_active(sale, NOW)
        assert status(sale, NOW) == SaleStatus.SCHEDULED

    def test_expired(self):
        sale = _Sale(NOW - timedelta(hours=2), NOW - timedelta(hours=1))
        assert status(sale, NOW) == SaleStatus.EXPIRED

    def test_end_instant_is_expired(self):
        sale = _Sale(NOW - timedelta(hours=2), NOW)
        assert not is_currently_active(sale, NOW)
        assert status(sale, NOW) == SaleStatus.EXPIRED

    def test_switched_off_sale_is_inactive(self):
        sale = _Sale(NOW - timedelta(hours=1), NOW + timedelta(hours=1), is_active=False)
        assert not is_currently_active(sale, NOW)
        assert status(sale, NOW) == SaleStatus.INACTIVE

    def test_switched_off_and_ended_is_expired(self):
        sale = _Sale(NOW - timedelta(hours=2), NOW - timedelta(hours=1), is_active=False)
        assert status(sale, NOW) == SaleStatus.EXPIRED


class TestPurity:
    @pytest.mark.parametrize("offset", [timedelta(hours=-3), timedelta(0), timedelta(hours=1), timedelta(days=3)])
    def test_same_inputs_same_answer(self, offset):
        sale = _Sale(NOW - timedelta(hours=1), NOW + timedelta(days=1))
        now = NOW + offset
        assert evaluate(sale, now) == evaluate(sale, now)

    def test_window_combines_all_three(self):
        sale = _Sale(NOW - timedelta(hours=1), NOW + timedelta(minutes=30))
        window = evaluate(sale, NOW)
        assert window.is_currently_active is True
        assert window.status == SaleStatus.ACTIVE
        assert window.time_remaining == TimeRemaining(minutes=30)
