from datetime import datetime, timedelta, timezone
from decimal import Decimal

from hanmo.utils.vip import (
    add_months,
    calculate_discount,
    calculate_remaining_days,
    daily_price,
    extend_expiry,
    format_duration,
    is_expired,
    is_expiring_soon,
)

NOW = datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc)


def test_add_months_clamps_day() -> None:
    assert add_months(NOW, 1) == datetime(2024, 2, 29, 12, 0, tzinfo=timezone.utc)
    assert add_months(datetime(2023, 1, 31), 1) == datetime(2023, 2, 28)
    assert add_months(NOW, 11) == datetime(2024, 12, 31, 12, 0, tzinfo=timezone.utc)
    assert add_months(NOW, 12) == datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc)


def test_extend_from_future_expiry() -> None:
    current = NOW + timedelta(days=10)
    assert extend_expiry(current, days=5, now=NOW) == current + timedelta(days=5)


def test_extend_from_now_when_expired() -> None:
    lapsed = NOW - timedelta(days=10)
    assert extend_expiry(lapsed, months=1, now=NOW) == datetime(
        2024, 2, 29, 12, 0, tzinfo=timezone.utc
    )
    assert extend_expiry(None, days=7, now=NOW) == NOW + timedelta(days=7)


def test_remaining_days_rounds_up() -> None:
    assert calculate_remaining_days(NOW + timedelta(hours=1), now=NOW) == 1
    assert calculate_remaining_days(NOW + timedelta(days=3), now=NOW) == 3
    assert calculate_remaining_days(NOW - timedelta(days=3), now=NOW) == 0
    assert calculate_remaining_days(None, now=NOW) == 0


def test_expiry_flags() -> None:
    assert is_expired(None, now=NOW)
    assert is_expired(NOW, now=NOW)
    assert not is_expired(NOW + timedelta(seconds=1), now=NOW)
    assert is_expiring_soon(NOW + timedelta(days=30), now=NOW)
    assert not is_expiring_soon(NOW + timedelta(days=31), now=NOW)
    assert not is_expiring_soon(NOW - timedelta(days=1), now=NOW)


def test_discount() -> None:
    assert calculate_discount(Decimal("19.90"), Decimal("29.90")) == 33
    assert calculate_discount(Decimal("30"), Decimal("30")) == 0
    assert calculate_discount(Decimal("30"), None) == 0


def test_daily_price() -> None:
    assert daily_price(Decimal("30.00"), 1) == Decimal("1.00")
    assert daily_price(Decimal("99.00"), 12) == Decimal("0.28")


def test_format_duration() -> None:
    assert format_duration(1) == "1 month"
    assert format_duration(3) == "3 months"
    assert format_duration(12) == "1 year"
    assert format_duration(24) == "2 years"
    assert format_duration(18) == "18 months"


def test_naive_values_are_read_as_utc() -> None:
    naive_expiry = datetime(2024, 2, 10, 12, 0)
    assert calculate_remaining_days(naive_expiry, now=NOW) == 10
    assert not is_expired(naive_expiry, now=NOW)
    assert extend_expiry(naive_expiry, days=1, now=NOW) == datetime(
        2024, 2, 11, 12, 0, tzinfo=timezone.utc
    )
