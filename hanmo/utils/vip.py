"""Date and price helpers for VIP memberships."""

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from dateutil.relativedelta import relativedelta

from hanmo.models.common import as_utc, utcnow

EXPIRING_SOON_DAYS = 30


def add_months(start: datetime, months: int) -> datetime:
    """Shift by calendar months; the day is clamped to the end of the target month."""
    return start + relativedelta(months=months)


def extend_expiry(
    current_expiry: datetime | None,
    *,
    months: int = 0,
    days: int = 0,
    now: datetime | None = None,
) -> datetime:
    """Extend from the current expiry while it is still in the future, else from now."""
    now = as_utc(now or utcnow())
    if current_expiry and as_utc(current_expiry) > now:
        base = as_utc(current_expiry)
    else:
        base = now
    return base + relativedelta(months=months, days=days)


def format_duration(months: int) -> str:
    if months >= 12 and months % 12 == 0:
        years = months // 12
        return f"{years} year" if years == 1 else f"{years} years"
    return f"{months} month" if months == 1 else f"{months} months"


def calculate_remaining_days(
    expire_date: datetime | None, now: datetime | None = None
) -> int:
    if expire_date is None:
        return 0
    seconds = (as_utc(expire_date) - as_utc(now or utcnow())).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def is_expired(expire_date: datetime | None, now: datetime | None = None) -> bool:
    if expire_date is None:
        return True
    return as_utc(expire_date) <= as_utc(now or utcnow())


def is_expiring_soon(
    expire_date: datetime | None, now: datetime | None = None
) -> bool:
    if is_expired(expire_date, now):
        return False
    return calculate_remaining_days(expire_date, now) <= EXPIRING_SOON_DAYS


def calculate_discount(price: Decimal, original_price: Decimal | None) -> int:
    """Percentage saved against the original price, 0 when there is none."""
    if not original_price or original_price <= price:
        return 0
    saved = (original_price - price) / original_price * 100
    return int(saved.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def daily_price(price: Decimal, months: int) -> Decimal:
    days = months * 30
    return (price / days).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
