"""
Booking money and cancellation policy.

Pure functions only: no persistence, no clock. Money is handled as
``Decimal`` and rounded half-up to two places.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from tourguide.core.clock import ensure_utc

DEFAULT_COMMISSION_RATE = Decimal("0.15")

CENT = Decimal("0.01")

# (minimum whole hours before the tour, fraction refunded), checked in order
REFUND_TIERS = (
    (24, Decimal("1.00")),
    (12, Decimal("0.50")),
    (2, Decimal("0.25")),
)
NO_REFUND = Decimal("0.00")

Money = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class CommissionSplit:
    total_price: Decimal
    commission: Decimal
    guide_earnings: Decimal


def to_money(value: Money) -> Decimal:
    """Round a monetary value half-up to two decimal places."""
    if not isinstance(value, Decimal):
        # str() keeps floats like 33.33 from picking up binary noise
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def split_commission(total_price: Money, rate: Money = DEFAULT_COMMISSION_RATE) -> CommissionSplit:
    """
    Split a booking price into platform commission and guide earnings.

    Commission is rounded on its own; earnings are the remainder, so
    ``commission + guide_earnings == total_price`` holds exactly.

    Raises:
        ValueError: If the price is negative or the rate is outside [0, 1]
    """
    total = to_money(total_price)
    rate = Decimal(str(rate)) if not isinstance(rate, Decimal) else rate

    if total < 0:
        raise ValueError("total_price must not be negative")
    if rate < 0 or rate > 1:
        raise ValueError("commission rate must be between 0 and 1")

    commission = to_money(total * rate)
    return CommissionSplit(
        total_price=total,
        commission=commission,
        guide_earnings=to_money(total - commission),
    )


def hours_until(scheduled_date: datetime, now: datetime) -> int:
    """Whole hours from ``now`` to ``scheduled_date``, floored (negative once past)."""
    delta = ensure_utc(scheduled_date) - ensure_utc(now)
    return int(delta.total_seconds() // 3600)


def refund_tier(scheduled_date: Optional[datetime], now: datetime) -> Decimal:
    """
    Fraction of the price refunded when cancelling at ``now``.

    Bookings without a scheduled date get no refund.
    """
    if scheduled_date is None:
        return NO_REFUND

    hours = hours_until(scheduled_date, now)
    for minimum_hours, fraction in REFUND_TIERS:
        if hours >= minimum_hours:
            return fraction
    return NO_REFUND


def refund_amount(total_price: Money, refund_percentage: Money) -> Decimal:
    return to_money(to_money(total_price) * Decimal(str(refund_percentage)))
