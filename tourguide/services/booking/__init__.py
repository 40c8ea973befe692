"""
Booking engine: money policy and the booking state machine.

Import ``BookingService`` from ``tourguide.services.booking.booking_service``.
"""

from tourguide.services.booking.policy import (
    CommissionSplit,
    refund_amount,
    refund_tier,
    split_commission,
    to_money,
)

__all__ = [
    "CommissionSplit",
    "refund_amount",
    "refund_tier",
    "split_commission",
    "to_money",
]
