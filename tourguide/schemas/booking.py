"""
Booking request and response schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from tourguide.core.constants import MIN_BOOKING_DURATION_MINUTES, MIN_MEETING_POINT_LENGTH
from tourguide.models.enums import BookingStatus, BookingType
from tourguide.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema
from tourguide.schemas.message import MessageResponse

__all__ = [
    "BookingCreate",
    "BookingResponse",
    "BookingDetail",
    "PaymentIntentResponse",
    "BookingCreated",
    "CancellationResponse",
]


class BookingCreate(BaseCreateSchema):
    """
    Tourist's booking request.

    ``scheduled_date`` is required for SCHEDULED bookings and ignored for
    INSTANT ones.
    """

    guide_id: str = Field(..., min_length=1, description="Guide profile to book")
    tour_id: Optional[str] = Field(default=None, description="Tour offering, if any")
    type: BookingType = Field(..., description="INSTANT or SCHEDULED")
    scheduled_date: Optional[datetime] = Field(default=None)
    duration: int = Field(
        ...,
        ge=MIN_BOOKING_DURATION_MINUTES,
        description="Duration in minutes",
    )
    meeting_point: str = Field(
        ...,
        min_length=MIN_MEETING_POINT_LENGTH,
        max_length=500,
    )
    total_price: Decimal = Field(..., ge=0, description="Price charged to the tourist")


class BookingResponse(BaseResponseSchema):
    tourist_id: str
    guide_id: str
    tour_id: Optional[str] = None
    type: BookingType
    status: BookingStatus
    scheduled_date: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: int
    meeting_point: str
    total_price: Decimal
    commission: Decimal
    guide_earnings: Decimal
    stripe_payment_id: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    updated_at: datetime


class BookingDetail(BookingResponse):
    """Booking with its message thread."""

    messages: List[MessageResponse] = Field(default_factory=list)


class PaymentIntentResponse(BaseSchema):
    intent_id: str
    client_secret: str
    amount: Decimal
    currency: str


class BookingCreated(BaseSchema):
    booking: BookingResponse
    payment_intent: PaymentIntentResponse


class CancellationResponse(BaseSchema):
    booking: BookingResponse
    refund_percentage: Decimal = Field(..., description="Fraction of the price refunded")
    refund_amount: Decimal
