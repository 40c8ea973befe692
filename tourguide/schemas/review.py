"""
Review schemas.
"""

from typing import Optional

from pydantic import Field

from tourguide.core.constants import MAX_RATING, MAX_REVIEW_COMMENT_LENGTH, MIN_RATING
from tourguide.schemas.common.base import BaseCreateSchema, BaseResponseSchema

__all__ = ["ReviewCreate", "ReviewResponse"]


class ReviewCreate(BaseCreateSchema):
    """Review submission for a completed booking."""

    booking_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING, description="Whole stars, 1 to 5")
    comment: Optional[str] = Field(
        default=None,
        max_length=MAX_REVIEW_COMMENT_LENGTH,
    )


class ReviewResponse(BaseResponseSchema):
    booking_id: str
    tourist_id: str
    guide_id: str
    rating: int
    comment: Optional[str] = None
