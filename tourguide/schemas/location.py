"""
Location tracking schemas.
"""

from pydantic import Field

from tourguide.schemas.common.base import BaseCreateSchema, BaseResponseSchema

__all__ = ["LocationCreate", "LocationResponse"]


class LocationCreate(BaseCreateSchema):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class LocationResponse(BaseResponseSchema):
    booking_id: str
    latitude: float
    longitude: float
