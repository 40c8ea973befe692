"""
Message schemas.
"""

from pydantic import Field

from tourguide.core.constants import MAX_MESSAGE_LENGTH
from tourguide.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema

__all__ = ["MessageCreate", "MessageResponse", "MarkReadResponse"]


class MessageCreate(BaseCreateSchema):
    content: str = Field(
        ...,
        min_length=1,
        max_length=MAX_MESSAGE_LENGTH,
        description="Message body",
    )


class MessageResponse(BaseResponseSchema):
    booking_id: str
    sender_id: str
    content: str
    is_read: bool


class MarkReadResponse(BaseSchema):
    updated: int = Field(..., ge=0, description="Messages flipped to read")
