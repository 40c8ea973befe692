"""
Polling schemas.
"""

from datetime import datetime
from typing import Any, Dict, List

from pydantic import Field

from tourguide.models.enums import NotificationType
from tourguide.schemas.common.base import BaseSchema

__all__ = ["NotificationResponse", "PollResponse"]


class NotificationResponse(BaseSchema):
    type: NotificationType
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime


class PollResponse(BaseSchema):
    updates: List[NotificationResponse] = Field(default_factory=list)
    timestamp: datetime = Field(..., description="Cursor to send back as `since` on the next poll")
