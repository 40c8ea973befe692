"""
Polling endpoints for the notification fan-out.

Clients call ``GET /polling/updates`` on an interval, passing back the
``timestamp`` of the previous response as ``since``.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from tourguide.api import deps
from tourguide.api.errors import unwrap_result
from tourguide.core.security import Identity
from tourguide.schemas.notification import NotificationResponse, PollResponse
from tourguide.services.notification import NotificationService

router = APIRouter(prefix="/polling", tags=["Polling"])


@router.get("/updates", response_model=PollResponse)
def poll_updates(
    since: Optional[datetime] = Query(None, description="Only return updates newer than this"),
    identity: Identity = Depends(deps.get_current_identity),
    notifications: NotificationService = Depends(deps.get_notification_service),
):
    data = unwrap_result(notifications.poll(identity.user_id, since))
    return PollResponse(
        updates=[
            NotificationResponse(type=n.type, payload=n.payload, timestamp=n.timestamp)
            for n in data["updates"]
        ],
        timestamp=data["timestamp"],
    )


@router.delete("/updates", status_code=status.HTTP_204_NO_CONTENT)
def clear_updates(
    identity: Identity = Depends(deps.get_current_identity),
    notifications: NotificationService = Depends(deps.get_notification_service),
):
    unwrap_result(notifications.clear(identity.user_id))
