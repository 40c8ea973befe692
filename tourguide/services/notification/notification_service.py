"""
Notification fan-out service.

Publishes booking, message and location events into per-recipient buffers
and serves them back to polling clients. Delivery is best effort: a failure
to publish is logged and never fails the operation that triggered it.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder

from tourguide.core.clock import Clock, SystemClock, ensure_utc
from tourguide.core.logging import get_logger
from tourguide.models.enums import BookingStatus, NotificationType
from tourguide.services.base.service_result import ServiceResult
from tourguide.services.notification.stores import (
    Notification,
    NotificationStore,
    NotificationStoreError,
)

logger = get_logger(__name__)


class NotificationService:
    """Fan-out over a ``NotificationStore``."""

    def __init__(self, store: NotificationStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or SystemClock()

    def publish(
        self,
        recipient_id: str,
        notification_type: NotificationType,
        payload: Dict[str, Any],
    ) -> Optional[Notification]:
        """
        Append an event to a recipient's buffer.

        Returns:
            The stored notification, or None if the store was unreachable
        """
        notification = Notification(
            type=notification_type,
            payload=jsonable_encoder(payload, custom_encoder={Decimal: str}),
            timestamp=self.clock.now_utc(),
        )
        try:
            self.store.append(recipient_id, notification)
        except NotificationStoreError as e:
            logger.warning(
                f"Dropped {notification_type.value} notification: {e}",
                extra={"recipient_id": recipient_id},
            )
            return None
        return notification

    def publish_booking_update(
        self,
        recipient_id: str,
        booking_id: str,
        status: BookingStatus,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        payload = {"booking_id": booking_id, "status": status.value}
        if data:
            payload.update(data)
        return self.publish(recipient_id, NotificationType.BOOKING, payload)

    def publish_message(self, recipient_id: str, message: Dict[str, Any]) -> Optional[Notification]:
        return self.publish(recipient_id, NotificationType.MESSAGE, message)

    def publish_location(
        self,
        recipient_id: str,
        booking_id: str,
        latitude: float,
        longitude: float,
    ) -> Optional[Notification]:
        return self.publish(
            recipient_id,
            NotificationType.LOCATION,
            {"booking_id": booking_id, "latitude": latitude, "longitude": longitude},
        )

    def poll(self, recipient_id: str, since: Optional[datetime] = None) -> ServiceResult[Dict[str, Any]]:
        """
        Buffered events strictly newer than ``since`` (all of them when omitted).

        The result also carries the cursor clients send back as ``since`` on
        their next poll: the newest returned event's timestamp, else the
        incoming ``since``, else the server time. Events are stamped before
        they are appended, so a cursor taken from the clock could step past
        an event that was stamped but not yet stored.
        """
        server_time = self.clock.now_utc()
        try:
            notifications = self.store.list(recipient_id)
        except NotificationStoreError as e:
            logger.error(f"Notification poll failed: {e}", extra={"recipient_id": recipient_id})
            return ServiceResult.from_exception(e, "poll notifications")

        if since is not None:
            since = ensure_utc(since)
            notifications = [n for n in notifications if n.timestamp > since]

        if notifications:
            cursor = max(n.timestamp for n in notifications)
        else:
            cursor = since or server_time

        return ServiceResult.success({
            "updates": notifications,
            "timestamp": cursor,
        })

    def clear(self, recipient_id: str) -> ServiceResult[bool]:
        try:
            self.store.clear(recipient_id)
        except NotificationStoreError as e:
            logger.error(f"Notification clear failed: {e}", extra={"recipient_id": recipient_id})
            return ServiceResult.from_exception(e, "clear notifications")
        return ServiceResult.success(True)
