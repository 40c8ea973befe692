"""
Notification fan-out.
"""

from tourguide.services.notification.notification_service import NotificationService
from tourguide.services.notification.stores import (
    MemoryNotificationStore,
    Notification,
    NotificationStore,
    NotificationStoreError,
    RedisNotificationStore,
    build_notification_store,
)

__all__ = [
    "NotificationService",
    "MemoryNotificationStore",
    "RedisNotificationStore",
    "Notification",
    "NotificationStore",
    "NotificationStoreError",
    "build_notification_store",
]
