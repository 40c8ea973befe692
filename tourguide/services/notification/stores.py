"""
Per-recipient bounded notification buffers.

Two interchangeable backends share the ``NotificationStore`` contract:
an in-process buffer for single-instance deployments and a capped Redis
list for deployments running more than one process.
"""

import json
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Protocol

from redis import Redis
from redis.exceptions import RedisError

from tourguide.core.clock import ensure_utc
from tourguide.core.logging import get_logger
from tourguide.models.enums import NotificationType

logger = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 50


class NotificationStoreError(Exception):
    """Raised when the backing store cannot be reached."""


@dataclass(frozen=True)
class Notification:
    type: NotificationType
    payload: Dict[str, Any]
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notification":
        return cls(
            type=NotificationType(data["type"]),
            payload=data.get("payload") or {},
            timestamp=ensure_utc(datetime.fromisoformat(data["timestamp"])),
        )


class NotificationStore(Protocol):
    """Storage contract for notification buffers."""

    def append(self, recipient_id: str, notification: Notification) -> None:
        ...

    def list(self, recipient_id: str) -> List[Notification]:
        ...

    def clear(self, recipient_id: str) -> None:
        ...


class MemoryNotificationStore:
    """
    Process-local buffers.

    Each recipient gets a ``deque`` capped at ``max_size``; appending to a
    full buffer evicts the oldest entry. Contents are lost on restart.
    """

    def __init__(self, max_size: int = DEFAULT_QUEUE_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._queues: Dict[str, Deque[Notification]] = {}
        self._lock = threading.Lock()

    def append(self, recipient_id: str, notification: Notification) -> None:
        with self._lock:
            queue = self._queues.get(recipient_id)
            if queue is None:
                queue = deque(maxlen=self.max_size)
                self._queues[recipient_id] = queue
            queue.append(notification)

    def list(self, recipient_id: str) -> List[Notification]:
        with self._lock:
            return list(self._queues.get(recipient_id, ()))

    def clear(self, recipient_id: str) -> None:
        with self._lock:
            self._queues.pop(recipient_id, None)


class RedisNotificationStore:
    """
    Buffers kept as capped Redis lists, one key per recipient.

    ``RPUSH`` followed by ``LTRIM -N -1`` in one pipeline keeps only the
    newest ``max_size`` entries.
    """

    KEY_PREFIX = "notifications:"

    def __init__(self, client: Redis, max_size: int = DEFAULT_QUEUE_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.client = client
        self.max_size = max_size

    @classmethod
    def from_url(cls, url: str, max_size: int = DEFAULT_QUEUE_SIZE) -> "RedisNotificationStore":
        return cls(Redis.from_url(url, decode_responses=True), max_size=max_size)

    def _key(self, recipient_id: str) -> str:
        return f"{self.KEY_PREFIX}{recipient_id}"

    def append(self, recipient_id: str, notification: Notification) -> None:
        key = self._key(recipient_id)
        try:
            pipe = self.client.pipeline()
            pipe.rpush(key, json.dumps(notification.to_dict()))
            pipe.ltrim(key, -self.max_size, -1)
            pipe.execute()
        except RedisError as e:
            raise NotificationStoreError(f"Redis append failed: {str(e)}") from e

    def list(self, recipient_id: str) -> List[Notification]:
        try:
            raw_items = self.client.lrange(self._key(recipient_id), 0, -1)
        except RedisError as e:
            raise NotificationStoreError(f"Redis read failed: {str(e)}") from e

        notifications = []
        for raw in raw_items:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            try:
                notifications.append(Notification.from_dict(json.loads(raw)))
            except (ValueError, KeyError) as e:
                logger.warning(f"Skipping malformed notification for {recipient_id}: {e}")
        return notifications

    def clear(self, recipient_id: str) -> None:
        try:
            self.client.delete(self._key(recipient_id))
        except RedisError as e:
            raise NotificationStoreError(f"Redis delete failed: {str(e)}") from e


def build_notification_store(backend: str, max_size: int, redis_url: Optional[str] = None) -> NotificationStore:
    """Construct the store selected by configuration."""
    if backend == "memory":
        return MemoryNotificationStore(max_size=max_size)
    elif backend == "redis":
        if not redis_url:
            raise ValueError("REDIS_URL is required for the redis notification backend")
        return RedisNotificationStore.from_url(redis_url, max_size=max_size)
    else:
        raise ValueError(f"Unknown notification backend: {backend}")
