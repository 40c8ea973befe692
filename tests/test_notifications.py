"""
Tests — Notification fan-out
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from tourguide.core.clock import FixedClock
from tourguide.models.enums import BookingStatus, NotificationType
from tourguide.services.base import ErrorCode
from tourguide.services.notification import (
    MemoryNotificationStore,
    Notification,
    NotificationService,
    RedisNotificationStore,
    build_notification_store,
)

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeRedis:
    """Just enough of the redis-py list API for the store."""

    def __init__(self, fail: bool = False):
        self.lists = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise RedisConnectionError("connection refused")

    def pipeline(self):
        return FakePipeline(self)

    def rpush(self, key, value):
        self._check()
        self.lists.setdefault(key, []).append(value)

    def ltrim(self, key, start, end):
        self._check()
        items = self.lists.get(key, [])
        stop = len(items) + end + 1 if end < 0 else end + 1
        begin = max(len(items) + start, 0) if start < 0 else start
        self.lists[key] = items[begin:stop]

    def lrange(self, key, start, end):
        self._check()
        return list(self.lists.get(key, []))

    def delete(self, key):
        self._check()
        self.lists.pop(key, None)


class FakePipeline:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def rpush(self, key, value):
        self.ops.append(("rpush", key, value))

    def ltrim(self, key, start, end):
        self.ops.append(("ltrim", key, start, end))

    def execute(self):
        for name, *args in self.ops:
            getattr(self.client, name)(*args)


@pytest.fixture
def fixed_clock():
    return FixedClock(T0)


class TestMemoryStore:
    def test_buffer_is_bounded(self, fixed_clock):
        service = NotificationService(MemoryNotificationStore(max_size=3), fixed_clock)
        for i in range(5):
            service.publish_booking_update("user-1", f"booking-{i}", BookingStatus.PENDING)

        updates = service.poll("user-1").data["updates"]

        assert [n.payload["booking_id"] for n in updates] == ["booking-2", "booking-3", "booking-4"]

    def test_recipients_are_isolated(self, fixed_clock):
        service = NotificationService(MemoryNotificationStore(), fixed_clock)
        service.publish_booking_update("user-1", "b1", BookingStatus.CONFIRMED)

        assert service.poll("user-2").data["updates"] == []

    def test_since_is_exclusive(self, fixed_clock):
        service = NotificationService(MemoryNotificationStore(), fixed_clock)
        service.publish_booking_update("user-1", "old", BookingStatus.PENDING)
        cursor = service.poll("user-1").data["timestamp"]

        fixed_clock.advance(5)
        service.publish_booking_update("user-1", "new", BookingStatus.CONFIRMED)

        updates = service.poll("user-1", since=cursor).data["updates"]
        assert [n.payload["booking_id"] for n in updates] == ["new"]

    def test_naive_since_is_utc(self, fixed_clock):
        service = NotificationService(MemoryNotificationStore(), fixed_clock)
        fixed_clock.advance(1)
        service.publish_location("user-1", "b1", 1.0, 2.0)

        updates = service.poll("user-1", since=T0.replace(tzinfo=None)).data["updates"]
        assert len(updates) == 1
        assert updates[0].type == NotificationType.LOCATION

    def test_empty_poll_returns_server_time(self, fixed_clock):
        service = NotificationService(MemoryNotificationStore(), fixed_clock)
        assert service.poll("user-1").data["timestamp"] == T0

    def test_empty_poll_keeps_incoming_cursor(self, fixed_clock):
        service = NotificationService(MemoryNotificationStore(), fixed_clock)
        fixed_clock.advance(30)
        assert service.poll("user-1", since=T0).data["timestamp"] == T0

    def test_cursor_does_not_skip_late_stored_event(self, fixed_clock):
        store = MemoryNotificationStore()
        service = NotificationService(store, fixed_clock)
        service.publish_booking_update("user-1", "first", BookingStatus.PENDING)

        # Stamped at T0+5 but only stored after the next poll has read the buffer
        fixed_clock.advance(5)
        late = Notification(
            type=NotificationType.BOOKING,
            payload={"booking_id": "late"},
            timestamp=fixed_clock.now_utc(),
        )
        fixed_clock.advance(5)
        cursor = service.poll("user-1").data["timestamp"]
        store.append("user-1", late)

        assert cursor == T0
        updates = service.poll("user-1", since=cursor).data["updates"]
        assert [n.payload["booking_id"] for n in updates] == ["late"]

    def test_clear(self, fixed_clock):
        service = NotificationService(MemoryNotificationStore(), fixed_clock)
        service.publish_message("user-1", {"content": "hi"})

        assert service.clear("user-1").is_success
        assert service.poll("user-1").data["updates"] == []

    def test_decimals_are_serialised(self, fixed_clock):
        service = NotificationService(MemoryNotificationStore(), fixed_clock)
        notification = service.publish_booking_update(
            "user-1", "b1", BookingStatus.CANCELLED, {"refund_amount": Decimal("25.00")}
        )
        assert notification.payload["refund_amount"] == "25.00"

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            MemoryNotificationStore(max_size=0)


class TestRedisStore:
    def test_round_trip_and_cap(self, fixed_clock):
        client = FakeRedis()
        service = NotificationService(RedisNotificationStore(client, max_size=2), fixed_clock)

        for i in range(3):
            fixed_clock.advance(1)
            service.publish_booking_update("user-1", f"b{i}", BookingStatus.PENDING)

        assert len(client.lists["notifications:user-1"]) == 2
        updates = service.poll("user-1").data["updates"]
        assert [n.payload["booking_id"] for n in updates] == ["b1", "b2"]
        assert updates[0].type == NotificationType.BOOKING
        assert updates[0].timestamp.tzinfo is not None

    def test_malformed_entries_skipped(self, fixed_clock):
        client = FakeRedis()
        client.lists["notifications:user-1"] = ["not json"]
        service = NotificationService(RedisNotificationStore(client), fixed_clock)

        assert service.poll("user-1").data["updates"] == []

    def test_publish_failure_is_swallowed(self, fixed_clock):
        service = NotificationService(RedisNotificationStore(FakeRedis(fail=True)), fixed_clock)

        assert service.publish_booking_update("user-1", "b1", BookingStatus.PENDING) is None

    def test_poll_failure_is_internal_error(self, fixed_clock):
        service = NotificationService(RedisNotificationStore(FakeRedis(fail=True)), fixed_clock)

        assert service.poll("user-1").error_code == ErrorCode.INTERNAL_ERROR
        assert service.clear("user-1").error_code == ErrorCode.INTERNAL_ERROR


class TestStoreFactory:
    def test_memory(self):
        assert isinstance(build_notification_store("memory", 10), MemoryNotificationStore)

    def test_redis(self):
        store = build_notification_store("redis", 10, "redis://localhost:6379/0")
        assert isinstance(store, RedisNotificationStore)
        assert store.max_size == 10

    def test_redis_requires_url(self):
        with pytest.raises(ValueError):
            build_notification_store("redis", 10)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_notification_store("kafka", 10)
