"""
Shared fixtures: an in-memory database with a fresh schema per test, a
fake payment gateway, a pinned clock and a small seeded marketplace.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import pytest

from tourguide.core.clock import FixedClock
from tourguide.core.exceptions import PaymentGatewayError, WebhookVerificationError
from tourguide.db.init_db import drop_db, init_db
from tourguide.db.session import Database
from tourguide.models import Guide, Tour, Tourist, User
from tourguide.models.enums import BookingStatus, BookingType, UserRole
from tourguide.schemas.booking import BookingCreate
from tourguide.services.booking.booking_service import BookingService
from tourguide.services.location import LocationService
from tourguide.services.messaging import MessageService
from tourguide.services.notification import MemoryNotificationStore, NotificationService
from tourguide.services.payment.gateway import PaymentIntent, RefundRecord, WebhookEvent
from tourguide.services.review import ReviewService

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
VALID_SIGNATURE = "t=1,v1=valid"


class FakePaymentGateway:
    """In-process stand-in for the payment provider."""

    def __init__(self):
        self.intents: List[Dict[str, Any]] = []
        self.refund_calls: List[Dict[str, Any]] = []
        self.refunds: List[RefundRecord] = []
        self.fail_intents = False
        self.fail_refunds = False

    def create_intent(self, booking_id, amount, currency, idempotency_key=None) -> PaymentIntent:
        if self.fail_intents:
            raise PaymentGatewayError("Card network unavailable", gateway_name="fake")
        self.intents.append({
            "booking_id": booking_id,
            "amount": amount,
            "currency": currency,
            "idempotency_key": idempotency_key,
        })
        return PaymentIntent(
            intent_id=f"pi_{booking_id}",
            client_secret=f"pi_{booking_id}_secret",
            amount=amount,
            currency=currency,
        )

    def refund(self, intent_id, amount=None, idempotency_key=None) -> RefundRecord:
        self.refund_calls.append({
            "intent_id": intent_id,
            "amount": amount,
            "idempotency_key": idempotency_key,
        })
        if self.fail_refunds:
            raise PaymentGatewayError("Refund declined", gateway_name="fake", payment_id=intent_id)
        record = RefundRecord(
            refund_id=f"re_{len(self.refunds) + 1}",
            intent_id=intent_id,
            amount=amount,
            status="succeeded",
        )
        self.refunds.append(record)
        return record

    def verify_webhook(self, payload: Union[bytes, str], signature: str) -> WebhookEvent:
        if signature != VALID_SIGNATURE:
            raise WebhookVerificationError()
        body = json.loads(payload)
        return WebhookEvent(id=body["id"], type=body["type"], data=body["data"]["object"])


def webhook_payload(event_type: str, booking_id: Optional[str], intent_id: str = "pi_test") -> bytes:
    metadata = {"booking_id": booking_id} if booking_id else {}
    return json.dumps({
        "id": f"evt_{intent_id}",
        "type": event_type,
        "data": {"object": {"id": intent_id, "metadata": metadata}},
    }).encode()


@dataclass
class Marketplace:
    tourist_user: User
    other_tourist_user: User
    guide_user: User
    other_guide_user: User
    admin_user: User
    tourist: Tourist
    other_tourist: Tourist
    guide: Guide
    other_guide: Guide
    tour: Tour


# -----------------------------------------------------------------------------
# Infrastructure
# -----------------------------------------------------------------------------

@pytest.fixture
def database():
    db = Database("sqlite://")
    init_db(db)
    yield db
    drop_db(db)
    db.dispose()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def payment_gateway():
    return FakePaymentGateway()


@pytest.fixture
def notification_store():
    return MemoryNotificationStore(max_size=50)


@pytest.fixture
def notifications(notification_store, clock):
    return NotificationService(notification_store, clock)


# -----------------------------------------------------------------------------
# Seed data
# -----------------------------------------------------------------------------

def _user(session, email: str, name: str, role: UserRole) -> User:
    user = User(email=email, name=name, role=role)
    session.add(user)
    session.flush()
    return user


@pytest.fixture
def marketplace(db_session) -> Marketplace:
    tourist_user = _user(db_session, "tess@example.com", "Tess Tourist", UserRole.TOURIST)
    other_tourist_user = _user(db_session, "theo@example.com", "Theo Tourist", UserRole.TOURIST)
    guide_user = _user(db_session, "gail@example.com", "Gail Guide", UserRole.GUIDE)
    other_guide_user = _user(db_session, "gus@example.com", "Gus Guide", UserRole.GUIDE)
    admin_user = _user(db_session, "ada@example.com", "Ada Admin", UserRole.ADMIN)

    tourist = Tourist(user_id=tourist_user.id)
    other_tourist = Tourist(user_id=other_tourist_user.id)
    guide = Guide(user_id=guide_user.id, is_available=True, hourly_rate=Decimal("30.00"))
    other_guide = Guide(user_id=other_guide_user.id, is_available=False, hourly_rate=Decimal("25.00"))
    db_session.add_all([tourist, other_tourist, guide, other_guide])
    db_session.flush()

    tour = Tour(guide_id=guide.id, title="Old Town Walk", duration=120, price=Decimal("60.00"))
    db_session.add(tour)
    db_session.commit()

    return Marketplace(
        tourist_user=tourist_user,
        other_tourist_user=other_tourist_user,
        guide_user=guide_user,
        other_guide_user=other_guide_user,
        admin_user=admin_user,
        tourist=tourist,
        other_tourist=other_tourist,
        guide=guide,
        other_guide=other_guide,
        tour=tour,
    )


# -----------------------------------------------------------------------------
# Services
# -----------------------------------------------------------------------------

@pytest.fixture
def booking_service(db_session, payment_gateway, notifications, clock):
    return BookingService(db_session, payment_gateway, notifications, clock=clock)


@pytest.fixture
def message_service(db_session, notifications, clock):
    return MessageService(db_session, notifications, clock=clock)


@pytest.fixture
def location_service(db_session, notifications, clock):
    return LocationService(db_session, notifications, clock=clock)


@pytest.fixture
def review_service(db_session, clock):
    return ReviewService(db_session, clock=clock)


@pytest.fixture
def make_booking(booking_service, marketplace, clock):
    """
    Create a booking and drive it to ``status`` through the real engine.

    SCHEDULED bookings default to 48 hours after the pinned clock.
    """

    def _make(
        status: BookingStatus = BookingStatus.PENDING,
        booking_type: BookingType = BookingType.SCHEDULED,
        total_price: Decimal = Decimal("100.00"),
        hours_ahead: Optional[float] = 48,
        guide: Optional[Guide] = None,
    ):
        guide = guide or marketplace.guide
        scheduled = None
        if booking_type == BookingType.SCHEDULED:
            scheduled = clock.now_utc() + timedelta(hours=hours_ahead)

        created = booking_service.create_booking(
            marketplace.tourist_user.id,
            BookingCreate(
                guide_id=guide.id,
                type=booking_type,
                scheduled_date=scheduled,
                duration=120,
                meeting_point="Main square fountain",
                total_price=total_price,
            ),
        ).unwrap()
        booking_id = created.booking.id
        guide_user_id = guide.user_id

        if status == BookingStatus.PENDING:
            return booking_id

        booking_service.confirm_payment(booking_id, f"pi_{booking_id}").unwrap()
        if status == BookingStatus.CONFIRMED:
            return booking_id

        if status == BookingStatus.CANCELLED:
            booking_service.cancel_booking(booking_id, marketplace.tourist_user.id).unwrap()
            return booking_id

        booking_service.start_tour(booking_id, guide_user_id).unwrap()
        if status == BookingStatus.STARTED:
            return booking_id

        booking_service.complete_tour(booking_id, guide_user_id).unwrap()
        if status == BookingStatus.COMPLETED:
            return booking_id

        raise ValueError(f"Cannot seed a booking in status {status}")

    return _make
