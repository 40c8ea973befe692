# tourguide/api/deps.py
"""
FastAPI dependencies.

Collaborators (database, payment gateway, notification fan-out, clock) are
built once by the application factory and kept on ``app.state``; the
dependencies below hand request-scoped services wired to them.

Example usage in a router:
    from fastapi import Depends, APIRouter
    from tourguide.api import deps

    router = APIRouter()

    @router.get("/bookings")
    def list_bookings(identity = Depends(deps.get_current_identity)):
        ...
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from tourguide.config.settings import Settings
from tourguide.core.clock import Clock
from tourguide.core.exceptions import AuthenticationError
from tourguide.core.logging import user_id as log_user_id
from tourguide.core.security import Identity, JWTManager
from tourguide.db.session import get_db
from tourguide.services.booking.booking_service import BookingService
from tourguide.services.location import LocationService
from tourguide.services.messaging import MessageService
from tourguide.services.notification import NotificationService
from tourguide.services.payment.gateway import PaymentGateway
from tourguide.services.payment.webhook_service import PaymentWebhookService
from tourguide.services.review import ReviewService

bearer_scheme = HTTPBearer(auto_error=False)


# --- Application state ---------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notification_service


def get_jwt_manager(request: Request) -> JWTManager:
    return request.app.state.jwt_manager


# --- Authentication -----------------------------------------------------------

async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
) -> AsyncGenerator[Identity, None]:
    """
    Identity of the caller from the ``Authorization: Bearer`` header.

    Runs on the request task so the user id bound for log records is seen
    by the endpoint, including sync endpoints run in the threadpool, and is
    unbound once the request finishes.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")

    identity = jwt_manager.verify_token(credentials.credentials)
    token = log_user_id.set(identity.user_id)
    try:
        yield identity
    finally:
        log_user_id.reset(token)


# --- Services ------------------------------------------------------------------

def get_booking_service(
    db: Session = Depends(get_db),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
    notifications: NotificationService = Depends(get_notification_service),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_app_settings),
) -> BookingService:
    return BookingService(
        db,
        payment_gateway,
        notifications,
        clock=clock,
        commission_rate=settings.COMMISSION_RATE,
        currency=settings.CURRENCY,
    )


def get_message_service(
    db: Session = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
    clock: Clock = Depends(get_clock),
) -> MessageService:
    return MessageService(db, notifications, clock=clock)


def get_location_service(
    db: Session = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
    clock: Clock = Depends(get_clock),
) -> LocationService:
    return LocationService(db, notifications, clock=clock)


def get_review_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ReviewService:
    return ReviewService(db, clock=clock)


def get_webhook_service(
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
    booking_service: BookingService = Depends(get_booking_service),
) -> PaymentWebhookService:
    return PaymentWebhookService(payment_gateway, booking_service)


__all__ = [
    "get_db",
    "get_app_settings",
    "get_clock",
    "get_payment_gateway",
    "get_notification_service",
    "get_jwt_manager",
    "get_current_identity",
    "get_booking_service",
    "get_message_service",
    "get_location_service",
    "get_review_service",
    "get_webhook_service",
]
