"""
Booking lifecycle, messaging and location endpoints.

Routers are thin: they resolve the caller's identity, call one service
operation and unwrap its result.
"""
from typing import List

from fastapi import APIRouter, Depends, status

from tourguide.api import deps
from tourguide.api.errors import unwrap_result
from tourguide.core.security import Identity
from tourguide.schemas.booking import (
    BookingCreate,
    BookingCreated,
    BookingDetail,
    BookingResponse,
    CancellationResponse,
    PaymentIntentResponse,
)
from tourguide.schemas.location import LocationCreate, LocationResponse
from tourguide.schemas.message import MarkReadResponse, MessageCreate, MessageResponse
from tourguide.services.booking.booking_service import BookingService
from tourguide.services.location import LocationService
from tourguide.services.messaging import MessageService

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingCreated, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    identity: Identity = Depends(deps.get_current_identity),
    service: BookingService = Depends(deps.get_booking_service),
):
    return unwrap_result(service.create_booking(identity.user_id, payload))


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    identity: Identity = Depends(deps.get_current_identity),
    service: BookingService = Depends(deps.get_booking_service),
):
    return unwrap_result(service.list_for_user(identity.user_id, identity.role))


@router.get("/{booking_id}", response_model=BookingDetail)
def get_booking(
    booking_id: str,
    identity: Identity = Depends(deps.get_current_identity),
    service: BookingService = Depends(deps.get_booking_service),
):
    return unwrap_result(service.get_booking(booking_id, identity.user_id, identity.role))


@router.post("/{booking_id}/payment-intent", response_model=PaymentIntentResponse)
def create_payment_intent(
    booking_id: str,
    identity: Identity = Depends(deps.get_current_identity),
    service: BookingService = Depends(deps.get_booking_service),
):
    return unwrap_result(service.create_payment_intent(booking_id, identity.user_id))


@router.put("/{booking_id}/start", response_model=BookingResponse)
def start_tour(
    booking_id: str,
    identity: Identity = Depends(deps.get_current_identity),
    service: BookingService = Depends(deps.get_booking_service),
):
    return unwrap_result(service.start_tour(booking_id, identity.user_id))


@router.put("/{booking_id}/complete", response_model=BookingResponse)
def complete_tour(
    booking_id: str,
    identity: Identity = Depends(deps.get_current_identity),
    service: BookingService = Depends(deps.get_booking_service),
):
    return unwrap_result(service.complete_tour(booking_id, identity.user_id))


@router.put("/{booking_id}/cancel", response_model=CancellationResponse)
def cancel_booking(
    booking_id: str,
    identity: Identity = Depends(deps.get_current_identity),
    service: BookingService = Depends(deps.get_booking_service),
):
    return unwrap_result(service.cancel_booking(booking_id, identity.user_id))


# --- Messaging -------------------------------------------------------------------

@router.get("/{booking_id}/messages", response_model=List[MessageResponse])
def list_messages(
    booking_id: str,
    identity: Identity = Depends(deps.get_current_identity),
    service: MessageService = Depends(deps.get_message_service),
):
    return unwrap_result(service.list_messages(booking_id, identity.user_id))


@router.post(
    "/{booking_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    booking_id: str,
    payload: MessageCreate,
    identity: Identity = Depends(deps.get_current_identity),
    service: MessageService = Depends(deps.get_message_service),
):
    return unwrap_result(service.send_message(booking_id, identity.user_id, payload.content))


@router.put("/{booking_id}/messages/read", response_model=MarkReadResponse)
def mark_messages_read(
    booking_id: str,
    identity: Identity = Depends(deps.get_current_identity),
    service: MessageService = Depends(deps.get_message_service),
):
    return unwrap_result(service.mark_read(booking_id, identity.user_id))


# --- Location --------------------------------------------------------------------

@router.post(
    "/{booking_id}/location",
    response_model=LocationResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_location(
    booking_id: str,
    payload: LocationCreate,
    identity: Identity = Depends(deps.get_current_identity),
    service: LocationService = Depends(deps.get_location_service),
):
    return unwrap_result(
        service.record_location(booking_id, identity.user_id, payload.latitude, payload.longitude)
    )


@router.get("/{booking_id}/location", response_model=List[LocationResponse])
def location_history(
    booking_id: str,
    identity: Identity = Depends(deps.get_current_identity),
    service: LocationService = Depends(deps.get_location_service),
):
    return unwrap_result(service.history(booking_id, identity.user_id))
