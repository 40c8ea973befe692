"""
Payment webhook handling.

Events are verified by the gateway before anything else happens; a bad
signature never reaches the booking engine.
"""

from typing import TYPE_CHECKING, Any, Dict, Union

from tourguide.core.exceptions import PaymentError
from tourguide.core.logging import get_logger
from tourguide.services.base.service_result import ErrorCode, ServiceResult
from tourguide.services.payment.gateway import PaymentGateway, WebhookEvent

if TYPE_CHECKING:
    from tourguide.services.booking.booking_service import BookingService

logger = get_logger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"
CHARGE_REFUNDED = "charge.refunded"


class PaymentWebhookService:
    """Dispatches verified gateway events to the booking engine."""

    def __init__(self, payment_gateway: PaymentGateway, booking_service: "BookingService"):
        self.payment_gateway = payment_gateway
        self.booking_service = booking_service

    def handle(self, payload: Union[bytes, str], signature: str) -> ServiceResult[Dict[str, Any]]:
        """
        Verify and dispatch one webhook delivery.

        Unknown event types are acknowledged so the gateway stops retrying.
        """
        try:
            event = self.payment_gateway.verify_webhook(payload, signature)
        except PaymentError as e:
            return ServiceResult.payment_failure(e.message, details={"reason": "signature"})

        logger.info(f"Webhook event received: {event.type}", extra={"event_id": event.id})

        if event.type == PAYMENT_SUCCEEDED:
            return self._on_payment_succeeded(event)
        elif event.type == PAYMENT_FAILED:
            logger.warning(
                f"Payment failed for booking {event.booking_id}",
                extra={"event_id": event.id, "booking_id": event.booking_id},
            )
        elif event.type == CHARGE_REFUNDED:
            logger.info(
                f"Charge refunded for booking {event.booking_id}",
                extra={"event_id": event.id, "booking_id": event.booking_id},
            )
        else:
            logger.debug(f"Ignoring webhook event type {event.type}")

        return ServiceResult.success({"received": True, "event_type": event.type})

    def _on_payment_succeeded(self, event: WebhookEvent) -> ServiceResult[Dict[str, Any]]:
        booking_id = event.booking_id
        if not booking_id:
            logger.warning(
                "Payment succeeded without a booking reference",
                extra={"event_id": event.id},
            )
            return ServiceResult.success({"received": True, "event_type": event.type})

        result = self.booking_service.confirm_payment(booking_id, event.data.get("id"))
        if not result:
            # Surfaced as errors so the gateway redelivers
            if result.error_code in (ErrorCode.INTERNAL_ERROR, ErrorCode.PAYMENT_ERROR):
                return result
            logger.warning(
                f"Payment confirmation rejected for booking {booking_id}: {result.message}",
                extra={"event_id": event.id, "booking_id": booking_id},
            )
            return ServiceResult.success({
                "received": True,
                "event_type": event.type,
                "confirmed": False,
                "reason": result.error_code.value if result.error_code else None,
            })

        return ServiceResult.success({
            "received": True,
            "event_type": event.type,
            "confirmed": True,
            "booking_id": booking_id,
        })
