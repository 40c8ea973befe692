"""
Payment collaborator contract and its Stripe implementation.

The booking engine only ever talks to ``PaymentGateway``; nothing outside
this module imports ``stripe``.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol, Union

import stripe

from tourguide.core.exceptions import PaymentGatewayError, WebhookVerificationError
from tourguide.core.logging import get_logger
from tourguide.services.booking.policy import to_money

logger = get_logger(__name__)

METADATA_BOOKING_ID = "booking_id"


@dataclass(frozen=True)
class PaymentIntent:
    intent_id: str
    client_secret: str
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class RefundRecord:
    refund_id: str
    intent_id: str
    amount: Decimal
    status: str


@dataclass(frozen=True)
class WebhookEvent:
    """A verified gateway event."""

    id: str
    type: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def booking_id(self) -> Optional[str]:
        metadata = self.data.get("metadata") or {}
        return metadata.get(METADATA_BOOKING_ID)


class PaymentGateway(Protocol):
    """Operations the booking engine needs from a payment provider."""

    def create_intent(
        self,
        booking_id: str,
        amount: Decimal,
        currency: str,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        ...

    def refund(
        self,
        intent_id: str,
        amount: Optional[Decimal] = None,
        idempotency_key: Optional[str] = None,
    ) -> RefundRecord:
        ...

    def verify_webhook(self, payload: Union[bytes, str], signature: str) -> WebhookEvent:
        """Raises ``WebhookVerificationError`` on a bad signature."""
        ...


def to_minor_units(amount: Decimal) -> int:
    """Pounds to pence."""
    return int(to_money(amount) * 100)


def from_minor_units(amount: int) -> Decimal:
    return to_money(Decimal(amount) / 100)


class StripePaymentGateway:
    """``PaymentGateway`` backed by the Stripe API."""

    gateway_name = "stripe"

    def __init__(self, api_key: Optional[str], webhook_secret: Optional[str] = None):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def _require_key(self) -> str:
        if not self.api_key:
            raise PaymentGatewayError(
                "Stripe is not configured",
                gateway_name=self.gateway_name,
            )
        return self.api_key

    def create_intent(
        self,
        booking_id: str,
        amount: Decimal,
        currency: str,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        params = {
            "amount": to_minor_units(amount),
            "currency": currency,
            "metadata": {METADATA_BOOKING_ID: booking_id},
            "automatic_payment_methods": {"enabled": True},
        }
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self._require_key(),
                idempotency_key=idempotency_key,
                **params,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent failed: {e.user_message or e}", extra={"booking_id": booking_id})
            raise PaymentGatewayError(
                "Failed to create payment intent",
                gateway_name=self.gateway_name,
                gateway_error_code=getattr(e, "code", None),
                amount=str(amount),
            ) from e

        logger.info(f"Created payment intent {intent.id}", extra={"booking_id": booking_id})
        return PaymentIntent(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            amount=to_money(amount),
            currency=currency,
        )

    def refund(
        self,
        intent_id: str,
        amount: Optional[Decimal] = None,
        idempotency_key: Optional[str] = None,
    ) -> RefundRecord:
        params: Dict[str, Any] = {"payment_intent": intent_id}
        if amount is not None:
            params["amount"] = to_minor_units(amount)

        try:
            refund = stripe.Refund.create(
                api_key=self._require_key(),
                idempotency_key=idempotency_key,
                **params,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe refund failed: {e.user_message or e}", extra={"payment_id": intent_id})
            raise PaymentGatewayError(
                "Failed to refund payment",
                gateway_name=self.gateway_name,
                gateway_error_code=getattr(e, "code", None),
                payment_id=intent_id,
                amount=str(amount) if amount is not None else None,
            ) from e

        logger.info(f"Created refund {refund.id}", extra={"payment_id": intent_id})
        return RefundRecord(
            refund_id=refund.id,
            intent_id=intent_id,
            amount=from_minor_units(refund.amount),
            status=refund.status,
        )

    def verify_webhook(self, payload: Union[bytes, str], signature: str) -> WebhookEvent:
        if not self.webhook_secret:
            raise WebhookVerificationError("Webhook secret is not configured")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Rejected webhook payload: {e}")
            raise WebhookVerificationError() from e

        data_object = event["data"]["object"]
        return WebhookEvent(
            id=event["id"],
            type=event["type"],
            data=data_object.to_dict() if hasattr(data_object, "to_dict") else dict(data_object),
        )
