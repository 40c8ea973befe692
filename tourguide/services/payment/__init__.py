"""
Payment collaborator integration.
"""

from tourguide.services.payment.gateway import (
    PaymentGateway,
    PaymentIntent,
    RefundRecord,
    StripePaymentGateway,
    WebhookEvent,
)

__all__ = [
    "PaymentGateway",
    "PaymentIntent",
    "RefundRecord",
    "StripePaymentGateway",
    "WebhookEvent",
]
