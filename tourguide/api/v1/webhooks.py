"""
Payment gateway webhook endpoint.

The raw request body is passed through untouched; signature verification
needs the exact bytes the gateway signed.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from tourguide.api import deps
from tourguide.api.errors import unwrap_result
from tourguide.services.payment.webhook_service import PaymentWebhookService

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header("", alias="Stripe-Signature"),
    service: PaymentWebhookService = Depends(deps.get_webhook_service),
) -> Dict[str, Any]:
    payload = await request.body()
    # Verification and the database work are blocking
    result = await run_in_threadpool(service.handle, payload, stripe_signature)
    return unwrap_result(result)
