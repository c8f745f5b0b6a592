# =============================================================================
# app/routers/webhooks.py - Third-Party Webhooks
# =============================================================================
# No user auth here: Stripe signs each request with the stripe-signature
# header, which is checked against STRIPE_WEBHOOK_SECRET.
# =============================================================================

from fastapi import APIRouter, Header, Request
from fastapi.concurrency import run_in_threadpool

from core.services.payment_service import PaymentService

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="stripe-signature"),
):
    """
    Receive Stripe events.

    checkout.session.completed adds the purchased credits to the buyer.
    The raw body is needed for signature verification.
    """
    payload = await request.body()
    return await run_in_threadpool(PaymentService.handle_webhook, payload, stripe_signature)
