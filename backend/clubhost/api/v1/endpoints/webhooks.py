"""Payment processor webhook endpoint."""

from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import crud, schemas
from clubhost.api import deps
from clubhost.api.router import TrailingSlashRouter
from clubhost.billing.webhook_handler import HostPlanWebhookProcessor
from clubhost.core.config import settings
from clubhost.core.exceptions import WebhookSignatureError
from clubhost.core.logging import logger
from clubhost.integrations.stripe_client import StripeClient

router = TrailingSlashRouter()


@router.post("/payments", include_in_schema=False)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    x_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(deps.get_db),
    stripe_client: Optional[StripeClient] = Depends(deps.get_optional_stripe_client),
) -> JSONResponse:
    """Handle Stripe webhook events.

    The raw body is verified against the signature header before anything is parsed.
    Each event id is claimed before dispatch and marked done after it. A redelivery of a
    done event is acknowledged without running the handlers again; one that arrives while
    a live claim exists gets a 409 so Stripe retries later, after which a claim left by a
    crashed worker has expired and can be taken over. When a handler fails the claim is
    released and the 500 makes Stripe retry.

    Args:
        request: Raw HTTP request
        stripe_signature: Stripe signature header
        x_signature: Alternative signature header
        db: Database session
        stripe_client: Client built at startup, None when billing is disabled

    Returns:
        200 on success or duplicate, 400 on signature failure, 409 while another delivery
        holds the event, 500 on processing error
    """
    if stripe_client is None:
        return JSONResponse({"received": True, "ignored": True})

    try:
        payload = await request.body()
    except Exception:
        return JSONResponse({"error": "Unable to read request body"}, status_code=400)

    signature = stripe_signature or x_signature
    if not signature:
        return JSONResponse({"error": "Missing stripe-signature header"}, status_code=400)

    try:
        event = stripe_client.verify_webhook_signature(payload, signature)
    except WebhookSignatureError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        return JSONResponse({"error": "Invalid signature"}, status_code=400)

    log = logger.with_context(stripe_event_id=event.id, event_type=event.type)

    claimed = False
    if settings.WEBHOOK_DEDUPLICATE_EVENTS:
        outcome = await crud.processed_webhook_event.claim(
            db, stripe_event_id=event.id, event_type=event.type
        )
        if outcome == schemas.WebhookClaimOutcome.ALREADY_PROCESSED:
            log.info(f"Duplicate webhook event {event.id}, skipping")
            return JSONResponse({"received": True, "duplicate": True})
        if outcome == schemas.WebhookClaimOutcome.IN_PROGRESS:
            log.info(f"Webhook event {event.id} is being processed by another delivery")
            return JSONResponse({"error": "Event is being processed"}, status_code=409)
        claimed = True

    try:
        processor = HostPlanWebhookProcessor(db, stripe_client)
        await processor.process_event(event)
    except Exception as e:
        if claimed:
            await crud.processed_webhook_event.release(db, stripe_event_id=event.id)
        return JSONResponse({"error": str(e) or "Webhook processing failed"}, status_code=500)

    if claimed:
        await crud.processed_webhook_event.mark_done(db, stripe_event_id=event.id)
    return JSONResponse({"received": True})
