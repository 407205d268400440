"""CRUD operations for webhook event claims."""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import schemas
from clubhost.core.config import settings
from clubhost.core.datetime_utils import utc_now_naive
from clubhost.crud._base import CRUDBase
from clubhost.models import ProcessedWebhookEvent


class CRUDProcessedWebhookEvent(
    CRUDBase[
        ProcessedWebhookEvent,
        schemas.ProcessedWebhookEventCreate,
        schemas.ProcessedWebhookEventCreate,
    ]
):
    """Claims on processor event ids."""

    async def claim(
        self,
        db: AsyncSession,
        *,
        stripe_event_id: str,
        event_type: str,
        now: Optional[datetime] = None,
    ) -> schemas.WebhookClaimOutcome:
        """Claim ``stripe_event_id`` for processing.

        The insert commits on its own so concurrent deliveries of the same event race on
        the unique index, not on application state. An existing ``processing`` claim older
        than ``WEBHOOK_CLAIM_LEASE_SECONDS`` is taken over with a conditional update, so
        only one of several racing redeliveries wins it.

        Args:
            db: Database session
            stripe_event_id: Processor event id
            event_type: Processor event type
            now: Naive UTC clock, defaults to the current time

        Returns:
            ``CLAIMED`` when this call owns the event, ``IN_PROGRESS`` while another
            delivery holds a live claim, ``ALREADY_PROCESSED`` once the event is done.
        """
        now = now or utc_now_naive()
        db.add(
            ProcessedWebhookEvent(
                stripe_event_id=stripe_event_id,
                event_type=event_type,
                status=schemas.WebhookClaimStatus.PROCESSING.value,
                claimed_at=now,
            )
        )
        try:
            await db.commit()
            return schemas.WebhookClaimOutcome.CLAIMED
        except IntegrityError:
            await db.rollback()

        expired_before = now - timedelta(seconds=settings.WEBHOOK_CLAIM_LEASE_SECONDS)
        result = await db.execute(
            update(ProcessedWebhookEvent)
            .where(
                ProcessedWebhookEvent.stripe_event_id == stripe_event_id,
                ProcessedWebhookEvent.status == schemas.WebhookClaimStatus.PROCESSING.value,
                ProcessedWebhookEvent.claimed_at < expired_before,
            )
            .values(claimed_at=now)
        )
        await db.commit()
        if result.rowcount == 1:
            return schemas.WebhookClaimOutcome.CLAIMED

        status = await db.scalar(
            select(ProcessedWebhookEvent.status).where(
                ProcessedWebhookEvent.stripe_event_id == stripe_event_id
            )
        )
        if status == schemas.WebhookClaimStatus.DONE.value:
            return schemas.WebhookClaimOutcome.ALREADY_PROCESSED
        return schemas.WebhookClaimOutcome.IN_PROGRESS

    async def mark_done(self, db: AsyncSession, *, stripe_event_id: str) -> None:
        """Record that the handlers of ``stripe_event_id`` succeeded."""
        await db.execute(
            update(ProcessedWebhookEvent)
            .where(ProcessedWebhookEvent.stripe_event_id == stripe_event_id)
            .values(status=schemas.WebhookClaimStatus.DONE.value)
        )
        await db.commit()

    async def release(self, db: AsyncSession, *, stripe_event_id: str) -> None:
        """Drop the claim so a redelivery of the event is processed again."""
        await db.rollback()
        await db.execute(
            delete(ProcessedWebhookEvent).where(
                ProcessedWebhookEvent.stripe_event_id == stripe_event_id
            )
        )
        await db.commit()


processed_webhook_event = CRUDProcessedWebhookEvent(ProcessedWebhookEvent)
