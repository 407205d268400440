"""Append-only billing event ledger."""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import crud, schemas
from clubhost.core.logging import ContextualLogger, logger
from clubhost.models import BillingEvent

# Payload keys that map onto dedicated columns; everything else lands in event_data.
_COLUMN_KEYS = {
    "uid": "uid",
    "phase": "phase",
    "tier": "tier",
    "amountCents": "amount_cents",
    "currency": "currency",
    "stripeCustomerId": "stripe_customer_id",
    "stripeSubscriptionId": "stripe_subscription_id",
    "stripeEventId": "stripe_event_id",
}


class BillingEventLedger:
    """Writes audit entries for host plan transitions.

    The ledger never reads its own entries to decide anything and never deduplicates:
    two deliveries of the same transition produce two entries.
    """

    async def append(
        self, db: AsyncSession, club_id: str, event_type: str, payload: dict[str, Any]
    ) -> BillingEvent:
        """Insert one billing event and commit it.

        Args:
            db: Database session, outside any open transition transaction.
            club_id: Club the event concerns.
            event_type: E.g. ``host_plan_activated``.
            payload: Event payload in the camelCase shape used by the webhook metadata.

        Returns:
            The stored event.
        """
        columns: dict[str, Any] = {}
        event_data: dict[str, Any] = {}
        for key, value in payload.items():
            if key in _COLUMN_KEYS:
                columns[_COLUMN_KEYS[key]] = value
            else:
                event_data[key] = value

        event_in = schemas.BillingEventCreate(
            club_id=club_id, event_type=event_type, event_data=event_data, **columns
        )
        return await crud.billing_event.create(db, obj_in=event_in)

    async def append_safely(
        self,
        db: AsyncSession,
        club_id: str,
        event_type: str,
        payload: dict[str, Any],
        log: Optional[ContextualLogger] = None,
    ) -> Optional[BillingEvent]:
        """Append after a committed transition; a failure is logged, never raised.

        The state change has already been committed at this point, so a failing insert
        must not surface as an error that makes the processor redeliver the event.
        """
        log = log or logger
        try:
            return await self.append(db, club_id, event_type, payload)
        except Exception as e:
            log.error(
                f"Failed to record billing event {event_type} for club {club_id}: {e}",
                exc_info=True,
            )
            await db.rollback()
            return None


billing_ledger = BillingEventLedger()
