"""CRUD operations for billing events."""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import schemas
from clubhost.crud._base import CRUDBase
from clubhost.models import BillingEvent


class CRUDBillingEvent(
    CRUDBase[BillingEvent, schemas.BillingEventCreate, schemas.BillingEventCreate]
):
    """CRUD operations for the billing event audit trail.

    Entries are only ever inserted; there is no update path.
    """

    async def get_by_club(
        self, db: AsyncSession, *, club_id: str, limit: int = 100
    ) -> List[BillingEvent]:
        """Most recent billing events of a club, newest first.

        Args:
            db: Database session
            club_id: Club ID
            limit: Maximum number of events to return

        Returns:
            List of billing events
        """
        query = (
            select(BillingEvent)
            .where(BillingEvent.club_id == club_id)
            .order_by(BillingEvent.created_at.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())


billing_event = CRUDBillingEvent(BillingEvent)
