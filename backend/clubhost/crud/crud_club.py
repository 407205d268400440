"""CRUD operations for clubs."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import schemas
from clubhost.crud._base import CRUDBase
from clubhost.models import Club


class CRUDClub(CRUDBase[Club, schemas.ClubCreate, schemas.ClubCreate]):
    """CRUD operations for clubs."""

    async def slug_exists(self, db: AsyncSession, *, slug: str) -> bool:
        """Whether any club already uses ``slug``."""
        result = await db.execute(select(Club.id).where(Club.slug == slug).limit(1))
        return result.first() is not None

    async def get_by_stripe_subscription(
        self, db: AsyncSession, *, stripe_subscription_id: str
    ) -> Optional[Club]:
        """Get the club billed through a Stripe subscription.

        Args:
            db: Database session
            stripe_subscription_id: Stripe subscription ID stored in ``billing``

        Returns:
            Club or None
        """
        query = (
            select(Club)
            .where(Club.billing["stripeSubscriptionId"].as_string() == stripe_subscription_id)
            .order_by(Club.created_at)
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_ids(self, db: AsyncSession) -> list[str]:
        """Ids of every club, oldest first."""
        result = await db.execute(select(Club.id).order_by(Club.created_at))
        return list(result.scalars().all())


club = CRUDClub(Club)
