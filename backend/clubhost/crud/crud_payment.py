"""CRUD operations for payments."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import schemas
from clubhost.crud._base import CRUDBase
from clubhost.models import Payment


class CRUDPayment(CRUDBase[Payment, schemas.PaymentCreate, schemas.PaymentCreate]):
    """CRUD operations for payments."""

    async def get_by_session(
        self, db: AsyncSession, *, stripe_session_id: str
    ) -> Optional[Payment]:
        """Get the payment recorded for a checkout session.

        Args:
            db: Database session
            stripe_session_id: Stripe checkout session ID

        Returns:
            Payment or None
        """
        query = select(Payment).where(Payment.stripe_session_id == stripe_session_id)
        result = await db.execute(query)
        return result.scalar_one_or_none()


payment = CRUDPayment(Payment)
