"""CRUD operations for club memberships."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import schemas
from clubhost.crud._base import CRUDBase
from clubhost.models import ClubMembership


class CRUDClubMembership(
    CRUDBase[ClubMembership, schemas.ClubMembershipCreate, schemas.ClubMembershipCreate]
):
    """CRUD operations for club memberships."""

    async def get_by_member(
        self, db: AsyncSession, *, uid: str, club_id: str
    ) -> Optional[ClubMembership]:
        """Get the membership of ``uid`` in ``club_id``.

        Args:
            db: Database session
            uid: Member uid
            club_id: Club ID

        Returns:
            ClubMembership or None
        """
        query = select(ClubMembership).where(
            ClubMembership.uid == uid, ClubMembership.club_id == club_id
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()


club_membership = CRUDClubMembership(ClubMembership)
