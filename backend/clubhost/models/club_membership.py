"""Club membership model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clubhost.models._base import Base


class ClubMembership(Base):
    """A member's paid or trialing membership of a club."""

    __tablename__ = "club_membership"

    uid: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    club_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # trialing, active, payment_required, canceled
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    is_trialing: Mapped[bool] = mapped_column(nullable=False, default=False)
    trial_ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_payment_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    last_payment_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    consecutive_failed_payments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("uid", "club_id", name="uq_club_membership_uid_club"),)
