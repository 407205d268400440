"""Billing event model for the audit trail."""

from typing import Optional

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from clubhost.models._base import Base


class BillingEvent(Base):
    """Append-only record of a host plan transition.

    Rows are written after the transition committed and are never read back to make
    billing decisions.
    """

    __tablename__ = "billing_event"

    club_id: Mapped[str] = mapped_column(String(128), nullable=False)
    uid: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    event_type: Mapped[str] = mapped_column(
        String(100), nullable=False
    )  # host_plan_activated, host_plan_subscription_cancelled, etc.

    phase: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    tier: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    amount_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    currency: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_event_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    event_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("idx_billing_events_club", "club_id"),
        Index("idx_billing_events_type", "event_type"),
    )
