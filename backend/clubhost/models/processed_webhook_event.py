"""Processed webhook event model."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from clubhost.core.datetime_utils import utc_now_naive
from clubhost.models._base import Base


class ProcessedWebhookEvent(Base):
    """Claim on a payment processor event id.

    The unique index on ``stripe_event_id`` lets exactly one delivery claim an event.
    ``status`` is ``processing`` until the handlers succeed and ``done`` afterwards. A
    ``processing`` claim whose ``claimed_at`` is older than the lease belongs to a worker
    that died mid-dispatch and may be claimed again.
    """

    __tablename__ = "processed_webhook_event"

    stripe_event_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="processing")
    claimed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now_naive)
