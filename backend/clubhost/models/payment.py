"""Payment model for one-time purchases."""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from clubhost.models._base import Base


class Payment(Base):
    """A completed one-time checkout, such as a download purchase."""

    __tablename__ = "payment"

    uid: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    club_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    download_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    amount_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    currency: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    platform_fee_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    host_amount_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    stripe_session_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
