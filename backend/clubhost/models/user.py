"""User model."""

from typing import Optional

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from clubhost.models._base import Base


class User(Base):
    """A platform user, possibly the host of one or more clubs.

    ``roles``, ``host_status`` and ``onboarding`` are JSON documents updated by dotted path.
    ``onboarding["hostStatus"]`` mirrors ``host_status`` and is only written in the same
    transaction that writes ``host_status``, except for the pending flag set while the club
    is created during onboarding.
    """

    __tablename__ = "user"

    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # {"user": bool, "host": bool, "admin": bool}
    roles: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # {"enabled", "billingTier", "stripeCustomerId", "stripeSubscriptionId"}
    host_status: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # {"clubDraft": {...}, "hostStatus": {...}, "progress": {...}}
    onboarding: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    clubs_hosted: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    clubs_joined: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
