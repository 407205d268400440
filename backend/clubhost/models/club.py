"""Club model."""

from typing import Optional

from sqlalchemy import JSON, BigInteger, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clubhost.models._base import Base


class Club(Base):
    """A club owned by exactly one host.

    ``billing`` holds the tier parameters copied from the tier table at the last transition,
    the Stripe identifiers, the usage counters and the upgrade/downgrade schedule.
    """

    __tablename__ = "club"

    host_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    slug: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    plan_type: Mapped[str] = mapped_column(String(32), nullable=False)
    billing_tier: Mapped[str] = mapped_column(String(32), nullable=False)
    billing: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    members_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_members: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    member_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
