"""Club membership schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class MembershipStatus(str, Enum):
    """Membership status values."""

    TRIALING = "trialing"
    ACTIVE = "active"
    PAYMENT_REQUIRED = "payment_required"
    CANCELED = "canceled"


class ClubMembershipBase(BaseModel):
    """Base schema for ClubMembership."""

    status: MembershipStatus = MembershipStatus.ACTIVE
    is_trialing: bool = False
    trial_ends_at: Optional[datetime] = None
    stripe_subscription_id: Optional[str] = None
    last_payment_type: Optional[str] = None
    last_payment_at: Optional[datetime] = None
    consecutive_failed_payments: int = 0


class ClubMembershipCreate(ClubMembershipBase):
    """Schema for creating a ClubMembership object."""

    uid: str
    club_id: str


class ClubMembership(ClubMembershipBase):
    """Schema for a ClubMembership as stored."""

    model_config = {"from_attributes": True}

    id: str
    uid: str
    club_id: str
