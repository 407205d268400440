"""Host plan schemas."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class HostPlanPhase(str, Enum):
    """Billing phase reported for a host plan checkout or subscription."""

    TRIAL = "trial"
    ACTIVE = "active"
    UNKNOWN = "unknown"


class HostPlanTransitionKind(str, Enum):
    """Kind of host plan transition."""

    ACTIVATED = "activated"
    CANCELLED = "cancelled"


class HostPlanTransition(BaseModel):
    """Result of a committed host plan transition.

    Carries what the caller needs to write the ledger entry after the commit.
    """

    kind: HostPlanTransitionKind
    uid: str
    club_id: str
    tier: str
    previous_tier: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    downgrade_reason: Optional[str] = None
