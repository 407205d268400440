"""Billing event schemas."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class BillingEventBase(BaseModel):
    """Billing event base schema."""

    event_type: str = Field(..., description="Type of billing event")
    uid: Optional[str] = Field(None, description="User the transition was applied for")
    phase: Optional[str] = Field(None, description="trial, active or unknown")
    tier: Optional[str] = Field(None, description="Tier after the transition")
    amount_cents: Optional[int] = Field(None, description="Amount charged, in cents")
    currency: Optional[str] = Field(None, description="Upper-case ISO currency code")
    stripe_customer_id: Optional[str] = Field(None, description="Stripe customer ID")
    stripe_subscription_id: Optional[str] = Field(None, description="Stripe subscription ID")
    stripe_event_id: Optional[str] = Field(None, description="Stripe event ID if applicable")
    event_data: Dict[str, Any] = Field(default_factory=dict, description="Event data")


class BillingEventCreate(BillingEventBase):
    """Billing event creation schema."""

    club_id: str = Field(..., description="Club ID")


class BillingEvent(BillingEventBase):
    """Billing event schema."""

    model_config = {"from_attributes": True}

    id: str
    club_id: str
    created_at: datetime
