"""Payment schemas."""

from typing import Optional

from pydantic import BaseModel


class PaymentCreate(BaseModel):
    """Schema for recording a completed one-time checkout."""

    uid: str
    club_id: Optional[str] = None
    download_id: Optional[str] = None
    type: str
    status: str
    amount_cents: Optional[int] = None
    currency: Optional[str] = None
    platform_fee_cents: Optional[int] = None
    host_amount_cents: Optional[int] = None
    stripe_session_id: str
    stripe_payment_intent_id: Optional[str] = None
