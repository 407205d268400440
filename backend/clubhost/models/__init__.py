"""Models for the application."""

from ._base import Base
from .billing_event import BillingEvent
from .club import Club
from .club_membership import ClubMembership
from .payment import Payment
from .processed_webhook_event import ProcessedWebhookEvent
from .user import User

__all__ = [
    "Base",
    "BillingEvent",
    "Club",
    "ClubMembership",
    "Payment",
    "ProcessedWebhookEvent",
    "User",
]
