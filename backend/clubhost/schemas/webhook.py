"""Webhook schemas."""

from enum import Enum

from pydantic import BaseModel


class WebhookClaimStatus(str, Enum):
    """State of a claim on a processor event id."""

    PROCESSING = "processing"
    DONE = "done"


class WebhookClaimOutcome(str, Enum):
    """What an attempt to claim an event id found."""

    CLAIMED = "claimed"
    IN_PROGRESS = "in_progress"
    ALREADY_PROCESSED = "already_processed"


class ProcessedWebhookEventCreate(BaseModel):
    """Claim on a processor event id."""

    stripe_event_id: str
    event_type: str
    status: WebhookClaimStatus = WebhookClaimStatus.PROCESSING
