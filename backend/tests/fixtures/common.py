"""Common test fixtures and seeding helpers."""

import hashlib
import hmac
import json
import time
from typing import Any, Optional

import pytest
import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import crud
from clubhost.billing.tier_policy import DEFAULT_TIER, tier_billing_fields
from clubhost.core.config import Settings
from clubhost.integrations.stripe_client import StripeClient
from clubhost.models import Club, User

WEBHOOK_SECRET = "whsec_test_secret"

PRICE_IDS = {
    "tier_a": "price_tier_a",
    "tier_b": "price_tier_b",
    "tier_c": "price_tier_c",
}


@pytest.fixture
def stripe_settings() -> Settings:
    """Settings with billing enabled and test keys."""
    return Settings(
        _env_file=None,
        STRIPE_ENABLED=True,
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        STRIPE_PRICE_ID_TIER_A=PRICE_IDS["tier_a"],
        STRIPE_PRICE_ID_TIER_B=PRICE_IDS["tier_b"],
        STRIPE_PRICE_ID_TIER_C=PRICE_IDS["tier_c"],
    )


@pytest.fixture
def stripe_client(stripe_settings) -> StripeClient:
    """A real client; tests patch its network calls."""
    return StripeClient(stripe_settings)


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None):
    """Build a ``Stripe-Signature`` header for ``payload``."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_stripe_event(
    event_type: str, data_object: dict[str, Any], event_id: str = "evt_test_1"
) -> stripe.Event:
    """Build a ``stripe.Event`` the way ``construct_event`` does for a received payload."""
    return stripe.Event.construct_from(
        json.loads(event_payload(event_type, data_object, event_id)), "sk_test_123"
    )


def event_payload(
    event_type: str, data_object: dict[str, Any], event_id: str = "evt_test_1"
) -> bytes:
    """Raw webhook body for an event."""
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "api_version": "2024-06-20",
            "created": int(time.time()),
            "data": {"object": data_object},
        }
    ).encode("utf-8")


async def seed_user(
    db: AsyncSession,
    uid: str,
    *,
    email: Optional[str] = None,
    display_name: Optional[str] = None,
    onboarding: Optional[dict] = None,
    host_status: Optional[dict] = None,
    roles: Optional[dict] = None,
    clubs_hosted: Optional[list] = None,
) -> User:
    """Insert a user row."""
    return await crud.user.create(
        db,
        obj_in={
            "id": uid,
            "email": email or f"{uid}@example.com",
            "display_name": display_name,
            "roles": roles if roles is not None else {"user": True},
            "host_status": host_status or {},
            "onboarding": onboarding or {},
            "clubs_hosted": clubs_hosted or [],
            "clubs_joined": [],
        },
    )


async def seed_club(
    db: AsyncSession,
    club_id: str,
    *,
    host_id: Optional[str],
    slug: Optional[str] = None,
    name: Optional[str] = None,
    tier: str = DEFAULT_TIER.value,
    members_count: int = 0,
    billing: Optional[dict] = None,
) -> Club:
    """Insert a club row configured for ``tier``."""
    fields = tier_billing_fields(tier)
    return await crud.club.create(
        db,
        obj_in={
            "id": club_id,
            "host_id": host_id,
            "name": name or club_id,
            "slug": slug or club_id,
            "description": "",
            "plan_type": fields["plan_type"],
            "billing_tier": fields["billing_tier"],
            "max_members": fields["max_members"],
            "billing": {**fields["billing"], **(billing or {})},
            "members_count": members_count,
            "member_cost": 0,
        },
    )
