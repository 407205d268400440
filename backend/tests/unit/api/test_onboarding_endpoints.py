"""Tests for the host onboarding endpoints."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

from clubhost import crud
from clubhost.main import app
from tests.fixtures.common import PRICE_IDS, seed_club, seed_user

UID_HEADER = {"X-User-Id": "user-123"}


async def test_requires_caller_identity(api_client):
    """Requests without the identity header are rejected."""
    response = await api_client.patch("/onboarding/host/club", json={"name": "Test Club"})

    assert response.status_code == 401


async def test_save_club_draft(api_client, db_session):
    """The draft is merged and the onboarding document returned."""
    await seed_user(db_session, "user-123")

    response = await api_client.patch(
        "/onboarding/host/club",
        json={"name": "Test Club", "step": "host:club-details"},
        headers=UID_HEADER,
    )

    assert response.status_code == 200
    onboarding = response.json()["onboarding"]
    assert onboarding["clubDraft"]["name"] == "Test Club"
    assert onboarding["progress"]["currentStep"] == "host:club-details"


async def test_save_club_draft_rejects_long_names(api_client, db_session):
    """Field limits are enforced before anything is written."""
    await seed_user(db_session, "user-123")

    response = await api_client.patch(
        "/onboarding/host/club", json={"name": "x" * 121}, headers=UID_HEADER
    )

    assert response.status_code == 422
    user = await crud.user.get(db_session, "user-123")
    assert user.onboarding == {}


async def test_save_club_draft_unknown_user(api_client):
    """A caller without a user row gets a 404."""
    response = await api_client.patch(
        "/onboarding/host/club", json={"name": "Test Club"}, headers={"X-User-Id": "ghost"}
    )

    assert response.status_code == 404


async def test_activate_creates_club(api_client, db_session):
    """The drafted club is created and returned in camelCase."""
    await seed_user(db_session, "user-123", onboarding={"clubDraft": {"name": "Test Club"}})

    response = await api_client.post("/onboarding/host/activate", headers=UID_HEADER)

    assert response.status_code == 200
    body = response.json()
    assert body["slug"] == "test-club"
    assert body["created"] is True
    club = await crud.club.get(db_session, body["clubId"])
    assert club.host_id == "user-123"


async def test_activate_foreign_club_is_forbidden(api_client, db_session):
    """Reusing another host's club maps to 403."""
    await seed_user(
        db_session, "user-321", onboarding={"clubDraft": {"clubId": "club-foreign"}}
    )
    await seed_club(db_session, "club-foreign", host_id="owner-9")

    response = await api_client.post(
        "/onboarding/host/activate", headers={"X-User-Id": "user-321"}
    )

    assert response.status_code == 403
    assert "do not own" in response.json()["detail"]


async def test_select_plan_starts_checkout(api_client, db_session):
    """The checkout carries the club and plan in its metadata."""
    await seed_user(
        db_session,
        "user-123",
        email="host@example.com",
        onboarding={"clubDraft": {"name": "Test Club"}},
    )
    create_session = AsyncMock(
        return_value=SimpleNamespace(id="cs_123", url="https://checkout.stripe.com/c/cs_123")
    )
    app.state.stripe_client.create_host_plan_checkout_session = create_session

    response = await api_client.post("/onboarding/host/select-plan", headers=UID_HEADER)

    assert response.status_code == 200
    body = response.json()
    assert body["sessionId"] == "cs_123"
    assert body["checkoutUrl"] == "https://checkout.stripe.com/c/cs_123"
    assert body["slug"] == "test-club"

    kwargs = create_session.await_args.kwargs
    assert kwargs["price_id"] == PRICE_IDS["tier_a"]
    assert kwargs["client_reference_id"] == body["clubId"]
    assert kwargs["customer_email"] == "host@example.com"
    assert kwargs["trial_period_days"] == 14
    assert kwargs["success_url"].endswith(
        "/onboarding/host/welcome?session_id={CHECKOUT_SESSION_ID}"
    )
    assert kwargs["cancel_url"].endswith("/onboarding/host/select-plan?resume=true")
    assert kwargs["metadata"] == {
        "uid": "user-123",
        "clubId": body["clubId"],
        "type": "host_plan",
        "tier": "tier_a",
        "priceId": PRICE_IDS["tier_a"],
        "priceAud": "49.99",
        "priceCurrency": "AUD",
        "hasTrial": "true",
        "trialDays": "14",
        "phase": "trial",
    }

    user = await crud.user.get(db_session, "user-123")
    assert user.host_status == {}
    assert user.onboarding["hostStatus"]["pendingActivation"] is True


async def test_select_plan_without_billing(api_client, db_session):
    """Starting a checkout needs billing to be enabled."""
    await seed_user(db_session, "user-123")
    app.state.stripe_client = None

    response = await api_client.post("/onboarding/host/select-plan", headers=UID_HEADER)

    assert response.status_code == 502
    assert await crud.club.get_ids(db_session) == []
