"""Tests for the payment webhook endpoint."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

from sqlalchemy import select

from clubhost import crud
from clubhost.billing.webhook_handler import HostPlanWebhookProcessor
from clubhost.core.datetime_utils import utc_now_naive
from clubhost.main import app
from clubhost.models import ProcessedWebhookEvent
from tests.fixtures.common import event_payload, seed_club, seed_user, sign_payload

WEBHOOK_URL = "/webhook/payments"


async def _claims(db_session):
    result = await db_session.execute(select(ProcessedWebhookEvent.stripe_event_id))
    return list(result.scalars().all())


def _headers(payload, secret=None):
    signature = sign_payload(payload, secret) if secret else sign_payload(payload)
    return {"stripe-signature": signature, "content-type": "application/json"}


async def test_valid_event_is_acknowledged(api_client, db_session):
    """A signed event is processed and its id claimed."""
    payload = event_payload("invoice.paid", {"id": "in_1", "object": "invoice"}, "evt_ok")

    response = await api_client.post(WEBHOOK_URL, content=payload, headers=_headers(payload))

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert await _claims(db_session) == ["evt_ok"]


async def test_duplicate_delivery_is_skipped(api_client, db_session):
    """The second delivery of an event id does not run the handlers again."""
    payload = event_payload("invoice.paid", {"id": "in_1", "object": "invoice"}, "evt_dup")

    with patch.object(
        HostPlanWebhookProcessor, "process_event", new_callable=AsyncMock
    ) as process_event:
        first = await api_client.post(WEBHOOK_URL, content=payload, headers=_headers(payload))
        second = await api_client.post(WEBHOOK_URL, content=payload, headers=_headers(payload))

    assert first.json() == {"received": True}
    assert second.status_code == 200
    assert second.json() == {"received": True, "duplicate": True}
    assert process_event.await_count == 1


async def test_invalid_signature_is_rejected(api_client, db_session):
    """A body signed with another secret is rejected before anything is written."""
    await seed_user(db_session, "user-456")
    await seed_club(db_session, "club-999", host_id="user-456")
    payload = event_payload(
        "checkout.session.completed",
        {
            "id": "cs_1",
            "object": "checkout.session",
            "subscription": "sub_1",
            "metadata": {"uid": "user-456", "clubId": "club-999", "type": "host_plan"},
        },
        "evt_forged",
    )

    response = await api_client.post(
        WEBHOOK_URL, content=payload, headers=_headers(payload, "whsec_other")
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature"}
    assert await _claims(db_session) == []
    club = await crud.club.get(db_session, "club-999")
    assert "stripeSubscriptionId" not in club.billing


async def test_missing_signature_header(api_client):
    """Deliveries without a signature are rejected."""
    payload = event_payload("invoice.paid", {"id": "in_1", "object": "invoice"})

    response = await api_client.post(
        WEBHOOK_URL, content=payload, headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Missing stripe-signature header"}


async def test_alternative_signature_header(api_client):
    """The signature is also accepted from ``x-signature``."""
    payload = event_payload("invoice.paid", {"id": "in_1", "object": "invoice"}, "evt_alt")

    response = await api_client.post(
        WEBHOOK_URL, content=payload, headers={"x-signature": sign_payload(payload)}
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}


async def test_handler_failure_releases_claim(api_client, db_session):
    """A failing handler answers 500 and lets the redelivery run again."""
    payload = event_payload("invoice.paid", {"id": "in_1", "object": "invoice"}, "evt_fail")

    with patch.object(
        HostPlanWebhookProcessor,
        "process_event",
        new_callable=AsyncMock,
        side_effect=RuntimeError("boom"),
    ):
        response = await api_client.post(WEBHOOK_URL, content=payload, headers=_headers(payload))

    assert response.status_code == 500
    assert response.json() == {"error": "boom"}
    assert await _claims(db_session) == []

    retry = await api_client.post(WEBHOOK_URL, content=payload, headers=_headers(payload))
    assert retry.json() == {"received": True}


async def test_host_plan_checkout_end_to_end(api_client, db_session):
    """A signed host plan checkout activates the plan through the endpoint."""
    await seed_user(db_session, "user-456")
    await seed_club(db_session, "club-999", host_id="user-456")
    app.state.stripe_client.get_subscription = AsyncMock(
        return_value={"id": "sub_123", "status": "trialing"}
    )
    payload = event_payload(
        "checkout.session.completed",
        {
            "id": "cs_1",
            "object": "checkout.session",
            "customer": "cus_123",
            "subscription": "sub_123",
            "amount_total": 0,
            "currency": "aud",
            "metadata": {
                "uid": "user-456",
                "clubId": "club-999",
                "type": "host_plan",
                "tier": "tier_a",
                "phase": "trial",
            },
        },
        "evt_checkout",
    )

    response = await api_client.post(WEBHOOK_URL, content=payload, headers=_headers(payload))

    assert response.status_code == 200
    club = await crud.club.get(db_session, "club-999")
    assert club.billing["stripeSubscriptionId"] == "sub_123"
    events = await crud.billing_event.get_by_club(db_session, club_id="club-999")
    assert [e.event_type for e in events] == ["host_plan_trial_started"]


async def test_disabled_billing_ignores_events(api_client):
    """Without a Stripe client deliveries are acknowledged and ignored."""
    app.state.stripe_client = None
    payload = event_payload("invoice.paid", {"id": "in_1", "object": "invoice"})

    response = await api_client.post(WEBHOOK_URL, content=payload)

    assert response.status_code == 200
    assert response.json() == {"received": True, "ignored": True}


async def test_processed_event_is_marked_done(api_client, db_session):
    """A successful dispatch leaves the claim in the done state."""
    payload = event_payload("invoice.paid", {"id": "in_1", "object": "invoice"}, "evt_done")

    await api_client.post(WEBHOOK_URL, content=payload, headers=_headers(payload))

    status = await db_session.scalar(
        select(ProcessedWebhookEvent.status).where(
            ProcessedWebhookEvent.stripe_event_id == "evt_done"
        )
    )
    assert status == "done"


async def test_stale_claim_is_processed_again(api_client, db_session):
    """A claim abandoned mid-dispatch does not swallow the redelivery."""
    db_session.add(
        ProcessedWebhookEvent(
            stripe_event_id="evt_stale",
            event_type="invoice.paid",
            status="processing",
            claimed_at=utc_now_naive() - timedelta(minutes=10),
        )
    )
    await db_session.commit()
    payload = event_payload("invoice.paid", {"id": "in_1", "object": "invoice"}, "evt_stale")

    with patch.object(
        HostPlanWebhookProcessor, "process_event", new_callable=AsyncMock
    ) as process_event:
        response = await api_client.post(WEBHOOK_URL, content=payload, headers=_headers(payload))

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert process_event.await_count == 1


async def test_live_claim_asks_for_retry(api_client, db_session):
    """A delivery racing an unfinished dispatch is answered 409 and not processed."""
    db_session.add(
        ProcessedWebhookEvent(
            stripe_event_id="evt_busy",
            event_type="invoice.paid",
            status="processing",
            claimed_at=utc_now_naive(),
        )
    )
    await db_session.commit()
    payload = event_payload("invoice.paid", {"id": "in_1", "object": "invoice"}, "evt_busy")

    with patch.object(
        HostPlanWebhookProcessor, "process_event", new_callable=AsyncMock
    ) as process_event:
        response = await api_client.post(WEBHOOK_URL, content=payload, headers=_headers(payload))

    assert response.status_code == 409
    assert response.json() == {"error": "Event is being processed"}
    process_event.assert_not_awaited()
