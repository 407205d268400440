"""Tests for the billing event ledger."""

from clubhost import crud
from clubhost.billing.ledger import billing_ledger


async def test_append_maps_columns(db_session):
    """Known payload keys land in columns, the rest in event_data."""
    event = await billing_ledger.append(
        db_session,
        "club-1",
        "host_plan_activated",
        {
            "uid": "user-1",
            "phase": "active",
            "tier": "tier_b",
            "amountCents": 9900,
            "currency": "AUD",
            "stripeCustomerId": "cus_1",
            "stripeSubscriptionId": "sub_1",
            "stripeEventId": "evt_1",
            "sessionId": "cs_1",
            "priceId": "price_tier_b",
        },
    )

    stored = await crud.billing_event.get(db_session, event.id)
    assert stored.club_id == "club-1"
    assert stored.event_type == "host_plan_activated"
    assert stored.uid == "user-1"
    assert stored.tier == "tier_b"
    assert stored.amount_cents == 9900
    assert stored.stripe_subscription_id == "sub_1"
    assert stored.stripe_event_id == "evt_1"
    assert stored.event_data == {"sessionId": "cs_1", "priceId": "price_tier_b"}


async def test_append_never_deduplicates(db_session):
    """The same transition recorded twice yields two entries."""
    payload = {"uid": "user-1", "stripeEventId": "evt_1"}
    await billing_ledger.append(db_session, "club-1", "host_plan_subscription_cancelled", payload)
    await billing_ledger.append(db_session, "club-1", "host_plan_subscription_cancelled", payload)

    events = await crud.billing_event.get_by_club(db_session, club_id="club-1")
    assert len(events) == 2


async def test_append_safely_swallows_failures(mock_db_session):
    """A failing insert is logged and rolled back, never raised."""
    mock_db_session.commit.side_effect = RuntimeError("database is gone")

    result = await billing_ledger.append_safely(
        mock_db_session, "club-1", "host_plan_activated", {"uid": "user-1"}
    )

    assert result is None
    mock_db_session.rollback.assert_awaited_once()
