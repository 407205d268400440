"""Tests for download purchases and membership joins."""

from clubhost import crud
from clubhost.billing.checkout_handlers import record_download_purchase, record_membership_join
from tests.fixtures.common import seed_club, seed_user


def _session(session_id, metadata, amount_total=0, **extra):
    return {
        "id": session_id,
        "amount_total": amount_total,
        "currency": "aud",
        "metadata": metadata,
        **extra,
    }


async def test_download_uses_club_fee(db_session):
    """The platform fee follows the club's transaction fee."""
    await seed_club(db_session, "club-b", host_id="host-1", tier="tier_b")
    session = _session(
        "cs_dl",
        {"uid": "buyer-1", "clubId": "club-b", "downloadId": "dl-9"},
        amount_total=1000,
        payment_intent={"id": "pi_9", "object": "payment_intent"},
    )

    payment = await record_download_purchase(db_session, session)

    assert payment.platform_fee_cents == 30
    assert payment.host_amount_cents == 970
    assert payment.stripe_payment_intent_id == "pi_9"
    assert payment.download_id == "dl-9"


async def test_download_without_metadata(db_session):
    """Incomplete metadata is dropped."""
    session = _session("cs_dl", {"uid": "buyer-1", "clubId": "club-b"}, amount_total=1000)

    assert await record_download_purchase(db_session, session) is None
    assert await crud.payment.get_by_session(db_session, stripe_session_id="cs_dl") is None


async def test_paid_membership_join(db_session):
    """A paid join records an active membership and a subscription payment."""
    await seed_club(db_session, "club-1", host_id="host-1", members_count=4)
    await seed_user(db_session, "member-1")
    session = _session(
        "cs_join", {"uid": "member-1", "clubId": "club-1"}, amount_total=2000, subscription="sub_m"
    )

    recorded = await record_membership_join(
        db_session, session, {"id": "sub_m", "status": "active"}
    )

    assert recorded is True
    club = await crud.club.get(db_session, "club-1")
    assert club.members_count == 5
    user = await crud.user.get(db_session, "member-1")
    assert user.clubs_joined == ["club-1"]

    membership = await crud.club_membership.get_by_member(
        db_session, uid="member-1", club_id="club-1"
    )
    assert membership.status == "active"
    assert membership.is_trialing is False
    assert membership.trial_ends_at is None
    assert membership.last_payment_type == "subscription"
    assert membership.consecutive_failed_payments == 0

    payment = await crud.payment.get_by_session(db_session, stripe_session_id="cs_join")
    assert payment.type == "subscription"
    assert payment.amount_cents == 2000
    assert payment.platform_fee_cents == 100
    assert payment.host_amount_cents == 1900


async def test_existing_member_is_not_counted_twice(db_session):
    """Joining a club the user already joined leaves the count alone."""
    await seed_club(db_session, "club-1", host_id="host-1", members_count=4)
    user = await seed_user(db_session, "member-1")
    await crud.user.update(db_session, db_obj=user, obj_in={"clubs_joined": ["club-1"]})
    session = _session("cs_again", {"uid": "member-1", "clubId": "club-1"}, amount_total=2000)

    assert await record_membership_join(db_session, session) is True

    club = await crud.club.get(db_session, "club-1")
    assert club.members_count == 4


async def test_join_missing_club(db_session):
    """A checkout for a deleted club is not recorded."""
    session = _session("cs_gone", {"uid": "member-1", "clubId": "club-gone"})

    assert await record_membership_join(db_session, session) is False
    assert await crud.user.get(db_session, "member-1") is None


async def test_join_without_metadata(db_session):
    """A checkout without a club or user is ignored."""
    assert await record_membership_join(db_session, _session("cs_x", {})) is False
