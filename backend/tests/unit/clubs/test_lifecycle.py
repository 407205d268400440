"""Tests for club drafts and club creation during host onboarding."""

import pytest

from clubhost import crud, schemas
from clubhost.clubs.lifecycle import club_lifecycle, default_club_name
from clubhost.core.exceptions import ClubOwnershipError, NotFoundException
from clubhost.models import User
from tests.fixtures.common import seed_club, seed_user


def test_default_club_name():
    """Suggested names come from the display name, then the email."""
    assert default_club_name(User(display_name=" Sam ", email="x@y.z")) == "Sam's Club"
    assert default_club_name(User(email="jo@example.com")) == "jo's Club"
    assert default_club_name(User()) == "My Club"


async def test_save_club_draft_merges_fields(db_session):
    """Submitted fields are merged into the existing draft."""
    await seed_user(
        db_session,
        "user-123",
        onboarding={"clubDraft": {"name": "Old", "clubId": "club-1"}},
    )

    onboarding = await club_lifecycle.save_club_draft(
        db_session,
        uid="user-123",
        draft=schemas.ClubDraftUpdate(description="  Weekly runs  ", step="host:club-details"),
    )

    assert onboarding["clubDraft"] == {
        "name": "Old",
        "clubId": "club-1",
        "description": "Weekly runs",
    }
    assert onboarding["progress"]["currentStep"] == "host:club-details"
    assert onboarding["progress"]["startedAt"]


async def test_save_club_draft_generates_name(db_session):
    """An empty draft gets a suggested name when asked for one."""
    await seed_user(db_session, "user-123", display_name="Alex")

    onboarding = await club_lifecycle.save_club_draft(
        db_session,
        uid="user-123",
        draft=schemas.ClubDraftUpdate(auto_generate_name=True),
    )

    assert onboarding["clubDraft"]["name"] == "Alex's Club"


async def test_save_club_draft_unknown_user(db_session):
    """Drafts can only be saved for existing users."""
    with pytest.raises(NotFoundException):
        await club_lifecycle.save_club_draft(
            db_session, uid="ghost", draft=schemas.ClubDraftUpdate(name="X")
        )


async def test_create_club_from_draft(db_session):
    """A new club is created on the default tier without granting host privileges."""
    await seed_user(db_session, "user-123", onboarding={"clubDraft": {"name": "Test Club"}})

    result = await club_lifecycle.create_or_reuse(db_session, uid="user-123")

    assert result.created is True
    assert result.slug == "test-club"

    club = await crud.club.get(db_session, result.club_id)
    assert club.host_id == "user-123"
    assert club.name == "Test Club"
    assert club.billing_tier == "tier_a"
    assert club.members_count == 0
    assert club.billing["usage"] == {"payingMembers": 0}

    user = await crud.user.get(db_session, "user-123")
    assert user.host_status == {}
    assert user.roles == {"user": True}
    assert user.clubs_hosted == [result.club_id]
    assert user.onboarding["clubDraft"]["clubId"] == result.club_id
    assert user.onboarding["hostStatus"]["pendingActivation"] is True
    assert user.onboarding["hostStatus"]["activated"] is False
    assert user.onboarding["hostStatus"]["clubId"] == result.club_id


async def test_create_club_slug_collision(db_session):
    """A taken slug gets a numeric suffix."""
    await seed_user(db_session, "user-123", onboarding={"clubDraft": {"name": "Test Club"}})
    await seed_club(db_session, "club-other", host_id="someone", slug="test-club")

    result = await club_lifecycle.create_or_reuse(db_session, uid="user-123")

    assert result.slug == "test-club-2"


async def test_create_club_twice_reuses(db_session):
    """A second call reuses the club the draft points at."""
    await seed_user(db_session, "user-123", onboarding={"clubDraft": {"name": "Test Club"}})

    first = await club_lifecycle.create_or_reuse(db_session, uid="user-123")
    second = await club_lifecycle.create_or_reuse(db_session, uid="user-123")

    assert second.club_id == first.club_id
    assert second.slug == first.slug
    assert second.created is False
    assert await crud.club.get_ids(db_session) == [first.club_id]
    user = await crud.user.get(db_session, "user-123")
    assert user.clubs_hosted == [first.club_id]


async def test_reuse_owned_club_updates_details(db_session):
    """Reusing keeps the slug and applies the draft's name and description."""
    await seed_user(
        db_session,
        "user-abc",
        onboarding={
            "clubDraft": {
                "clubId": "club-owned",
                "name": "Renamed Club",
                "description": "New description",
            }
        },
    )
    await seed_club(
        db_session, "club-owned", host_id="user-abc", slug="owned-club", name="Owned Club"
    )

    result = await club_lifecycle.create_or_reuse(db_session, uid="user-abc")

    assert result.club_id == "club-owned"
    assert result.slug == "owned-club"

    club = await crud.club.get(db_session, "club-owned")
    assert club.name == "Renamed Club"
    assert club.description == "New description"
    assert club.slug == "owned-club"

    user = await crud.user.get(db_session, "user-abc")
    assert user.clubs_hosted == ["club-owned"]


async def test_reuse_foreign_club_writes_nothing(db_session):
    """A draft pointing at another host's club is rejected."""
    await seed_user(
        db_session,
        "user-321",
        onboarding={"clubDraft": {"clubId": "club-foreign", "name": "Mine Now"}},
    )
    await seed_club(db_session, "club-foreign", host_id="owner-9", name="Foreign Club")

    with pytest.raises(ClubOwnershipError, match="do not own"):
        await club_lifecycle.create_or_reuse(db_session, uid="user-321")

    club = await crud.club.get(db_session, "club-foreign")
    assert club.name == "Foreign Club"
    user = await crud.user.get(db_session, "user-321")
    assert user.clubs_hosted == []
    assert "hostStatus" not in user.onboarding


async def test_dangling_draft_creates_new_club(db_session):
    """A draft pointing at a deleted club falls back to creating one."""
    await seed_user(
        db_session,
        "user-123",
        onboarding={"clubDraft": {"clubId": "club-gone", "name": "Test Club"}},
    )

    result = await club_lifecycle.create_or_reuse(db_session, uid="user-123")

    assert result.created is True
    assert result.club_id != "club-gone"
    user = await crud.user.get(db_session, "user-123")
    assert user.onboarding["clubDraft"]["clubId"] == result.club_id


async def test_active_host_keeps_activated_projection(db_session):
    """A host with an active plan is not put back into pending activation."""
    await seed_user(
        db_session,
        "user-abc",
        host_status={"enabled": True, "billingTier": "tier_b"},
        onboarding={
            "clubDraft": {"clubId": "club-owned"},
            "hostStatus": {"activated": True, "billingTier": "tier_b"},
        },
        clubs_hosted=["club-owned"],
    )
    await seed_club(db_session, "club-owned", host_id="user-abc", tier="tier_b")

    await club_lifecycle.create_or_reuse(db_session, uid="user-abc")

    user = await crud.user.get(db_session, "user-abc")
    assert user.onboarding["hostStatus"] == {"activated": True, "billingTier": "tier_b"}
    assert user.host_status == {"enabled": True, "billingTier": "tier_b"}
