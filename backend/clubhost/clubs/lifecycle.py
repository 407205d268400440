"""Club lifecycle during host onboarding.

A candidate host first saves a club draft on their user document, then asks for the club
to be created (or reused) before any payment exists. Neither step grants host privileges:
``host_status`` and ``roles`` are only written by the host plan state machine.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import crud, schemas
from clubhost.billing.tier_policy import DEFAULT_TIER, resolve_tier, tier_billing_fields
from clubhost.clubs.slug import find_available_slug
from clubhost.core.exceptions import ClubOwnershipError, NotFoundException
from clubhost.core.logging import ContextualLogger, logger
from clubhost.db.field_updates import SERVER_TIMESTAMP
from clubhost.db.transaction import run_transaction
from clubhost.db.unit_of_work import UnitOfWork
from clubhost.models import User
from clubhost.models._base import generate_id


def default_club_name(user: User) -> str:
    """Name suggested for a club when the host did not pick one."""
    if user.display_name:
        return f"{user.display_name.strip()}'s Club"
    if user.email:
        return f"{user.email.split('@')[0]}'s Club"
    return "My Club"


class ClubLifecycleManager:
    """Creates and reuses clubs for candidate hosts."""

    async def save_club_draft(
        self,
        db: AsyncSession,
        *,
        uid: str,
        draft: schemas.ClubDraftUpdate,
        log: Optional[ContextualLogger] = None,
    ) -> dict:
        """Merge the submitted fields into ``onboarding.clubDraft``.

        Returns:
            The user's onboarding document after the write.
        """
        log = (log or logger).with_context(uid=uid)

        async def _apply(uow: UnitOfWork) -> dict:
            user = await crud.user.get(db, uid)
            if not user:
                raise NotFoundException(f"User {uid} not found")

            current_draft = (user.onboarding or {}).get("clubDraft") or {}
            updates: dict = {}

            if draft.name is not None:
                updates["clubDraft.name"] = draft.name.strip()
            elif draft.auto_generate_name and not current_draft.get("name"):
                updates["clubDraft.name"] = default_club_name(user)

            if draft.description is not None:
                updates["clubDraft.description"] = draft.description.strip()

            if draft.step:
                updates["progress.currentStep"] = draft.step
                updates["progress.lastStepCompletedAt"] = SERVER_TIMESTAMP
                if not ((user.onboarding or {}).get("progress") or {}).get("startedAt"):
                    updates["progress.startedAt"] = SERVER_TIMESTAMP

            if updates:
                await crud.user.update(
                    db, db_obj=user, obj_in={}, document_updates={"onboarding": updates}, uow=uow
                )
            return dict(user.onboarding or {})

        onboarding = await run_transaction(db, _apply, log=log)
        log.info("Saved club draft")
        return onboarding

    async def create_or_reuse(
        self, db: AsyncSession, *, uid: str, log: Optional[ContextualLogger] = None
    ) -> schemas.HostClub:
        """Create the club described by the user's draft, or reuse the one it points to.

        Runs as one transaction: the draft is read, the referenced club is checked for
        ownership, a free slug is picked and the club row and the user's onboarding
        document are written together. Host privileges are not touched.

        Args:
            db: Database session.
            uid: The candidate host.
            log: Logger carrying the caller's context.

        Returns:
            The club id and slug.

        Raises:
            NotFoundException: If the user does not exist.
            ClubOwnershipError: If the draft points at a club hosted by someone else.
            SlugUnavailableError: If no free slug could be found for the club name.
        """
        log = (log or logger).with_context(uid=uid)

        async def _apply(uow: UnitOfWork) -> schemas.HostClub:
            user = await crud.user.get(db, uid)
            if not user:
                raise NotFoundException(f"User {uid} not found")

            onboarding = user.onboarding or {}
            draft = onboarding.get("clubDraft") or {}
            draft_name = (draft.get("name") or "").strip()
            draft_description = (draft.get("description") or "").strip()

            club = None
            if draft.get("clubId"):
                club = await crud.club.get(db, draft["clubId"])
                if club is None:
                    log.warning(f"Club draft points at missing club {draft['clubId']}")

            created = club is None
            if club is not None:
                if club.host_id != uid:
                    raise ClubOwnershipError(club.id, uid, action="reuse")

                tier = resolve_tier(club.billing_tier).value
                await crud.club.update(
                    db,
                    db_obj=club,
                    obj_in={
                        "name": draft_name or club.name,
                        "description": draft_description or club.description,
                        "plan_type": tier,
                        "billing_tier": tier,
                    },
                    uow=uow,
                )
            else:
                name = draft_name or default_club_name(user)
                slug = await find_available_slug(
                    name, lambda candidate: crud.club.slug_exists(db, slug=candidate)
                )
                fields = tier_billing_fields(DEFAULT_TIER)
                club = await crud.club.create(
                    db,
                    obj_in={
                        "id": generate_id(),
                        "host_id": uid,
                        "name": name,
                        "slug": slug,
                        "description": draft_description,
                        "plan_type": fields["plan_type"],
                        "billing_tier": fields["billing_tier"],
                        "max_members": fields["max_members"],
                        "billing": {**fields["billing"], "usage": {"payingMembers": 0}},
                        "members_count": 0,
                        "member_cost": 0,
                    },
                    uow=uow,
                )

            onboarding_updates = {"clubDraft.clubId": club.id}
            # A host that already activated a plan keeps its activated projection
            if not (user.host_status or {}).get("enabled"):
                onboarding_updates.update(
                    {
                        "hostStatus.pendingActivation": True,
                        "hostStatus.activated": False,
                        "hostStatus.clubId": club.id,
                        "hostStatus.billingTier": DEFAULT_TIER.value,
                    }
                )

            clubs_hosted = list(user.clubs_hosted or [])
            if club.id not in clubs_hosted:
                clubs_hosted.append(club.id)

            await crud.user.update(
                db,
                db_obj=user,
                obj_in={"clubs_hosted": clubs_hosted},
                document_updates={"onboarding": onboarding_updates},
                uow=uow,
            )

            return schemas.HostClub(club_id=club.id, slug=club.slug, created=created)

        result = await run_transaction(db, _apply, retry_on=(IntegrityError,), log=log)
        log.with_context(club_id=result.club_id).info(
            f"{'Created' if result.created else 'Reused'} club '{result.slug}' for onboarding"
        )
        return result


club_lifecycle = ClubLifecycleManager()
