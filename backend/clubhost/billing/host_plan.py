"""Host plan state machine.

A host plan moves pending -> trial/active -> cancelled, and between tiers while active.
Every transition reads the user and the club, verifies that the user hosts the club and
writes both rows in one transaction. Nothing is written when the check fails.

Ledger entries are not written here. Callers append them after the transition committed,
through ``BillingEventLedger.append_safely``.
"""

from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import crud, schemas
from clubhost.billing.tier_policy import DEFAULT_TIER, get_tier_config, tier_billing_fields
from clubhost.core.exceptions import ClubOwnershipError, InvalidStateError, NotFoundException
from clubhost.core.logging import ContextualLogger, logger
from clubhost.db.field_updates import DELETE_FIELD, SERVER_TIMESTAMP
from clubhost.db.transaction import run_transaction
from clubhost.db.unit_of_work import UnitOfWork
from clubhost.models import Club, User

STEP_PLAN_ACTIVE = "host:plan-active"
STEP_PLAN_CANCELLED = "host:plan-cancelled"

_SCHEDULE_KEYS = (
    "upgradeScheduledFor",
    "downgradeEligibleAfter",
    "downgradeReason",
    "upgradeReason",
    "warningEmailSentAt",
)


class HostPlanStateMachine:
    """Applies host plan activations and cancellations."""

    async def _load_pair(self, db: AsyncSession, uid: str, club_id: str) -> Tuple[User, Club]:
        user = await crud.user.get(db, uid)
        if not user:
            raise NotFoundException(f"User {uid} not found")
        club = await crud.club.get(db, club_id)
        if not club:
            raise NotFoundException(f"Club {club_id} not found")
        return user, club

    @staticmethod
    def _tier_billing_updates(club: Club, tier: str) -> dict:
        """Billing paths shared by activation and cancellation."""
        fields = tier_billing_fields(tier)
        usage = dict((club.billing or {}).get("usage") or {})
        usage["payingMembers"] = club.members_count or 0
        updates = {
            "tier": fields["billing"]["tier"],
            "transactionFeePercent": fields["billing"]["transactionFeePercent"],
            "softLimits": fields["billing"]["softLimits"],
            "usage": usage,
        }
        for key in _SCHEDULE_KEYS:
            updates[key] = DELETE_FIELD
        return updates

    @staticmethod
    def _progress_updates(user: User, step: str) -> dict:
        progress = (user.onboarding or {}).get("progress") or {}
        updates = {
            "progress.currentStep": step,
            "progress.lastStepCompletedAt": SERVER_TIMESTAMP,
        }
        if not progress.get("startedAt"):
            updates["progress.startedAt"] = SERVER_TIMESTAMP
        return updates

    async def activate(
        self,
        db: AsyncSession,
        *,
        uid: str,
        club_id: str,
        tier: str,
        stripe_customer_id: Optional[str] = None,
        stripe_subscription_id: Optional[str] = None,
        log: Optional[ContextualLogger] = None,
    ) -> schemas.HostPlanTransition:
        """Activate (or re-tier) the host plan of ``club_id`` for ``uid``.

        Copies the tier parameters onto the club, enables host privileges on the user and
        mirrors the status into the onboarding document. Stripe identifiers are only
        written when given. Applying the same activation twice leaves the same state.

        Args:
            db: Database session.
            uid: The user that must host the club.
            club_id: The club whose plan is activated.
            tier: Target tier id.
            stripe_customer_id: Stripe customer, if known.
            stripe_subscription_id: Stripe subscription, if known.
            log: Logger carrying the caller's context.

        Returns:
            The committed transition.

        Raises:
            UnknownTierError: If ``tier`` is not a known tier.
            NotFoundException: If the user or the club does not exist.
            InvalidStateError: If the club has no host.
            ClubOwnershipError: If the club is hosted by someone else.
        """
        config = get_tier_config(tier)
        tier_id = config.tier.value
        log = (log or logger).with_context(uid=uid, club_id=club_id)

        async def _apply(uow: UnitOfWork) -> schemas.HostPlanTransition:
            user, club = await self._load_pair(db, uid, club_id)

            if not club.host_id:
                raise InvalidStateError(
                    f"Club {club_id} does not have a host assigned; cannot activate plan"
                )
            if club.host_id != uid:
                raise ClubOwnershipError(club_id, uid, action="activate a plan for")

            previous_tier = club.billing_tier

            billing_updates = self._tier_billing_updates(club, tier_id)
            if stripe_customer_id:
                billing_updates["stripeCustomerId"] = stripe_customer_id
            if stripe_subscription_id:
                billing_updates["stripeSubscriptionId"] = stripe_subscription_id

            fields = tier_billing_fields(tier_id)
            await crud.club.update(
                db,
                db_obj=club,
                obj_in={
                    "plan_type": fields["plan_type"],
                    "billing_tier": fields["billing_tier"],
                    "max_members": fields["max_members"],
                    "member_cost": club.member_cost or 0,
                },
                document_updates={"billing": billing_updates},
                uow=uow,
            )

            stripe_ids = {}
            if stripe_customer_id:
                stripe_ids["stripeCustomerId"] = stripe_customer_id
            if stripe_subscription_id:
                stripe_ids["stripeSubscriptionId"] = stripe_subscription_id

            onboarding_updates = {
                "hostStatus.activated": True,
                "hostStatus.pendingActivation": False,
                "hostStatus.clubId": club_id,
                "hostStatus.billingTier": tier_id,
                **{f"hostStatus.{key}": value for key, value in stripe_ids.items()},
                **self._progress_updates(user, STEP_PLAN_ACTIVE),
            }
            host_status_updates = {"enabled": True, "billingTier": tier_id, **stripe_ids}

            await crud.user.update(
                db,
                db_obj=user,
                obj_in={},
                document_updates={
                    "onboarding": onboarding_updates,
                    "host_status": host_status_updates,
                    "roles": {"user": True, "host": True},
                },
                uow=uow,
            )

            return schemas.HostPlanTransition(
                kind=schemas.HostPlanTransitionKind.ACTIVATED,
                uid=uid,
                club_id=club_id,
                tier=tier_id,
                previous_tier=previous_tier,
                stripe_customer_id=stripe_customer_id,
                stripe_subscription_id=stripe_subscription_id,
            )

        transition = await run_transaction(db, _apply, log=log)
        log.info(f"Host plan activated on {tier_id} (previous tier {transition.previous_tier})")
        return transition

    async def cancel(
        self,
        db: AsyncSession,
        *,
        uid: str,
        club_id: str,
        downgrade_reason: Optional[str] = "subscription_cancelled",
        log: Optional[ContextualLogger] = None,
    ) -> schemas.HostPlanTransition:
        """Cancel the host plan of ``club_id``.

        Resets the club to the default tier, removes the subscription id from the club and
        from both status documents and disables host privileges. Roles and member counts
        are left alone.

        Raises:
            NotFoundException: If the user or the club does not exist.
            ClubOwnershipError: If the club is hosted by someone else.
        """
        tier_id = DEFAULT_TIER.value
        log = (log or logger).with_context(uid=uid, club_id=club_id)

        async def _apply(uow: UnitOfWork) -> schemas.HostPlanTransition:
            user, club = await self._load_pair(db, uid, club_id)

            if club.host_id and club.host_id != uid:
                raise ClubOwnershipError(club_id, uid, action="cancel the plan of")

            previous_tier = club.billing_tier

            billing_updates = self._tier_billing_updates(club, tier_id)
            billing_updates["stripeSubscriptionId"] = DELETE_FIELD
            billing_updates["downgradeReason"] = downgrade_reason or DELETE_FIELD

            fields = tier_billing_fields(tier_id)
            await crud.club.update(
                db,
                db_obj=club,
                obj_in={
                    "plan_type": fields["plan_type"],
                    "billing_tier": fields["billing_tier"],
                    "max_members": fields["max_members"],
                },
                document_updates={"billing": billing_updates},
                uow=uow,
            )

            onboarding_updates = {
                "hostStatus.activated": False,
                "hostStatus.pendingActivation": False,
                "hostStatus.billingTier": tier_id,
                "hostStatus.stripeSubscriptionId": DELETE_FIELD,
                "hostStatus.upgradeScheduledFor": DELETE_FIELD,
                "hostStatus.downgradeEligibleAfter": DELETE_FIELD,
                **self._progress_updates(user, STEP_PLAN_CANCELLED),
            }
            host_status_updates = {
                "enabled": False,
                "billingTier": tier_id,
                "stripeSubscriptionId": DELETE_FIELD,
            }

            await crud.user.update(
                db,
                db_obj=user,
                obj_in={},
                document_updates={
                    "onboarding": onboarding_updates,
                    "host_status": host_status_updates,
                },
                uow=uow,
            )

            return schemas.HostPlanTransition(
                kind=schemas.HostPlanTransitionKind.CANCELLED,
                uid=uid,
                club_id=club_id,
                tier=tier_id,
                previous_tier=previous_tier,
                downgrade_reason=downgrade_reason,
            )

        transition = await run_transaction(db, _apply, log=log)
        log.info(f"Host plan cancelled ({downgrade_reason}), club reset to {tier_id}")
        return transition


host_plan_state_machine = HostPlanStateMachine()
