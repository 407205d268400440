"""Periodic host plan tier reconciliation.

Once a day every club's member count is compared with the thresholds of its tier. Clubs
that outgrow their tier get an upgrade scheduled after a warning period; clubs that stay
below the downgrade threshold for the cooldown period become eligible for a downgrade. A
schedule that is due is executed by moving the Stripe subscription onto the new price and
activating the host plan on the new tier.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import crud
from clubhost.billing.host_plan import host_plan_state_machine
from clubhost.billing.ledger import billing_ledger
from clubhost.billing.tier_policy import (
    HOST_PLAN_SOFT_LIMIT_GRACE,
    HOST_PLAN_WARNING_HOURS,
    HostBillingTier,
    get_next_tier,
    get_previous_tier,
    is_below_downgrade_threshold,
    is_over_upgrade_threshold,
    resolve_tier,
)
from clubhost.core.datetime_utils import ensure_utc, parse_iso, to_iso, utc_now
from clubhost.core.exceptions import NotFoundException
from clubhost.core.logging import ContextualLogger, logger
from clubhost.db.field_updates import DELETE_FIELD
from clubhost.db.transaction import run_transaction
from clubhost.db.unit_of_work import UnitOfWork
from clubhost.integrations.stripe_client import StripeClient

UPGRADE_REASON = "members_threshold"
DOWNGRADE_REASON = "members_below_threshold"


@dataclass
class _Evaluation:
    """What the tracking transaction decided for one club."""

    action: Optional[str]
    tier: HostBillingTier
    host_id: Optional[str]
    stripe_subscription_id: Optional[str]
    members_count: int


class HostPlanReconciler:
    """Tracks usage streaks and executes scheduled tier changes."""

    def __init__(self, stripe_client: Optional[StripeClient] = None):
        """Initialize the reconciler.

        Args:
            stripe_client: Client used to move subscriptions between prices. Without one,
                due tier changes are logged and left scheduled.
        """
        self.stripe = stripe_client

    async def _track(
        self, db: AsyncSession, club_id: str, now: datetime, log: ContextualLogger
    ) -> _Evaluation:
        async def _apply(uow: UnitOfWork) -> _Evaluation:
            club = await crud.club.get(db, club_id)
            if not club:
                raise NotFoundException(f"Club {club_id} not found")

            tier = resolve_tier(club.billing_tier)
            members = club.members_count or 0
            billing = club.billing or {}
            usage = billing.get("usage") or {}

            over = is_over_upgrade_threshold(tier.value, members)
            under = is_below_downgrade_threshold(tier.value, members)
            streak_over = (usage.get("streakOverSoftLimitDays") or 0) + 1 if over else 0
            streak_below = (usage.get("streakBelowThresholdDays") or 0) + 1 if under else 0
            # The streak is tracked on every tier, a downgrade needs a tier to go down to
            below = under and get_previous_tier(tier.value) is not None

            updates = {
                "usage.payingMembers": members,
                "usage.streakOverSoftLimitDays": streak_over,
                "usage.streakBelowThresholdDays": streak_below,
                "usage.loggedAt": to_iso(now),
            }

            action = None
            upgrade_at = parse_iso(billing.get("upgradeScheduledFor"))
            downgrade_at = parse_iso(billing.get("downgradeEligibleAfter"))

            if over and upgrade_at is None:
                updates["upgradeScheduledFor"] = to_iso(
                    now + timedelta(hours=HOST_PLAN_WARNING_HOURS)
                )
                updates["upgradeReason"] = UPGRADE_REASON
                updates["warningEmailSentAt"] = to_iso(now)
                action = "upgrade_scheduled"
            elif over and upgrade_at <= now:
                action = "upgrade_due"
            elif not over and upgrade_at is not None:
                updates["upgradeScheduledFor"] = DELETE_FIELD
                updates["upgradeReason"] = DELETE_FIELD
                updates["warningEmailSentAt"] = DELETE_FIELD
                action = "upgrade_cleared"

            if action is None:
                cooldown = HOST_PLAN_SOFT_LIMIT_GRACE.downgrade_cooldown_days
                if below and downgrade_at is None and streak_below >= cooldown:
                    updates["downgradeEligibleAfter"] = to_iso(now)
                    updates["downgradeReason"] = DOWNGRADE_REASON
                    action = "downgrade_scheduled"
                elif below and downgrade_at is not None and downgrade_at <= now:
                    action = "downgrade_due"
                elif not below and downgrade_at is not None:
                    updates["downgradeEligibleAfter"] = DELETE_FIELD
                    updates["downgradeReason"] = DELETE_FIELD
                    action = "downgrade_cleared"

            await crud.club.update(
                db, db_obj=club, obj_in={}, document_updates={"billing": updates}, uow=uow
            )

            return _Evaluation(
                action=action,
                tier=tier,
                host_id=club.host_id,
                stripe_subscription_id=billing.get("stripeSubscriptionId"),
                members_count=members,
            )

        return await run_transaction(db, _apply, log=log)

    async def _change_tier(
        self,
        db: AsyncSession,
        club_id: str,
        evaluation: _Evaluation,
        target: Optional[HostBillingTier],
        event_type: str,
        reason: str,
        log: ContextualLogger,
    ) -> bool:
        """Move a club with a due schedule onto ``target``."""
        if target is None:
            return False
        if not evaluation.host_id or not evaluation.stripe_subscription_id:
            log.warning(f"Club {club_id} has a due tier change but no host or subscription")
            return False
        if self.stripe is None:
            log.warning(f"Stripe is disabled; tier change of club {club_id} stays scheduled")
            return False

        price_id = self.stripe.get_price_for_tier(target.value)
        if not price_id:
            log.warning(f"No Stripe price configured for {target.value}")
            return False

        await self.stripe.update_subscription_price(
            evaluation.stripe_subscription_id, price_id, metadata={"tier": target.value}
        )
        transition = await host_plan_state_machine.activate(
            db,
            uid=evaluation.host_id,
            club_id=club_id,
            tier=target.value,
            stripe_subscription_id=evaluation.stripe_subscription_id,
            log=log,
        )

        await billing_ledger.append_safely(
            db,
            club_id,
            event_type,
            {
                "uid": evaluation.host_id,
                "tier": transition.tier,
                "previousTier": transition.previous_tier,
                "priceId": price_id,
                "stripeSubscriptionId": evaluation.stripe_subscription_id,
                "membersCount": evaluation.members_count,
                "reason": reason,
            },
            log=log,
        )
        return True

    async def evaluate_club(
        self,
        db: AsyncSession,
        club_id: str,
        now: Optional[datetime] = None,
        log: Optional[ContextualLogger] = None,
    ) -> Optional[str]:
        """Run one reconciliation step for a club.

        Args:
            db: Database session.
            club_id: The club to evaluate.
            now: Reference time, defaults to the current time.
            log: Logger carrying the caller's context.

        Returns:
            The action taken (``upgrade_scheduled``, ``upgraded``, ``downgrade_scheduled``,
            ``downgraded``, ``upgrade_cleared``, ``downgrade_cleared``), or None.
        """
        now = ensure_utc(now or utc_now())
        log = (log or logger).with_context(club_id=club_id)

        evaluation = await self._track(db, club_id, now, log)

        if evaluation.action == "upgrade_scheduled":
            await billing_ledger.append_safely(
                db,
                club_id,
                "host_plan_upgrade_scheduled",
                {
                    "uid": evaluation.host_id,
                    "tier": evaluation.tier.value,
                    "targetTier": getattr(get_next_tier(evaluation.tier.value), "value", None),
                    "membersCount": evaluation.members_count,
                    "upgradeScheduledFor": to_iso(now + timedelta(hours=HOST_PLAN_WARNING_HOURS)),
                    "reason": UPGRADE_REASON,
                },
                log=log,
            )
        elif evaluation.action == "downgrade_scheduled":
            await billing_ledger.append_safely(
                db,
                club_id,
                "host_plan_downgrade_scheduled",
                {
                    "uid": evaluation.host_id,
                    "tier": evaluation.tier.value,
                    "targetTier": getattr(get_previous_tier(evaluation.tier.value), "value", None),
                    "membersCount": evaluation.members_count,
                    "downgradeEligibleAfter": to_iso(now),
                    "reason": DOWNGRADE_REASON,
                },
                log=log,
            )
        elif evaluation.action == "upgrade_due":
            changed = await self._change_tier(
                db,
                club_id,
                evaluation,
                get_next_tier(evaluation.tier.value),
                "host_plan_upgraded",
                UPGRADE_REASON,
                log,
            )
            return "upgraded" if changed else None
        elif evaluation.action == "downgrade_due":
            changed = await self._change_tier(
                db,
                club_id,
                evaluation,
                get_previous_tier(evaluation.tier.value),
                "host_plan_downgraded",
                DOWNGRADE_REASON,
                log,
            )
            return "downgraded" if changed else None

        if evaluation.action:
            log.info(f"Host plan reconciliation: {evaluation.action}")
        return evaluation.action

    async def reconcile_all(
        self, db: AsyncSession, now: Optional[datetime] = None
    ) -> dict[str, int]:
        """Evaluate every club; one club's failure does not stop the run.

        Returns:
            Counts per action, plus ``evaluated`` and ``failed``.
        """
        now = ensure_utc(now or utc_now())
        summary: Counter = Counter()

        for club_id in await crud.club.get_ids(db):
            try:
                action = await self.evaluate_club(db, club_id, now)
            except Exception as e:
                logger.error(f"Failed to reconcile host plan of club {club_id}: {e}", exc_info=True)
                await db.rollback()
                summary["failed"] += 1
                continue

            summary["evaluated"] += 1
            if action:
                summary[action] += 1

        logger.info(
            f"Host plan reconciliation finished: {summary['evaluated']} evaluated, "
            f"{summary['failed']} failed"
        )
        return dict(summary)
