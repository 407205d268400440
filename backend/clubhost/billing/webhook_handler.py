"""Webhook processor for Stripe host plan events.

This module routes verified Stripe events to the host plan state machine and the
checkout side handlers, then records the committed transitions in the billing ledger.
"""

from dataclasses import dataclass
from typing import Any, Optional

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from clubhost import crud, schemas
from clubhost.billing import checkout_handlers
from clubhost.billing.host_plan import host_plan_state_machine
from clubhost.billing.ledger import billing_ledger
from clubhost.billing.tier_policy import DEFAULT_TIER, HostBillingTier, resolve_tier
from clubhost.core.datetime_utils import from_unix_timestamp, to_iso
from clubhost.core.exceptions import ExternalServiceError
from clubhost.core.logging import ContextualLogger, logger
from clubhost.integrations.stripe_client import (
    StripeClient,
    stripe_field,
    stripe_id,
    stripe_metadata,
)

HOST_PLAN_TYPE = "host_plan"
DOWNLOAD_TYPE = "download"


def derive_host_plan_phase(
    metadata: Optional[dict], subscription_status: Optional[str] = None
) -> schemas.HostPlanPhase:
    """Billing phase of a host plan.

    The subscription status wins over the phase the checkout metadata announced.
    """
    if subscription_status == "trialing":
        return schemas.HostPlanPhase.TRIAL
    if subscription_status == "active":
        return schemas.HostPlanPhase.ACTIVE

    phase = (metadata or {}).get("phase")
    if phase in (schemas.HostPlanPhase.TRIAL.value, schemas.HostPlanPhase.ACTIVE.value):
        return schemas.HostPlanPhase(phase)
    return schemas.HostPlanPhase.UNKNOWN


@dataclass
class ClubContext:
    """The club a subscription event belongs to, and its host."""

    club_id: str
    uid: str


class HostPlanWebhookProcessor:
    """Process Stripe webhook events for host plans."""

    def __init__(self, db: AsyncSession, stripe_client: StripeClient):
        """Initialize webhook processor."""
        self.db = db
        self.stripe = stripe_client

        # Event handler mapping
        self.handlers = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "invoice.payment_failed": self._handle_payment_failed,
        }

    def _create_context_logger(self, event: stripe.Event) -> ContextualLogger:
        """Create contextual logger with club context from the event metadata."""
        metadata = stripe_metadata(stripe_field(event.data, "object"))
        return logger.with_context(
            auth_method="stripe_webhook",
            event_type=event.type,
            stripe_event_id=event.id,
            club_id=metadata.get("clubId"),
            uid=metadata.get("uid"),
        )

    async def process_event(self, event: stripe.Event) -> None:
        """Process a Stripe webhook event.

        Exceptions from a handler propagate so the endpoint can answer with a 500 and
        Stripe redelivers the event.
        """
        log = self._create_context_logger(event)

        handler = self.handlers.get(event.type)
        if handler:
            try:
                log.info(f"Processing webhook event: {event.type}")
                await handler(event, log)
            except Exception as e:
                log.error(f"Error handling {event.type}: {e}", exc_info=True)
                raise
        else:
            log.info(f"Unhandled webhook event type: {event.type}")

    # Context resolution

    async def _resolve_club_context(
        self, subscription: Any, metadata: dict, log: ContextualLogger
    ) -> Optional[ClubContext]:
        """Find the club of a subscription event, from metadata or the stored subscription id."""
        if metadata.get("clubId") and metadata.get("uid"):
            return ClubContext(club_id=metadata["clubId"], uid=metadata["uid"])

        subscription_id = stripe_field(subscription, "id")
        if not subscription_id:
            return None

        club = await crud.club.get_by_stripe_subscription(
            self.db, stripe_subscription_id=subscription_id
        )
        if club is None or not club.host_id:
            return None

        log.debug(f"Resolved subscription {subscription_id} to club {club.id}")
        return ClubContext(club_id=club.id, uid=club.host_id)

    async def _load_checkout_subscription(self, session: Any, log: ContextualLogger) -> Any:
        """Subscription of a checkout session, expanded or fetched from Stripe.

        A failed fetch is logged and treated as unknown, the session is still processed.
        """
        subscription = stripe_field(session, "subscription")
        if subscription is None or not isinstance(subscription, str):
            return subscription

        try:
            return await self.stripe.get_subscription(subscription)
        except ExternalServiceError as e:
            log.warning(f"Failed to retrieve subscription {subscription} for checkout: {e}")
            return None

    def _tier_from_subscription(self, subscription: Any, metadata: dict) -> HostBillingTier:
        """Tier of the price the subscription is billed at.

        The ``tier`` metadata written at checkout goes stale once the plan changes, so it is
        only used when the price id is not one of the configured host plan prices.
        """
        price = self.stripe.extract_first_price(subscription)
        tier = self.stripe.get_tier_for_price(price["price_id"])
        if tier is not None:
            return tier
        if metadata.get("tier"):
            return resolve_tier(metadata["tier"])
        return DEFAULT_TIER

    # Event handlers

    async def _handle_checkout_completed(self, event: stripe.Event, log: ContextualLogger) -> None:
        """Route a completed checkout by its metadata type."""
        session = event.data.object
        checkout_type = stripe_metadata(session).get("type")

        if checkout_type == HOST_PLAN_TYPE:
            await self._handle_host_plan_checkout(event, log)
        elif checkout_type == DOWNLOAD_TYPE:
            await checkout_handlers.record_download_purchase(self.db, session, log)
        else:
            subscription = await self._load_checkout_subscription(session, log)
            await checkout_handlers.record_membership_join(self.db, session, subscription, log)

    async def _handle_host_plan_checkout(self, event: stripe.Event, log: ContextualLogger) -> None:
        """Activate the host plan bought through a checkout session."""
        session = event.data.object
        metadata = stripe_metadata(session)
        uid = metadata.get("uid")
        club_id = metadata.get("clubId")
        if not uid or not club_id:
            session_id = stripe_field(session, "id")
            log.error(f"Missing host plan checkout metadata on session {session_id}")
            return

        tier = resolve_tier(metadata.get("tier"))
        subscription = await self._load_checkout_subscription(session, log)
        phase = derive_host_plan_phase(metadata, stripe_field(subscription, "status"))

        transition = await host_plan_state_machine.activate(
            self.db,
            uid=uid,
            club_id=club_id,
            tier=tier.value,
            stripe_customer_id=stripe_id(stripe_field(session, "customer")),
            stripe_subscription_id=stripe_id(stripe_field(session, "subscription")),
            log=log,
        )

        event_type = (
            "host_plan_trial_started"
            if phase == schemas.HostPlanPhase.TRIAL
            else "host_plan_activated"
        )
        currency = stripe_field(session, "currency") or metadata.get("priceCurrency") or "aud"
        await billing_ledger.append_safely(
            self.db,
            club_id,
            event_type,
            {
                "uid": uid,
                "phase": phase.value,
                "tier": transition.tier,
                "amountCents": stripe_field(session, "amount_total", 0),
                "currency": currency.upper(),
                "sessionId": stripe_field(session, "id"),
                "priceId": metadata.get("priceId"),
                "stripeCustomerId": transition.stripe_customer_id,
                "stripeSubscriptionId": transition.stripe_subscription_id,
                "stripeEventId": event.id,
            },
            log=log,
        )

    async def _handle_subscription_updated(
        self, event: stripe.Event, log: ContextualLogger
    ) -> None:
        """Re-apply the host plan for the subscription's current tier."""
        subscription = event.data.object
        metadata = stripe_metadata(subscription)
        if metadata.get("type") and metadata["type"] != HOST_PLAN_TYPE:
            return

        subscription_id = stripe_field(subscription, "id")
        context = await self._resolve_club_context(subscription, metadata, log)
        if context is None:
            log.warning(f"Unable to resolve club context for subscription {subscription_id}")
            return

        status = stripe_field(subscription, "status")
        tier = self._tier_from_subscription(subscription, metadata)
        price = self.stripe.extract_first_price(subscription)

        transition = await host_plan_state_machine.activate(
            self.db,
            uid=context.uid,
            club_id=context.club_id,
            tier=tier.value,
            stripe_customer_id=stripe_id(stripe_field(subscription, "customer")),
            stripe_subscription_id=subscription_id,
            log=log,
        )

        await billing_ledger.append_safely(
            self.db,
            context.club_id,
            "host_plan_subscription_updated",
            {
                "uid": context.uid,
                "tier": transition.tier,
                "phase": derive_host_plan_phase(metadata, status).value,
                "amountCents": price["unit_amount"],
                "currency": price["currency"] or metadata.get("priceCurrency"),
                "sessionId": None,
                "priceId": price["price_id"] or metadata.get("priceId"),
                "stripeCustomerId": transition.stripe_customer_id,
                "stripeSubscriptionId": subscription_id,
                "stripeEventId": event.id,
                "status": status,
                "trialEndsAt": to_iso(
                    from_unix_timestamp(stripe_field(subscription, "trial_end"))
                ),
            },
            log=log,
        )

    async def _handle_subscription_deleted(
        self, event: stripe.Event, log: ContextualLogger
    ) -> None:
        """Cancel the host plan of a deleted subscription."""
        subscription = event.data.object
        metadata = stripe_metadata(subscription)
        if metadata.get("type") and metadata["type"] != HOST_PLAN_TYPE:
            return

        subscription_id = stripe_field(subscription, "id")
        context = await self._resolve_club_context(subscription, metadata, log)
        if context is None:
            log.warning(
                f"Unable to resolve club context for cancelled subscription {subscription_id}"
            )
            return

        await host_plan_state_machine.cancel(
            self.db,
            uid=context.uid,
            club_id=context.club_id,
            downgrade_reason="subscription_cancelled",
            log=log,
        )

        await billing_ledger.append_safely(
            self.db,
            context.club_id,
            "host_plan_subscription_cancelled",
            {
                "uid": context.uid,
                "stripeSubscriptionId": subscription_id,
                "stripeEventId": event.id,
            },
            log=log,
        )

    async def _handle_payment_failed(self, event: stripe.Event, log: ContextualLogger) -> None:
        """Log failed invoices; dunning is left to Stripe."""
        invoice = event.data.object
        log.warning(f"Payment failed for invoice {stripe_field(invoice, 'id')}")
