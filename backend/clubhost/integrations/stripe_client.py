"""Stripe API client for host plan billing.

This module provides a thin interface to the Stripe API without business logic. A client
is built once at startup from settings and handed to the code that needs it; requests
carry the client's own API key instead of relying on the module-level ``stripe.api_key``.
"""

from typing import Any, Dict, Mapping, Optional

import stripe

from clubhost.billing.tier_policy import HostBillingTier, tier_for_price_id
from clubhost.core.config import Settings
from clubhost.core.exceptions import ExternalServiceError, WebhookSignatureError


def stripe_field(obj: Any, key: str, default: Any = None) -> Any:
    """Read a field from a Stripe object or a plain dict.

    Item access is tried first because some Stripe field names (``items``) collide with
    methods of the object.
    """
    if obj is None or isinstance(obj, str):
        return default
    try:
        value = obj[key]
    except (KeyError, IndexError, TypeError):
        value = getattr(obj, key, None) if not isinstance(obj, dict) else None
    return default if value is None else value


def stripe_metadata(obj: Any) -> Dict[str, str]:
    """Metadata of a Stripe object as a plain dict."""
    metadata = stripe_field(obj, "metadata")
    if not metadata:
        return {}
    if isinstance(metadata, dict):
        return dict(metadata)
    to_dict = getattr(metadata, "to_dict", None)
    return dict(to_dict()) if callable(to_dict) else {}


def stripe_id(value: Any) -> Optional[str]:
    """Id of an expandable Stripe reference, which is either an id or an object."""
    if not value:
        return None
    if isinstance(value, str):
        return value
    return stripe_field(value, "id")


class StripeClient:
    """Client for Stripe API operations."""

    def __init__(self, settings: Settings):
        """Initialize Stripe client.

        Args:
            settings: Application settings carrying the Stripe keys and price ids.

        Raises:
            ValueError: If billing is disabled or a key is missing.
        """
        if not settings.STRIPE_ENABLED:
            raise ValueError("Stripe is not enabled in settings")
        if not settings.STRIPE_SECRET_KEY or not settings.STRIPE_WEBHOOK_SECRET:
            raise ValueError("STRIPE_SECRET_KEY and STRIPE_WEBHOOK_SECRET must be set")

        self.api_key = settings.STRIPE_SECRET_KEY
        self.webhook_secret = settings.STRIPE_WEBHOOK_SECRET

        # Price ID configuration
        self.price_ids: Dict[HostBillingTier, Optional[str]] = {
            HostBillingTier.TIER_A: settings.STRIPE_PRICE_ID_TIER_A,
            HostBillingTier.TIER_B: settings.STRIPE_PRICE_ID_TIER_B,
            HostBillingTier.TIER_C: settings.STRIPE_PRICE_ID_TIER_C,
        }

    def get_price_for_tier(self, tier: str) -> Optional[str]:
        """Get Stripe price ID for a host plan tier."""
        return self.price_ids.get(HostBillingTier(tier))

    def get_tier_for_price(self, price_id: Optional[str]) -> Optional[HostBillingTier]:
        """Get the host plan tier billed through a Stripe price ID."""
        return tier_for_price_id(price_id, self.price_ids)

    def _sanitize_text(self, text: str) -> str:
        """Sanitize text for Stripe API (ASCII-only)."""
        if not text:
            return text
        return text.encode("ascii", "replace").decode("ascii")

    def _clean_metadata(self, metadata: Optional[Mapping[str, Any]]) -> Dict[str, str]:
        """Stripe metadata values must be strings."""
        if not metadata:
            return {}

        return {
            self._sanitize_text(str(key)): self._sanitize_text(str(value))
            for key, value in metadata.items()
            if value is not None
        }

    # Subscription operations

    async def get_subscription(self, subscription_id: str) -> stripe.Subscription:
        """Retrieve a subscription."""
        try:
            return await stripe.Subscription.retrieve_async(subscription_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise ExternalServiceError(
                service_name="Stripe",
                message=f"Failed to retrieve subscription: {str(e)}",
            ) from e

    async def update_subscription_price(
        self,
        subscription_id: str,
        price_id: str,
        proration_behavior: str = "create_prorations",
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> stripe.Subscription:
        """Move the first item of a subscription onto another price.

        Stripe merges ``metadata`` into the subscription's existing keys, so a tier change
        can overwrite the ``tier`` written at checkout and leave ``clubId`` and ``uid`` alone.
        """
        subscription = await self.get_subscription(subscription_id)
        items_data = stripe_field(stripe_field(subscription, "items"), "data", [])
        if not items_data:
            raise ExternalServiceError(
                service_name="Stripe",
                message=f"Subscription {subscription_id} has no items",
            )

        params: Dict[str, Any] = {
            "items": [{"id": stripe_field(items_data[0], "id"), "price": price_id}],
            "proration_behavior": proration_behavior,
        }
        if metadata:
            params["metadata"] = self._clean_metadata(metadata)

        try:
            return await stripe.Subscription.modify_async(
                subscription_id, api_key=self.api_key, **params
            )
        except stripe.StripeError as e:
            raise ExternalServiceError(
                service_name="Stripe",
                message=f"Failed to update subscription: {str(e)}",
            ) from e

    # Checkout operations

    async def create_host_plan_checkout_session(
        self,
        *,
        price_id: str,
        success_url: str,
        cancel_url: str,
        client_reference_id: str,
        metadata: Mapping[str, Any],
        trial_period_days: int = 0,
        customer_email: Optional[str] = None,
    ) -> stripe.checkout.Session:
        """Create a subscription checkout session for a host plan.

        The metadata is attached to both the session and the subscription it creates, so
        later subscription events can be traced back to the club.
        """
        clean_metadata = self._clean_metadata(metadata)
        subscription_data: Dict[str, Any] = {"metadata": clean_metadata}
        if trial_period_days > 0:
            subscription_data["trial_period_days"] = trial_period_days

        params: Dict[str, Any] = {
            "mode": "subscription",
            "payment_method_types": ["card"],
            "client_reference_id": client_reference_id,
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": self._sanitize_text(success_url),
            "cancel_url": self._sanitize_text(cancel_url),
            "metadata": clean_metadata,
            "subscription_data": subscription_data,
        }
        if customer_email:
            params["customer_email"] = self._sanitize_text(customer_email)

        try:
            return await stripe.checkout.Session.create_async(api_key=self.api_key, **params)
        except stripe.StripeError as e:
            raise ExternalServiceError(
                service_name="Stripe",
                message=f"Failed to create checkout session: {str(e)}",
            ) from e

    # Webhook operations

    def verify_webhook_signature(self, payload: bytes, signature: str) -> stripe.Event:
        """Verify and construct webhook event.

        Raises:
            WebhookSignatureError: If the payload is malformed or the signature is invalid.
        """
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise WebhookSignatureError(f"Invalid webhook payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(f"Invalid webhook signature: {e}") from e

    # Helper methods

    def extract_first_price(self, subscription: Any) -> Dict[str, Any]:
        """Price id, unit amount and currency of the first subscription item."""
        items_data = stripe_field(stripe_field(subscription, "items"), "data", [])
        if not items_data:
            return {"price_id": None, "unit_amount": None, "currency": None}
        price = stripe_field(items_data[0], "price")
        currency = stripe_field(price, "currency")
        return {
            "price_id": stripe_field(price, "id"),
            "unit_amount": stripe_field(price, "unit_amount"),
            "currency": currency.upper() if currency else None,
        }
