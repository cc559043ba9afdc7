"""
Stripe billing provider implementation.

Implements BillingProvider protocol using the Stripe API.
Handles webhook signature verification and event parsing.
"""
import json
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import stripe

from recipehub.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
    CheckoutSession,
)


def _timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")

        stripe.api_key = self.secret_key

    def create_customer(self, user_id: str, email: str, name: Optional[str] = None) -> str:
        customer_data: Dict[str, Any] = {
            "email": email,
            "metadata": {"user_id": user_id},
        }
        if name:
            customer_data["name"] = name
        try:
            customer = stripe.Customer.create(**customer_data)
            return customer.id
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe customer creation failed: {e}")

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None
    ) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata or {},
                subscription_data={"metadata": metadata or {}},
            )
            return CheckoutSession(session_id=session.id, url=session.url)
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")

    def create_portal_session(self, customer_id: str, return_url: str) -> str:
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            )
            return session.url
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe portal session creation failed: {e}")

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")

        sig_header = headers.get("stripe-signature") or headers.get("Stripe-Signature")
        if not sig_header:
            raise BillingWebhookError("Missing stripe-signature header")

        try:
            stripe.Webhook.construct_event(body, sig_header, self.webhook_secret)
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

        # Verified; parse as plain dicts rather than StripeObjects
        event = json.loads(body)
        return self._parse_event(event)

    def _parse_event(self, event: Dict[str, Any]) -> BillingWebhookResult:
        event_type = event.get("type", "")
        data = (event.get("data") or {}).get("object") or {}
        result = BillingWebhookResult(
            event_id=event.get("id", ""),
            event_type=event_type,
            customer_id=data.get("customer"),
            metadata=data.get("metadata") or {},
        )

        if event_type.startswith("customer.subscription."):
            result.subscription_id = data.get("id")
            result.status = data.get("status")
            items = (data.get("items") or {}).get("data") or []
            first_item = items[0] if items else {}
            result.price_id = (first_item.get("price") or {}).get("id")
            # Newer API versions carry the period on the item
            result.current_period_start = _timestamp(
                data.get("current_period_start") or first_item.get("current_period_start")
            )
            result.current_period_end = _timestamp(
                data.get("current_period_end") or first_item.get("current_period_end")
            )

        elif event_type.startswith("invoice."):
            subscription_id = data.get("subscription")
            if isinstance(subscription_id, dict):
                subscription_id = subscription_id.get("id")
            if not subscription_id:
                parent = data.get("parent") or {}
                subscription_id = (parent.get("subscription_details") or {}).get("subscription")
            result.subscription_id = subscription_id

        return result
