"""
Billing service.

Orchestrates the billing provider and reconciles entitlement and usage
state from provider webhooks.

Handles:
- Lazy Stripe customer creation
- Checkout and portal sessions
- Webhook processing (idempotent per Stripe event id)
"""
import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from recipehub.core.config import settings
from recipehub.core.database import get_db_session, billing_events
from recipehub.core.errors import (
    BillingDisabledError,
    UpstreamProviderError,
    ValidationError,
    WebhookSignatureInvalidError,
)
from recipehub.core.logging import log_event
from recipehub.features.billing.provider import (
    BillingProvider,
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
    CheckoutSession,
)
from recipehub.features.billing.stripe_provider import StripeProvider
from recipehub.features.plans.service import FREE_PLAN, get_plan, plan_for_price
from recipehub.features.subscriptions.service import (
    downgrade_to_free,
    get_entitlement,
    get_entitlement_by_subscription,
    set_status_for_subscription,
    upsert_entitlement,
)
from recipehub.features.usage.service import reset_usage, set_request_limit
from recipehub.features.users.service import (
    get_user,
    get_user_by_customer,
    set_stripe_customer_id,
)
from recipehub.models.subscription import STATUS_ACTIVE, STATUS_CANCELLED, STATUS_PAST_DUE
from recipehub.models.user import User

logger = logging.getLogger(__name__)

# Stripe subscription status -> entitlement status
STRIPE_STATUS_MAP = {
    "active": STATUS_ACTIVE,
    "trialing": STATUS_ACTIVE,
    "past_due": STATUS_PAST_DUE,
    "unpaid": STATUS_PAST_DUE,
    "incomplete": STATUS_PAST_DUE,
    "paused": STATUS_PAST_DUE,
    "canceled": STATUS_CANCELLED,
    "incomplete_expired": STATUS_CANCELLED,
}


def billing_enabled() -> bool:
    """Billing is enabled when a Stripe secret key is configured."""
    return bool(settings.STRIPE_SECRET_KEY)


def get_provider() -> BillingProvider:
    if not billing_enabled():
        raise BillingDisabledError("Billing is not configured")
    return StripeProvider(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    )


def map_subscription_status(stripe_status: Optional[str]) -> str:
    mapped = STRIPE_STATUS_MAP.get(stripe_status or "")
    if mapped is None:
        logger.warning("billing.unknown_subscription_status", extra={"stripe_status": stripe_status})
        return STATUS_PAST_DUE
    return mapped


def ensure_customer_for_user(user: User, provider: BillingProvider) -> str:
    """Stripe customer id for the user, created and stored on first use."""
    if user.stripe_customer_id:
        return user.stripe_customer_id
    try:
        customer_id = provider.create_customer(user.id, user.email, user.name)
    except BillingProviderError as e:
        raise UpstreamProviderError(str(e))
    set_stripe_customer_id(user.id, customer_id)
    log_event("info", "billing.customer_created", user_id=user.id)
    return customer_id


def start_checkout(user_id: str, plan_id: str) -> CheckoutSession:
    provider = get_provider()

    plan = get_plan(plan_id)
    if plan is None or plan.plan_id == FREE_PLAN or not plan.price_id:
        raise ValidationError("Invalid plan selected")

    user = get_user(user_id)
    if user is None:
        raise ValidationError("User not found")

    customer_id = ensure_customer_for_user(user, provider)
    try:
        session = provider.create_checkout_session(
            customer_id=customer_id,
            price_id=plan.price_id,
            success_url=f"{settings.CLIENT_URL}/subscription/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.CLIENT_URL}/subscription/cancel",
            metadata={"user_id": user.id, "plan_id": plan.plan_id},
        )
    except BillingProviderError as e:
        raise UpstreamProviderError(str(e))

    log_event("info", "billing.checkout_started", user_id=user.id, extra={"plan_id": plan.plan_id})
    return session


def start_portal(user_id: str) -> str:
    provider = get_provider()

    user = get_user(user_id)
    if user is None or not user.stripe_customer_id:
        raise ValidationError("No billing account found. Subscribe to a plan first.")

    try:
        return provider.create_portal_session(user.stripe_customer_id, f"{settings.CLIENT_URL}/subscription")
    except BillingProviderError as e:
        raise UpstreamProviderError(str(e))


def _user_for_subscription_event(result: BillingWebhookResult) -> Optional[User]:
    if result.customer_id:
        user = get_user_by_customer(result.customer_id)
        if user:
            return user
    fallback_id = (result.metadata or {}).get("user_id")
    if fallback_id:
        return get_user(fallback_id)
    return None


def _apply_subscription_change(result: BillingWebhookResult) -> None:
    user = _user_for_subscription_event(result)
    if user is None:
        log_event("warning", "billing.webhook.user_not_found", event_type=result.event_type,
                  extra={"customer_id": result.customer_id, "subscription_id": result.subscription_id})
        return

    status = map_subscription_status(result.status)
    if status == STATUS_CANCELLED:
        _apply_subscription_ended(user, result)
        return

    plan_id = plan_for_price(result.price_id)
    if plan_id is None:
        log_event("warning", "billing.webhook.unknown_price", user_id=user.id, event_type=result.event_type,
                  extra={"price_id": result.price_id})
        return

    upsert_entitlement(
        user.id,
        plan=plan_id,
        status=status,
        stripe_subscription_id=result.subscription_id,
        current_period_start=result.current_period_start,
        current_period_end=result.current_period_end,
    )
    set_request_limit(user.id, plan_id)
    log_event("info", "billing.subscription_applied", user_id=user.id, event_type=result.event_type,
              extra={"plan": plan_id, "status": status})


def _apply_subscription_ended(user: User, result: BillingWebhookResult) -> None:
    """
    A canceled subscription lands on free/cancelled, same as a deletion.

    Stripe may deliver the final `updated` after `deleted`; an event for a
    subscription other than the one currently linked is stale and ignored.
    """
    current = get_entitlement(user.id)
    if current and current.stripe_subscription_id not in (None, result.subscription_id):
        log_event("info", "billing.webhook.stale_subscription", user_id=user.id, event_type=result.event_type,
                  extra={"subscription_id": result.subscription_id})
        return
    upsert_entitlement(user.id, plan=FREE_PLAN, status=STATUS_CANCELLED, stripe_subscription_id=None)
    set_request_limit(user.id, FREE_PLAN)
    log_event("info", "billing.subscription_cancelled", user_id=user.id, event_type=result.event_type)


def _apply_subscription_deleted(result: BillingWebhookResult) -> None:
    entitlement = downgrade_to_free(result.subscription_id) if result.subscription_id else None
    if entitlement is None:
        log_event("info", "billing.webhook.subscription_not_linked", event_type=result.event_type,
                  extra={"subscription_id": result.subscription_id})
        return
    set_request_limit(entitlement.user_id, FREE_PLAN)
    log_event("info", "billing.subscription_cancelled", user_id=entitlement.user_id, event_type=result.event_type)


def _apply_payment_succeeded(result: BillingWebhookResult) -> None:
    entitlement = get_entitlement_by_subscription(result.subscription_id) if result.subscription_id else None
    if entitlement is None:
        log_event("info", "billing.webhook.subscription_not_linked", event_type=result.event_type,
                  extra={"subscription_id": result.subscription_id})
        return
    reset_usage(entitlement.user_id, entitlement.plan)
    log_event("info", "billing.usage_reset", user_id=entitlement.user_id, event_type=result.event_type)


def _apply_payment_failed(result: BillingWebhookResult) -> None:
    entitlement = (
        set_status_for_subscription(result.subscription_id, STATUS_PAST_DUE) if result.subscription_id else None
    )
    if entitlement is None:
        log_event("info", "billing.webhook.subscription_not_linked", event_type=result.event_type,
                  extra={"subscription_id": result.subscription_id})
        return
    log_event("warning", "billing.payment_failed", user_id=entitlement.user_id, event_type=result.event_type)


EVENT_HANDLERS = {
    "customer.subscription.created": _apply_subscription_change,
    "customer.subscription.updated": _apply_subscription_change,
    "customer.subscription.deleted": _apply_subscription_deleted,
    "invoice.payment_succeeded": _apply_payment_succeeded,
    "invoice.payment_failed": _apply_payment_failed,
}


def apply_webhook_result(result: BillingWebhookResult) -> None:
    handler = EVENT_HANDLERS.get(result.event_type)
    if handler is None:
        log_event("info", "billing.webhook.ignored", event_type=result.event_type)
        return
    handler(result)


def _claim_event(result: BillingWebhookResult, payload_hash: str) -> bool:
    """Record the event; False when it has already been applied."""
    with get_db_session() as session:
        existing = session.execute(
            select(billing_events.c.processed).where(billing_events.c.stripe_event_id == result.event_id)
        ).first()
        if existing:
            return not existing.processed

    try:
        with get_db_session() as session:
            session.execute(
                insert(billing_events).values(
                    stripe_event_id=result.event_id,
                    event_type=result.event_type,
                    payload_hash=payload_hash,
                    processed=False,
                )
            )
    except IntegrityError:
        # Concurrent delivery of the same event
        return False
    return True


def _finish_event(event_id: str, error: Optional[str] = None) -> None:
    values: Dict[str, Any] = {"error": error}
    if error is None:
        values.update(processed=True, processed_at=datetime.now(timezone.utc))
    with get_db_session() as session:
        session.execute(
            update(billing_events).where(billing_events.c.stripe_event_id == event_id).values(**values)
        )


def process_webhook_event(headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
    """
    Verify and apply a billing webhook.

    1. Verify signature (nothing is touched when it fails)
    2. Skip events already applied
    3. Apply the event's state change
    4. Mark processed, or record the error

    Application errors are logged and recorded, not raised: the provider
    receives an acknowledgement either way.
    """
    provider = get_provider()
    try:
        result = provider.handle_webhook(headers, body)
    except BillingWebhookError as e:
        log_event("warning", "billing.webhook.signature_invalid", error_code=WebhookSignatureInvalidError.code,
                  extra={"error": e})
        raise WebhookSignatureInvalidError(f"Webhook Error: {e}")

    payload_hash = hashlib.sha256(body).hexdigest()
    if not _claim_event(result, payload_hash):
        log_event("info", "billing.webhook.duplicate", event_type=result.event_type,
                  extra={"event_id": result.event_id})
        return result

    try:
        apply_webhook_result(result)
    except Exception as e:
        logger.exception("billing.webhook.apply_failed", extra={"event_id": result.event_id,
                                                                 "event_type": result.event_type})
        _finish_event(result.event_id, error=str(e))
        return result

    _finish_event(result.event_id)
    return result
