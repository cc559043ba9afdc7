"""
Access gate for metered AI actions.

Order per request:
1. authenticate (bearer token -> user id)
2. resolve entitlement and this month's usage record
3. plan gate, where the route restricts plans
4. enforce status, then quota
5. dispatch the handler
6. record usage, whatever the handler's outcome

Nothing is cached between requests; every call re-reads the stores.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Iterable, Optional

from fastapi import Depends
from starlette.concurrency import run_in_threadpool

from recipehub.core.auth import get_current_user_id
from recipehub.core.errors import (
    EntitlementInactiveError,
    PlanUpgradeRequiredError,
    QuotaExceededError,
    UnauthenticatedError,
)
from recipehub.core.logging import log_event
from recipehub.features.plans.service import FREE_PLAN
from recipehub.features.subscriptions.service import resolve_entitlement
from recipehub.features.usage.service import get_or_create_usage, increment_usage
from recipehub.features.users.service import get_user
from recipehub.models.plan import UNLIMITED
from recipehub.models.subscription import STATUS_ACTIVE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessContext:
    """Per-request snapshot of who is calling and what they may consume."""
    user_id: str
    email: str
    name: str
    stripe_customer_id: Optional[str]
    plan: str
    status: str
    requests_used: int
    request_limit: int
    month: str

    @property
    def unlimited(self) -> bool:
        return self.request_limit == UNLIMITED

    def subscription_summary(self) -> dict:
        return {
            "plan": self.plan,
            "status": self.status,
            "requestsUsed": self.requests_used,
            "requestLimit": self.request_limit,
        }


def resolve_access(user_id: str, now: Optional[datetime] = None) -> AccessContext:
    user = get_user(user_id)
    if user is None:
        raise UnauthenticatedError("User not found")

    entitlement = resolve_entitlement(user_id)
    usage = get_or_create_usage(user_id, entitlement.plan, now)

    return AccessContext(
        user_id=user.id,
        email=user.email,
        name=user.name,
        stripe_customer_id=user.stripe_customer_id,
        plan=entitlement.plan,
        status=entitlement.status,
        requests_used=usage.requests_used,
        request_limit=usage.request_limit,
        month=usage.month,
    )


def enforce_limits(ctx: AccessContext) -> None:
    """Status check first, then quota. Free plans are exempt from the status check."""
    if ctx.status != STATUS_ACTIVE and ctx.plan != FREE_PLAN:
        raise EntitlementInactiveError(
            "Subscription is not active. Please update your payment method.",
        )

    if ctx.request_limit != UNLIMITED and ctx.requests_used >= ctx.request_limit:
        raise QuotaExceededError(
            "Monthly request limit exceeded. Please upgrade your plan.",
            details={"requestsUsed": ctx.requests_used, "requestLimit": ctx.request_limit},
        )


def require_plan(ctx: AccessContext, allowed: Iterable[str]) -> None:
    allowed_plans = list(allowed)
    if ctx.plan not in allowed_plans:
        raise PlanUpgradeRequiredError(
            "This feature requires a plan upgrade",
            details={"currentPlan": ctx.plan, "requiredPlans": allowed_plans},
        )


def record_usage(ctx: AccessContext) -> None:
    """Count one action against the month. Failures are logged, never raised."""
    if ctx.unlimited:
        return
    try:
        increment_usage(ctx.user_id, ctx.month)
    except Exception as exc:
        log_event(
            "error",
            "usage.record_failed",
            user_id=ctx.user_id,
            error_code="USAGE_RECORD_FAILED",
            extra={"month": ctx.month, "error": exc},
        )


@asynccontextmanager
async def usage_recorded(ctx: AccessContext) -> AsyncIterator[AccessContext]:
    """Wrap a handler dispatch; usage is recorded when the block exits."""
    try:
        yield ctx
    finally:
        await run_in_threadpool(record_usage, ctx)


def get_access_context(user_id: str = Depends(get_current_user_id)) -> AccessContext:
    """Authenticated and resolved, but not enforced."""
    return resolve_access(user_id)


def metered_access(ctx: AccessContext = Depends(get_access_context)) -> AccessContext:
    enforce_limits(ctx)
    return ctx


def plan_gated_access(*allowed: str):
    """Dependency factory: plan gate, then the usual enforcement."""

    def _dependency(ctx: AccessContext = Depends(get_access_context)) -> AccessContext:
        require_plan(ctx, allowed)
        enforce_limits(ctx)
        return ctx

    return _dependency
