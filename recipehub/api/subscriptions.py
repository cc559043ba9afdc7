"""
Subscription API routes.

- GET  /api/subscriptions/plans: Plan catalog
- POST /api/subscriptions/create-checkout-session: Stripe checkout
- POST /api/subscriptions/create-portal-session: Stripe billing portal
- GET  /api/subscriptions/status: Current plan and usage
- POST /api/subscriptions/webhook: Stripe webhooks
"""
from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field

from recipehub.core.auth import get_current_user_id
from recipehub.core.responses import success
from recipehub.features.access.service import AccessContext, get_access_context
from recipehub.features.billing.service import (
    process_webhook_event,
    start_checkout,
    start_portal,
)
from recipehub.features.plans.service import get_plan, list_plans

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: str = Field(alias="planId", min_length=1)


@router.get("/plans")
def plans():
    return success([plan.to_public() for plan in list_plans()])


@router.post("/create-checkout-session")
def create_checkout_session(body: CheckoutRequest, user_id: str = Depends(get_current_user_id)):
    """
    Start a Stripe checkout for a paid plan.

    Errors:
        400: free or unknown plan
        502: Stripe API error
        503: Billing disabled (STRIPE_SECRET_KEY not set)
    """
    session = start_checkout(user_id, body.plan_id)
    return success({"sessionId": session.session_id, "url": session.url})


@router.post("/create-portal-session")
def create_portal_session(user_id: str = Depends(get_current_user_id)):
    url = start_portal(user_id)
    return success({"url": url})


@router.get("/status")
def subscription_status(ctx: AccessContext = Depends(get_access_context)):
    plan = get_plan(ctx.plan)
    data = ctx.subscription_summary()
    data["planDetails"] = plan.to_public() if plan else None
    return success(data)


@router.post("/webhook")
async def stripe_webhook(request: Request):
    """Stripe webhook; the raw body is needed for signature verification."""
    body = await request.body()
    await run_in_threadpool(process_webhook_event, dict(request.headers), body)
    return {"received": True}
