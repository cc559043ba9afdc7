import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional

from sqlalchemy import update

from recipehub.core.database import get_db_session, usage_tracking
from recipehub.features.subscriptions.service import upsert_entitlement
from recipehub.features.usage.service import current_month, set_request_limit

TEST_WEBHOOK_SECRET = "whsec_test_secret"


def set_plan(user_id: str, plan: str, status: str = "active", subscription_id: Optional[str] = None) -> None:
    """Apply a plan the way the billing webhook does: entitlement plus limit."""
    upsert_entitlement(user_id, plan=plan, status=status, stripe_subscription_id=subscription_id)
    set_request_limit(user_id, plan)


def set_requests_used(user_id: str, used: int) -> None:
    with get_db_session() as session:
        session.execute(
            update(usage_tracking)
            .where(usage_tracking.c.user_id == user_id, usage_tracking.c.month == current_month())
            .values(requests_used=used)
        )


def stripe_signature(payload: str, secret: str, timestamp: Optional[int] = None) -> str:
    """`stripe-signature` header value, computed the way Stripe signs webhooks."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def stripe_event(event_id: str, event_type: str, obj: Dict[str, Any]) -> str:
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "api_version": "2023-10-16",
        "data": {"object": obj},
    })


def subscription_object(
    subscription_id: str,
    customer_id: str,
    price_id: str,
    status: str = "active",
    metadata: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    now = int(time.time())
    return {
        "id": subscription_id,
        "object": "subscription",
        "customer": customer_id,
        "status": status,
        "current_period_start": now,
        "current_period_end": now + 30 * 24 * 3600,
        "metadata": metadata or {},
        "items": {"object": "list", "data": [{"id": "si_1", "price": {"id": price_id}}]},
    }


def invoice_object(invoice_id: str, subscription_id: str, customer_id: str = "cus_x") -> Dict[str, Any]:
    return {"id": invoice_id, "object": "invoice", "customer": customer_id, "subscription": subscription_id}
