"""
Entitlement store: one `subscriptions` row per user.

Rows are written free/active at registration and changed afterwards only
by billing webhooks. Users without a row resolve to free/active.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import select, insert, update

from recipehub.core.database import get_db_session, subscriptions
from recipehub.models.subscription import (
    Entitlement,
    STATUS_ACTIVE,
    STATUS_CANCELLED,
)
from recipehub.features.plans.service import FREE_PLAN


def _to_entitlement(row) -> Entitlement:
    return Entitlement(
        user_id=row.user_id,
        plan=row.plan,
        status=row.status,
        stripe_subscription_id=row.stripe_subscription_id,
        current_period_start=row.current_period_start,
        current_period_end=row.current_period_end,
    )


def get_entitlement(user_id: str) -> Optional[Entitlement]:
    with get_db_session() as session:
        row = session.execute(select(subscriptions).where(subscriptions.c.user_id == user_id)).first()
        return _to_entitlement(row) if row else None


def resolve_entitlement(user_id: str) -> Entitlement:
    """Stored entitlement, or the free/active default when none exists."""
    return get_entitlement(user_id) or Entitlement.resolved_default(user_id)


def get_entitlement_by_subscription(stripe_subscription_id: str) -> Optional[Entitlement]:
    with get_db_session() as session:
        row = session.execute(
            select(subscriptions).where(subscriptions.c.stripe_subscription_id == stripe_subscription_id)
        ).first()
        return _to_entitlement(row) if row else None


def create_default_entitlement(user_id: str) -> Entitlement:
    with get_db_session() as session:
        session.execute(
            insert(subscriptions).values(user_id=user_id, plan=FREE_PLAN, status=STATUS_ACTIVE)
        )
    return Entitlement.resolved_default(user_id)


def upsert_entitlement(
    user_id: str,
    *,
    plan: str,
    status: str,
    stripe_subscription_id: Optional[str],
    current_period_start: Optional[datetime] = None,
    current_period_end: Optional[datetime] = None,
) -> Entitlement:
    values = {
        "plan": plan,
        "status": status,
        "stripe_subscription_id": stripe_subscription_id,
        "current_period_start": current_period_start,
        "current_period_end": current_period_end,
    }
    with get_db_session() as session:
        existing = session.execute(
            select(subscriptions.c.id).where(subscriptions.c.user_id == user_id)
        ).first()
        if existing:
            session.execute(update(subscriptions).where(subscriptions.c.user_id == user_id).values(**values))
        else:
            session.execute(insert(subscriptions).values(user_id=user_id, **values))
    return Entitlement(user_id=user_id, **values)


def set_status_for_subscription(stripe_subscription_id: str, status: str) -> Optional[Entitlement]:
    """Update status of the entitlement linked to a Stripe subscription."""
    current = get_entitlement_by_subscription(stripe_subscription_id)
    if current is None:
        return None
    with get_db_session() as session:
        session.execute(
            update(subscriptions)
            .where(subscriptions.c.stripe_subscription_id == stripe_subscription_id)
            .values(status=status)
        )
    return current.model_copy(update={"status": status})


def downgrade_to_free(stripe_subscription_id: str) -> Optional[Entitlement]:
    """Free/cancelled with the subscription link and billing period cleared."""
    current = get_entitlement_by_subscription(stripe_subscription_id)
    if current is None:
        return None
    with get_db_session() as session:
        session.execute(
            update(subscriptions)
            .where(subscriptions.c.stripe_subscription_id == stripe_subscription_id)
            .values(
                plan=FREE_PLAN,
                status=STATUS_CANCELLED,
                stripe_subscription_id=None,
                current_period_start=None,
                current_period_end=None,
            )
        )
    return Entitlement(user_id=current.user_id, plan=FREE_PLAN, status=STATUS_CANCELLED)
