"""
recipehub/features/usage/service.py

Usage ledger: one counter per user per calendar month (UTC).

Handles:
- Lazy creation of the month's record with the plan limit snapshot
- Atomic increment after an admitted action
- Limit rewrite on plan change, counter reset on payment success
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from recipehub.core.database import get_db_session, usage_tracking
from recipehub.features.plans.service import get_request_limit
from recipehub.models.subscription import UsageRecord


def current_month(now: Optional[datetime] = None) -> str:
    """Month key `YYYY-MM` in UTC."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y-%m")


def _to_record(row) -> UsageRecord:
    return UsageRecord(
        user_id=row.user_id,
        month=row.month,
        requests_used=row.requests_used,
        request_limit=row.request_limit,
    )


def get_usage(user_id: str, month: str) -> Optional[UsageRecord]:
    with get_db_session() as session:
        row = session.execute(
            select(usage_tracking).where(
                usage_tracking.c.user_id == user_id,
                usage_tracking.c.month == month,
            )
        ).first()
        return _to_record(row) if row else None


def get_or_create_usage(user_id: str, plan: str, now: Optional[datetime] = None) -> UsageRecord:
    """
    Fetch the month's record, creating it with the plan's limit on first use.

    The limit is read from the catalog once, at creation. Later catalog or
    plan changes reach the record only through `set_request_limit`.
    """
    month = current_month(now)
    existing = get_usage(user_id, month)
    if existing:
        return existing

    limit = get_request_limit(plan)
    try:
        with get_db_session() as session:
            session.execute(
                insert(usage_tracking).values(
                    user_id=user_id,
                    month=month,
                    requests_used=0,
                    request_limit=limit,
                )
            )
    except IntegrityError:
        # Another request created it first
        pass

    record = get_usage(user_id, month)
    if record is None:
        raise RuntimeError(f"usage record for {user_id} {month} could not be created")
    return record


def increment_usage(user_id: str, month: str) -> None:
    """Single-statement increment; concurrent callers never lose updates."""
    with get_db_session() as session:
        session.execute(
            update(usage_tracking)
            .where(usage_tracking.c.user_id == user_id, usage_tracking.c.month == month)
            .values(requests_used=usage_tracking.c.requests_used + 1)
        )


def set_request_limit(user_id: str, plan: str, now: Optional[datetime] = None) -> UsageRecord:
    """Align the current month's limit with the plan's catalog limit."""
    record = get_or_create_usage(user_id, plan, now)
    limit = get_request_limit(plan)
    if record.request_limit == limit:
        return record

    with get_db_session() as session:
        session.execute(
            update(usage_tracking)
            .where(usage_tracking.c.user_id == user_id, usage_tracking.c.month == record.month)
            .values(request_limit=limit)
        )
    return record.model_copy(update={"request_limit": limit})


def reset_usage(user_id: str, plan: str, now: Optional[datetime] = None) -> UsageRecord:
    """Zero the current month's counter; the limit is left alone."""
    record = get_or_create_usage(user_id, plan, now)
    with get_db_session() as session:
        session.execute(
            update(usage_tracking)
            .where(usage_tracking.c.user_id == user_id, usage_tracking.c.month == record.month)
            .values(requests_used=0)
        )
    return record.model_copy(update={"requests_used": 0})
