"""
Entitlement and usage models.

Entitlement mirrors one `subscriptions` row; UsageRecord one
`usage_tracking` row for a (user, month) pair.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict

EntitlementStatus = Literal["active", "past_due", "cancelled"]

STATUS_ACTIVE = "active"
STATUS_PAST_DUE = "past_due"
STATUS_CANCELLED = "cancelled"


class Entitlement(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    plan: str = "free"
    status: EntitlementStatus = STATUS_ACTIVE
    stripe_subscription_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None

    @classmethod
    def resolved_default(cls, user_id: str) -> "Entitlement":
        """Entitlement for a user with no stored row."""
        return cls(user_id=user_id, plan="free", status=STATUS_ACTIVE)


class UsageRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    month: str  # YYYY-MM
    requests_used: int = 0
    request_limit: int
