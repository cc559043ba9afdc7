"""
Plan catalog.

Single source of truth for plan display data, Stripe price ids and
monthly request limits. Both the access gate and the billing webhook
read limits from here.
"""

import logging
from typing import Dict, List, Optional

from recipehub.core.config import settings
from recipehub.models.plan import Plan, UNLIMITED

logger = logging.getLogger(__name__)

FREE_PLAN = "free"

# Stripe price ids are resolved from settings at lookup time
DEFAULT_PLANS = {
    "free": {
        "name": "Free",
        "price": 0,
        "interval": "month",
        "request_limit": 5,
        "price_setting": None,
        "features": [
            "5 AI recipe generations per month",
            "Basic nutrition analysis",
            "Limited chat assistant",
        ],
    },
    "basic": {
        "name": "Basic Chef",
        "price": 9.99,
        "interval": "month",
        "request_limit": 50,
        "price_setting": "STRIPE_PRICE_BASIC",
        "features": [
            "50 AI recipe generations per month",
            "Full nutrition analysis with health scores",
            "Ingredient substitutions",
            "Unlimited chat assistant",
            "Basic meal planning (7 days)",
        ],
    },
    "pro": {
        "name": "Pro Chef",
        "price": 19.99,
        "interval": "month",
        "request_limit": UNLIMITED,
        "price_setting": "STRIPE_PRICE_PRO",
        "features": [
            "Unlimited AI recipe generations",
            "Advanced nutrition analysis",
            "Smart meal planning (30 days)",
            "Image recipe analysis",
            "Priority chat support",
            "Custom dietary preferences",
            "Shopping list optimization",
        ],
    },
    "pro_yearly": {
        "name": "Pro Chef (Yearly)",
        "price": 199.99,
        "interval": "year",
        "request_limit": UNLIMITED,
        "price_setting": "STRIPE_PRICE_PRO_YEARLY",
        "features": [
            "Unlimited AI recipe generations",
            "Advanced nutrition analysis",
            "Smart meal planning (30 days)",
            "Image recipe analysis",
            "Priority chat support",
            "Custom dietary preferences",
            "Shopping list optimization",
            "2 months free!",
        ],
    },
}

PAID_PLANS = ("basic", "pro", "pro_yearly")
PRO_PLANS = ("pro", "pro_yearly")


def _build_plan(plan_id: str, config: Dict) -> Plan:
    price_setting = config.get("price_setting")
    return Plan(
        plan_id=plan_id,
        name=config["name"],
        price=config["price"],
        interval=config["interval"],
        features=config["features"],
        request_limit=config["request_limit"],
        price_id=getattr(settings, price_setting) if price_setting else None,
    )


def list_plans() -> List[Plan]:
    return [_build_plan(plan_id, config) for plan_id, config in DEFAULT_PLANS.items()]


def get_plan(plan_id: Optional[str]) -> Optional[Plan]:
    config = DEFAULT_PLANS.get(plan_id or "")
    if config is None:
        return None
    return _build_plan(plan_id, config)


def get_request_limit(plan_id: Optional[str]) -> int:
    """Monthly request limit for a plan; unknown plans get the free limit."""
    config = DEFAULT_PLANS.get(plan_id or "")
    if config is None:
        logger.warning("plans.unknown_plan", extra={"plan_id": plan_id})
        return DEFAULT_PLANS[FREE_PLAN]["request_limit"]
    return config["request_limit"]


def plan_for_price(price_id: Optional[str]) -> Optional[str]:
    """Reverse lookup: Stripe price id -> plan id (None if unknown)."""
    if not price_id:
        return None
    for plan in list_plans():
        if plan.price_id and plan.price_id == price_id:
            return plan.plan_id
    return None


def price_for_plan(plan_id: Optional[str]) -> Optional[str]:
    plan = get_plan(plan_id)
    return plan.price_id if plan else None
