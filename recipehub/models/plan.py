"""
Plan model.

A plan is one row of the catalog: display data, billing interval,
Stripe price id and the monthly request limit (-1 = unlimited).
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

UNLIMITED = -1


class Plan(BaseModel):
    model_config = ConfigDict(frozen=True)

    plan_id: str
    name: str
    price: float
    interval: str = "month"
    features: List[str] = Field(default_factory=list)
    request_limit: int
    price_id: Optional[str] = None

    @property
    def unlimited(self) -> bool:
        return self.request_limit == UNLIMITED

    def to_public(self) -> dict:
        return {
            "id": self.plan_id,
            "name": self.name,
            "price": self.price,
            "interval": self.interval,
            "features": list(self.features),
            "requestLimit": self.request_limit,
            "stripePriceId": self.price_id or "",
        }
