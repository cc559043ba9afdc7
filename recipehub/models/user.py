from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    password_hash: str = Field(exclude=True, repr=False)
    stripe_customer_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()
