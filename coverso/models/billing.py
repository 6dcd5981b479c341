"""
Billing models for Coverso.

An upgrade attempt moves through
INITIATED -> SUBSCRIPTION_CREATED -> PAYMENT_CONFIRMED -> RECONCILED,
or ends in FAILED when the subscription could not be created.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class AttemptState(str, Enum):
    INITIATED = "INITIATED"
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    RECONCILED = "RECONCILED"
    FAILED = "FAILED"


class UpgradeAttempt(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    principal_id: str
    plan_name: str
    price_id: str
    state: AttemptState
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UpgradeStarted(BaseModel):
    """What the client needs to confirm the first payment."""
    model_config = ConfigDict(frozen=True)

    subscription_id: str
    client_secret: str
    customer_id: str
    plan: str
    price_id: str
