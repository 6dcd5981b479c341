"""
coverso/models/plan.py

Pricing tier shown on the plans page.

Quota uses -1 for unlimited, matching the plan table.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class PlanTier(BaseModel):
    model_config = ConfigDict(frozen=True)

    plan: str
    title: str
    price: str
    generations: str
    quota: int
    features: List[str]
    price_id: Optional[str] = None
    is_paid: bool = False
    most_popular: bool = False
