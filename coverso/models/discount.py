from typing import Optional
from pydantic import BaseModel, ConfigDict


class DiscountCode(BaseModel):
    """A redeemable code; plan_name absent means the Special plan."""
    model_config = ConfigDict(frozen=True)

    code: str
    plan_name: Optional[str] = None


class DiscountValidation(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    plan_name: Optional[str] = None
    error: Optional[str] = None
