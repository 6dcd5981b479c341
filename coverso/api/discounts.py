"""
Discount code API routes.

- POST /v1/discounts/validate: check a code (result object, never an error)
- POST /v1/discounts/redeem: grant the code's plan and complete onboarding
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from coverso.api.deps import get_discount_validator, get_profile_store
from coverso.core.auth import get_current_principal
from coverso.features.discounts.service import redeem
from coverso.models.principal import Principal


router = APIRouter(prefix="/v1/discounts", tags=["discounts"])


class DiscountRequest(BaseModel):
    code: Optional[str] = None


@router.post("/validate")
def validate_code(
    body: DiscountRequest,
    principal: Principal = Depends(get_current_principal),
    validator=Depends(get_discount_validator),
):
    return validator.validate(body.code).model_dump(exclude_none=True)


@router.post("/redeem")
def redeem_code(
    body: DiscountRequest,
    principal: Principal = Depends(get_current_principal),
    validator=Depends(get_discount_validator),
    profiles=Depends(get_profile_store),
):
    profile = redeem(principal, body.code, validator=validator, profiles=profiles)
    return {"plan": profile.plan, "onboarding_complete": profile.onboarding_complete}
