"""
Profile API

GET   /v1/profile             -> caller's profile (created on first call)
PATCH /v1/profile             -> edit personal details
POST  /v1/profile/onboarding  -> save details and choose a plan
"""

from typing import Optional, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from coverso.api.deps import (
    get_attempt_store,
    get_discount_validator,
    get_payment_gateway,
    get_profile_store,
)
from coverso.core.auth import get_current_principal
from coverso.features.onboarding.service import complete_onboarding
from coverso.features.profiles.service import ensure_profile, update_details
from coverso.models.principal import Principal


router = APIRouter(prefix="/v1/profile", tags=["profile"])


class ProfileDetails(BaseModel):
    email: Optional[str] = None
    full_name: Optional[str] = None
    user_location: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    profile_image: Optional[str] = None
    industries: Optional[List[str]] = None
    academic_level: Optional[str] = None
    daily_goal: Optional[int] = None


class OnboardingRequest(ProfileDetails):
    plan: Optional[str] = None
    discount_code: Optional[str] = None


@router.get("")
def get_profile(
    principal: Principal = Depends(get_current_principal),
    profiles=Depends(get_profile_store),
):
    profile, _ = ensure_profile(profiles, principal)
    return profile.public_dict()


@router.patch("")
def patch_profile(
    body: dict,
    principal: Principal = Depends(get_current_principal),
    profiles=Depends(get_profile_store),
):
    """Raw dict body so plan/billing fields are rejected instead of silently dropped."""
    ensure_profile(profiles, principal)
    profile = update_details(profiles, principal.id, body)
    return profile.public_dict()


@router.post("/onboarding")
def onboarding(
    body: OnboardingRequest,
    principal: Principal = Depends(get_current_principal),
    profiles=Depends(get_profile_store),
    validator=Depends(get_discount_validator),
    gateway=Depends(get_payment_gateway),
    attempts=Depends(get_attempt_store),
):
    details = body.model_dump(exclude={"plan", "discount_code"}, exclude_none=True)
    result = complete_onboarding(
        principal,
        details,
        plan_choice=body.plan,
        discount_code=body.discount_code,
        profiles=profiles,
        validator=validator,
        gateway=gateway,
        attempts=attempts,
    )
    response = {
        "profile": result.profile.public_dict(),
        "onboarding_complete": result.onboarding_complete,
        "recommended_plan": result.recommended_plan.value,
        "subscription_id": None,
        "client_secret": None,
    }
    if result.upgrade is not None:
        response["subscription_id"] = result.upgrade.subscription_id
        response["client_secret"] = result.upgrade.client_secret
    return response
