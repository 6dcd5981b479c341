"""
Billing API routes.

- GET  /v1/billing/plans: pricing tiers
- POST /v1/billing/subscriptions: start an upgrade (client secret returned)
- POST /v1/billing/subscriptions/{id}/confirm: confirm payment, then reconcile
- POST /v1/billing/subscriptions/{id}/reconcile: persist plan once paid
- POST /v1/billing/checkout: hosted checkout URL
- POST /v1/billing/sessions/{id}/verify: verify a hosted checkout return
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from coverso.api.deps import get_attempt_store, get_payment_gateway, get_profile_store
from coverso.core.auth import get_current_principal
from coverso.features.billing.service import (
    billing_enabled,
    confirm_payment,
    reconcile,
    start_checkout,
    start_upgrade,
    verify_checkout_session,
)
from coverso.features.plans.service import list_tiers
from coverso.models.principal import Principal


router = APIRouter(prefix="/v1/billing", tags=["billing"])


class PlanRequest(BaseModel):
    plan: str


class ConfirmRequest(BaseModel):
    client_secret: str
    payment_method: str


def _profile_response(profile) -> dict:
    return {
        "plan": profile.plan,
        "pending_plan": profile.pending_plan,
        "onboarding_complete": profile.onboarding_complete,
        "subscription_status": profile.subscription_status,
    }


@router.get("/plans")
def plans():
    return {
        "billing_enabled": billing_enabled(),
        "tiers": [tier.model_dump() for tier in list_tiers()],
    }


@router.post("/subscriptions")
def create_subscription(
    body: PlanRequest,
    principal: Principal = Depends(get_current_principal),
    gateway=Depends(get_payment_gateway),
    profiles=Depends(get_profile_store),
    attempts=Depends(get_attempt_store),
):
    started = start_upgrade(principal, body.plan, gateway=gateway, profiles=profiles, attempts=attempts)
    return {
        "subscription_id": started.subscription_id,
        "client_secret": started.client_secret,
        "plan": started.plan,
    }


@router.post("/subscriptions/{subscription_id}/confirm")
def confirm_subscription(
    subscription_id: str,
    body: ConfirmRequest,
    principal: Principal = Depends(get_current_principal),
    gateway=Depends(get_payment_gateway),
    profiles=Depends(get_profile_store),
    attempts=Depends(get_attempt_store),
):
    profile = confirm_payment(
        principal,
        subscription_id,
        body.client_secret,
        body.payment_method,
        gateway=gateway,
        profiles=profiles,
        attempts=attempts,
    )
    return _profile_response(profile)


@router.post("/subscriptions/{subscription_id}/reconcile")
def reconcile_subscription(
    subscription_id: str,
    principal: Principal = Depends(get_current_principal),
    gateway=Depends(get_payment_gateway),
    profiles=Depends(get_profile_store),
    attempts=Depends(get_attempt_store),
):
    profile = reconcile(principal, subscription_id, gateway=gateway, profiles=profiles, attempts=attempts)
    return _profile_response(profile)


@router.post("/checkout")
def create_checkout(
    body: PlanRequest,
    principal: Principal = Depends(get_current_principal),
    gateway=Depends(get_payment_gateway),
    profiles=Depends(get_profile_store),
):
    return start_checkout(principal, body.plan, gateway=gateway, profiles=profiles)


@router.post("/sessions/{session_id}/verify")
def verify_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    gateway=Depends(get_payment_gateway),
    profiles=Depends(get_profile_store),
):
    result = verify_checkout_session(principal, session_id, gateway=gateway, profiles=profiles)
    if result.get("profile") is not None:
        result["profile"] = _profile_response(result["profile"])
    return result
