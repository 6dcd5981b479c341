"""
coverso/features/onboarding/service.py

Profile setup after first sign-in.

Details are saved first. Then the plan choice decides how onboarding ends:
- discount code: plan granted, onboarding complete
- Basic (or no choice): onboarding complete on Basic
- paid plan: onboarding stays pending until the payment reconciles
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from coverso.core.errors import ValidationError
from coverso.features.billing.service import start_upgrade
from coverso.features.discounts.service import redeem
from coverso.features.plans.service import (
    PlanName,
    is_paid_plan,
    recommend_plan,
    resolve_plan,
)
from coverso.features.profiles.service import update_details
from coverso.models.billing import UpgradeStarted
from coverso.models.principal import Principal
from coverso.models.profile import Profile


logger = logging.getLogger("coverso")


@dataclass(frozen=True)
class OnboardingResult:
    profile: Profile
    recommended_plan: PlanName
    upgrade: Optional[UpgradeStarted] = None

    @property
    def onboarding_complete(self) -> bool:
        return self.profile.onboarding_complete


def complete_onboarding(
    principal: Principal,
    details: Dict[str, Any],
    plan_choice: Optional[str] = None,
    discount_code: Optional[str] = None,
    *,
    profiles,
    validator,
    gateway,
    attempts,
) -> OnboardingResult:
    if not (details.get("full_name") or "").strip():
        raise ValidationError("Full name is required")

    fields = dict(details)
    if principal.email and not fields.get("email"):
        fields["email"] = principal.email
    profile = update_details(profiles, principal.id, fields)
    recommended = recommend_plan(profile.daily_goal)

    if discount_code and discount_code.strip():
        profile = redeem(principal, discount_code, validator=validator, profiles=profiles)
        return OnboardingResult(profile=profile, recommended_plan=recommended)

    plan = resolve_plan(plan_choice) if plan_choice else PlanName.BASIC
    if plan is None:
        raise ValidationError(f"Unknown plan: {plan_choice}")

    if plan == PlanName.BASIC:
        profile = profiles.set(
            principal.id,
            {"plan": PlanName.BASIC.value, "pending_plan": None, "onboarding_complete": True},
            merge=True,
        )
        logger.info("[onboarding] completed", extra={"user_id": principal.id, "plan": plan.value})
        return OnboardingResult(profile=profile, recommended_plan=recommended)

    if not is_paid_plan(plan):
        raise ValidationError("The Special plan can only be granted by a discount code")

    upgrade = start_upgrade(principal, plan.value, gateway=gateway, profiles=profiles, attempts=attempts)
    logger.info(
        "[onboarding] awaiting payment",
        extra={"user_id": principal.id, "plan": plan.value, "subscription_id": upgrade.subscription_id},
    )
    return OnboardingResult(profile=profiles.get(principal.id), recommended_plan=recommended, upgrade=upgrade)
