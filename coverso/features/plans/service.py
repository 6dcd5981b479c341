"""
coverso/features/plans/service.py

Plan catalogue.

Handles:
- Plan names and their generation quotas (-1 = unlimited)
- Stripe price <-> plan mapping from configuration
- Pricing tiers and the onboarding recommendation
"""

import os
from enum import Enum
from typing import Optional, Dict, List, Union

from coverso.core.config import settings
from coverso.models.plan import PlanTier


UNLIMITED = -1


class PlanName(str, Enum):
    BASIC = "Basic"
    JOB_SEEKER = "Job Seeker"
    CAREER_PRO = "Career Pro"
    EXECUTIVE = "Executive"
    SPECIAL = "Special"


PLAN_QUOTAS: Dict[PlanName, int] = {
    PlanName.BASIC: 2,
    PlanName.JOB_SEEKER: 10,
    PlanName.CAREER_PRO: 30,
    PlanName.EXECUTIVE: UNLIMITED,
    PlanName.SPECIAL: UNLIMITED,
}

PAID_PLANS = frozenset({PlanName.JOB_SEEKER, PlanName.CAREER_PRO, PlanName.EXECUTIVE})

# Environment variable holding the Stripe price id of each paid plan
PRICE_ENV_VARS: Dict[PlanName, str] = {
    PlanName.JOB_SEEKER: "STRIPE_PRICE_JOB_SEEKER",
    PlanName.CAREER_PRO: "STRIPE_PRICE_CAREER_PRO",
    PlanName.EXECUTIVE: "STRIPE_PRICE_EXECUTIVE",
}

DEFAULT_TIERS = [
    {
        "plan": PlanName.BASIC,
        "title": "Basic",
        "price": "Free",
        "generations": "2 Generations",
        "features": ["Standard tone options", "Community support"],
    },
    {
        "plan": PlanName.JOB_SEEKER,
        "title": "Job Seeker",
        "price": "$5.99",
        "generations": "10 Generations",
        "features": ["Standard tone options", "Email support", "Save documents"],
        "most_popular": True,
    },
    {
        "plan": PlanName.CAREER_PRO,
        "title": "Career Pro",
        "price": "$9.99",
        "generations": "30 Generations",
        "features": ["All tone options", "CV Analysis", "Priority support"],
    },
    {
        "plan": PlanName.EXECUTIVE,
        "title": "Executive",
        "price": "$19.99",
        "generations": "Unlimited Generations",
        "features": ["Premium tone options", "CV Analysis & Enhancement", "Dedicated support"],
    },
]


def resolve_plan(plan: Union[PlanName, str, None]) -> Optional[PlanName]:
    """Map a stored plan string to PlanName; None for absent or unknown values."""
    if plan is None:
        return None
    if isinstance(plan, PlanName):
        return plan
    try:
        return PlanName(plan.strip())
    except ValueError:
        return None


def get_plan_quota(plan: Union[PlanName, str, None]) -> int:
    """Quota for a plan; absent or unknown plans get the Basic quota."""
    resolved = resolve_plan(plan)
    if resolved is None:
        return PLAN_QUOTAS[PlanName.BASIC]
    return PLAN_QUOTAS[resolved]


def is_paid_plan(plan: Union[PlanName, str, None]) -> bool:
    return resolve_plan(plan) in PAID_PLANS


def _configured_price(env_var: str) -> Optional[str]:
    return os.getenv(env_var) or getattr(settings, env_var, None)


def get_price_for_plan(plan: Union[PlanName, str, None]) -> Optional[str]:
    """Stripe price id for a paid plan, or None if not configured."""
    resolved = resolve_plan(plan)
    env_var = PRICE_ENV_VARS.get(resolved) if resolved else None
    if not env_var:
        return None
    return _configured_price(env_var)


def get_plan_for_price(price_id: Optional[str]) -> Optional[PlanName]:
    """Reverse lookup of get_price_for_plan."""
    if not price_id:
        return None
    for plan, env_var in PRICE_ENV_VARS.items():
        if _configured_price(env_var) == price_id:
            return plan
    return None


def list_tiers() -> List[PlanTier]:
    tiers = []
    for config in DEFAULT_TIERS:
        plan = config["plan"]
        tiers.append(
            PlanTier(
                plan=plan.value,
                title=config["title"],
                price=config["price"],
                generations=config["generations"],
                quota=PLAN_QUOTAS[plan],
                features=list(config["features"]),
                price_id=get_price_for_plan(plan),
                is_paid=plan in PAID_PLANS,
                most_popular=config.get("most_popular", False),
            )
        )
    return tiers


def recommend_plan(daily_goal: Optional[int]) -> PlanName:
    """
    Recommend a plan from the daily application goal given at onboarding.

    Up to 10 -> Job Seeker, up to 20 -> Career Pro, above -> Executive.
    """
    goal = daily_goal or 0
    if goal <= 10:
        return PlanName.JOB_SEEKER
    if goal <= 20:
        return PlanName.CAREER_PRO
    return PlanName.EXECUTIVE
