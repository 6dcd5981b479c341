"""
coverso/features/entitlements/service.py

Entitlement engine.

Handles:
- Usage snapshot {current, max, plan} from a profile and a document count
- The can-generate decision
- Server-side enforcement right before the generator is invoked
- Structured logs only (no metrics backend)
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
import logging

from coverso.core.config import settings
from coverso.core.errors import OnboardingRequiredError, QuotaExceededError
from coverso.features.plans.service import (
    PlanName,
    UNLIMITED,
    get_plan_quota,
    resolve_plan,
)
from coverso.features.usage.service import count_generations
from coverso.models.profile import Profile


logger = logging.getLogger("coverso")

GUEST_LABEL = "Guest"
UNLIMITED_DISPLAY = "∞"
APPROACHING_LIMIT_RATIO = 0.8


@dataclass(frozen=True)
class UsageSnapshot:
    current: int
    max: int
    plan: str

    @property
    def unlimited(self) -> bool:
        return self.max == UNLIMITED

    @property
    def remaining(self) -> Optional[int]:
        if self.unlimited:
            return None
        return max(0, self.max - self.current)

    @property
    def display(self) -> str:
        if self.unlimited:
            return UNLIMITED_DISPLAY
        return f"{self.current}/{self.max}"

    @property
    def status(self) -> str:
        if self.unlimited:
            return "ok"
        if self.current >= self.max:
            return "at_limit"
        if self.current >= self.max * APPROACHING_LIMIT_RATIO:
            return "approaching_limit"
        return "ok"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "max": "unlimited" if self.unlimited else self.max,
            "unlimited": self.unlimited,
            "display": self.display,
            "plan": self.plan,
            "remaining": "unlimited" if self.unlimited else self.remaining,
            "status": self.status,
            "can_generate": can_generate(self),
        }


class EnforcementStatus(str, Enum):
    """Outcome of the generation gate."""
    ALLOW = "ALLOW"
    WARN_ONLY = "WARN_ONLY"
    BLOCK = "BLOCK"


@dataclass(frozen=True)
class EnforcementDecision:
    status: EnforcementStatus
    usage: UsageSnapshot
    paying: bool


def compute_usage(profile: Optional[Profile], document_count: int) -> UsageSnapshot:
    """
    Pure usage computation.

    - No profile: "Guest" with the Basic quota, whatever the count.
    - Known plan: that plan's quota and name.
    - Absent or unrecognised plan: Basic quota, labelled "Basic".
    """
    if document_count < 0:
        raise ValueError(f"document_count must be non-negative, got {document_count}")

    if profile is None:
        return UsageSnapshot(current=document_count, max=get_plan_quota(None), plan=GUEST_LABEL)

    plan = resolve_plan(profile.plan)
    label = plan.value if plan else PlanName.BASIC.value
    return UsageSnapshot(current=document_count, max=get_plan_quota(plan), plan=label)


def can_generate(usage: UsageSnapshot) -> bool:
    return usage.unlimited or usage.current < usage.max


def is_paying(usage: UsageSnapshot) -> bool:
    """Guest and Basic users get the restricted generation options."""
    return usage.plan not in (GUEST_LABEL, PlanName.BASIC.value)


def get_usage(
    principal_id: Optional[str],
    *,
    profiles,
    documents,
    now: Optional[datetime] = None,
    window_days: Optional[int] = None,
) -> UsageSnapshot:
    """Load profile and document count, then compute usage. Anonymous -> Guest 0."""
    if not principal_id:
        return compute_usage(None, 0)

    if window_days is None:
        window_days = settings.USAGE_WINDOW_DAYS

    profile = profiles.get(principal_id)
    count = count_generations(documents, principal_id, now=now, window_days=window_days)
    return compute_usage(profile, count)


def enforce_generation(
    principal_id: str,
    *,
    profiles,
    documents,
    now: Optional[datetime] = None,
    window_days: Optional[int] = None,
    enforce: Optional[bool] = None,
) -> EnforcementDecision:
    """
    Gate a generation request.

    Raises:
        OnboardingRequiredError: Profile missing or onboarding not complete
        QuotaExceededError: Quota used up and enforcement enabled
    """
    enforce_quota = settings.ENFORCE_GENERATION_QUOTA if enforce is None else enforce

    profile = profiles.get(principal_id)
    if profile is None or not profile.onboarding_complete:
        logger.info("[entitlement] ONBOARDING_REQUIRED", extra={"user_id": principal_id})
        raise OnboardingRequiredError("Please complete your profile setup before generating.")

    if window_days is None:
        window_days = settings.USAGE_WINDOW_DAYS
    count = count_generations(documents, principal_id, now=now, window_days=window_days)
    usage = compute_usage(profile, count)
    log_extra = {
        "user_id": principal_id,
        "plan": usage.plan,
        "current_usage": usage.current,
        "quota": "unlimited" if usage.unlimited else usage.max,
    }

    if can_generate(usage):
        logger.info("[entitlement] ALLOWED", extra=log_extra)
        return EnforcementDecision(status=EnforcementStatus.ALLOW, usage=usage, paying=is_paying(usage))

    if not enforce_quota:
        logger.warning("[entitlement] WARN_ONLY", extra=log_extra)
        return EnforcementDecision(status=EnforcementStatus.WARN_ONLY, usage=usage, paying=is_paying(usage))

    logger.warning("[entitlement] BLOCK", extra=log_extra)
    raise QuotaExceededError(
        f"You've reached your limit of {usage.max} generations on the {usage.plan} plan. "
        "Please upgrade your plan to continue."
    )
