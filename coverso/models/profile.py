"""
coverso/models/profile.py

Profile model: one per principal, holding personal details, the plan and the
Stripe identifiers written by payment reconciliation.
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict


# Fields a user may edit from the profile page / onboarding form
PERSONAL_FIELDS = frozenset({
    "email",
    "full_name",
    "user_location",
    "phone",
    "linkedin_url",
    "profile_image",
    "industries",
    "academic_level",
    "daily_goal",
})

# Fields only onboarding, discount redemption and reconciliation may write
ACCOUNT_FIELDS = frozenset({
    "plan",
    "pending_plan",
    "onboarding_complete",
    "stripe_customer_id",
    "stripe_subscription_id",
    "stripe_price_id",
    "subscription_status",
})

WRITABLE_FIELDS = PERSONAL_FIELDS | ACCOUNT_FIELDS


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    principal_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    user_location: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    profile_image: Optional[str] = None
    industries: List[str] = []
    academic_level: Optional[str] = None
    daily_goal: Optional[int] = None

    # Stored as free text; unknown values degrade to the Basic quota
    plan: Optional[str] = None
    pending_plan: Optional[str] = None
    onboarding_complete: bool = False

    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    subscription_status: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def public_dict(self) -> dict:
        """Serializable view for API responses (Stripe ids stay server-side)."""
        return self.model_dump(
            mode="json",
            exclude={"stripe_customer_id", "stripe_subscription_id", "stripe_price_id"},
        )
