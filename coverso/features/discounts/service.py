"""
coverso/features/discounts/service.py

Discount code registry, validator and redemption.

A code is valid when a registry record exists for it (after trimming).
Records without a plan name grant the Special plan. Extra rules such as
expiry or usage limits plug in as callables; none are configured by default.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from sqlalchemy import select, insert
from sqlalchemy.orm import sessionmaker

from coverso.core.database import get_session_factory, session_scope, discount_codes
from coverso.core.errors import DiscountUnavailableError, ValidationError
from coverso.features.plans.service import PlanName
from coverso.models.discount import DiscountCode, DiscountValidation
from coverso.models.principal import Principal
from coverso.models.profile import Profile


logger = logging.getLogger("coverso")

NO_CODE_ERROR = "No code provided"
INVALID_CODE_ERROR = "Invalid discount code"
LOOKUP_FAILED_ERROR = "Error validating discount code. Please try again."

DiscountRule = Callable[[DiscountCode], Optional[str]]


class DiscountRegistry:

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory or get_session_factory())

    def get(self, code: str) -> Optional[DiscountCode]:
        with self._session() as session:
            row = session.execute(
                select(discount_codes).where(discount_codes.c.code == code)
            ).first()
        if not row:
            return None
        return DiscountCode(code=row.code, plan_name=row.plan_name)

    def add(self, code: str, plan_name: Optional[str] = None) -> DiscountCode:
        """Seed a code (administrative)."""
        code = code.strip()
        if not code:
            raise ValidationError(NO_CODE_ERROR)
        with self._session() as session:
            session.execute(
                insert(discount_codes).values(
                    code=code,
                    plan_name=plan_name,
                    created_at=datetime.now(timezone.utc),
                )
            )
        return DiscountCode(code=code, plan_name=plan_name)


class DiscountValidator:
    """The single validate(code) contract every caller goes through."""

    def __init__(self, registry, rules: Sequence[DiscountRule] = ()):
        self.registry = registry
        self.rules = tuple(rules)

    def validate(self, code: Optional[str]) -> DiscountValidation:
        normalized = (code or "").strip()
        if not normalized:
            return DiscountValidation(valid=False, error=NO_CODE_ERROR)

        try:
            record = self.registry.get(normalized)
        except Exception as e:
            logger.error("[discounts] lookup failed", extra={"error": str(e)})
            return DiscountValidation(valid=False, error=LOOKUP_FAILED_ERROR)

        if record is None:
            logger.info("[discounts] INVALID", extra={"reason": "not_found"})
            return DiscountValidation(valid=False, error=INVALID_CODE_ERROR)

        for rule in self.rules:
            error = rule(record)
            if error:
                logger.info("[discounts] INVALID", extra={"reason": "rule", "rule_error": error})
                return DiscountValidation(valid=False, error=error)

        return DiscountValidation(valid=True, plan_name=record.plan_name or PlanName.SPECIAL.value)


def redeem(principal: Principal, code: Optional[str], *, validator: DiscountValidator, profiles) -> Profile:
    """
    Validate a code and grant its plan.

    Plan and onboarding completion are written together in one merge write.

    Raises:
        ValidationError: Blank, unknown or rule-rejected code (400)
        DiscountUnavailableError: Registry lookup failed (503, retry)
    """
    result = validator.validate(code)
    if not result.valid:
        if result.error == LOOKUP_FAILED_ERROR:
            raise DiscountUnavailableError(result.error)
        raise ValidationError(result.error or INVALID_CODE_ERROR)

    profile = profiles.set(
        principal.id,
        {
            "plan": result.plan_name,
            "pending_plan": None,
            "onboarding_complete": True,
        },
        merge=True,
    )
    logger.info(
        "[discounts] redeemed",
        extra={"user_id": principal.id, "plan": result.plan_name},
    )
    return profile
