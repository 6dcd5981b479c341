"""
Billing service: upgrade attempts and payment reconciliation.

Pure-ish business logic that coordinates:
- Customer and incomplete-subscription creation
- Payment confirmation
- Reconciliation of the profile's plan once payment is observed
- Hosted checkout and session verification

A profile's plan only becomes a paid tier after the gateway reports a
successful payment (active/trialing subscription or succeeded intent) or a
paid checkout session. Until then the chosen plan lives in pending_plan.

All Stripe-specific code is in stripe_provider.py.
"""
import logging
import os
from typing import Optional, Dict, Any

from coverso.core.config import settings
from coverso.core.errors import (
    BillingUnavailableError,
    CheckoutSessionNotFoundError,
    NotFoundError,
    PaymentIncompleteError,
    SubscriptionCreationError,
    ValidationError,
)
from coverso.features.billing.attempts import UpgradeAttemptStore
from coverso.features.billing.provider import (
    BillingProviderError,
    PaymentGateway,
    SubscriptionState,
)
from coverso.features.billing.stripe_provider import StripeGateway
from coverso.features.plans.service import (
    PlanName,
    get_plan_for_price,
    get_price_for_plan,
    is_paid_plan,
    resolve_plan,
)
from coverso.models.billing import AttemptState, UpgradeStarted
from coverso.models.principal import Principal
from coverso.models.profile import Profile


logger = logging.getLogger("coverso")

PAID_SUBSCRIPTION_STATUSES = ("active", "trialing")
SUCCEEDED_PAYMENT_STATUS = "succeeded"


def billing_enabled() -> bool:
    """Check if billing is enabled (Stripe configured)."""
    return bool(os.getenv("STRIPE_SECRET_KEY") or settings.STRIPE_SECRET_KEY)


def get_gateway() -> Optional[PaymentGateway]:
    """Get the payment gateway if billing is enabled."""
    if not billing_enabled():
        return None
    try:
        return StripeGateway()
    except BillingProviderError:
        return None


def _require_gateway(gateway: Optional[PaymentGateway]) -> PaymentGateway:
    if gateway is None:
        raise BillingUnavailableError("Billing is not configured.")
    return gateway


def _paid_plan_and_price(plan: Optional[str]) -> tuple:
    resolved = resolve_plan(plan)
    if not is_paid_plan(resolved):
        raise ValidationError(f"'{plan}' is not a purchasable plan")
    price_id = get_price_for_plan(resolved)
    if not price_id:
        raise ValidationError(f"No Stripe price configured for plan: {resolved.value}")
    return resolved, price_id


def _billing_email(principal: Principal, profiles) -> str:
    email = principal.email
    if not email:
        profile = profiles.get(principal.id)
        email = profile.email if profile else None
    if not email:
        raise ValidationError("An email address is required to start a subscription")
    return email


def is_payment_observed(state: SubscriptionState) -> bool:
    return (
        state.status in PAID_SUBSCRIPTION_STATUSES
        or state.payment_status == SUCCEEDED_PAYMENT_STATUS
    )


def apply_paid_plan(
    profiles,
    principal_id: str,
    plan: PlanName,
    *,
    customer_id: Optional[str],
    subscription_id: Optional[str],
    price_id: Optional[str],
) -> Profile:
    """Persist a paid plan in one merge write. Callers must have observed payment."""
    return profiles.set(
        principal_id,
        {
            "plan": plan.value,
            "pending_plan": None,
            "onboarding_complete": True,
            "stripe_customer_id": customer_id,
            "stripe_subscription_id": subscription_id,
            "stripe_price_id": price_id,
            "subscription_status": "active",
        },
        merge=True,
    )


def start_upgrade(
    principal: Principal,
    plan: Optional[str],
    *,
    gateway: Optional[PaymentGateway],
    profiles,
    attempts: UpgradeAttemptStore,
) -> UpgradeStarted:
    """
    Start an upgrade attempt: customer + incomplete subscription.

    The profile's plan is left untouched; the choice is kept as pending_plan.

    Raises:
        BillingUnavailableError: Billing disabled
        ValidationError: Not a paid plan, no configured price, no email
        SubscriptionCreationError: No subscription id or client secret (restart)
    """
    gateway = _require_gateway(gateway)
    resolved, price_id = _paid_plan_and_price(plan)
    email = _billing_email(principal, profiles)

    attempt_id = attempts.create(principal.id, resolved.value, price_id)
    log_extra = {"user_id": principal.id, "plan": resolved.value, "attempt_id": attempt_id}

    try:
        customer_id = gateway.find_or_create_customer(email, principal.id)
        handle = gateway.create_subscription(
            customer_id,
            price_id,
            metadata={"principal_id": principal.id, "plan": resolved.value},
        )
    except BillingProviderError as e:
        attempts.mark(attempt_id, AttemptState.FAILED, error=str(e))
        logger.error("[billing] subscription creation failed", extra={**log_extra, "error": str(e)})
        raise SubscriptionCreationError("Could not prepare the payment form. Please try again.")

    if not handle.subscription_id or not handle.client_secret:
        attempts.mark(
            attempt_id,
            AttemptState.FAILED,
            stripe_customer_id=customer_id,
            error="missing subscription id or client secret",
        )
        logger.error(
            "[billing] subscription creation failed",
            extra={**log_extra, "error": "missing subscription id or client secret"},
        )
        raise SubscriptionCreationError("Could not prepare the payment form. Please try again.")

    attempts.mark(
        attempt_id,
        AttemptState.SUBSCRIPTION_CREATED,
        stripe_subscription_id=handle.subscription_id,
        stripe_customer_id=customer_id,
    )
    profiles.set(
        principal.id,
        {"pending_plan": resolved.value, "stripe_customer_id": customer_id},
        merge=True,
    )
    logger.info(
        "[billing] SUBSCRIPTION_CREATED",
        extra={**log_extra, "subscription_id": handle.subscription_id},
    )
    return UpgradeStarted(
        subscription_id=handle.subscription_id,
        client_secret=handle.client_secret,
        customer_id=customer_id,
        plan=resolved.value,
        price_id=price_id,
    )


def _owned_attempt(attempts: UpgradeAttemptStore, principal: Principal, subscription_id: str):
    attempt = attempts.get_by_subscription(subscription_id)
    if attempt is None or attempt.principal_id != principal.id:
        raise NotFoundError("Subscription not found")
    return attempt


def confirm_payment(
    principal: Principal,
    subscription_id: str,
    client_secret: str,
    payment_method: str,
    *,
    gateway: Optional[PaymentGateway],
    profiles,
    attempts: UpgradeAttemptStore,
) -> Profile:
    """
    Confirm the first payment server-side, then reconcile.

    Raises:
        PaymentIncompleteError: Declined or needs further action; the attempt
            stays SUBSCRIPTION_CREATED and can be retried
    """
    gateway = _require_gateway(gateway)
    attempt = _owned_attempt(attempts, principal, subscription_id)
    if attempt.state == AttemptState.RECONCILED:
        return reconcile(principal, subscription_id, gateway=gateway, profiles=profiles, attempts=attempts)

    try:
        result = gateway.confirm_payment(client_secret, payment_method)
    except BillingProviderError as e:
        logger.error(
            "[billing] payment confirmation failed",
            extra={"user_id": principal.id, "subscription_id": subscription_id, "error": str(e)},
        )
        raise PaymentIncompleteError("Could not confirm your payment. Please try again.")

    if result.status != SUCCEEDED_PAYMENT_STATUS:
        logger.warning(
            "[billing] payment incomplete",
            extra={"user_id": principal.id, "subscription_id": subscription_id, "payment_status": result.status},
        )
        if result.status == "requires_action":
            raise PaymentIncompleteError("Your payment requires further action.")
        raise PaymentIncompleteError(result.error or "Payment failed. Please try again.")

    attempts.mark(attempt.id, AttemptState.PAYMENT_CONFIRMED)
    return reconcile(principal, subscription_id, gateway=gateway, profiles=profiles, attempts=attempts)


def reconcile(
    principal: Principal,
    subscription_id: str,
    *,
    gateway: Optional[PaymentGateway],
    profiles,
    attempts: UpgradeAttemptStore,
) -> Profile:
    """
    Persist the attempt's plan once the gateway reports a successful payment.

    Idempotent: a RECONCILED attempt returns the current profile without
    asking the gateway again.
    """
    attempt = _owned_attempt(attempts, principal, subscription_id)
    if attempt.state == AttemptState.RECONCILED:
        return profiles.get(principal.id)

    gateway = _require_gateway(gateway)
    try:
        state = gateway.retrieve_subscription(subscription_id)
    except BillingProviderError as e:
        logger.error(
            "[billing] subscription lookup failed",
            extra={"user_id": principal.id, "subscription_id": subscription_id, "error": str(e)},
        )
        raise PaymentIncompleteError("Could not verify your payment. Please try again.")

    if not is_payment_observed(state):
        logger.info(
            "[billing] not reconciled, payment not observed",
            extra={
                "user_id": principal.id,
                "subscription_id": subscription_id,
                "subscription_status": state.status,
                "payment_status": state.payment_status,
            },
        )
        raise PaymentIncompleteError("Payment has not completed yet.")

    plan = resolve_plan(attempt.plan_name) or get_plan_for_price(state.price_id)
    profile = apply_paid_plan(
        profiles,
        principal.id,
        plan,
        customer_id=state.customer_id or attempt.stripe_customer_id,
        subscription_id=subscription_id,
        price_id=state.price_id or attempt.price_id,
    )
    attempts.mark(attempt.id, AttemptState.RECONCILED)
    logger.info(
        "[billing] RECONCILED",
        extra={"user_id": principal.id, "subscription_id": subscription_id, "plan": plan.value},
    )
    return profile


def _session_belongs_to(session, principal: Principal, profiles) -> bool:
    """Sessions without principal metadata are matched on the caller's customer id."""
    if session.principal_id:
        return session.principal_id == principal.id
    profile = profiles.get(principal.id)
    known_customer = profile.stripe_customer_id if profile else None
    return bool(session.customer_id) and session.customer_id == known_customer


def verify_checkout_session(
    principal: Principal,
    session_id: str,
    *,
    gateway: Optional[PaymentGateway],
    profiles,
) -> Dict[str, Any]:
    """
    Verify a hosted-checkout return.

    Paid sessions persist the plan resolved from the subscription's price;
    anything else returns paid=False and leaves the profile alone.

    Raises:
        CheckoutSessionNotFoundError: Unknown session, or one started by someone else
    """
    gateway = _require_gateway(gateway)
    try:
        session = gateway.retrieve_session(session_id)
    except BillingProviderError as e:
        logger.error(
            "[billing] session lookup failed",
            extra={"user_id": principal.id, "session_id": session_id, "error": str(e)},
        )
        raise PaymentIncompleteError("Could not verify your payment. Please try again.")

    if not _session_belongs_to(session, principal, profiles):
        logger.warning(
            "[billing] session owner mismatch",
            extra={"user_id": principal.id, "session_id": session_id},
        )
        raise CheckoutSessionNotFoundError("Checkout session not found. Please start again.")

    if session.payment_status != "paid":
        return {"paid": False, "status": session.status, "payment_status": session.payment_status}

    plan = get_plan_for_price(session.price_id)
    if plan is None:
        logger.error(
            "[billing] paid session with unknown price",
            extra={"user_id": principal.id, "session_id": session_id, "price_id": session.price_id},
        )
        raise ValidationError("The purchased price does not match any plan. Please contact support.")

    profile = apply_paid_plan(
        profiles,
        principal.id,
        plan,
        customer_id=session.customer_id,
        subscription_id=session.subscription_id,
        price_id=session.price_id,
    )
    logger.info(
        "[billing] session verified",
        extra={"user_id": principal.id, "session_id": session_id, "plan": plan.value},
    )
    return {"paid": True, "plan": plan.value, "profile": profile}


def start_checkout(
    principal: Principal,
    plan: Optional[str],
    *,
    gateway: Optional[PaymentGateway],
    profiles,
) -> Dict[str, str]:
    """Hosted checkout for a paid plan. Returns session id and URL."""
    gateway = _require_gateway(gateway)
    resolved, price_id = _paid_plan_and_price(plan)
    email = _billing_email(principal, profiles)

    try:
        customer_id = gateway.find_or_create_customer(email, principal.id)
        session_id, url = gateway.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=f"{settings.APP_URL}/dashboard?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.APP_URL}/pricing",
            metadata={"principal_id": principal.id, "plan": resolved.value},
        )
    except BillingProviderError as e:
        logger.error(
            "[billing] checkout creation failed",
            extra={"user_id": principal.id, "plan": resolved.value, "error": str(e)},
        )
        raise SubscriptionCreationError("Could not start checkout. Please try again.")

    profiles.set(
        principal.id, {"pending_plan": resolved.value, "stripe_customer_id": customer_id}, merge=True
    )
    return {"session_id": session_id, "url": url}
