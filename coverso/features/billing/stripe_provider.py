"""
Stripe payment gateway.

Implements the PaymentGateway protocol with the Stripe API. Subscriptions
are created incomplete and expose the first invoice's payment intent
secret for client-side confirmation.
"""
import os
from typing import Dict, Any, Optional, Tuple
import stripe

from coverso.core.config import settings
from coverso.core.errors import CheckoutSessionNotFoundError
from coverso.features.billing.provider import (
    BillingProviderError,
    CheckoutSessionState,
    PaymentResult,
    SubscriptionHandle,
    SubscriptionState,
)


def _get(obj: Any, key: str) -> Any:
    """Field access that tolerates None and unexpanded (string id) objects."""
    if obj is None or isinstance(obj, str):
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


def _id_of(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return _get(value, "id")


def _first_price_id(subscription: Any) -> Optional[str]:
    items = _get(_get(subscription, "items"), "data") or []
    if not items:
        return None
    return _id_of(_get(items[0], "price"))


class StripeGateway:
    """Stripe implementation of PaymentGateway protocol."""

    def __init__(self, secret_key: Optional[str] = None, api_version: Optional[str] = None):
        """
        Initialize Stripe gateway.

        Args:
            secret_key: Stripe secret key (defaults to STRIPE_SECRET_KEY env var)
            api_version: Pinned API version (defaults to STRIPE_API_VERSION setting)
        """
        self.secret_key = secret_key or os.getenv("STRIPE_SECRET_KEY") or settings.STRIPE_SECRET_KEY

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")

        stripe.api_key = self.secret_key
        stripe.api_version = api_version or settings.STRIPE_API_VERSION

    def find_or_create_customer(self, email: str, principal_id: str) -> str:
        try:
            customers = stripe.Customer.list(email=email, limit=1)
            if customers.data:
                return customers.data[0].id

            customer = stripe.Customer.create(
                email=email,
                metadata={"principal_id": principal_id},
            )
            return customer.id
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe customer lookup failed: {e}")

    def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> SubscriptionHandle:
        try:
            subscription = stripe.Subscription.create(
                customer=customer_id,
                items=[{"price": price_id}],
                payment_behavior="default_incomplete",
                payment_settings={"save_default_payment_method": "on_subscription"},
                expand=["latest_invoice.payment_intent"],
                metadata=metadata or {},
            )
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe subscription creation failed: {e}")

        payment_intent = _get(_get(subscription, "latest_invoice"), "payment_intent")
        return SubscriptionHandle(
            subscription_id=_get(subscription, "id"),
            client_secret=_get(payment_intent, "client_secret"),
        )

    def retrieve_subscription(self, subscription_id: str) -> SubscriptionState:
        try:
            subscription = stripe.Subscription.retrieve(
                subscription_id,
                expand=["latest_invoice.payment_intent"],
            )
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe subscription lookup failed: {e}")

        payment_intent = _get(_get(subscription, "latest_invoice"), "payment_intent")
        return SubscriptionState(
            status=_get(subscription, "status"),
            payment_status=_get(payment_intent, "status"),
            price_id=_first_price_id(subscription),
            customer_id=_id_of(_get(subscription, "customer")),
        )

    def confirm_payment(self, client_secret: str, payment_method: str) -> PaymentResult:
        intent_id = client_secret.split("_secret_")[0]
        try:
            intent = stripe.PaymentIntent.confirm(intent_id, payment_method=payment_method)
        except stripe.CardError as e:
            return PaymentResult(status="failed", error=e.user_message or str(e))
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe payment confirmation failed: {e}")

        error = _get(_get(intent, "last_payment_error"), "message")
        return PaymentResult(status=_get(intent, "status") or "unknown", error=error)

    def retrieve_session(self, session_id: str) -> CheckoutSessionState:
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except stripe.InvalidRequestError:
            raise CheckoutSessionNotFoundError("Checkout session not found. Please start again.")
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe session lookup failed: {e}")

        subscription_id = _id_of(_get(session, "subscription"))
        price_id = None
        if subscription_id:
            price_id = self.retrieve_subscription(subscription_id).price_id

        return CheckoutSessionState(
            session_id=session_id,
            status=_get(session, "status"),
            payment_status=_get(session, "payment_status"),
            subscription_id=subscription_id,
            customer_id=_id_of(_get(session, "customer")),
            price_id=price_id,
            principal_id=_get(_get(session, "metadata"), "principal_id"),
        )

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Tuple[str, str]:
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                allow_promotion_codes=True,
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata or {},
            )
            return session.id, session.url
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")
