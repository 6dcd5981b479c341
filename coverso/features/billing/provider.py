"""
Payment gateway protocol.

Defines the interface the reconciliation service talks to, so the Stripe
implementation can be swapped for a fake in tests.
"""
from typing import Protocol, Dict, Optional, Tuple
from dataclasses import dataclass


@dataclass(frozen=True)
class SubscriptionHandle:
    """An incomplete subscription and the secret the client confirms with."""
    subscription_id: Optional[str]
    client_secret: Optional[str]


@dataclass(frozen=True)
class SubscriptionState:
    status: Optional[str]  # active, trialing, incomplete, past_due, ...
    payment_status: Optional[str]  # latest payment intent status
    price_id: Optional[str]
    customer_id: Optional[str]


@dataclass(frozen=True)
class PaymentResult:
    status: str  # succeeded, requires_action, requires_payment_method, failed, ...
    error: Optional[str] = None


@dataclass(frozen=True)
class CheckoutSessionState:
    session_id: str
    status: Optional[str]
    payment_status: Optional[str]  # paid, unpaid, no_payment_required
    subscription_id: Optional[str] = None
    customer_id: Optional[str] = None
    price_id: Optional[str] = None
    principal_id: Optional[str] = None


class PaymentGateway(Protocol):
    """
    Protocol for payment gateways.

    Implementations raise BillingProviderError for provider failures and
    CheckoutSessionNotFoundError for unknown checkout sessions.
    """

    def find_or_create_customer(self, email: str, principal_id: str) -> str:
        """Reuse the customer registered under this email, else create one."""
        ...

    def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> SubscriptionHandle:
        ...

    def retrieve_subscription(self, subscription_id: str) -> SubscriptionState:
        ...

    def confirm_payment(self, client_secret: str, payment_method: str) -> PaymentResult:
        ...

    def retrieve_session(self, session_id: str) -> CheckoutSessionState:
        """Session status; the price comes from the session's subscription."""
        ...

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Tuple[str, str]:
        """Returns (session_id, url)."""
        ...


class BillingProviderError(Exception):
    """Base exception for payment gateway errors."""
    pass
