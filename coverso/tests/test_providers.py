"""
Adapter tests for the Stripe gateway and the Groq generator.

The SDKs are patched; no network calls are made.
"""
import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import groq
import pytest
import stripe

from coverso.core.errors import CheckoutSessionNotFoundError
from coverso.features.billing.provider import BillingProviderError
from coverso.features.billing.stripe_provider import StripeGateway
from coverso.features.generation.generator import GeneratorError, GroqGenerator, get_generator
from coverso.models.generation import GenerationInput


@pytest.fixture
def stripe_gateway():
    return StripeGateway(secret_key="sk_test_123", api_version="2024-06-20")


def test_gateway_requires_key(monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    with pytest.raises(BillingProviderError):
        StripeGateway()


def test_gateway_pins_api_version(stripe_gateway):
    assert stripe.api_key == "sk_test_123"
    assert stripe.api_version == "2024-06-20"


@patch("coverso.features.billing.stripe_provider.stripe.Customer")
def test_existing_customer_is_reused(mock_customer, stripe_gateway):
    mock_customer.list.return_value = SimpleNamespace(data=[SimpleNamespace(id="cus_existing")])
    assert stripe_gateway.find_or_create_customer("a@example.com", "u1") == "cus_existing"
    mock_customer.create.assert_not_called()


@patch("coverso.features.billing.stripe_provider.stripe.Customer")
def test_customer_created(mock_customer, stripe_gateway):
    mock_customer.list.return_value = SimpleNamespace(data=[])
    mock_customer.create.return_value = SimpleNamespace(id="cus_new")
    assert stripe_gateway.find_or_create_customer("a@example.com", "u1") == "cus_new"
    mock_customer.create.assert_called_once_with(email="a@example.com", metadata={"principal_id": "u1"})


@patch("coverso.features.billing.stripe_provider.stripe.Subscription")
def test_create_subscription_incomplete(mock_subscription, stripe_gateway):
    mock_subscription.create.return_value = {
        "id": "sub_123",
        "latest_invoice": {"payment_intent": {"client_secret": "pi_123_secret_abc"}},
    }
    handle = stripe_gateway.create_subscription("cus_1", "price_1", metadata={"principal_id": "u1"})

    assert handle.subscription_id == "sub_123"
    assert handle.client_secret == "pi_123_secret_abc"
    kwargs = mock_subscription.create.call_args.kwargs
    assert kwargs["payment_behavior"] == "default_incomplete"
    assert kwargs["expand"] == ["latest_invoice.payment_intent"]


@patch("coverso.features.billing.stripe_provider.stripe.Subscription")
def test_create_subscription_without_intent(mock_subscription, stripe_gateway):
    mock_subscription.create.return_value = {"id": "sub_123", "latest_invoice": "in_unexpanded"}
    handle = stripe_gateway.create_subscription("cus_1", "price_1")
    assert handle.client_secret is None


@patch("coverso.features.billing.stripe_provider.stripe.Subscription")
def test_create_subscription_stripe_error(mock_subscription, stripe_gateway):
    mock_subscription.create.side_effect = stripe.StripeError("boom")
    with pytest.raises(BillingProviderError):
        stripe_gateway.create_subscription("cus_1", "price_1")


@patch("coverso.features.billing.stripe_provider.stripe.Subscription")
def test_retrieve_subscription(mock_subscription, stripe_gateway):
    mock_subscription.retrieve.return_value = {
        "status": "active",
        "customer": "cus_1",
        "items": {"data": [{"price": {"id": "price_career_pro"}}]},
        "latest_invoice": {"payment_intent": {"status": "succeeded"}},
    }
    state = stripe_gateway.retrieve_subscription("sub_1")
    assert state.status == "active"
    assert state.payment_status == "succeeded"
    assert state.price_id == "price_career_pro"
    assert state.customer_id == "cus_1"


@patch("coverso.features.billing.stripe_provider.stripe.PaymentIntent")
def test_confirm_payment_uses_intent_id(mock_intent, stripe_gateway):
    mock_intent.confirm.return_value = {"status": "succeeded"}
    result = stripe_gateway.confirm_payment("pi_123_secret_abc", "pm_card_visa")
    assert result.status == "succeeded"
    mock_intent.confirm.assert_called_once_with("pi_123", payment_method="pm_card_visa")


@patch("coverso.features.billing.stripe_provider.stripe.PaymentIntent")
def test_confirm_payment_card_declined(mock_intent, stripe_gateway):
    mock_intent.confirm.side_effect = stripe.CardError("declined", None, "card_declined")
    result = stripe_gateway.confirm_payment("pi_123_secret_abc", "pm_card_declined")
    assert result.status == "failed"
    assert result.error


@patch("coverso.features.billing.stripe_provider.stripe.checkout.Session")
def test_retrieve_session_unknown(mock_session, stripe_gateway):
    mock_session.retrieve.side_effect = stripe.InvalidRequestError("No such checkout.session", "id")
    with pytest.raises(CheckoutSessionNotFoundError):
        stripe_gateway.retrieve_session("cs_missing")


@patch("coverso.features.billing.stripe_provider.stripe.Subscription")
@patch("coverso.features.billing.stripe_provider.stripe.checkout.Session")
def test_retrieve_session_paid(mock_session, mock_subscription, stripe_gateway):
    mock_session.retrieve.return_value = {
        "status": "complete",
        "payment_status": "paid",
        "subscription": "sub_9",
        "customer": "cus_9",
        "metadata": {"principal_id": "u1"},
    }
    mock_subscription.retrieve.return_value = {
        "status": "active",
        "customer": "cus_9",
        "items": {"data": [{"price": {"id": "price_executive"}}]},
        "latest_invoice": None,
    }
    state = stripe_gateway.retrieve_session("cs_9")
    assert state.payment_status == "paid"
    assert state.price_id == "price_executive"
    assert state.principal_id == "u1"
    assert state.subscription_id == "sub_9"


@patch("coverso.features.billing.stripe_provider.stripe.checkout.Session")
def test_create_checkout_session(mock_session, stripe_gateway):
    mock_session.create.return_value = SimpleNamespace(id="cs_1", url="https://checkout.stripe.com/cs_1")
    session_id, url = stripe_gateway.create_checkout_session(
        "cus_1", "price_1", "https://app/ok", "https://app/cancel", metadata={"principal_id": "u1"}
    )
    assert (session_id, url) == ("cs_1", "https://checkout.stripe.com/cs_1")
    kwargs = mock_session.create.call_args.kwargs
    assert kwargs["mode"] == "subscription"
    assert kwargs["allow_promotion_codes"] is True


def _chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _generation_input():
    return GenerationInput(
        full_name="Alice Example",
        user_location="Dublin",
        cv="cv",
        cv_text="Ten years of Python.",
        job_description="Acme is hiring.",
    )


class TestGroqGenerator:

    def test_summary_then_json_letter(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = [
            _chat_response("Senior Python engineer."),
            _chat_response(json.dumps({
                "coverLetter": "Dear Acme team,",
                "jobTitle": "Backend Engineer",
                "companyName": "Acme",
                "keyFocusPoints": ["Python", "APIs"],
            })),
        ]
        result = GroqGenerator(api_key="gsk_test", model="test-model", client=client).generate(_generation_input())

        assert result.cover_letter == "Dear Acme team,"
        assert result.company_name == "Acme"
        assert result.key_focus_points == ["Python", "APIs"]

        summary_call, letter_call = client.chat.completions.create.call_args_list
        assert "response_format" not in summary_call.kwargs
        assert letter_call.kwargs["response_format"] == {"type": "json_object"}
        assert "Senior Python engineer." in letter_call.kwargs["messages"][1]["content"]

    def test_invalid_json(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = [_chat_response("summary"), _chat_response("not json")]
        with pytest.raises(GeneratorError):
            GroqGenerator(api_key="gsk_test", client=client).generate(_generation_input())

    def test_missing_letter(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = [
            _chat_response("summary"),
            _chat_response(json.dumps({"jobTitle": "Engineer"})),
        ]
        with pytest.raises(GeneratorError):
            GroqGenerator(api_key="gsk_test", client=client).generate(_generation_input())

    def test_groq_error_wrapped(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = groq.GroqError("rate limited")
        with pytest.raises(GeneratorError):
            GroqGenerator(api_key="gsk_test", client=client).generate(_generation_input())

    def test_unconfigured(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        assert get_generator() is None
