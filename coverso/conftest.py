# coverso/conftest.py
import sys
import os
import pytest
from pathlib import Path

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Tests run against an in-memory SQLite database and never reach Stripe/Groq
os.environ["TEST_DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENV", "test")
os.environ.pop("STRIPE_SECRET_KEY", None)
os.environ.pop("GROQ_API_KEY", None)
os.environ["STRIPE_PRICE_JOB_SEEKER"] = "price_job_seeker"
os.environ["STRIPE_PRICE_CAREER_PRO"] = "price_career_pro"
os.environ["STRIPE_PRICE_EXECUTIVE"] = "price_executive"


@pytest.fixture(scope="function", autouse=True)
def reset_db():
    """Fresh tables for every test."""
    from coverso.core.database import reset_database
    reset_database()
    yield


@pytest.fixture
def profiles():
    from coverso.features.profiles.service import ProfileStore
    return ProfileStore()


@pytest.fixture
def documents():
    from coverso.features.documents.service import DocumentStore
    return DocumentStore()


@pytest.fixture
def registry():
    from coverso.features.discounts.service import DiscountRegistry
    return DiscountRegistry()


@pytest.fixture
def validator(registry):
    from coverso.features.discounts.service import DiscountValidator
    return DiscountValidator(registry)


@pytest.fixture
def attempts():
    from coverso.features.billing.attempts import UpgradeAttemptStore
    return UpgradeAttemptStore()


@pytest.fixture
def gateway():
    from coverso.tests.mocks import FakeGateway
    return FakeGateway()


@pytest.fixture
def generator():
    from coverso.tests.mocks import FakeGenerator
    return FakeGenerator()


@pytest.fixture
def principal():
    from coverso.models.principal import Principal
    return Principal(id="user_alice", email="alice@example.com", display_name="Alice Example")


@pytest.fixture
def onboarded(profiles, principal):
    """Signed-in principal with onboarding done on the Basic plan."""
    profiles.set(
        principal.id,
        {"email": principal.email, "full_name": "Alice Example", "user_location": "Dublin",
         "plan": "Basic", "onboarding_complete": True},
    )
    return principal


@pytest.fixture
def client(gateway, generator):
    """TestClient with the payment gateway and generator replaced by fakes."""
    from fastapi.testclient import TestClient
    from coverso.main import app
    from coverso.api.deps import get_document_generator, get_payment_gateway

    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_document_generator] = lambda: generator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
