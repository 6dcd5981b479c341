"""
FastAPI dependency providers.

Routes receive their stores and external clients through these functions so
tests can swap them with app.dependency_overrides.
"""

from typing import Optional

from coverso.core.database import get_session_factory
from coverso.features.billing.attempts import UpgradeAttemptStore
from coverso.features.billing.provider import PaymentGateway
from coverso.features.billing.service import get_gateway
from coverso.features.discounts.service import DiscountRegistry, DiscountValidator
from coverso.features.documents.service import DocumentStore
from coverso.features.generation.generator import DocumentGenerator, get_generator
from coverso.features.profiles.service import ProfileStore


def get_profile_store() -> ProfileStore:
    return ProfileStore(get_session_factory())


def get_document_store() -> DocumentStore:
    return DocumentStore(get_session_factory())


def get_discount_validator() -> DiscountValidator:
    return DiscountValidator(DiscountRegistry(get_session_factory()))


def get_attempt_store() -> UpgradeAttemptStore:
    return UpgradeAttemptStore(get_session_factory())


def get_payment_gateway() -> Optional[PaymentGateway]:
    return get_gateway()


def get_document_generator() -> Optional[DocumentGenerator]:
    return get_generator()
