"""
Generation tests: input checks, CV decoding, free-plan restrictions and the
rule that nothing is persisted when the generator fails.
"""
import base64
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from coverso.core.errors import (
    DocumentsUnavailableError,
    GenerationFailedError,
    OnboardingRequiredError,
    QuotaExceededError,
    ValidationError,
)
from coverso.features.generation.cv import extract_cv_text
from coverso.features.generation.service import document_name, generate_cover_letter, validate_request
from coverso.models.generation import GenerationRequest
from coverso.tests.mocks import FakeGenerator


def _data_uri(mime, raw: bytes):
    return f"data:{mime};base64,{base64.b64encode(raw).decode()}"


def _request(**overrides):
    fields = dict(
        full_name="Alice Example",
        user_location="Dublin",
        cv="Ten years of Python backend work at Example Ltd.",
        job_description="Acme Corp is hiring a Backend Engineer.",
        tone="Warm",
        page_length=2,
        must_have_info="Mention open source work",
    )
    fields.update(overrides)
    return GenerationRequest(**fields)


class TestValidateRequest:

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"cv": None}, "Please upload your CV to get started."),
            ({"cv": "  ", "full_name": None}, "Please upload your CV to get started."),
            ({"full_name": ""}, "Please provide your full name and location."),
            ({"user_location": None}, "Please provide your full name and location."),
            ({"job_description": " "}, "Please paste the job description."),
        ],
    )
    def test_missing_inputs(self, overrides, message):
        with pytest.raises(ValidationError) as exc:
            validate_request(_request(**overrides))
        assert exc.value.message == message

    def test_decodes_supporting_documents(self):
        result = validate_request(
            _request(
                supporting_documents=[_data_uri("text/plain", b"Reference letter"), ""],
                portfolio_urls=[" https://alice.dev ", ""],
            )
        )
        assert result.supporting_documents == ["Reference letter"]
        assert result.portfolio_urls == ["https://alice.dev"]
        assert result.cv_text.startswith("Ten years")


class TestExtractCvText:

    def test_plain_text(self):
        assert extract_cv_text("  My CV  ") == "My CV"

    def test_text_data_uri(self):
        assert extract_cv_text(_data_uri("text/plain", "Résumé".encode("utf-8"))) == "Résumé"

    def test_unsupported_type(self):
        with pytest.raises(ValidationError) as exc:
            extract_cv_text(_data_uri("image/png", b"\x89PNG"))
        assert exc.value.message == "Unsupported CV file type. Upload a PDF or text file."

    def test_bad_base64(self):
        with pytest.raises(ValidationError) as exc:
            extract_cv_text("data:text/plain;base64,@@not base64@@")
        assert exc.value.message == "Could not decode the uploaded CV"

    def test_not_base64_uri(self):
        with pytest.raises(ValidationError):
            extract_cv_text("data:text/plain,hello")

    def test_empty_text(self):
        with pytest.raises(ValidationError):
            extract_cv_text(_data_uri("text/plain", b"   "))


def test_document_name():
    assert document_name("Acme Corp") == "Cover Letter for Acme Corp"
    assert document_name(None) == "Cover Letter for Unknown Company"
    assert document_name("") == "Cover Letter for Unknown Company"


class TestGenerateCoverLetter:

    def test_success_persists_and_counts(self, onboarded, profiles, documents, generator):
        result = generate_cover_letter(
            onboarded, _request(), profiles=profiles, documents=documents, generator=generator
        )
        document = result["document"]
        assert document.file_name == "Cover Letter for Acme Corp"
        assert document.job_title == "Backend Engineer"
        assert document.key_focus_points == ["Python", "APIs", "Databases"]
        assert document.owner_id == onboarded.id
        assert result["usage"].current == 1
        assert result["usage"].plan == "Basic"

    def test_free_plan_restrictions(self, onboarded, profiles, documents, generator):
        generate_cover_letter(onboarded, _request(), profiles=profiles, documents=documents, generator=generator)
        sent = generator.calls[0]
        assert sent.page_length == 1
        assert sent.must_have_info is None
        assert sent.tone == "Warm"

    def test_paid_plan_keeps_options(self, principal, profiles, documents, generator):
        profiles.set(principal.id, {"plan": "Career Pro", "onboarding_complete": True})
        generate_cover_letter(principal, _request(), profiles=profiles, documents=documents, generator=generator)
        sent = generator.calls[0]
        assert sent.page_length == 2
        assert sent.must_have_info == "Mention open source work"

    def test_unknown_company(self, onboarded, profiles, documents):
        result = generate_cover_letter(
            onboarded, _request(), profiles=profiles, documents=documents,
            generator=FakeGenerator(company_name=None),
        )
        assert result["document"].file_name == "Cover Letter for Unknown Company"

    def test_generator_failure_persists_nothing(self, onboarded, profiles, documents):
        failing = FakeGenerator(error=RuntimeError("upstream timeout"))
        with pytest.raises(GenerationFailedError) as exc:
            generate_cover_letter(onboarded, _request(), profiles=profiles, documents=documents, generator=failing)
        assert exc.value.message == "Something went wrong. Please check your inputs and try again."
        assert exc.value.status_code == 502
        assert documents.count(onboarded.id) == 0

    def test_save_failure_is_reported(self, onboarded, profiles, documents, generator):
        db_down = OperationalError("INSERT", {}, Exception("db down"))
        with patch("coverso.features.documents.service.insert", side_effect=db_down):
            with pytest.raises(DocumentsUnavailableError) as exc:
                generate_cover_letter(onboarded, _request(), profiles=profiles, documents=documents, generator=generator)
        assert exc.value.status_code == 503
        assert len(generator.calls) == 1
        assert documents.count(onboarded.id) == 0

    def test_no_generator_configured(self, onboarded, profiles, documents):
        with pytest.raises(GenerationFailedError):
            generate_cover_letter(onboarded, _request(), profiles=profiles, documents=documents, generator=None)
        assert documents.count(onboarded.id) == 0

    def test_quota_blocks_before_generator(self, onboarded, profiles, documents, generator):
        for _ in range(2):
            generate_cover_letter(onboarded, _request(), profiles=profiles, documents=documents, generator=generator)
        with pytest.raises(QuotaExceededError):
            generate_cover_letter(onboarded, _request(), profiles=profiles, documents=documents, generator=generator)
        assert len(generator.calls) == 2
        assert documents.count(onboarded.id) == 2

    def test_onboarding_required(self, principal, profiles, documents, generator):
        with pytest.raises(OnboardingRequiredError):
            generate_cover_letter(principal, _request(), profiles=profiles, documents=documents, generator=generator)
        assert generator.calls == []

    def test_validation_runs_before_gate(self, principal, profiles, documents, generator):
        with pytest.raises(ValidationError):
            generate_cover_letter(
                principal, _request(cv=None), profiles=profiles, documents=documents, generator=generator
            )
