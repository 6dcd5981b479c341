"""Cover letter generation: validate, gate, generate, persist.

Nothing is written unless the generator succeeds; the new document is then
counted by the next usage read.
"""

import logging
from typing import Optional, Dict, Any

from coverso.core.errors import DocumentsUnavailableError, GenerationFailedError, ValidationError
from coverso.core.logging import log_event
from coverso.features.entitlements.service import enforce_generation, get_usage
from coverso.features.generation.cv import extract_cv_text
from coverso.models.document import NewDocument
from coverso.models.generation import GenerationInput, GenerationRequest
from coverso.models.principal import Principal


logger = logging.getLogger("coverso")

FREE_PAGE_LENGTH = 1


def _required(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def validate_request(request: GenerationRequest) -> GenerationInput:
    """User input checks, in the order the form reports them."""
    if not _required(request.cv):
        raise ValidationError("Please upload your CV to get started.")
    if not _required(request.full_name) or not _required(request.user_location):
        raise ValidationError("Please provide your full name and location.")
    if not _required(request.job_description):
        raise ValidationError("Please paste the job description.")

    cv_text = extract_cv_text(request.cv)
    supporting = [extract_cv_text(doc) for doc in request.supporting_documents if _required(doc)]
    portfolio = [url.strip() for url in request.portfolio_urls if _required(url)]
    return GenerationInput(
        **request.model_dump(exclude={"supporting_documents", "portfolio_urls"}),
        supporting_documents=supporting,
        portfolio_urls=portfolio,
        cv_text=cv_text,
    )


def document_name(company_name: Optional[str]) -> str:
    return f"Cover Letter for {company_name or 'Unknown Company'}"


def generate_cover_letter(
    principal: Principal,
    request: GenerationRequest,
    *,
    profiles,
    documents,
    generator,
) -> Dict[str, Any]:
    """
    Generate and save a cover letter.

    Returns:
        {"document": GeneratedDocument, "usage": UsageSnapshot}

    Raises:
        ValidationError: Missing or undecodable input (400)
        OnboardingRequiredError / QuotaExceededError: Gate refused (409 / 403)
        GenerationFailedError: Generator failed or unavailable (502)
        DocumentsUnavailableError: The letter could not be saved (503)
    """
    generation_input = validate_request(request)
    decision = enforce_generation(principal.id, profiles=profiles, documents=documents)

    if not decision.paying:
        generation_input = generation_input.model_copy(
            update={"page_length": FREE_PAGE_LENGTH, "must_have_info": None}
        )

    if generator is None:
        logger.error("[generation] no generator configured", extra={"user_id": principal.id})
        raise GenerationFailedError("Something went wrong. Please check your inputs and try again.")

    try:
        result = generator.generate(generation_input)
    except Exception as e:
        logger.error(
            "[generation] FAILED",
            exc_info=True,
            extra={"user_id": principal.id, "error": str(e)},
        )
        raise GenerationFailedError("Something went wrong. Please check your inputs and try again.")

    try:
        document_id = documents.create(
            principal.id,
            NewDocument(
                file_name=document_name(result.company_name),
                content=result.cover_letter,
                job_title=result.job_title,
                company_name=result.company_name,
                key_focus_points=result.key_focus_points,
            ),
        )
    except DocumentsUnavailableError:
        logger.error("[generation] letter generated but not saved", extra={"user_id": principal.id})
        raise

    log_event(
        "info",
        "[generation] SUCCEEDED",
        user_id=principal.id,
        event_type="generation.succeeded",
        extra={"document_id": document_id, "plan": decision.usage.plan, "company": result.company_name},
    )
    return {
        "document": documents.get(principal.id, document_id),
        "usage": get_usage(principal.id, profiles=profiles, documents=documents),
    }
