"""
Generation API

POST /v1/generate -> {document, usage}
"""

from fastapi import APIRouter, Depends

from coverso.api.deps import get_document_generator, get_document_store, get_profile_store
from coverso.core.auth import get_current_principal
from coverso.core.config import settings
from coverso.features.generation.service import generate_cover_letter
from coverso.models.generation import GenerationRequest
from coverso.models.principal import Principal


router = APIRouter(prefix="/v1/generate", tags=["generate"])


@router.post("")
def generate(
    body: GenerationRequest,
    principal: Principal = Depends(get_current_principal),
    profiles=Depends(get_profile_store),
    documents=Depends(get_document_store),
    generator=Depends(get_document_generator),
):
    result = generate_cover_letter(
        principal,
        body,
        profiles=profiles,
        documents=documents,
        generator=generator,
    )
    return {
        "document": result["document"].model_dump(mode="json"),
        "usage": {**result["usage"].to_dict(), "upgrade_url": f"{settings.APP_URL}/pricing"},
    }
