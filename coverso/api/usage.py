"""
Usage API

GET /v1/usage -> {current, max, unlimited, display, plan, remaining, status,
                  can_generate, upgrade_url}

Anonymous callers get the Guest snapshot.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from coverso.api.deps import get_document_store, get_profile_store
from coverso.core.auth import get_optional_principal
from coverso.core.config import settings
from coverso.features.entitlements.service import get_usage
from coverso.models.principal import Principal


router = APIRouter(prefix="/v1/usage", tags=["usage"])


@router.get("")
def usage(
    principal: Optional[Principal] = Depends(get_optional_principal),
    profiles=Depends(get_profile_store),
    documents=Depends(get_document_store),
):
    snapshot = get_usage(
        principal.id if principal else None,
        profiles=profiles,
        documents=documents,
    )
    return {**snapshot.to_dict(), "upgrade_url": f"{settings.APP_URL}/pricing"}
