"""
Documents API

GET    /v1/documents        -> caller's documents, newest first
GET    /v1/documents/{id}
PATCH  /v1/documents/{id}   -> edit page save (file name, content)
DELETE /v1/documents/{id}
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from coverso.api.deps import get_document_store
from coverso.core.auth import get_current_principal
from coverso.models.principal import Principal


router = APIRouter(prefix="/v1/documents", tags=["documents"])


class DocumentUpdate(BaseModel):
    file_name: Optional[str] = None
    content: Optional[str] = None


@router.get("")
def list_documents(
    principal: Principal = Depends(get_current_principal),
    documents=Depends(get_document_store),
):
    return {"documents": [doc.model_dump(mode="json") for doc in documents.list(principal.id)]}


@router.get("/{document_id}")
def get_document(
    document_id: str,
    principal: Principal = Depends(get_current_principal),
    documents=Depends(get_document_store),
):
    return documents.get(principal.id, document_id).model_dump(mode="json")


@router.patch("/{document_id}")
def update_document(
    document_id: str,
    body: DocumentUpdate,
    principal: Principal = Depends(get_current_principal),
    documents=Depends(get_document_store),
):
    doc = documents.update(principal.id, document_id, file_name=body.file_name, content=body.content)
    return doc.model_dump(mode="json")


@router.delete("/{document_id}")
def delete_document(
    document_id: str,
    principal: Principal = Depends(get_current_principal),
    documents=Depends(get_document_store),
):
    documents.delete(principal.id, document_id)
    return {"deleted": True, "id": document_id}
