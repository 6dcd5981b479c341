"""
coverso/features/documents/service.py

Document store for generated cover letters.

A principal only ever sees its own documents: every query is scoped by
owner_id, and foreign ids are reported exactly like missing ones.
Database failures surface as DocumentsUnavailableError.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, List

from sqlalchemy import select, insert, update, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from coverso.core.database import get_session_factory, session_scope, generated_documents
from coverso.core.errors import DocumentsUnavailableError, NotFoundError
from coverso.models.document import GeneratedDocument, NewDocument


logger = logging.getLogger("coverso")


def _row_to_document(row) -> GeneratedDocument:
    data = dict(row._mapping)
    data["key_focus_points"] = data.get("key_focus_points") or []
    return GeneratedDocument(**data)


def resolve_file_name(file_name: Optional[str], job_title: Optional[str]) -> str:
    """Empty names fall back to the job title, then to 'Untitled'."""
    for candidate in (file_name, job_title):
        if candidate and candidate.strip():
            return candidate.strip()
    return "Untitled"


def _unavailable(action: str, principal_id: str, error: SQLAlchemyError) -> DocumentsUnavailableError:
    logger.error(
        f"[documents] {action} failed",
        extra={"user_id": principal_id, "error": str(error)},
    )
    return DocumentsUnavailableError("Could not reach your documents. Please try again.")


class DocumentStore:

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory or get_session_factory())

    def list(self, principal_id: str) -> List[GeneratedDocument]:
        """Owner's documents, newest first."""
        try:
            with self._session() as session:
                rows = session.execute(
                    select(generated_documents)
                    .where(generated_documents.c.owner_id == principal_id)
                    .order_by(generated_documents.c.created_at.desc(), generated_documents.c.id.desc())
                ).fetchall()
        except SQLAlchemyError as e:
            raise _unavailable("list", principal_id, e)
        return [_row_to_document(row) for row in rows]

    def get(self, principal_id: str, document_id: str) -> GeneratedDocument:
        try:
            with self._session() as session:
                row = session.execute(
                    select(generated_documents)
                    .where(generated_documents.c.id == document_id)
                    .where(generated_documents.c.owner_id == principal_id)
                ).first()
        except SQLAlchemyError as e:
            raise _unavailable("read", principal_id, e)
        if not row:
            raise NotFoundError("Document not found")
        return _row_to_document(row)

    def create(self, principal_id: str, doc: NewDocument, now: Optional[datetime] = None) -> str:
        document_id = str(uuid.uuid4())
        created_at = now or datetime.now(timezone.utc)
        try:
            with self._session() as session:
                session.execute(
                    insert(generated_documents).values(
                        id=document_id,
                        owner_id=principal_id,
                        file_name=doc.file_name,
                        content=doc.content,
                        job_title=doc.job_title,
                        company_name=doc.company_name,
                        key_focus_points=list(doc.key_focus_points),
                        created_at=created_at,
                        updated_at=created_at,
                    )
                )
        except SQLAlchemyError as e:
            raise _unavailable("create", principal_id, e)
        logger.info(
            "[documents] created",
            extra={"user_id": principal_id, "document_id": document_id},
        )
        return document_id

    def update(
        self,
        principal_id: str,
        document_id: str,
        file_name: Optional[str] = None,
        content: Optional[str] = None,
    ) -> GeneratedDocument:
        """Save from the edit page. Only supplied fields change."""
        existing = self.get(principal_id, document_id)
        values = {"updated_at": datetime.now(timezone.utc)}
        if file_name is not None:
            values["file_name"] = resolve_file_name(file_name, existing.job_title)
        if content is not None:
            values["content"] = content

        try:
            with self._session() as session:
                session.execute(
                    update(generated_documents)
                    .where(generated_documents.c.id == document_id)
                    .where(generated_documents.c.owner_id == principal_id)
                    .values(**values)
                )
        except SQLAlchemyError as e:
            raise _unavailable("update", principal_id, e)
        return self.get(principal_id, document_id)

    def delete(self, principal_id: str, document_id: str) -> None:
        try:
            with self._session() as session:
                result = session.execute(
                    delete(generated_documents)
                    .where(generated_documents.c.id == document_id)
                    .where(generated_documents.c.owner_id == principal_id)
                )
                deleted = result.rowcount
        except SQLAlchemyError as e:
            raise _unavailable("delete", principal_id, e)
        if deleted == 0:
            raise NotFoundError("Document not found")
        logger.info(
            "[documents] deleted",
            extra={"user_id": principal_id, "document_id": document_id},
        )

    def count(self, principal_id: str, since: Optional[datetime] = None) -> int:
        query = (
            select(func.count())
            .select_from(generated_documents)
            .where(generated_documents.c.owner_id == principal_id)
        )
        if since is not None:
            query = query.where(generated_documents.c.created_at >= since)
        try:
            with self._session() as session:
                return int(session.execute(query).scalar() or 0)
        except SQLAlchemyError as e:
            raise _unavailable("count", principal_id, e)
