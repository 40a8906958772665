"""Knowledge Base API routes for operator-managed documents."""
import logging
import uuid
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from app.core.db import get_session
from app.core.errors import NotFoundError, PersistenceError, ValidationError
from app.kb.models import KBDocumentCreate, KBDocumentRead, KBDocumentUpdate
from app.models.kb_documents import KBDocument
from app.models.workspace import Listing, Workspace

logger = logging.getLogger(__name__)

kb_router = APIRouter(prefix="/kb", tags=["knowledge-base"])


def _to_read(doc: KBDocument) -> KBDocumentRead:
    return KBDocumentRead.model_validate(doc, from_attributes=True)


def _get_document(session: Session, document_id: uuid.UUID) -> KBDocument:
    doc = session.get(KBDocument, document_id)
    if doc is None:
        raise NotFoundError("KB document not found", details=str(document_id))
    return doc


def _commit(session: Session, action: str) -> None:
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to {action} KB document: {e}")
        raise PersistenceError(f"Failed to {action} KB document", details=str(e)) from e


@kb_router.post("/documents", response_model=KBDocumentRead, status_code=201)
def create_kb_document(
    doc_in: KBDocumentCreate,
    session: Session = Depends(get_session),
) -> KBDocumentRead:
    """
    Create a KB document scoped to a workspace or to one of its listings.

    - scope_type "workspace": scope_id is ignored and stored as null
    - scope_type "property": scope_id must be a listing in the same workspace
    """
    if session.get(Workspace, doc_in.workspace_id) is None:
        raise NotFoundError("Workspace not found", details=str(doc_in.workspace_id))

    scope_id = None
    if doc_in.scope_type == "property":
        if doc_in.scope_id is None:
            raise ValidationError("scope_id is required for property-scoped documents")
        listing = session.get(Listing, doc_in.scope_id)
        if listing is None or listing.workspace_id != doc_in.workspace_id:
            raise ValidationError("Property does not belong to this workspace")
        scope_id = doc_in.scope_id

    doc = KBDocument(
        workspace_id=doc_in.workspace_id,
        scope_type=doc_in.scope_type,
        scope_id=scope_id,
        title=doc_in.title,
        content=doc_in.content,
    )
    session.add(doc)
    _commit(session, "create")
    session.refresh(doc)

    logger.info(
        "KB document created",
        extra={"document_id": str(doc.id), "scope_type": doc.scope_type},
    )
    return _to_read(doc)


@kb_router.get("/documents", response_model=list[KBDocumentRead])
def list_kb_documents(
    workspace_id: uuid.UUID = Query(...),
    property_id: uuid.UUID | None = Query(None, description="Only documents for this listing"),
    session: Session = Depends(get_session),
) -> list[KBDocumentRead]:
    """List KB documents for a workspace, oldest first."""
    statement = select(KBDocument).where(KBDocument.workspace_id == workspace_id)
    if property_id is not None:
        statement = statement.where(
            KBDocument.scope_type == "property",
            KBDocument.scope_id == property_id,
        )
    statement = statement.order_by(col(KBDocument.created_at))

    return [_to_read(doc) for doc in session.exec(statement).all()]


@kb_router.put("/documents/{document_id}", response_model=KBDocumentRead)
def update_kb_document(
    document_id: uuid.UUID,
    doc_update: KBDocumentUpdate,
    session: Session = Depends(get_session),
) -> KBDocumentRead:
    """Update a document's title and/or content. Scope cannot change."""
    doc = _get_document(session, document_id)

    if doc_update.title is not None:
        doc.title = doc_update.title
    if doc_update.content is not None:
        doc.content = doc_update.content
    doc.updated_at = datetime.now(timezone.utc)

    session.add(doc)
    _commit(session, "update")
    session.refresh(doc)

    logger.info("KB document updated", extra={"document_id": str(doc.id)})
    return _to_read(doc)


@kb_router.delete("/documents/{document_id}", status_code=204)
def delete_kb_document(
    document_id: uuid.UUID,
    session: Session = Depends(get_session),
) -> None:
    """Delete a KB document. Existing drafts keep the id in sources_used."""
    doc = _get_document(session, document_id)
    session.delete(doc)
    _commit(session, "delete")

    logger.info("KB document deleted", extra={"document_id": str(document_id)})
