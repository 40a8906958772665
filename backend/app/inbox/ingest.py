"""
Inbound email ingestion.

Recipient addresses encode the workspace: ``inbound+<workspace_id>@<domain>``.
Each email is attached to an active thread with the same guest email and
subject, or opens a new one.
"""
import json
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import NamedTuple
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from app.core.config import settings
from app.core.errors import NotFoundError, PersistenceError, ValidationError
from app.core.tracing import get_tracer, mask_email, safe_span_attributes
from app.models.threads import Message, Thread
from app.models.workspace import Workspace

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


class InboundEmailPayload(BaseModel):
    """Fields posted by SendGrid Inbound Parse (or a compatible relay)."""
    to: str | None = None
    sender: str | None = Field(None, serialization_alias="from")
    subject: str | None = None
    text: str | None = None
    html: str | None = None
    headers: str | None = None


class IngestResult(NamedTuple):
    thread_id: uuid.UUID
    message_id: uuid.UUID
    created_thread: bool


def extract_workspace_id(recipient: str, prefix: str | None = None) -> str | None:
    """Extract the workspace id from ``<prefix>+<workspace_id>@...``, or None."""
    prefix = prefix or settings.INBOUND_EMAIL_PREFIX
    match = re.search(rf"{re.escape(prefix)}\+([a-f0-9-]+)@", recipient, re.IGNORECASE)
    return match.group(1) if match else None


def extract_email(sender: str) -> str:
    """Extract the address from ``Name <email@example.com>``; plain addresses pass through."""
    match = re.search(r"<(.+?)>", sender)
    return (match.group(1) if match else sender).strip()


def extract_name(sender: str) -> str | None:
    """Extract the display name from ``Name <email@example.com>``."""
    match = re.match(r"^(.+?)\s*<", sender)
    if not match:
        return None
    name = match.group(1).strip().strip('"').strip()
    return name or None


def _parse_headers(raw_headers: str | None) -> dict:
    if not raw_headers:
        return {}
    try:
        parsed = json.loads(raw_headers)
    except json.JSONDecodeError:
        logger.warning("Inbound email headers are not valid JSON; storing raw value")
        return {"raw": raw_headers}
    return parsed if isinstance(parsed, dict) else {"raw": parsed}


def find_or_create_thread(
    session: Session,
    workspace_id: uuid.UUID,
    guest_email: str,
    guest_name: str | None,
    subject: str | None,
    metadata: dict | None = None,
) -> tuple[Thread, bool]:
    """
    Reuse the newest active thread for (workspace, guest_email, subject) or add a new one.

    This is a read-then-create upsert without locking: two emails processed
    at the same moment can each open a thread. Exactly-once would need a
    uniqueness constraint in the database.

    Returns:
        (thread, created) where ``created`` is True for a new thread. The
        caller commits.
    """
    subject_clause = (
        col(Thread.subject).is_(None) if subject is None else Thread.subject == subject
    )
    statement = (
        select(Thread)
        .where(
            Thread.workspace_id == workspace_id,
            Thread.guest_email == guest_email,
            subject_clause,
            Thread.status == "active",
        )
        .order_by(col(Thread.created_at).desc())
        .limit(1)
    )
    existing = session.exec(statement).first()

    if existing:
        existing.updated_at = datetime.now(timezone.utc)
        session.add(existing)
        return existing, False

    thread = Thread(
        workspace_id=workspace_id,
        source="email",
        subject=subject,
        guest_email=guest_email,
        guest_name=guest_name,
        status="active",
        metadata_json=metadata or {},
    )
    session.add(thread)
    return thread, True


def ingest_inbound_email(session: Session, payload: InboundEmailPayload) -> IngestResult:
    """
    Validate an inbound email and append it to a thread as a guest message.

    Raises:
        ValidationError: missing to/from/text, or recipient not in the expected format
        NotFoundError: the encoded workspace does not exist
        PersistenceError: the thread or message could not be written
    """
    with tracer.start_as_current_span("inbox.ingest_email") as span:
        if not payload.to or not payload.sender or not payload.text:
            raise ValidationError("Missing required fields: to, from, text")

        prefix = settings.INBOUND_EMAIL_PREFIX
        raw_workspace_id = extract_workspace_id(payload.to, prefix)
        if not raw_workspace_id:
            raise ValidationError(
                f"Invalid recipient email format. Expected: {prefix}+{{workspace_id}}@<domain>"
            )
        try:
            workspace_id = uuid.UUID(raw_workspace_id)
        except ValueError as e:
            raise ValidationError("Invalid workspace id in recipient", details=str(e)) from e

        guest_email = extract_email(payload.sender)
        guest_name = extract_name(payload.sender)

        span.set_attributes(safe_span_attributes(
            workspace_id=str(workspace_id),
            guest_email=guest_email,
        ))

        if session.get(Workspace, workspace_id) is None:
            raise NotFoundError("Workspace not found", details=str(workspace_id))

        try:
            thread, created = find_or_create_thread(
                session,
                workspace_id=workspace_id,
                guest_email=guest_email,
                guest_name=guest_name,
                subject=payload.subject,
                metadata={"headers": _parse_headers(payload.headers)},
            )
            session.flush()

            message = Message(
                thread_id=thread.id,
                role="guest",
                body=payload.text,
                source="email",
                metadata_json={
                    "from": payload.sender,
                    "subject": payload.subject,
                    "html": payload.html,
                    "raw_payload": payload.model_dump(by_alias=True),
                },
            )
            session.add(message)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(
                "Failed to store inbound email",
                extra={"workspace_id": str(workspace_id), "error": str(e)},
            )
            raise PersistenceError("Failed to store inbound email", details=str(e)) from e

        logger.info(
            "Inbound email stored",
            extra={
                "workspace_id": str(workspace_id),
                "thread_id": str(thread.id),
                "created_thread": created,
                "guest": mask_email(guest_email),
            },
        )
        span.set_attribute("created_thread", created)

        return IngestResult(thread_id=thread.id, message_id=message.id, created_thread=created)
