"""API endpoints for manually entered threads and messages."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Literal
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from app.agents.draft_pipeline import parse_thread_id
from app.core.db import get_session
from app.core.errors import NotFoundError, PersistenceError, ValidationError
from app.models.threads import Message, Thread
from app.models.workspace import Listing, Workspace

logger = logging.getLogger(__name__)

threads_router = APIRouter(prefix="/threads", tags=["threads"])


class ThreadCreate(BaseModel):
    """Request model for a manually entered thread."""
    workspace_id: uuid.UUID
    property_id: uuid.UUID | None = None
    subject: str | None = None
    guest_email: str | None = None
    guest_name: str | None = None
    initial_message: str | None = Field(None, description="Optional first guest message")


class ThreadRead(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    property_id: uuid.UUID | None = None
    source: str
    subject: str | None = None
    guest_email: str | None = None
    guest_name: str | None = None
    status: str
    created_at: datetime
    updated_at: datetime


class MessageCreate(BaseModel):
    role: Literal["guest", "host"] = "guest"
    body: str = Field(..., min_length=1)
    message_ts: datetime | None = None


class MessageRead(BaseModel):
    id: uuid.UUID
    thread_id: uuid.UUID
    role: str
    body: str
    source: str
    message_ts: datetime


def _thread_read(thread: Thread) -> ThreadRead:
    return ThreadRead.model_validate(thread, from_attributes=True)


def _message_read(message: Message) -> MessageRead:
    return MessageRead.model_validate(message, from_attributes=True)


def _get_thread(session: Session, thread_id: str) -> Thread:
    thread = session.get(Thread, parse_thread_id(thread_id))
    if thread is None:
        raise NotFoundError("Thread not found", details=thread_id)
    return thread


@threads_router.post("", response_model=ThreadRead, status_code=201)
def create_thread(
    thread_in: ThreadCreate,
    session: Session = Depends(get_session),
) -> ThreadRead:
    """Create a manual thread, optionally with its first guest message."""
    if session.get(Workspace, thread_in.workspace_id) is None:
        raise NotFoundError("Workspace not found", details=str(thread_in.workspace_id))

    if thread_in.property_id is not None:
        listing = session.get(Listing, thread_in.property_id)
        if listing is None or listing.workspace_id != thread_in.workspace_id:
            raise ValidationError("Property does not belong to this workspace")

    thread = Thread(
        workspace_id=thread_in.workspace_id,
        property_id=thread_in.property_id,
        source="manual",
        subject=thread_in.subject,
        guest_email=thread_in.guest_email,
        guest_name=thread_in.guest_name,
        status="active",
    )

    try:
        session.add(thread)
        session.flush()
        if thread_in.initial_message:
            session.add(Message(
                thread_id=thread.id,
                role="guest",
                body=thread_in.initial_message,
                source="manual",
            ))
        session.commit()
        session.refresh(thread)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to create thread: {e}")
        raise PersistenceError("Failed to create thread", details=str(e)) from e

    logger.info(f"Manual thread created: {thread.id}")
    return _thread_read(thread)


@threads_router.post("/{thread_id}/messages", response_model=MessageRead, status_code=201)
def add_message(
    thread_id: str,
    message_in: MessageCreate,
    session: Session = Depends(get_session),
) -> MessageRead:
    """Append a message to a thread."""
    thread = _get_thread(session, thread_id)

    message = Message(
        thread_id=thread.id,
        role=message_in.role,
        body=message_in.body,
        source="manual",
        message_ts=message_in.message_ts or datetime.now(timezone.utc),
    )
    thread.updated_at = datetime.now(timezone.utc)

    try:
        session.add(message)
        session.add(thread)
        session.commit()
        session.refresh(message)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to add message: {e}")
        raise PersistenceError("Failed to add message", details=str(e)) from e

    return _message_read(message)


@threads_router.get("/{thread_id}/messages", response_model=list[MessageRead])
def list_messages(
    thread_id: str,
    session: Session = Depends(get_session),
) -> list[MessageRead]:
    """All messages in a thread, oldest first."""
    thread = _get_thread(session, thread_id)

    messages = session.exec(
        select(Message)
        .where(Message.thread_id == thread.id)
        .order_by(col(Message.message_ts), col(Message.created_at))
    ).all()

    return [_message_read(message) for message in messages]
