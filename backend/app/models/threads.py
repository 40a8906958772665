"""Database models for guest conversations (threads) and their messages."""

import uuid
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel, Column, JSON, String


class Thread(SQLModel, table=True):
    """A guest-host conversation scoped to a workspace and optional listing.

    Inbound email reuses an active thread with the same guest email and
    subject; otherwise a new thread is opened (see ``app.inbox.ingest``).
    """

    __tablename__ = "threads"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", index=True)
    property_id: uuid.UUID | None = Field(default=None, foreign_key="listings.id")

    # manual | email
    source: str = Field(default="manual")
    subject: str | None = None
    guest_email: str | None = Field(default=None, index=True)
    guest_name: str | None = None

    # active | archived
    status: str = Field(default="active", sa_column=Column(String, index=True))

    metadata_json: dict = Field(default_factory=dict, sa_column=Column("metadata", JSON))

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Message(SQLModel, table=True):
    """A single message in a thread. Never updated after insert."""

    __tablename__ = "messages"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    thread_id: uuid.UUID = Field(foreign_key="threads.id", index=True)

    # guest | host
    role: str
    body: str
    source: str = Field(default="manual")

    # Ordering key for context construction (oldest-first)
    message_ts: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), index=True
    )

    metadata_json: dict = Field(default_factory=dict, sa_column=Column("metadata", JSON))

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
