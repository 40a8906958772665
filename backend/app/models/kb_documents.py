"""Database model for operator-authored knowledge base documents."""

import uuid
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel, Column, String


class KBDocument(SQLModel, table=True):
    """Reference text used as retrieval context for drafts.

    Scope is either the whole workspace (``scope_type="workspace"``,
    ``scope_id=None``) or a single listing (``scope_type="property"``,
    ``scope_id=<listing id>``).
    """

    __tablename__ = "kb_documents"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", index=True)

    scope_type: str = Field(default="workspace", sa_column=Column(String, index=True))
    scope_id: uuid.UUID | None = Field(default=None, index=True)

    title: str
    content: str

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
