"""Database models for workspaces and their listings (properties)."""

import uuid
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel


class Workspace(SQLModel, table=True):
    """Top-level tenant boundary owning listings, threads and KB documents."""

    __tablename__ = "workspaces"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str
    owner_user_id: str = Field(index=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Listing(SQLModel, table=True):
    """A managed property within a workspace.

    Listings can carry their own knowledge scope (see ``KBDocument.scope_id``).
    """

    __tablename__ = "listings"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", index=True)

    airbnb_id: str
    title: str
    description: str | None = None
    photo_url: str | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
