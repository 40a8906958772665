"""Database model for generated reply drafts."""

import uuid
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel, Column, JSON


class AIDraft(SQLModel, table=True):
    """A generated candidate reply awaiting human review.

    One row per generation request. Rows are append-only: regenerating a
    draft for the same thread adds a new row instead of updating the old one.
    """

    __tablename__ = "ai_drafts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    thread_id: uuid.UUID = Field(foreign_key="threads.id", index=True)

    draft_text: str
    confidence: float = Field(ge=0.0, le=1.0)

    escalated: bool = Field(default=False)
    escalation_reason: str | None = None

    # KB document ids the draft was built from
    sources_used: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    model_used: str

    # message_count, snippet_count, keywords
    metadata_json: dict = Field(default_factory=dict, sa_column=Column("metadata", JSON))

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
