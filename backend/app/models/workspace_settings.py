"""Database models for workspace configuration."""

import uuid
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel, Column, JSON


# Used whenever a workspace has no stored escalation keyword list
DEFAULT_ESCALATION_KEYWORDS = [
    "refund",
    "compensation",
    "discount",
    "injury",
    "safety",
    "police",
    "legal",
    "lawsuit",
    "chargeback",
]


class WorkspaceSettings(SQLModel, table=True):
    """Store workspace-level configuration for draft generation.

    Each workspace can configure:
    - Escalation keywords (case-insensitive, matched against guest messages)
    - Auto-escalate flag (turns keyword flagging on or off)
    """

    __tablename__ = "workspace_settings"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", index=True, unique=True)

    escalation_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ESCALATION_KEYWORDS),
        sa_column=Column(JSON),
        description="Keywords that flag a guest message for manual review",
    )

    auto_escalate: bool = Field(
        default=True,
        description="Flag messages containing escalation keywords",
    )

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        """SQLModel configuration."""
        json_schema_extra = {
            "example": {
                "workspace_id": "6f1c0a52-2a0e-4f5e-9a43-0b2f1f0d9b11",
                "escalation_keywords": ["refund", "injury", "police"],
                "auto_escalate": True,
            }
        }
