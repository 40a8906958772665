"""Workspace configuration utilities."""

import logging
import uuid
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from app.models.workspace_settings import WorkspaceSettings, DEFAULT_ESCALATION_KEYWORDS

logger = logging.getLogger(__name__)


class EscalationConfig:
    """Escalation configuration container."""

    def __init__(
        self,
        workspace_id: uuid.UUID | None,
        keywords: list[str],
        auto_escalate: bool = True,
        is_default: bool = False,
    ):
        self.workspace_id = workspace_id
        self.keywords = keywords
        self.auto_escalate = auto_escalate
        self.is_default = is_default

    @property
    def effective_keywords(self) -> list[str]:
        """Keywords the detector should use; empty when auto-escalation is off."""
        return list(self.keywords) if self.auto_escalate else []

    def to_dict(self) -> dict:
        return {"keywords": list(self.keywords), "auto_escalate": self.auto_escalate}


def default_escalation_config(workspace_id: uuid.UUID | None = None) -> EscalationConfig:
    return EscalationConfig(
        workspace_id=workspace_id,
        keywords=list(DEFAULT_ESCALATION_KEYWORDS),
        auto_escalate=True,
        is_default=True,
    )


def normalize_keywords(keywords: list[str]) -> list[str]:
    """Strip whitespace, drop blanks and repeated entries while keeping order."""
    seen = set()
    cleaned = []
    for keyword in keywords:
        keyword = keyword.strip()
        if keyword and keyword.lower() not in seen:
            seen.add(keyword.lower())
            cleaned.append(keyword)
    return cleaned


def get_escalation_config(session: Session, workspace_id: uuid.UUID) -> EscalationConfig:
    """
    Fetch the escalation configuration for a workspace.

    Args:
        session: Open database session
        workspace_id: Workspace identifier

    Returns:
        EscalationConfig with the stored keyword list, or the default
        nine-keyword list when the workspace has no settings row. A stored
        empty list is respected (no keyword escalates).

    Note:
        A failed settings lookup is logged and treated as "no settings":
        drafts are still generated with the default keywords.
    """
    try:
        statement = select(WorkspaceSettings).where(
            WorkspaceSettings.workspace_id == workspace_id
        )
        result = session.exec(statement).first()
    except SQLAlchemyError as e:
        logger.warning(
            f"Failed to load workspace settings from DB: {e}",
            extra={"workspace_id": str(workspace_id)},
        )
        session.rollback()
        return default_escalation_config(workspace_id)

    if result is None:
        logger.info(
            "No workspace settings found, using default escalation keywords",
            extra={"workspace_id": str(workspace_id)},
        )
        return default_escalation_config(workspace_id)

    return EscalationConfig(
        workspace_id=result.workspace_id,
        keywords=list(result.escalation_keywords),
        auto_escalate=result.auto_escalate,
    )
