"""API endpoints for workspace escalation settings."""

import logging
import uuid
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.core.db import get_session
from app.core.errors import NotFoundError, PersistenceError, ValidationError
from app.core.workspace import get_escalation_config, normalize_keywords
from app.models.workspace import Workspace
from app.models.workspace_settings import WorkspaceSettings

logger = logging.getLogger(__name__)

workspace_settings_router = APIRouter(
    prefix="/workspace-settings",
    tags=["workspace-settings"]
)

MAX_KEYWORDS = 100
MAX_KEYWORD_LENGTH = 200


class WorkspaceSettingsResponse(BaseModel):
    """Response model for workspace settings."""
    workspace_id: uuid.UUID
    escalation_keywords: list[str] = Field(default_factory=list, description="Keywords that flag a message for review")
    auto_escalate: bool = True
    is_default: bool = Field(False, description="True when no settings are stored and defaults apply")


class WorkspaceSettingsUpdate(BaseModel):
    """Request model for updating workspace settings."""
    escalation_keywords: list[str] | None = Field(None, description="Keywords that flag a message for review")
    auto_escalate: bool | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "escalation_keywords": ["refund", "injury", "police"],
                "auto_escalate": True,
            }
        }


@workspace_settings_router.get("/{workspace_id}", response_model=WorkspaceSettingsResponse)
def get_workspace_settings(
    workspace_id: uuid.UUID,
    session: Session = Depends(get_session),
) -> WorkspaceSettingsResponse:
    """
    Get escalation settings for a workspace.

    Falls back to the default keyword list when the workspace has none stored.
    """
    logger.info(f"Fetching workspace settings for: {workspace_id}")

    if session.get(Workspace, workspace_id) is None:
        raise NotFoundError("Workspace not found", details=str(workspace_id))

    config = get_escalation_config(session, workspace_id)
    return WorkspaceSettingsResponse(
        workspace_id=workspace_id,
        escalation_keywords=config.keywords,
        auto_escalate=config.auto_escalate,
        is_default=config.is_default,
    )


@workspace_settings_router.put("/{workspace_id}", response_model=WorkspaceSettingsResponse)
def update_workspace_settings(
    workspace_id: uuid.UUID,
    settings_update: WorkspaceSettingsUpdate,
    session: Session = Depends(get_session),
) -> WorkspaceSettingsResponse:
    """
    Update workspace escalation settings, creating them if needed.

    - escalation_keywords: limited to 100 items, each max 200 chars; blanks
      and repeated entries are dropped
    """
    logger.info(f"Updating workspace settings for: {workspace_id}")

    if session.get(Workspace, workspace_id) is None:
        raise NotFoundError("Workspace not found", details=str(workspace_id))

    keywords = None
    if settings_update.escalation_keywords is not None:
        if len(settings_update.escalation_keywords) > MAX_KEYWORDS:
            raise ValidationError(f"Escalation keywords cannot exceed {MAX_KEYWORDS} items")

        for keyword in settings_update.escalation_keywords:
            if len(keyword) > MAX_KEYWORD_LENGTH:
                raise ValidationError(
                    f"Escalation keyword too long (max {MAX_KEYWORD_LENGTH} chars): {keyword[:50]}..."
                )
        keywords = normalize_keywords(settings_update.escalation_keywords)

    result = session.exec(
        select(WorkspaceSettings).where(WorkspaceSettings.workspace_id == workspace_id)
    ).first()

    if not result:
        result = WorkspaceSettings(workspace_id=workspace_id)
        if keywords is not None:
            result.escalation_keywords = keywords
        if settings_update.auto_escalate is not None:
            result.auto_escalate = settings_update.auto_escalate
        session.add(result)
    else:
        if keywords is not None:
            result.escalation_keywords = keywords
        if settings_update.auto_escalate is not None:
            result.auto_escalate = settings_update.auto_escalate
        result.updated_at = datetime.now(timezone.utc)
        session.add(result)

    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to update workspace settings: {e}")
        raise PersistenceError("Failed to update workspace settings", details=str(e)) from e
    session.refresh(result)

    logger.info(f"Workspace settings updated: {workspace_id}")

    return WorkspaceSettingsResponse(
        workspace_id=result.workspace_id,
        escalation_keywords=result.escalation_keywords,
        auto_escalate=result.auto_escalate,
    )
