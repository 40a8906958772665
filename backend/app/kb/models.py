"""Pydantic models for KB document operations."""
import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field


class KBDocumentCreate(BaseModel):
    """Request model for creating a KB document."""
    workspace_id: uuid.UUID
    scope_type: Literal["workspace", "property"] = "workspace"
    scope_id: uuid.UUID | None = Field(None, description="Listing ID, required for property scope")
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)


class KBDocumentUpdate(BaseModel):
    """Request model for updating a KB document. Omitted fields are unchanged."""
    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1)


class KBDocumentRead(BaseModel):
    """Response model for a KB document."""
    id: uuid.UUID
    workspace_id: uuid.UUID
    scope_type: str
    scope_id: uuid.UUID | None = None
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
