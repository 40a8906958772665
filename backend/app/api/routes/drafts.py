"""
Draft generation API routes.

Endpoints for running the draft pipeline on a thread and reading the
draft history. Errors are rendered as ``{"error", "code", "details"}`` by the
application's exception handlers.
"""
import logging
import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlmodel import Session, col, select

from app.agents.draft_pipeline import DraftPipeline, parse_thread_id
from app.api.deps import get_draft_pipeline
from app.core.db import get_session
from app.core.errors import HostOpsError, NotFoundError
from app.models.ai_drafts import AIDraft
from app.models.threads import Thread

logger = logging.getLogger(__name__)

drafts_router = APIRouter(tags=["drafts"])


def get_correlation_id(request: Request) -> str:
    """Extract or generate correlation ID for request tracking."""
    correlation_id = request.headers.get("x-correlation-id")
    if not correlation_id:
        correlation_id = str(uuid.uuid4())
    return correlation_id


class GenerateDraftRequest(BaseModel):
    """Request model for draft generation."""
    thread_id: str | None = Field(None, description="Thread to draft a reply for")


class AIDraftRead(BaseModel):
    """Response model for a persisted draft."""
    id: uuid.UUID
    thread_id: uuid.UUID
    draft_text: str
    confidence: float
    escalated: bool
    escalation_reason: str | None = None
    sources_used: list[str] = Field(default_factory=list)
    model_used: str
    metadata: dict = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_model(cls, draft: AIDraft) -> "AIDraftRead":
        return cls(
            id=draft.id,
            thread_id=draft.thread_id,
            draft_text=draft.draft_text,
            confidence=draft.confidence,
            escalated=draft.escalated,
            escalation_reason=draft.escalation_reason,
            sources_used=draft.sources_used or [],
            model_used=draft.model_used,
            metadata=draft.metadata_json or {},
            created_at=draft.created_at,
        )


class GenerateDraftResponse(BaseModel):
    success: bool = True
    draft: AIDraftRead


@drafts_router.post("/ai/generate-draft", response_model=GenerateDraftResponse)
def generate_draft(
    request_body: GenerateDraftRequest,
    request: Request,
    pipeline: DraftPipeline = Depends(get_draft_pipeline),
):
    """
    Generate a reply draft for the latest guest message in a thread.

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/ai/generate-draft \\
          -H "Content-Type: application/json" \\
          -H "x-correlation-id: req-12345" \\
          -d '{"thread_id": "1b4e28ba-2fa1-11d2-883f-0016d3cca427"}'
        ```
    """
    correlation_id = get_correlation_id(request)

    logger.info(
        "Draft generation requested",
        extra={
            "correlation_id": correlation_id,
            "thread_id": request_body.thread_id,
        },
    )

    try:
        draft = pipeline.run(request_body.thread_id)
    except HostOpsError as e:
        logger.warning(
            "Draft generation failed",
            extra={
                "correlation_id": correlation_id,
                "code": e.code,
                "error": e.message,
            },
        )
        raise
    except Exception as e:
        logger.error(
            "Internal server error",
            extra={"correlation_id": correlation_id, "error": str(e)},
        )
        raise HostOpsError("Internal server error", details=str(e)) from e

    logger.info(
        "Draft generation completed",
        extra={
            "correlation_id": correlation_id,
            "draft_id": str(draft.id),
            "escalated": draft.escalated,
            "confidence": draft.confidence,
        },
    )

    return GenerateDraftResponse(draft=AIDraftRead.from_model(draft))


@drafts_router.get("/threads/{thread_id}/drafts", response_model=list[AIDraftRead])
def list_thread_drafts(
    thread_id: str,
    session: Session = Depends(get_session),
):
    """Draft history for a thread, newest first."""
    thread_uuid = parse_thread_id(thread_id)

    if session.get(Thread, thread_uuid) is None:
        raise NotFoundError("Thread not found", details=str(thread_uuid))

    drafts = session.exec(
        select(AIDraft)
        .where(AIDraft.thread_id == thread_uuid)
        .order_by(col(AIDraft.created_at).desc())
    ).all()

    return [AIDraftRead.from_model(draft) for draft in drafts]
