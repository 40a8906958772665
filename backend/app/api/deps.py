"""Shared FastAPI dependencies."""
from fastapi import Depends
from sqlmodel import Session

from app.agents.composer import StubComposer
from app.agents.draft_pipeline import DraftPipeline
from app.core.db import get_session


def get_draft_pipeline(session: Session = Depends(get_session)) -> DraftPipeline:
    """Build a per-request draft pipeline with the rule-based composer."""
    return DraftPipeline(session=session, composer=StubComposer())
