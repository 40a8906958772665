"""Pytest configuration and shared fixtures."""

import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator

import pytest

# Set test environment variables before importing app
os.environ.update({
    "DATABASE_URL": "sqlite://",
    "INBOUND_EMAIL_PREFIX": "inbound",
    "OTEL_TRACES_EXPORTER": "none",
})

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from app.models import KBDocument, Listing, Message, Thread, Workspace  # noqa: E402


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads for one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session: Session) -> Generator[TestClient, None, None]:
    """FastAPI test client bound to the test session."""
    from app.core.db import get_session
    from app.main import app

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def workspace(session: Session) -> Workspace:
    workspace = Workspace(name="Seaside Stays", owner_user_id="user-1")
    session.add(workspace)
    session.commit()
    session.refresh(workspace)
    return workspace


@pytest.fixture
def listing(session: Session, workspace: Workspace) -> Listing:
    listing = Listing(
        workspace_id=workspace.id,
        airbnb_id="abnb-1",
        title="Seaside Loft",
    )
    session.add(listing)
    session.commit()
    session.refresh(listing)
    return listing


@pytest.fixture
def make_thread(session: Session, workspace: Workspace) -> Callable[..., Thread]:
    """Create a thread with guest/host messages spaced one minute apart."""

    def _make_thread(
        bodies: list[str],
        property_id: uuid.UUID | None = None,
        roles: list[str] | None = None,
        **thread_fields,
    ) -> Thread:
        thread = Thread(workspace_id=workspace.id, property_id=property_id, **thread_fields)
        session.add(thread)
        session.flush()

        start = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        roles = roles or ["guest"] * len(bodies)
        for i, (body, role) in enumerate(zip(bodies, roles)):
            session.add(Message(
                thread_id=thread.id,
                role=role,
                body=body,
                message_ts=start + timedelta(minutes=i),
            ))

        session.commit()
        session.refresh(thread)
        return thread

    return _make_thread


@pytest.fixture
def make_kb_document(session: Session, workspace: Workspace) -> Callable[..., KBDocument]:
    """Create KB documents with strictly increasing created_at values."""
    counter = {"n": 0}

    def _make_kb_document(
        content: str,
        title: str = "Doc",
        scope_type: str = "workspace",
        scope_id: uuid.UUID | None = None,
        workspace_id: uuid.UUID | None = None,
    ) -> KBDocument:
        counter["n"] += 1
        created = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=counter["n"])
        doc = KBDocument(
            workspace_id=workspace_id or workspace.id,
            scope_type=scope_type,
            scope_id=scope_id,
            title=title,
            content=content,
            created_at=created,
            updated_at=created,
        )
        session.add(doc)
        session.commit()
        session.refresh(doc)
        return doc

    return _make_kb_document
