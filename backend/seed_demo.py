#!/usr/bin/env python3
"""
Seed script for the HostOps demo environment.

This script sets up a complete demo workspace with:
- A demo workspace and one listing
- Escalation settings (default keyword list)
- Workspace- and listing-scoped KB documents
- One guest thread with a message, plus a generated draft
- No PII - all data is synthetic for demo purposes
"""

import uuid
from datetime import datetime, timedelta, timezone
from sqlmodel import Session, select

from app.agents.composer import StubComposer
from app.agents.draft_pipeline import DraftPipeline
from app.models.kb_documents import KBDocument
from app.models.threads import Message, Thread
from app.models.workspace import Listing, Workspace
from app.models.workspace_settings import WorkspaceSettings, DEFAULT_ESCALATION_KEYWORDS


DEMO_WORKSPACE_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
DEMO_LISTING_ID = uuid.UUID("00000000-0000-4000-8000-000000000002")
DEMO_USER_ID = "demo|user123"
DEMO_GUEST_EMAIL = "guest@hostops.example.com"

DEMO_KB_DOCUMENTS = [
    ("workspace", None, "Check-in and checkout", "Check-in is from 3pm. Checkout time is 11am; late checkout on request."),
    ("workspace", None, "House rules", "No parties or events. Quiet hours are from 10pm to 8am."),
    ("property", DEMO_LISTING_ID, "Wifi", "The wifi network is SeasideLoft, the password is on the fridge."),
    ("property", DEMO_LISTING_ID, "Parking", "One parking space is included, spot number 14 in the garage."),
]


def seed_demo_data(session: Session) -> dict:
    """Seed the database with demo data. Safe to run more than once."""

    print("🌱 Starting demo data seeding...")

    # 1. Workspace and listing
    workspace = session.get(Workspace, DEMO_WORKSPACE_ID)
    if workspace:
        print(f"   ⚠️  Workspace '{DEMO_WORKSPACE_ID}' already exists, skipping")
    else:
        print(f"🏢 Creating demo workspace: {DEMO_WORKSPACE_ID}")
        workspace = Workspace(id=DEMO_WORKSPACE_ID, name="Seaside Stays", owner_user_id=DEMO_USER_ID)
        session.add(workspace)

    if session.get(Listing, DEMO_LISTING_ID) is None:
        print(f"🏠 Creating demo listing: {DEMO_LISTING_ID}")
        session.add(Listing(
            id=DEMO_LISTING_ID,
            workspace_id=DEMO_WORKSPACE_ID,
            airbnb_id="demo-12345",
            title="Seaside Loft",
            description="Two-bedroom loft, five minutes from the beach",
        ))

    # 2. Escalation settings
    existing_settings = session.exec(
        select(WorkspaceSettings).where(WorkspaceSettings.workspace_id == DEMO_WORKSPACE_ID)
    ).first()
    if not existing_settings:
        print("🚨 Creating escalation settings")
        session.add(WorkspaceSettings(
            workspace_id=DEMO_WORKSPACE_ID,
            escalation_keywords=list(DEFAULT_ESCALATION_KEYWORDS),
            auto_escalate=True,
        ))

    # 3. KB documents
    existing_titles = set(session.exec(
        select(KBDocument.title).where(KBDocument.workspace_id == DEMO_WORKSPACE_ID)
    ).all())
    created_docs = 0
    for scope_type, scope_id, title, content in DEMO_KB_DOCUMENTS:
        if title in existing_titles:
            continue
        session.add(KBDocument(
            workspace_id=DEMO_WORKSPACE_ID,
            scope_type=scope_type,
            scope_id=scope_id,
            title=title,
            content=content,
        ))
        created_docs += 1
    print(f"📚 Created {created_docs} KB documents")

    # 4. Guest thread
    thread = session.exec(
        select(Thread).where(
            Thread.workspace_id == DEMO_WORKSPACE_ID,
            Thread.guest_email == DEMO_GUEST_EMAIL,
        )
    ).first()
    created_thread = thread is None
    if created_thread:
        print("📧 Creating sample guest thread")
        thread = Thread(
            workspace_id=DEMO_WORKSPACE_ID,
            property_id=DEMO_LISTING_ID,
            source="email",
            subject="Question about checkout",
            guest_email=DEMO_GUEST_EMAIL,
            guest_name="Demo Guest",
        )
        session.add(thread)
        session.flush()
        session.add(Message(
            thread_id=thread.id,
            role="guest",
            body="Hi! What time is checkout, and is there parking at the loft?",
            source="email",
            message_ts=datetime.now(timezone.utc) - timedelta(minutes=5),
        ))

    session.commit()

    # 5. Draft for the new thread
    draft_id = None
    if created_thread:
        print("✍️  Generating sample draft")
        draft = DraftPipeline(session, composer=StubComposer()).run(thread.id)
        draft_id = draft.id

    print("✅ Demo data seeded")

    return {
        "workspace_id": DEMO_WORKSPACE_ID,
        "thread_id": thread.id,
        "draft_id": draft_id,
    }


if __name__ == "__main__":
    from app.core.db import engine, init_db

    print("📊 Initializing database schema...")
    init_db()
    with Session(engine) as session:
        seed_demo_data(session)
