"""
Unit tests for the draft generation pipeline.

Tests cover:
- End-to-end runs (escalated and knowledge-backed replies)
- Load stage validation and not-found handling
- Message window ordering
- Persistence rollback and deadlines
- Composer injection
"""
import time
import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.agents.composer import (
    ESCALATION_REASON,
    ESCALATION_TEMPLATE,
    KB_CONTEXT_PREFIX,
    DraftContext,
    DraftFields,
    StubComposer,
)
from app.agents.draft_pipeline import DraftPipeline, prepare_initial_state
from app.core.errors import (
    DeadlineExceededError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.models.ai_drafts import AIDraft
from app.models.threads import Thread
from app.models.workspace_settings import WorkspaceSettings


@pytest.fixture
def pipeline(session) -> DraftPipeline:
    return DraftPipeline(session, composer=StubComposer())


def _drafts(session) -> list[AIDraft]:
    return list(session.exec(select(AIDraft)).all())


class TestDraftPipelineRun:
    """End-to-end pipeline runs."""

    def test_refund_request_is_escalated(self, session, pipeline, make_thread):
        thread = make_thread(["Can I get a refund for my stay?"])

        draft = pipeline.run(thread.id)

        assert draft.thread_id == thread.id
        assert draft.escalated is True
        assert draft.draft_text == ESCALATION_TEMPLATE
        assert draft.confidence == 0.5
        assert draft.escalation_reason == ESCALATION_REASON
        assert draft.metadata_json["keywords"] == ["refund", "stay"]
        assert draft.model_used == StubComposer.model_name

    def test_checkout_question_uses_workspace_snippets(self, session, pipeline, make_thread, make_kb_document):
        docs = [
            make_kb_document("Checkout time is 11am"),
            make_kb_document("Late checkout can be arranged for a fee"),
        ]
        thread = make_thread(["What time is checkout?"])

        draft = pipeline.run(thread.id)

        assert draft.escalated is False
        assert draft.confidence == 0.85
        assert draft.escalation_reason is None
        assert KB_CONTEXT_PREFIX in draft.draft_text
        assert draft.sources_used == [str(d.id) for d in docs]
        assert draft.metadata_json["message_count"] == 1
        assert draft.metadata_json["snippet_count"] == 2

    def test_no_snippets_means_no_sources(self, session, pipeline, make_thread):
        thread = make_thread(["Is the pool heated?"])

        draft = pipeline.run(thread.id)

        assert draft.sources_used == []
        assert draft.metadata_json["snippet_count"] == 0
        assert KB_CONTEXT_PREFIX not in draft.draft_text

    def test_property_snippets_follow_workspace_snippets(
        self, session, pipeline, listing, make_thread, make_kb_document
    ):
        prop_doc = make_kb_document("Parking spot 14", scope_type="property", scope_id=listing.id)
        ws_doc = make_kb_document("Street parking is free on Sundays")
        thread = make_thread(["Where is parking?"], property_id=listing.id)

        draft = pipeline.run(thread.id)

        assert draft.sources_used == [str(ws_doc.id), str(prop_doc.id)]

    def test_sources_are_subset_of_retrieved(self, session, pipeline, listing, make_thread, make_kb_document):
        for i in range(4):
            make_kb_document(f"towels spare set {i}")
            make_kb_document(f"towels in closet {i}", scope_type="property", scope_id=listing.id)
        unrelated = make_kb_document("Quiet hours start at 10pm")
        thread = make_thread(["Where are the towels?"], property_id=listing.id)

        draft = pipeline.run(thread.id)

        assert len(draft.sources_used) == 4
        assert str(unrelated.id) not in draft.sources_used

    def test_repeated_generation_appends_drafts(self, session, pipeline, make_thread):
        """
        Drafts are append-only; generating twice for a thread yields two rows.

        Concurrent generations for the same thread are allowed and not
        coordinated: each run writes its own independent draft.
        """
        thread = make_thread(["Is early check-in possible?"])

        first = pipeline.run(thread.id)
        second = pipeline.run(thread.id)

        assert first.id != second.id
        assert {d.id for d in _drafts(session)} == {first.id, second.id}

    def test_accepts_string_thread_id(self, session, pipeline, make_thread):
        thread = make_thread(["Hello there"])

        draft = pipeline.run(str(thread.id))

        assert draft.thread_id == thread.id


class TestEscalationSettings:
    """Workspace escalation config flows into composition."""

    def test_workspace_keywords_replace_defaults(self, session, pipeline, workspace, make_thread):
        session.add(WorkspaceSettings(workspace_id=workspace.id, escalation_keywords=["broken"]))
        session.commit()

        refund = pipeline.run(make_thread(["I want a refund"]).id)
        broken = pipeline.run(make_thread(["The heater is BROKEN"]).id)

        assert refund.escalated is False
        assert broken.escalated is True

    def test_auto_escalate_disabled(self, session, pipeline, workspace, make_thread):
        session.add(WorkspaceSettings(workspace_id=workspace.id, auto_escalate=False))
        session.commit()

        draft = pipeline.run(make_thread(["I was injured, this is a safety issue"]).id)

        assert draft.escalated is False
        assert draft.confidence == 0.85


class TestLoadStage:
    """Validation and lookup failures in the load stage."""

    @pytest.mark.parametrize("thread_id", [None, "", "   "])
    def test_missing_thread_id(self, session, pipeline, thread_id):
        with pytest.raises(ValidationError, match="thread_id"):
            pipeline.run(thread_id)

    def test_invalid_thread_id(self, session, pipeline):
        with pytest.raises(ValidationError, match="Invalid thread_id"):
            pipeline.run("not-a-uuid")

    def test_unknown_thread(self, session, pipeline):
        with pytest.raises(NotFoundError, match="Thread not found"):
            pipeline.run(uuid.uuid4())
        assert _drafts(session) == []

    def test_thread_without_messages(self, session, pipeline, workspace):
        thread = Thread(workspace_id=workspace.id)
        session.add(thread)
        session.commit()

        with pytest.raises(NotFoundError, match="No messages"):
            pipeline.run(thread.id)
        assert _drafts(session) == []

    def test_window_is_most_recent_messages_oldest_first(self, session, make_thread):
        thread = make_thread([f"message {i}" for i in range(12)])
        pipeline = DraftPipeline(session, composer=StubComposer(), message_limit=10)

        state = pipeline.load_node(prepare_initial_state(thread.id))

        assert [m.body for m in state["messages"]] == [f"message {i}" for i in range(2, 12)]

    def test_latest_message_drives_keywords(self, session, pipeline, make_thread):
        thread = make_thread(
            ["Can we bring our dog?", "Thanks! Also, what about parking?"],
            roles=["guest", "guest"],
        )

        draft = pipeline.run(thread.id)

        assert draft.metadata_json["keywords"] == ["thanks", "also", "what", "about", "parking"]
        assert draft.metadata_json["message_count"] == 2


class TestFailures:
    """Persistence failures and deadlines leave nothing behind."""

    def test_persist_failure_rolls_back(self, session, pipeline, make_thread):
        thread = make_thread(["What time is checkout?"])

        with patch.object(
            session, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk full"))
        ):
            with pytest.raises(PersistenceError, match="Failed to save draft"):
                pipeline.run(thread.id)

        assert _drafts(session) == []

    def test_readback_failure_commits_nothing(self, session, pipeline, make_thread):
        thread = make_thread(["What time is checkout?"])

        with patch.object(
            session, "refresh", side_effect=OperationalError("SELECT", {}, Exception("connection reset"))
        ):
            with pytest.raises(PersistenceError, match="Failed to save draft"):
                pipeline.run(thread.id)

        assert _drafts(session) == []

    def test_returned_draft_is_loaded_and_detached(self, session, pipeline, make_thread):
        thread = make_thread(["What time is checkout?"])

        draft = pipeline.run(thread.id)

        assert inspect(draft).detached
        assert draft.created_at is not None
        assert session.get(AIDraft, draft.id).draft_text == draft.draft_text

    def test_expired_deadline_fails_fast(self, session, pipeline, make_thread):
        thread = make_thread(["What time is checkout?"])

        with pytest.raises(DeadlineExceededError):
            pipeline.run(thread.id, deadline_seconds=0)

        assert _drafts(session) == []

    def test_slow_composer_exhausts_budget(self, session, make_thread):
        thread = make_thread(["What time is checkout?"])

        class SlowComposer(StubComposer):
            def compose(self, context):
                time.sleep(0.05)
                return super().compose(context)

        pipeline = DraftPipeline(session, composer=SlowComposer())

        with pytest.raises(DeadlineExceededError, match="deadline"):
            pipeline.run(thread.id, deadline_seconds=0.01)

        assert _drafts(session) == []


class TestComposerInjection:
    """The composer is swappable behind the same contract."""

    def test_custom_composer(self, session, make_thread, make_kb_document):
        doc = make_kb_document("Checkout time is 11am")
        thread = make_thread(["What time is checkout?"])
        seen: list[DraftContext] = []

        class CannedComposer:
            model_name = "canned-llm"

            def compose(self, context: DraftContext) -> DraftFields:
                seen.append(context)
                return DraftFields(
                    draft_text="Checkout is at 11am.",
                    confidence=0.9,
                    escalated=False,
                    escalation_reason=None,
                    sources_used=[context.kb_snippets[0].id, "made-up-id"],
                )

        draft = DraftPipeline(session, composer=CannedComposer()).run(thread.id)

        assert draft.model_used == "canned-llm"
        assert draft.draft_text == "Checkout is at 11am."
        # citations are limited to retrieved snippets
        assert draft.sources_used == [str(doc.id)]
        assert [m.body for m in seen[0].messages] == ["What time is checkout?"]
