"""
Draft Generation Pipeline

A LangGraph workflow that turns the latest guest message in a thread into a
persisted reply draft:
- Load thread, recent message window and escalation settings
- Extract keywords from the latest message
- Retrieve workspace- and listing-scoped KB snippets
- Compose the draft (pluggable composer)
- Persist exactly one AIDraft row

Flow: load -> extract -> retrieve -> compose -> persist

The pipeline holds no state between requests. Session, composer and retriever
are injected by the caller.
"""
import logging
import time
import uuid
from typing import TypedDict
from langgraph.graph import StateGraph, END
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from app.agents.composer import DraftComposer, DraftContext, DraftFields
from app.core.config import settings
from app.core.errors import (
    DeadlineExceededError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.core.tracing import get_tracer, safe_span_attributes
from app.core.workspace import get_escalation_config
from app.kb.keywords import extract_keywords
from app.kb.retrieval import KnowledgeRetriever, RetrievedSnippet
from app.models.ai_drafts import AIDraft
from app.models.threads import Message, Thread

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


def redact_pii(text: str, max_length: int = 100) -> str:
    """Redact PII from logs by truncating."""
    if len(text) > max_length:
        return text[:max_length] + "...[REDACTED]"
    return text


# State Schema
class DraftPipelineState(TypedDict):
    """State for one draft generation request."""
    # Input
    thread_id: str | None
    deadline: float | None  # time.monotonic() value, or None for no budget

    # Loaded
    thread: Thread | None
    messages: list[Message]
    escalation_keywords: list[str]

    # Intermediate
    keywords: list[str]
    snippets: list[RetrievedSnippet]
    draft_fields: DraftFields | None

    # Output
    draft: AIDraft | None


def prepare_initial_state(
    thread_id: str | uuid.UUID | None,
    deadline: float | None = None,
) -> DraftPipelineState:
    return {
        "thread_id": str(thread_id) if thread_id is not None else None,
        "deadline": deadline,
        "thread": None,
        "messages": [],
        "escalation_keywords": [],
        "keywords": [],
        "snippets": [],
        "draft_fields": None,
        "draft": None,
    }


def _check_deadline(state: DraftPipelineState, stage: str) -> None:
    deadline = state.get("deadline")
    if deadline is not None and time.monotonic() >= deadline:
        logger.warning(
            "Draft request deadline exceeded",
            extra={"stage": stage, "thread_id": state.get("thread_id")},
        )
        raise DeadlineExceededError(
            "Draft generation deadline exceeded",
            details=f"Budget ran out before the '{stage}' stage",
        )


def parse_thread_id(thread_id: str | None) -> uuid.UUID:
    """Validate a thread identifier from a request."""
    if thread_id is None or not str(thread_id).strip():
        raise ValidationError("Missing required field: thread_id")
    try:
        return uuid.UUID(str(thread_id).strip())
    except ValueError as e:
        raise ValidationError("Invalid thread_id", details=str(e)) from e


class DraftPipeline:
    """
    Sequence keyword extraction, KB retrieval, composition and persistence.

    Example:
        pipeline = DraftPipeline(session, composer=StubComposer())
        draft = pipeline.run(thread_id)
    """

    def __init__(
        self,
        session: Session,
        composer: DraftComposer,
        retriever: KnowledgeRetriever | None = None,
        message_limit: int | None = None,
        keyword_limit: int | None = None,
        timeout_seconds: float | None = None,
    ):
        self.session = session
        self.composer = composer
        self.retriever = retriever or KnowledgeRetriever(session)
        self.message_limit = message_limit or settings.DRAFT_CONTEXT_MESSAGE_LIMIT
        self.keyword_limit = keyword_limit or settings.KEYWORD_LIMIT
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.DRAFT_REQUEST_TIMEOUT_SECONDS
        )
        self.graph = self._build_graph().compile()

    def _build_graph(self) -> StateGraph:
        workflow = StateGraph(DraftPipelineState)

        workflow.add_node("load", self.load_node)
        workflow.add_node("extract", self.extract_node)
        workflow.add_node("retrieve", self.retrieve_node)
        workflow.add_node("compose", self.compose_node)
        workflow.add_node("persist", self.persist_node)

        workflow.set_entry_point("load")
        workflow.add_edge("load", "extract")
        workflow.add_edge("extract", "retrieve")
        workflow.add_edge("retrieve", "compose")
        workflow.add_edge("compose", "persist")
        workflow.add_edge("persist", END)

        return workflow

    def run(
        self,
        thread_id: str | uuid.UUID | None,
        deadline_seconds: float | None = None,
    ) -> AIDraft:
        """
        Generate and persist a draft for the thread.

        Args:
            thread_id: Thread to draft a reply for
            deadline_seconds: Optional overall budget for this request

        Returns:
            The persisted AIDraft

        Raises:
            ValidationError: thread_id missing or malformed
            NotFoundError: thread or its messages not found
            PersistenceError: the draft could not be written
            DeadlineExceededError: the budget ran out before persisting
        """
        budget = deadline_seconds if deadline_seconds is not None else self.timeout_seconds
        deadline = time.monotonic() + budget if budget is not None else None

        final_state = self.graph.invoke(prepare_initial_state(thread_id, deadline))
        return final_state["draft"]

    # Node: Load
    def load_node(self, state: DraftPipelineState) -> DraftPipelineState:
        """Load the thread, its most recent messages (oldest-first) and escalation config."""
        with tracer.start_as_current_span("draft_pipeline.load") as span:
            thread_uuid = parse_thread_id(state.get("thread_id"))
            _check_deadline(state, "load")
            span.set_attributes(safe_span_attributes(thread_id=str(thread_uuid)))

            try:
                thread = self.session.get(Thread, thread_uuid)
                if thread is None:
                    raise NotFoundError("Thread not found", details=str(thread_uuid))

                statement = (
                    select(Message)
                    .where(Message.thread_id == thread_uuid)
                    .order_by(col(Message.message_ts).desc(), col(Message.created_at).desc())
                    .limit(self.message_limit)
                )
                messages = list(reversed(self.session.exec(statement).all()))
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(
                    "Failed to load thread for drafting",
                    extra={"thread_id": str(thread_uuid), "error": str(e)},
                )
                raise PersistenceError("Failed to load thread", details=str(e)) from e

            if not messages:
                raise NotFoundError("No messages found in thread", details=str(thread_uuid))

            escalation = get_escalation_config(self.session, thread.workspace_id)

            logger.info(
                "Loaded thread for drafting",
                extra={
                    "thread_id": str(thread_uuid),
                    "workspace_id": str(thread.workspace_id),
                    "message_count": len(messages),
                    "escalation_keyword_count": len(escalation.keywords),
                    "auto_escalate": escalation.auto_escalate,
                },
            )
            span.set_attributes(safe_span_attributes(
                workspace_id=str(thread.workspace_id),
                message_count=len(messages),
            ))

        return {
            **state,
            "thread_id": str(thread_uuid),
            "thread": thread,
            "messages": messages,
            "escalation_keywords": escalation.effective_keywords,
        }

    # Node: Extract
    def extract_node(self, state: DraftPipelineState) -> DraftPipelineState:
        """Extract keywords from the latest message body."""
        _check_deadline(state, "extract")
        with tracer.start_as_current_span("draft_pipeline.extract") as span:
            latest = state["messages"][-1]
            keywords = extract_keywords(latest.body, max_keywords=self.keyword_limit)

            logger.info(
                "Extracted keywords",
                extra={
                    "thread_id": state["thread_id"],
                    "message_preview": redact_pii(latest.body, 50),
                    "keyword_count": len(keywords),
                },
            )
            span.set_attribute("keyword_count", len(keywords))

        return {**state, "keywords": keywords}

    # Node: Retrieve
    def retrieve_node(self, state: DraftPipelineState) -> DraftPipelineState:
        """Fetch KB snippets for the thread's workspace and listing."""
        _check_deadline(state, "retrieve")
        thread = state["thread"]
        with tracer.start_as_current_span("draft_pipeline.retrieve") as span:
            snippets = self.retriever.retrieve(
                workspace_id=thread.workspace_id,
                property_id=thread.property_id,
                keywords=state["keywords"],
            )
            span.set_attributes(safe_span_attributes(
                workspace_id=str(thread.workspace_id),
                property_id=str(thread.property_id) if thread.property_id else None,
                snippet_count=len(snippets),
            ))

        return {**state, "snippets": snippets}

    # Node: Compose
    def compose_node(self, state: DraftPipelineState) -> DraftPipelineState:
        """Run the composer over the message window and retrieved snippets."""
        _check_deadline(state, "compose")
        with tracer.start_as_current_span("draft_pipeline.compose") as span:
            context = DraftContext(
                messages=state["messages"],
                kb_snippets=state["snippets"],
                escalation_keywords=state["escalation_keywords"],
            )
            fields = self.composer.compose(context)

            # A composer may only cite snippets it was given
            retrieved_ids = {snippet.id for snippet in state["snippets"]}
            fields.sources_used = [s for s in fields.sources_used if s in retrieved_ids]

            logger.info(
                "Composed draft",
                extra={
                    "thread_id": state["thread_id"],
                    "model": self.composer.model_name,
                    "escalated": fields.escalated,
                    "confidence": fields.confidence,
                },
            )
            span.set_attributes(safe_span_attributes(
                model=self.composer.model_name,
                escalated=fields.escalated,
                confidence=fields.confidence,
            ))

        return {**state, "draft_fields": fields}

    # Node: Persist
    def persist_node(self, state: DraftPipelineState) -> DraftPipelineState:
        """Write a new AIDraft row; roll back on failure."""
        _check_deadline(state, "persist")
        fields = state["draft_fields"]
        with tracer.start_as_current_span("draft_pipeline.persist") as span:
            draft = AIDraft(
                thread_id=state["thread"].id,
                draft_text=fields.draft_text,
                confidence=fields.confidence,
                escalated=fields.escalated,
                escalation_reason=fields.escalation_reason,
                sources_used=list(fields.sources_used),
                model_used=self.composer.model_name,
                metadata_json={
                    "message_count": len(state["messages"]),
                    "snippet_count": len(state["snippets"]),
                    "keywords": list(state["keywords"]),
                },
            )

            # Load the row before committing; after commit nothing is read back
            try:
                self.session.add(draft)
                self.session.flush()
                self.session.refresh(draft)
                self.session.expunge(draft)
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(
                    "Failed to save draft",
                    extra={"thread_id": state["thread_id"], "error": str(e)},
                )
                raise PersistenceError("Failed to save draft", details=str(e)) from e

            logger.info(
                "Draft persisted",
                extra={"thread_id": state["thread_id"], "draft_id": str(draft.id)},
            )
            span.set_attribute("draft_id", str(draft.id))

        return {**state, "draft": draft}
