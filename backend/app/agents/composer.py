"""
Draft composers.

A composer turns a conversation window plus retrieved KB snippets into reply
text and review metadata. ``StubComposer`` is deterministic and rule-based;
a generative backend implements the same ``compose(context)`` contract and is
passed to the pipeline in its place.
"""
import logging
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from app.agents.escalation import matched_keywords
from app.kb.retrieval import RetrievedSnippet
from app.models.threads import Message

logger = logging.getLogger(__name__)

ESCALATION_TEMPLATE = (
    "Thank you for reaching out. I understand your concern and want to ensure this is "
    "handled properly. A member of our team will review this personally and get back "
    "to you within 24 hours."
)
ESCALATION_REASON = "Contains sensitive keywords requiring manual review"
KB_CONTEXT_PREFIX = "Based on our property information: "

ESCALATED_CONFIDENCE = 0.5
DEFAULT_CONFIDENCE = 0.85


@dataclass
class DraftContext:
    """Everything a composer may use to write a reply."""
    messages: Sequence[Message]  # oldest-first
    kb_snippets: Sequence[RetrievedSnippet] = field(default_factory=list)
    escalation_keywords: Sequence[str] = field(default_factory=list)

    @property
    def latest_message(self) -> Message:
        if not self.messages:
            raise ValueError("DraftContext requires at least one message")
        return self.messages[-1]


@dataclass
class DraftFields:
    """Composer output, persisted as an ``AIDraft``."""
    draft_text: str
    confidence: float
    escalated: bool
    escalation_reason: str | None
    sources_used: list[str] = field(default_factory=list)


class DraftComposer(Protocol):
    """Generation backend used by the draft pipeline."""

    model_name: str

    def compose(self, context: DraftContext) -> DraftFields:
        ...


def build_prompt(context: DraftContext) -> str:
    """Render the prompt a generative backend receives for this context."""
    prompt = (
        "You are a helpful property management assistant. "
        "Generate a professional reply to the guest message.\n\n"
    )

    if context.kb_snippets:
        prompt += "Relevant property information:\n"
        for i, snippet in enumerate(context.kb_snippets, start=1):
            prompt += f"{i}. {snippet.content}\n"
        prompt += "\n"

    prompt += "Conversation history:\n"
    for msg in context.messages:
        speaker = "Guest" if msg.role == "guest" else "Host"
        prompt += f"{speaker}: {msg.body}\n"

    prompt += (
        "\nGenerate a professional, helpful reply to the most recent guest message. "
        "Be concise and friendly."
    )
    return prompt


class StubComposer:
    """Rule-based composer: fixed templates, keyword escalation."""

    model_name = "rule-based-stub"

    def compose(self, context: DraftContext) -> DraftFields:
        latest = context.latest_message
        matches = matched_keywords(latest.body, context.escalation_keywords)

        if matches:
            logger.info(
                "Latest message matched escalation keywords",
                extra={"matched_count": len(matches)},
            )
            return DraftFields(
                draft_text=ESCALATION_TEMPLATE,
                confidence=ESCALATED_CONFIDENCE,
                escalated=True,
                escalation_reason=ESCALATION_REASON,
                sources_used=[snippet.id for snippet in context.kb_snippets],
            )

        kb_prefix = KB_CONTEXT_PREFIX if context.kb_snippets else ""
        draft_text = (
            f"Thank you for your message. {kb_prefix}I'd be happy to help you with that. "
            "Let me know if you need any additional information."
        )

        return DraftFields(
            draft_text=draft_text,
            confidence=DEFAULT_CONFIDENCE,
            escalated=False,
            escalation_reason=None,
            sources_used=[snippet.id for snippet in context.kb_snippets],
        )
