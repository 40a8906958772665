"""KB retrieval by literal keyword overlap, scoped to workspace and listing."""
import logging
import uuid
from typing import NamedTuple, Sequence
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import RetrievalDegradation
from app.models.kb_documents import KBDocument

logger = logging.getLogger(__name__)


class RetrievedSnippet(NamedTuple):
    """A KB document selected as context for a draft."""
    id: str
    title: str
    content: str
    scope_type: str


class KnowledgeRetriever:
    """
    Fetch KB snippets for a workspace and (optionally) one of its listings.

    Matching is a case-insensitive containment test: a document qualifies if
    its content contains any of the keywords. Results are merged
    workspace-first, then property, each scope in insertion order.
    """

    def __init__(
        self,
        session: Session,
        workspace_limit: int | None = None,
        property_limit: int | None = None,
        fallback_limit: int | None = None,
    ):
        self.session = session
        self.workspace_limit = (
            workspace_limit if workspace_limit is not None else settings.KB_WORKSPACE_MATCH_LIMIT
        )
        self.property_limit = (
            property_limit if property_limit is not None else settings.KB_PROPERTY_MATCH_LIMIT
        )
        self.fallback_limit = (
            fallback_limit if fallback_limit is not None else settings.KB_FALLBACK_LIMIT
        )

    def retrieve(
        self,
        workspace_id: uuid.UUID,
        property_id: uuid.UUID | None,
        keywords: Sequence[str],
    ) -> list[RetrievedSnippet]:
        """
        Retrieve snippets for the given scope and keywords.

        Args:
            workspace_id: Workspace to search within
            property_id: Listing whose property-scoped documents are also searched
            keywords: Extracted keywords (OR semantics)

        Returns:
            Up to ``fallback_limit`` workspace snippets when ``keywords`` is empty,
            else up to ``workspace_limit`` + ``property_limit`` matching snippets.
        """
        if not keywords:
            logger.info(
                "No keywords, fetching generic workspace KB",
                extra={"workspace_id": str(workspace_id)},
            )
            return self._safe_scope_lookup(
                "workspace", workspace_id, None, [], self.fallback_limit
            )

        results = self._safe_scope_lookup(
            "workspace", workspace_id, None, keywords, self.workspace_limit
        )

        if property_id is not None:
            results.extend(
                self._safe_scope_lookup(
                    "property", workspace_id, property_id, keywords, self.property_limit
                )
            )

        logger.info(
            f"Retrieved {len(results)} KB snippets",
            extra={
                "workspace_id": str(workspace_id),
                "property_id": str(property_id) if property_id else None,
                "keyword_count": len(keywords),
            },
        )
        return results

    def retrieve_contents(
        self,
        workspace_id: uuid.UUID,
        property_id: uuid.UUID | None,
        keywords: Sequence[str],
    ) -> list[str]:
        """Same as :meth:`retrieve` but returns only the snippet contents."""
        return [snippet.content for snippet in self.retrieve(workspace_id, property_id, keywords)]

    def _safe_scope_lookup(
        self,
        scope_type: str,
        workspace_id: uuid.UUID,
        property_id: uuid.UUID | None,
        keywords: Sequence[str],
        limit: int,
    ) -> list[RetrievedSnippet]:
        try:
            return self._scope_lookup(scope_type, workspace_id, property_id, keywords, limit)
        except RetrievalDegradation as e:
            logger.warning(
                f"KB retrieval degraded: {e.message}. Continuing without {e.scope} context.",
                extra={
                    "scope": e.scope,
                    "workspace_id": str(workspace_id),
                    "error": e.details,
                },
            )
            return []

    def _scope_lookup(
        self,
        scope_type: str,
        workspace_id: uuid.UUID,
        property_id: uuid.UUID | None,
        keywords: Sequence[str],
        limit: int,
    ) -> list[RetrievedSnippet]:
        if limit <= 0:
            return []

        statement = select(KBDocument).where(
            KBDocument.workspace_id == workspace_id,
            KBDocument.scope_type == scope_type,
        )
        if scope_type == "property":
            statement = statement.where(KBDocument.scope_id == property_id)

        if keywords:
            content = func.lower(KBDocument.content)
            statement = statement.where(
                or_(*[content.contains(kw.lower(), autoescape=True) for kw in keywords])
            )

        statement = statement.order_by(KBDocument.created_at, KBDocument.id).limit(limit)

        try:
            documents = self.session.exec(statement).all()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RetrievalDegradation(
                scope=scope_type,
                message=f"{scope_type} KB lookup failed",
                details=str(e),
            ) from e

        return [
            RetrievedSnippet(
                id=str(doc.id),
                title=doc.title,
                content=doc.content,
                scope_type=doc.scope_type,
            )
            for doc in documents
        ]
