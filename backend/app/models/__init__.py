from app.models.workspace import Workspace, Listing
from app.models.threads import Thread, Message
from app.models.kb_documents import KBDocument
from app.models.ai_drafts import AIDraft
from app.models.workspace_settings import WorkspaceSettings, DEFAULT_ESCALATION_KEYWORDS

__all__ = [
    "Workspace",
    "Listing",
    "Thread",
    "Message",
    "KBDocument",
    "AIDraft",
    "WorkspaceSettings",
    "DEFAULT_ESCALATION_KEYWORDS",
]
