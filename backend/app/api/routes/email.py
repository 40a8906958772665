"""
Inbound Email Webhook

Receives multipart/form-data posts from SendGrid Inbound Parse (or similar).
The recipient address routes the email to a workspace:
``inbound+{workspace_id}@<domain>``.
"""
import logging
from fastapi import APIRouter, Depends, Form
from pydantic import BaseModel
from sqlmodel import Session

from app.core.db import get_session
from app.core.errors import HostOpsError
from app.inbox.ingest import InboundEmailPayload, ingest_inbound_email

logger = logging.getLogger(__name__)

email_router = APIRouter(prefix="/email", tags=["email"])


class InboundEmailResponse(BaseModel):
    success: bool = True
    thread_id: str
    message_id: str
    created_thread: bool


@email_router.post("/inbound", response_model=InboundEmailResponse)
def inbound_email(
    to: str | None = Form(None),
    sender: str | None = Form(None, alias="from"),
    subject: str | None = Form(None),
    text: str | None = Form(None),
    html: str | None = Form(None),
    headers: str | None = Form(None),
    session: Session = Depends(get_session),
):
    """
    Store an inbound guest email as a message on a (new or existing) thread.

    Responses:
    - 400: missing to/from/text or malformed recipient
    - 404: workspace encoded in the recipient does not exist
    """
    payload = InboundEmailPayload(
        to=to,
        sender=sender,
        subject=subject,
        text=text,
        html=html,
        headers=headers,
    )

    try:
        result = ingest_inbound_email(session, payload)
    except HostOpsError as e:
        logger.warning(
            "Inbound email rejected",
            extra={"code": e.code, "error": e.message},
        )
        raise
    except Exception as e:
        logger.error("Inbound email error", extra={"error": str(e)})
        raise HostOpsError("Internal server error", details=str(e)) from e

    return InboundEmailResponse(
        thread_id=str(result.thread_id),
        message_id=str(result.message_id),
        created_thread=result.created_thread,
    )
