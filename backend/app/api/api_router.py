from fastapi import APIRouter
from app.api.routes.drafts import drafts_router
from app.api.routes.email import email_router
from app.api.routes.kb import kb_router
from app.api.routes.threads import threads_router
from app.api.routes.workspace_settings import workspace_settings_router

api_router = APIRouter()

api_router.include_router(drafts_router)
api_router.include_router(email_router)
api_router.include_router(kb_router)
api_router.include_router(threads_router)
api_router.include_router(workspace_settings_router)
