import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from sqlmodel import Session, text

from app.core.config import settings
from app.api.api_router import api_router
from app.core.db import engine, init_db
from app.core.errors import HostOpsError
from app.core.tracing import setup_tracing

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    init_db()
    setup_tracing()

    yield

    # Shutdown


app = FastAPI(
    title=settings.APP_NAME,
    lifespan=lifespan,
)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALL_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HostOpsError)
async def hostops_error_handler(request: Request, exc: HostOpsError) -> JSONResponse:
    """Render domain errors as {"error", "code", "details"}."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies and parameters are reported as 400."""
    errors = exc.errors()
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', []))}: {err.get('msg')}"
        for err in errors
    )
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "code": "validation_error", "details": detail},
    )


app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/healthz")
def health_check():
    """Health check endpoint that verifies database connectivity."""
    health_status = {
        "status": "healthy",
        "services": {
            "database": "unknown",
        }
    }

    try:
        with Session(engine) as session:
            session.exec(text("SELECT 1"))
            health_status["services"]["database"] = "healthy"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        health_status["services"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "degraded"

    return health_status
