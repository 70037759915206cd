"""
Storeflow - Main FastAPI Application.

Thin HTTP surface over the workflow engine: health checks, the workflow
registry and the execution history.
"""
from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import get_workflow_engine
from api.errors import domain_error_handler
from api.routes import health, workflows
from core.domain.exceptions import DomainError
from core.infrastructure.logging import configure_logging, get_logger
from core.settings import get_app_settings


configure_logging(get_app_settings().logging.level)
logger = get_logger(__name__)


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = get_workflow_engine()
    logger.info(f"Storeflow API starting with {len(engine.list_workflows())} workflows")
    yield
    close = getattr(engine.lock_manager, "close", None)
    if close is not None:
        await close()
    logger.info("Storeflow API shutting down")


# =============================================================================
# CREATE FASTAPI APP
# =============================================================================

app = FastAPI(
    title="Storeflow - Workflow Orchestration API",
    description="""
    Saga-style workflow orchestration for commerce operations.

    Features:
    - Workflow registry
    - Execution history and statistics
    - Per-aggregate locking, timeouts and compensation
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST LOGGING MIDDLEWARE
# =============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.info(
        f"{request.method} {request.url.path} "
        f"[{response.status_code}] ({duration:.3f}s)"
    )
    return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

app.add_exception_handler(DomainError, domain_error_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "path": request.url.path
        }
    )


# =============================================================================
# INCLUDE ROUTERS
# =============================================================================

app.include_router(health.router, tags=["Health"])
app.include_router(workflows.router)


# =============================================================================
# ROOT ENDPOINT
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """API root endpoint."""
    return {
        "message": "Storeflow - Workflow Orchestration API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }
