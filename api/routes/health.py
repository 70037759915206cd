"""
Health check endpoints.

Used for monitoring and load balancer health checks.
"""
from datetime import datetime, timezone
import platform

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.dependencies import get_workflow_engine
from orchestration import WorkflowEngine


router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns system health status.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "storeflow",
        "version": "1.0.0",
        "python_version": platform.python_version(),
    }


@router.get("/health/ready")
async def readiness_check(engine: WorkflowEngine = Depends(get_workflow_engine)):
    """
    Readiness check endpoint.

    Ready once the engine has workflows registered and its lock backend
    answers. Returns 503 otherwise so load balancers stop routing here.
    """
    workflows = engine.list_workflows()
    locks_ok = await engine.is_healthy()
    ready = bool(workflows) and locks_ok
    body = {
        "status": "ready" if ready else "not_ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "api": "ok",
            "workflows": len(workflows),
            "lock_manager": type(engine.lock_manager).__name__,
            "lock_backend": "ok" if locks_ok else "unavailable",
        },
    }
    if not ready:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body
