"""
Workflow registry and execution history endpoints.

Read-only views over the engine: what is registered, what ran and how
each workflow has been doing.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_workflow_engine
from orchestration import WorkflowEngine


router = APIRouter(prefix="/workflows", tags=["Workflows"])


@router.get("", summary="List registered workflows")
async def list_workflows(engine: WorkflowEngine = Depends(get_workflow_engine)) -> Dict[str, Any]:
    workflows = engine.list_workflows()
    return {
        "count": len(workflows),
        "workflows": [info.to_dict() for info in workflows],
    }


@router.get("/executions", summary="List recent executions")
async def list_executions(
    workflow_name: Optional[str] = Query(None, description="Only executions of this workflow"),
    limit: int = Query(50, ge=1, le=500),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> Dict[str, Any]:
    """Most recent executions first."""
    records = await engine.list_executions(workflow_name, limit)
    return {
        "count": len(records),
        "executions": [record.to_dict() for record in records],
    }


@router.get("/executions/{execution_id}", summary="Get one execution")
async def get_execution(
    execution_id: str,
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> Dict[str, Any]:
    record = await engine.get_execution(execution_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Execution {execution_id} not found",
        )
    return record.to_dict()


@router.get("/{workflow_name}/statistics", summary="Outcome statistics for a workflow")
async def workflow_statistics(
    workflow_name: str,
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> Dict[str, Any]:
    if not engine.is_registered(workflow_name):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Workflow {workflow_name} is not registered",
        )
    stats = await engine.workflow_statistics(workflow_name)
    return stats.to_dict()
