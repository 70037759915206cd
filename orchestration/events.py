"""Orchestration events - lifecycle Event, EventMetadata and event names."""

from dataclasses import dataclass
from datetime import datetime

WORKFLOW_STARTED = "workflow.started"
WORKFLOW_COMPLETED = "workflow.completed"
WORKFLOW_FAILED = "workflow.failed"
STEP_STARTED = "workflow.step.started"
STEP_SUCCEEDED = "workflow.step.succeeded"
STEP_FAILED = "workflow.step.failed"
COMPENSATION_FAILED = "workflow.compensation.failed"


@dataclass
class EventMetadata:
    """Metadata for a lifecycle event."""

    execution_id: str
    workflow_name: str | None
    correlation_id: str | None
    timestamp: datetime


@dataclass
class Event:
    """Lifecycle event emitted while a workflow executes."""

    name: str
    payload: dict[str, object]
    metadata: EventMetadata
