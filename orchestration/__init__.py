"""Orchestration layer - saga-style workflow execution with eventing."""

from typing import TYPE_CHECKING

from .bus import EventBusProtocol, InMemoryEventBus
from .engine import WorkflowEngine, WorkflowInfo
from .errors import ErrorKind, classify
from .events import Event, EventMetadata
from .locks import InMemoryLockManager, LockHandle, LockManager, RedisLockManager
from .models import (
    ContextKey,
    ExecutionRecord,
    Failure,
    StepResponse,
    Success,
    WorkflowContext,
    WorkflowOptions,
    WorkflowResult,
)
from .recorder import ExecutionRecorder, InMemoryExecutionRecorder
from .workflow import Step, Workflow, create_step, parallel

if TYPE_CHECKING:
    from core.settings.app import AppSettings

__all__ = [
    "ContextKey",
    "ErrorKind",
    "Event",
    "EventBusProtocol",
    "EventMetadata",
    "ExecutionRecord",
    "ExecutionRecorder",
    "Failure",
    "InMemoryEventBus",
    "InMemoryExecutionRecorder",
    "InMemoryLockManager",
    "LockHandle",
    "LockManager",
    "RedisLockManager",
    "Step",
    "StepResponse",
    "Success",
    "Workflow",
    "WorkflowContext",
    "WorkflowEngine",
    "WorkflowInfo",
    "WorkflowOptions",
    "WorkflowResult",
    "classify",
    "create_default_engine",
    "create_step",
    "parallel",
]


def create_default_engine(
    settings: "AppSettings", event_bus: EventBusProtocol | None = None
) -> WorkflowEngine:
    """Create an engine with the lock backend selected in settings.

    Args:
        settings: AppSettings
        event_bus: Optional lifecycle event bus (in-memory by default)

    Returns:
        WorkflowEngine instance
    """
    if settings.workflow.lock_backend == "redis":
        lock_manager: LockManager = RedisLockManager.from_url(
            settings.redis.url,
            key_prefix=settings.redis.lock_prefix,
            ttl_seconds=settings.workflow.lock_ttl_seconds,
        )
    else:
        lock_manager = InMemoryLockManager()

    return WorkflowEngine(
        lock_manager=lock_manager,
        event_bus=event_bus or InMemoryEventBus(),
        settings=settings.workflow,
    )
