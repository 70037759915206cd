"""Workflow engine - registry, locking, timeouts, correlation and execution history."""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import uuid4

from core.domain.enums.execution_status import ExecutionStatus
from core.infrastructure.logging import bind_correlation_id, get_logger, reset_correlation_id
from core.settings.sections.workflow import WorkflowSettings

from .bus import EventBusProtocol, InMemoryEventBus
from .errors import (
    DomainError,
    InfrastructureError,
    WorkflowConfigurationError,
    WorkflowNotFoundError,
    WorkflowTimeoutError,
    WorkflowTypeError,
    classify,
    error_code,
)
from .events import WORKFLOW_COMPLETED, WORKFLOW_FAILED, WORKFLOW_STARTED, Event, EventMetadata
from .locks import InMemoryLockManager, LockHandle, LockManager
from .models import (
    ExecutionRecord,
    Failure,
    WorkflowContext,
    WorkflowOptions,
    WorkflowResult,
    utc_now,
)
from .recorder import ExecutionRecorder, InMemoryExecutionRecorder, WorkflowStatistics
from .workflow import Workflow


@dataclass(frozen=True)
class WorkflowRegistration:
    workflow: Workflow[Any, Any]
    input_type: type
    output_type: type


@dataclass(frozen=True)
class WorkflowInfo:
    """Public description of a registered workflow."""

    name: str
    input_type: str
    output_type: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "input_type": self.input_type, "output_type": self.output_type}


class WorkflowEngine:
    """Registry and executor of named workflows.

    ``execute`` never raises for execution-time problems: unknown names, type
    mismatches, lock contention, timeouts and step failures all come back as
    a Failure carrying a classified error.
    """

    def __init__(
        self,
        lock_manager: LockManager | None = None,
        event_bus: EventBusProtocol | None = None,
        recorder: ExecutionRecorder | None = None,
        settings: WorkflowSettings | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            lock_manager: LockManager for per-aggregate locks (in-memory by default)
            event_bus: EventBusProtocol for lifecycle events
            recorder: ExecutionRecorder for the execution history
            settings: WorkflowSettings with timeout and lock defaults
        """
        self._settings = settings or WorkflowSettings()
        self._lock_manager = lock_manager or InMemoryLockManager()
        self._event_bus = event_bus or InMemoryEventBus()
        self._recorder = recorder or InMemoryExecutionRecorder(
            max_records=self._settings.execution_history_size
        )
        self._registry: dict[str, WorkflowRegistration] = {}
        self._logger = get_logger("orchestration.engine")

    @property
    def event_bus(self) -> EventBusProtocol:
        return self._event_bus

    @property
    def lock_manager(self) -> LockManager:
        return self._lock_manager

    async def is_healthy(self) -> bool:
        """Whether the engine can take aggregate locks."""
        return await self._lock_manager.is_healthy()

    # Registry

    def register(
        self,
        workflow: Workflow[Any, Any],
        input_type: type | None = None,
        output_type: type | None = None,
    ) -> None:
        """Register a workflow under its name.

        Raises:
            WorkflowConfigurationError: If the name is already taken
        """
        name = workflow.name
        if name in self._registry:
            raise WorkflowConfigurationError(f"Workflow already registered: {name}")

        registration = WorkflowRegistration(
            workflow=workflow,
            input_type=input_type or workflow.input_type,
            output_type=output_type or workflow.output_type,
        )
        self._registry[name] = registration
        self._logger.info(
            f"Registered workflow: {name} "
            f"({registration.input_type.__name__} -> {registration.output_type.__name__})"
        )

    def is_registered(self, workflow_name: str) -> bool:
        return workflow_name in self._registry

    def list_workflows(self) -> list[WorkflowInfo]:
        return [
            WorkflowInfo(
                name=name,
                input_type=registration.input_type.__name__,
                output_type=registration.output_type.__name__,
            )
            for name, registration in sorted(self._registry.items())
        ]

    # Execution

    async def execute(
        self,
        workflow_name: str,
        input_: Any,
        input_type: type,
        output_type: type,
        options: WorkflowOptions | None = None,
        context: WorkflowContext | None = None,
    ) -> WorkflowResult[Any]:
        """Execute a registered workflow by name.

        Args:
            workflow_name: Registered workflow name, e.g. "cart.add-item"
            input_: Workflow input
            input_type: Input type the caller expects the workflow to accept
            output_type: Output type the caller expects back
            options: WorkflowOptions (correlation id, lock key, timeout)
            context: Optional pre-built WorkflowContext

        Returns:
            WorkflowResult; Failure(WorkflowNotFoundError) or
            Failure(WorkflowTypeError) for configuration problems
        """
        registration = self._registry.get(workflow_name)
        if registration is None:
            self._logger.error(f"Workflow not found: {workflow_name}")
            return WorkflowResult.failure(
                WorkflowNotFoundError(
                    f"Workflow not found: {workflow_name}",
                    details={"workflow_name": workflow_name},
                )
            )

        if registration.input_type is not input_type or registration.output_type is not output_type:
            self._logger.error(f"Type mismatch for workflow {workflow_name}")
            return WorkflowResult.failure(
                WorkflowTypeError(
                    f"Workflow {workflow_name} is registered as "
                    f"{registration.input_type.__name__} -> {registration.output_type.__name__}, "
                    f"requested {input_type.__name__} -> {output_type.__name__}",
                    details={"workflow_name": workflow_name},
                )
            )

        if not isinstance(input_, input_type):
            return WorkflowResult.failure(
                WorkflowTypeError(
                    f"Workflow {workflow_name} expects {input_type.__name__}, "
                    f"got {type(input_).__name__}",
                    details={"workflow_name": workflow_name},
                )
            )

        return await self.execute_workflow(
            registration.workflow,
            input_,
            options=options,
            context=context,
            output_type=registration.output_type,
        )

    async def execute_workflow(
        self,
        workflow: Workflow[Any, Any],
        input_: Any,
        options: WorkflowOptions | None = None,
        context: WorkflowContext | None = None,
        output_type: type | None = None,
    ) -> WorkflowResult[Any]:
        """Execute a workflow instance with locking, timeout and correlation.

        Args:
            workflow: Workflow to run
            input_: Workflow input
            options: WorkflowOptions
            context: Optional pre-built WorkflowContext
            output_type: Runtime type the output must have

        Returns:
            WorkflowResult of the execution
        """
        options = options or WorkflowOptions()
        ctx = context or WorkflowContext()
        ctx.workflow_name = workflow.name
        ctx.correlation_id = options.correlation_id or ctx.correlation_id or str(uuid4())
        if options.parent_execution_id is not None:
            ctx.parent_execution_id = options.parent_execution_id
        ctx.attach_event_sink(lambda name, payload: self._publish_event(ctx, name, payload))

        lock_key = options.lock_key or workflow.lock_key_for(input_)
        timeout = (
            options.timeout_seconds
            if options.timeout_seconds is not None
            else self._settings.default_timeout_seconds
        )
        lock_wait = (
            options.lock_wait_seconds
            if options.lock_wait_seconds is not None
            else self._settings.lock_wait_seconds
        )

        extra_locks: list[LockHandle] = []

        async def acquire_extra_lock(key: str) -> None:
            extra_locks.append(
                await self._lock_manager.acquire(key, wait_seconds=lock_wait, owner=ctx.execution_id)
            )

        ctx.attach_lock_acquirer(acquire_extra_lock, held=[lock_key] if lock_key else [])

        token = bind_correlation_id(ctx.correlation_id)
        try:
            started_at = utc_now()
            self._logger.info(
                f"Executing workflow {workflow.name} (execution {ctx.execution_id}, lock {lock_key})"
            )
            await self._publish_event(
                ctx, WORKFLOW_STARTED, {"workflow_name": workflow.name, "lock_key": lock_key}
            )

            try:
                if lock_key:
                    async with self._lock_manager.hold(
                        lock_key, wait_seconds=lock_wait, owner=ctx.execution_id
                    ):
                        result = await self._run_with_timeout(
                            workflow, input_, ctx, timeout, output_type, extra_locks
                        )
                else:
                    result = await self._run_with_timeout(
                        workflow, input_, ctx, timeout, output_type, extra_locks
                    )
            except DomainError as exc:
                ctx.status = ExecutionStatus.FAILED
                result = WorkflowResult.failure(exc)
            except Exception as exc:
                self._logger.error(
                    f"Workflow {workflow.name} aborted by engine error: {exc}", exc_info=True
                )
                ctx.status = ExecutionStatus.FAILED
                error = InfrastructureError(f"Workflow engine error: {exc}")
                error.__cause__ = exc
                result = WorkflowResult.failure(error)

            await self._finish(workflow, ctx, result, started_at, lock_key)
            return result
        finally:
            reset_correlation_id(token)

    async def _run_with_timeout(
        self,
        workflow: Workflow[Any, Any],
        input_: Any,
        ctx: WorkflowContext,
        timeout: float,
        output_type: type | None,
        extra_locks: list[LockHandle],
    ) -> WorkflowResult[Any]:
        """Run the body under the timeout.

        Compensation after a timeout runs before any lock is given up. Locks
        taken through ``ctx.lock`` are released here, before the aggregate lock.
        """
        try:
            return await asyncio.wait_for(
                workflow.run(input_, ctx, expected_output=output_type), timeout=timeout
            )
        except asyncio.TimeoutError:
            self._logger.error(
                f"Workflow {workflow.name} timed out after {timeout}s (execution {ctx.execution_id})"
            )
            await workflow.compensate(ctx)
            ctx.status = ExecutionStatus.TIMED_OUT
            return WorkflowResult.failure(
                WorkflowTimeoutError(
                    f"Workflow {workflow.name} timed out after {timeout}s",
                    details={"execution_id": ctx.execution_id, "timeout_seconds": timeout},
                )
            )
        finally:
            for handle in reversed(extra_locks):
                await self._lock_manager.release(handle)
            ctx.attach_lock_acquirer(None)

    async def _finish(
        self,
        workflow: Workflow[Any, Any],
        ctx: WorkflowContext,
        result: WorkflowResult[Any],
        started_at: datetime,
        lock_key: str | None,
    ) -> None:
        record = ExecutionRecord(
            execution_id=ctx.execution_id,
            workflow_name=workflow.name,
            correlation_id=ctx.correlation_id,
            status=ctx.status,
            started_at=started_at,
            finished_at=utc_now(),
            steps=ctx.executed_steps,
            lock_key=lock_key,
            parent_execution_id=ctx.parent_execution_id,
        )

        if isinstance(result, Failure):
            record.error_kind = classify(result.error)
            record.error_code = error_code(result.error)
            record.error_message = str(result.error)
            await self._publish_event(
                ctx,
                WORKFLOW_FAILED,
                {
                    "workflow_name": workflow.name,
                    "status": ctx.status.value,
                    "error_kind": record.error_kind.value,
                    "error": record.error_message,
                    "duration_ms": record.duration_ms,
                },
            )
            self._logger.warning(
                f"Workflow {workflow.name} failed ({record.error_kind.value}): {record.error_message}"
            )
        else:
            await self._publish_event(
                ctx,
                WORKFLOW_COMPLETED,
                {
                    "workflow_name": workflow.name,
                    "status": ctx.status.value,
                    "step_count": len(record.steps),
                    "duration_ms": record.duration_ms,
                },
            )
            self._logger.info(
                f"Workflow {workflow.name} completed in {record.duration_ms}ms"
            )

        await self._recorder.record(record)

    async def _publish_event(
        self, ctx: WorkflowContext, name: str, payload: dict[str, object]
    ) -> None:
        metadata = EventMetadata(
            execution_id=ctx.execution_id,
            workflow_name=ctx.workflow_name,
            correlation_id=ctx.correlation_id,
            timestamp=utc_now(),
        )
        await self._event_bus.publish(Event(name=name, payload=payload, metadata=metadata))

    # Execution history

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        return await self._recorder.get(execution_id)

    async def list_executions(
        self, workflow_name: str | None = None, limit: int = 50
    ) -> list[ExecutionRecord]:
        return await self._recorder.list_recent(workflow_name, limit)

    async def workflow_statistics(self, workflow_name: str) -> WorkflowStatistics:
        return await self._recorder.statistics(workflow_name)
