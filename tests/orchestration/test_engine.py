"""Tests for WorkflowEngine - registry, typing, locking, timeouts and history."""

import asyncio
import logging
import time
from dataclasses import dataclass

import pytest

from core.domain.enums.execution_status import ExecutionStatus
from core.domain.exceptions import ConflictError
from core.infrastructure.logging import get_correlation_id
from core.settings import WorkflowSettings
from orchestration import (
    Event,
    Failure,
    InMemoryEventBus,
    InMemoryLockManager,
    Success,
    Workflow,
    WorkflowContext,
    WorkflowEngine,
    WorkflowOptions,
    create_step,
)
from orchestration.errors import (
    ErrorKind,
    WorkflowConfigurationError,
    WorkflowLockError,
    WorkflowNotFoundError,
    WorkflowTimeoutError,
    WorkflowTypeError,
)


@dataclass
class EchoInput:
    value: str
    key: str = "echo:1"
    delay: float = 0.0
    fail: bool = False


@dataclass
class EchoOutput:
    value: str
    correlation_id: str | None


class EchoWorkflow(Workflow[EchoInput, EchoOutput]):
    name = "test.echo"
    input_type = EchoInput
    output_type = EchoOutput

    def __init__(self) -> None:
        self.compensated: list[str] = []
        self.active = 0
        self.max_active = 0
        self.reserve = create_step("reserve", self._reserve, self._release)
        self.work = create_step("work", self._work)

    def lock_key_for(self, input_: EchoInput) -> str:
        return input_.key

    async def _reserve(self, input_: EchoInput, ctx: WorkflowContext) -> str:
        return input_.value

    async def _release(self, input_: EchoInput, output: str, data: object, ctx: WorkflowContext) -> None:
        self.compensated.append(output)

    async def _work(self, input_: EchoInput, ctx: WorkflowContext) -> EchoOutput:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if input_.delay:
                await asyncio.sleep(input_.delay)
            if input_.fail:
                raise ConflictError("work refused")
            return EchoOutput(value=input_.value.upper(), correlation_id=get_correlation_id())
        finally:
            self.active -= 1

    async def execute(self, input_: EchoInput, ctx: WorkflowContext) -> EchoOutput:
        await self.reserve.invoke(input_, ctx)
        return (await self.work.invoke(input_, ctx)).data


@pytest.fixture
def echo() -> EchoWorkflow:
    return EchoWorkflow()


@pytest.fixture
def echo_engine(engine, echo) -> WorkflowEngine:
    engine.register(echo)
    return engine


@pytest.mark.asyncio
async def test_execute_registered_workflow(echo_engine):
    result = await echo_engine.execute("test.echo", EchoInput("hi"), EchoInput, EchoOutput)

    assert isinstance(result, Success)
    assert result.data.value == "HI"


@pytest.mark.asyncio
async def test_unknown_workflow_is_not_found_failure(echo_engine):
    result = await echo_engine.execute("test.missing", EchoInput("hi"), EchoInput, EchoOutput)

    assert isinstance(result, Failure)
    assert isinstance(result.error, WorkflowNotFoundError)
    assert result.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_declared_type_mismatch_is_configuration_failure(echo, echo_engine):
    result = await echo_engine.execute("test.echo", EchoInput("hi"), EchoInput, str)

    assert isinstance(result, Failure)
    assert isinstance(result.error, WorkflowTypeError)
    assert result.kind == ErrorKind.CONFIGURATION
    assert echo.compensated == []


@pytest.mark.asyncio
async def test_input_of_wrong_type_is_configuration_failure(echo_engine):
    result = await echo_engine.execute("test.echo", "hi", EchoInput, EchoOutput)

    assert isinstance(result, Failure)
    assert isinstance(result.error, WorkflowTypeError)


def test_duplicate_registration_is_rejected(echo_engine):
    with pytest.raises(WorkflowConfigurationError):
        echo_engine.register(EchoWorkflow())


def test_list_workflows_describes_registrations(echo_engine):
    infos = echo_engine.list_workflows()

    assert [info.to_dict() for info in infos] == [
        {"name": "test.echo", "input_type": "EchoInput", "output_type": "EchoOutput"}
    ]
    assert echo_engine.is_registered("test.echo")


@pytest.mark.asyncio
async def test_step_failure_compensates_and_returns_failure(echo, echo_engine):
    result = await echo_engine.execute("test.echo", EchoInput("hi", fail=True), EchoInput, EchoOutput)

    assert isinstance(result, Failure)
    assert result.kind == ErrorKind.CONFLICT
    assert echo.compensated == ["hi"]


@pytest.mark.asyncio
async def test_timeout_returns_timeout_failure_and_compensates(echo, lifecycle_bus):
    engine = WorkflowEngine(
        event_bus=lifecycle_bus,
        settings=WorkflowSettings(default_timeout_seconds=0.1),
    )
    engine.register(echo)

    started = time.monotonic()
    result = await engine.execute("test.echo", EchoInput("slow", delay=5), EchoInput, EchoOutput)
    elapsed = time.monotonic() - started

    assert isinstance(result, Failure)
    assert isinstance(result.error, WorkflowTimeoutError)
    assert result.kind == ErrorKind.TIMEOUT
    assert elapsed < 2
    assert echo.compensated == ["slow"]

    records = await engine.list_executions("test.echo")
    assert records[0].status == ExecutionStatus.TIMED_OUT


@pytest.mark.asyncio
async def test_option_timeout_overrides_default(echo_engine):
    result = await echo_engine.execute(
        "test.echo",
        EchoInput("slow", delay=5),
        EchoInput,
        EchoOutput,
        options=WorkflowOptions(timeout_seconds=0.05),
    )

    assert isinstance(result.error, WorkflowTimeoutError)


@pytest.mark.asyncio
async def test_same_lock_key_serializes_executions(echo, echo_engine):
    results = await asyncio.gather(
        *(
            echo_engine.execute("test.echo", EchoInput(f"v{i}", key="cart:1", delay=0.02), EchoInput, EchoOutput)
            for i in range(4)
        )
    )

    assert all(r.is_success() for r in results)
    assert echo.max_active == 1


@pytest.mark.asyncio
async def test_different_lock_keys_run_concurrently(echo, echo_engine):
    results = await asyncio.gather(
        echo_engine.execute("test.echo", EchoInput("a", key="cart:1", delay=0.05), EchoInput, EchoOutput),
        echo_engine.execute("test.echo", EchoInput("b", key="cart:2", delay=0.05), EchoInput, EchoOutput),
    )

    assert all(r.is_success() for r in results)
    assert echo.max_active == 2


@pytest.mark.asyncio
async def test_lock_contention_returns_conflict_failure(echo, lifecycle_bus):
    locks = InMemoryLockManager()
    engine = WorkflowEngine(lock_manager=locks, event_bus=lifecycle_bus)
    engine.register(echo)
    handle = await locks.acquire("cart:busy")

    result = await engine.execute(
        "test.echo",
        EchoInput("x", key="cart:busy"),
        EchoInput,
        EchoOutput,
        options=WorkflowOptions(lock_wait_seconds=0.05),
    )

    assert isinstance(result.error, WorkflowLockError)
    assert result.kind == ErrorKind.CONFLICT
    await locks.release(handle)


@pytest.mark.asyncio
async def test_explicit_lock_key_takes_precedence(echo_engine):
    seen: list[object] = []

    async def on_started(event: Event) -> None:
        seen.append(event.payload["lock_key"])

    echo_engine.event_bus.subscribe("workflow.started", on_started)
    await echo_engine.execute(
        "test.echo", EchoInput("x"), EchoInput, EchoOutput, options=WorkflowOptions(lock_key="custom:1")
    )

    assert seen == ["custom:1"]


@pytest.mark.asyncio
async def test_lock_released_after_failure(echo, echo_engine):
    await echo_engine.execute("test.echo", EchoInput("x", key="cart:7", fail=True), EchoInput, EchoOutput)

    assert not await echo_engine.lock_manager.is_locked("cart:7")


@pytest.mark.asyncio
async def test_correlation_id_is_bound_during_execution(echo_engine):
    result = await echo_engine.execute(
        "test.echo", EchoInput("x"), EchoInput, EchoOutput, options=WorkflowOptions(correlation_id="req-42")
    )

    assert result.data.correlation_id == "req-42"
    assert get_correlation_id() is None


@pytest.mark.asyncio
async def test_correlation_id_generated_when_missing(echo_engine):
    result = await echo_engine.execute("test.echo", EchoInput("x"), EchoInput, EchoOutput)

    assert result.data.correlation_id


@pytest.mark.asyncio
async def test_concurrent_executions_keep_their_own_correlation_ids(echo_engine):
    first, second = await asyncio.gather(
        echo_engine.execute(
            "test.echo", EchoInput("a", key="k:a", delay=0.02), EchoInput, EchoOutput,
            options=WorkflowOptions(correlation_id="corr-a"),
        ),
        echo_engine.execute(
            "test.echo", EchoInput("b", key="k:b", delay=0.01), EchoInput, EchoOutput,
            options=WorkflowOptions(correlation_id="corr-b"),
        ),
    )

    assert first.data.correlation_id == "corr-a"
    assert second.data.correlation_id == "corr-b"


@pytest.mark.asyncio
async def test_lifecycle_events_for_success(echo_engine):
    events: list[Event] = []

    async def collect(event: Event) -> None:
        events.append(event)

    echo_engine.event_bus.subscribe("*", collect)
    await echo_engine.execute(
        "test.echo", EchoInput("x"), EchoInput, EchoOutput, options=WorkflowOptions(correlation_id="c-1")
    )

    names = [event.name for event in events]
    assert names[0] == "workflow.started"
    assert names[-1] == "workflow.completed"
    assert names.count("workflow.step.succeeded") == 2
    assert {event.metadata.correlation_id for event in events} == {"c-1"}
    assert len({event.metadata.execution_id for event in events}) == 1
    assert events[0].metadata.workflow_name == "test.echo"


@pytest.mark.asyncio
async def test_lifecycle_events_for_failure(echo_engine):
    events: list[Event] = []

    async def collect(event: Event) -> None:
        events.append(event)

    echo_engine.event_bus.subscribe("*", collect)
    await echo_engine.execute("test.echo", EchoInput("x", fail=True), EchoInput, EchoOutput)

    names = [event.name for event in events]
    assert "workflow.step.failed" in names
    assert names[-1] == "workflow.failed"
    assert events[-1].payload["error_kind"] == "conflict"


@pytest.mark.asyncio
async def test_engine_errors_become_infrastructure_failures(echo, lifecycle_bus):
    class BrokenLocks(InMemoryLockManager):
        async def acquire(self, key, *, wait_seconds=None, owner=None):
            raise ConnectionError("lock backend down")

    engine = WorkflowEngine(lock_manager=BrokenLocks(), event_bus=lifecycle_bus)
    engine.register(echo)

    result = await engine.execute("test.echo", EchoInput("x"), EchoInput, EchoOutput)

    assert isinstance(result, Failure)
    assert result.kind == ErrorKind.INFRASTRUCTURE
    assert isinstance(result.error.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_execution_history_records_outcomes(echo_engine):
    ok = await echo_engine.execute(
        "test.echo", EchoInput("x"), EchoInput, EchoOutput, options=WorkflowOptions(correlation_id="hist-1")
    )
    await echo_engine.execute("test.echo", EchoInput("y", fail=True), EchoInput, EchoOutput)

    records = await echo_engine.list_executions("test.echo")
    assert [r.status for r in records] == [ExecutionStatus.FAILED, ExecutionStatus.SUCCESS]
    assert records[0].error_kind == ErrorKind.CONFLICT
    assert records[0].error_code == "INVALID_STATE"
    assert records[1].steps == ["reserve", "work"]
    assert records[1].correlation_id == "hist-1"
    assert records[1].lock_key == "echo:1"

    fetched = await echo_engine.get_execution(records[1].execution_id)
    assert fetched is records[1]
    assert fetched.to_dict()["status"] == "success"
    assert ok.is_success()

    stats = await echo_engine.workflow_statistics("test.echo")
    assert (stats.total, stats.succeeded, stats.failed, stats.timed_out) == (2, 1, 1, 0)


@pytest.mark.asyncio
async def test_engine_logs_carry_correlation_id(echo_engine, caplog):
    caplog.set_level(logging.INFO, logger="orchestration")

    await echo_engine.execute(
        "test.echo", EchoInput("x"), EchoInput, EchoOutput, options=WorkflowOptions(correlation_id="log-1")
    )

    messages = [r.getMessage() for r in caplog.records if r.name == "orchestration.engine"]
    assert any("Executing workflow test.echo" in m for m in messages)


@dataclass
class WriteInput:
    value: str
    seconds: float = 0.3


class BlockingWriteWorkflow(Workflow[WriteInput, str]):
    """Writes from a blocking step that runs in a worker thread."""

    name = "test.blocking-write"
    input_type = WriteInput
    output_type = str

    def __init__(self) -> None:
        self.writes: list[str] = []
        self.compensated: list[str] = []
        self.active = 0
        self.max_active = 0
        self.write = create_step("write", self._write, self._unwrite)

    async def execute(self, input_: WriteInput, ctx: WorkflowContext) -> str:
        return (await self.write.invoke(input_, ctx)).data

    def _write(self, input_: WriteInput, ctx: WorkflowContext) -> str:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(input_.seconds)
            self.writes.append(input_.value)
            return input_.value
        finally:
            self.active -= 1

    async def _unwrite(self, input_: WriteInput, output: str, data: object, ctx: WorkflowContext) -> None:
        self.writes.remove(output)
        self.compensated.append(output)


@pytest.mark.asyncio
async def test_timed_out_blocking_step_finishes_and_compensates_before_lock_release(engine):
    workflow = BlockingWriteWorkflow()
    engine.register(workflow)

    first = asyncio.create_task(
        engine.execute(
            workflow.name,
            WriteInput("a"),
            WriteInput,
            str,
            WorkflowOptions(lock_key="agg:1", timeout_seconds=0.1),
        )
    )
    await asyncio.sleep(0.02)
    second = asyncio.create_task(
        engine.execute(workflow.name, WriteInput("b"), WriteInput, str, WorkflowOptions(lock_key="agg:1"))
    )

    first_result, second_result = await asyncio.gather(first, second)

    assert first_result.kind == ErrorKind.TIMEOUT
    assert second_result.get_or_raise() == "b"
    assert workflow.max_active == 1
    assert workflow.compensated == ["a"]
    assert workflow.writes == ["b"]


class ExtraLockWorkflow(Workflow[EchoInput, EchoOutput]):
    """Takes additional aggregate locks from inside its body."""

    name = "test.extra-lock"
    input_type = EchoInput
    output_type = EchoOutput

    def __init__(self, lock_manager: InMemoryLockManager) -> None:
        self.lock_manager = lock_manager
        self.seen_locked: list[bool] = []
        self.held: list[str] = []

    def lock_key_for(self, input_: EchoInput) -> str:
        return input_.key

    async def execute(self, input_: EchoInput, ctx: WorkflowContext) -> EchoOutput:
        await ctx.lock("payment:2", "payment:1", input_.key)
        self.seen_locked = [
            await self.lock_manager.is_locked("payment:1"),
            await self.lock_manager.is_locked("payment:2"),
        ]
        self.held = ctx.held_lock_keys
        if input_.fail:
            raise ConflictError("refused after locking")
        return EchoOutput(value=input_.value, correlation_id=None)


@pytest.mark.asyncio
@pytest.mark.parametrize("fail", [False, True])
async def test_locks_taken_in_body_are_held_until_execution_ends(fail):
    lock_manager = InMemoryLockManager()
    engine = WorkflowEngine(lock_manager=lock_manager)
    workflow = ExtraLockWorkflow(lock_manager)
    engine.register(workflow)

    result = await engine.execute(
        workflow.name, EchoInput("x", key="order:1", fail=fail), EchoInput, EchoOutput
    )

    assert result.is_failure() is fail
    assert workflow.seen_locked == [True, True]
    assert workflow.held == ["order:1", "payment:1", "payment:2"]
    assert lock_manager.active_keys == []


@pytest.mark.asyncio
async def test_body_lock_waits_for_other_holder(engine):
    workflow = ExtraLockWorkflow(engine.lock_manager)
    engine.register(workflow)

    async with engine.lock_manager.hold("payment:1"):
        result = await engine.execute(
            workflow.name,
            EchoInput("x", key="order:1"),
            EchoInput,
            EchoOutput,
            WorkflowOptions(lock_wait_seconds=0.05),
        )

    assert result.kind == ErrorKind.CONFLICT
    assert result.error.code == "LOCK_UNAVAILABLE"
    assert await engine.lock_manager.is_locked("payment:2") is False
    assert await engine.lock_manager.is_locked("order:1") is False


@pytest.mark.asyncio
async def test_context_lock_outside_engine_is_noop():
    ctx = WorkflowContext()

    await ctx.lock("payment:1")

    assert ctx.held_lock_keys == []
