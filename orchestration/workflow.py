"""Workflow definitions - Step, Workflow and parallel fan-out."""

import asyncio
import inspect
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, ClassVar, Generic, TypeVar

from core.domain.enums.execution_status import ExecutionStatus
from core.infrastructure.logging import get_logger

from .errors import WorkflowTypeError
from .events import STEP_FAILED, STEP_STARTED, STEP_SUCCEEDED
from .models import Failure, StepResponse, Success, WorkflowContext, WorkflowResult

I = TypeVar("I")
O = TypeVar("O")
T = TypeVar("T")

StepExecute = Callable[[Any, WorkflowContext], Any]
StepCompensate = Callable[[Any, Any, object, WorkflowContext], Any]

logger = get_logger("orchestration.workflow")


async def call_maybe_async(
    func: Callable[..., Any],
    *args: Any,
    on_late_result: Callable[[Any], None] | None = None,
) -> Any:
    """Await a coroutine function, or run a blocking callable in a worker thread.

    A worker thread cannot be interrupted. When the caller is cancelled while
    the thread runs, the cancellation is held back until the thread has
    finished, so nothing it writes lands after the caller has unwound.
    ``on_late_result`` receives the value of a thread that completed after
    the cancellation.
    """
    if inspect.iscoroutinefunction(func):
        return await func(*args)

    future = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        result = await asyncio.shield(future)
    except asyncio.CancelledError:
        try:
            late = await future
        except Exception as exc:
            logger.warning(f"Blocking call {func!r} failed after cancellation: {exc}")
        else:
            if on_late_result is not None and not inspect.isawaitable(late):
                on_late_result(late)
        raise

    if inspect.isawaitable(result):
        result = await result
    return result


class Step(Generic[I, O]):
    """A named unit of work with an optional compensating action.

    ``execute(input, ctx)`` returns a StepResponse (a bare value is wrapped).
    ``compensate(input, output, compensation_data, ctx)`` semantically undoes
    a successful execute. Compensations are registered on the context only
    after execute succeeds; a failing step never compensates itself.
    """

    def __init__(
        self,
        name: str,
        execute: StepExecute,
        compensate: StepCompensate | None = None,
    ) -> None:
        self.name = name
        self._execute = execute
        self._compensate = compensate

    @property
    def has_compensation(self) -> bool:
        return self._compensate is not None

    async def invoke(self, input_: I, ctx: WorkflowContext) -> StepResponse[O]:
        """Run the step and register its compensation on success.

        Args:
            input_: Step input
            ctx: WorkflowContext of the running execution

        Returns:
            StepResponse with the step output

        Raises:
            Exception: Whatever execute raised, unchanged
        """
        started = time.monotonic()
        logger.info(f"Executing step: {self.name}")
        await ctx.emit(STEP_STARTED, {"step_name": self.name})

        try:
            response = await call_maybe_async(
                self._execute, input_, ctx, on_late_result=lambda late: self._settle(input_, late, ctx)
            )
        except Exception as exc:
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.error(f"Step '{self.name}' failed after {duration_ms}ms: {exc}")
            await ctx.emit(
                STEP_FAILED,
                {"step_name": self.name, "duration_ms": duration_ms, "error": str(exc)},
            )
            raise

        response = self._settle(input_, response, ctx)

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"Step '{self.name}' completed in {duration_ms}ms")
        await ctx.emit(STEP_SUCCEEDED, {"step_name": self.name, "duration_ms": duration_ms})
        return response

    def _settle(self, input_: I, value: Any, ctx: WorkflowContext) -> StepResponse[O]:
        """Record a completed execute and register its compensation."""
        response = value if isinstance(value, StepResponse) else StepResponse.of(value)
        ctx.record_step(self.name)
        if self._compensate is not None:
            ctx.push_compensation(self.name, self._compensation_for(input_, response, ctx))
        return response

    async def compensate(
        self,
        input_: I,
        ctx: WorkflowContext,
        output: O | None = None,
        compensation_data: object = None,
    ) -> None:
        """Run the compensating action directly (no-op when the step has none)."""
        if self._compensate is None:
            return
        logger.info(f"Compensating step: {self.name}")
        await call_maybe_async(self._compensate, input_, output, compensation_data, ctx)

    def _compensation_for(
        self, input_: I, response: StepResponse[O], ctx: WorkflowContext
    ) -> Callable[[], Awaitable[None]]:
        async def action() -> None:
            await self.compensate(input_, ctx, response.data, response.compensation_data)

        return action

    def __repr__(self) -> str:
        return f"Step({self.name!r})"


def create_step(
    name: str,
    execute: StepExecute,
    compensate: StepCompensate | None = None,
) -> Step[Any, Any]:
    """Build a Step from an execute function and an optional compensate function."""
    return Step(name, execute, compensate)


class Workflow(ABC, Generic[I, O]):
    """Base class for workflows.

    Subclasses set ``name``, ``input_type`` and ``output_type`` and implement
    ``execute`` as an explicit sequence of step invocations. ``run`` wraps the
    body with saga semantics: on any failure the compensations of the steps
    that succeeded run in reverse order and the original error is returned.
    """

    name: ClassVar[str]
    input_type: ClassVar[type]
    output_type: ClassVar[type]

    @abstractmethod
    async def execute(self, input_: I, ctx: WorkflowContext) -> O:
        """Workflow body. Raise to fail; the output becomes the Success data."""

    def lock_key_for(self, input_: I) -> str | None:
        """Aggregate lock the engine takes when the caller passes none."""
        return None

    async def run(
        self,
        input_: I,
        ctx: WorkflowContext,
        expected_output: type | None = None,
    ) -> WorkflowResult[O]:
        """Execute the body and turn its outcome into a WorkflowResult.

        Args:
            input_: Workflow input
            ctx: Fresh WorkflowContext for this execution
            expected_output: Runtime type the output must have, if known

        Returns:
            Success with the output, or Failure with the original error
        """
        if ctx.workflow_name is None:
            ctx.workflow_name = self.name
        ctx.status = ExecutionStatus.RUNNING
        logger.info(f"Starting workflow {self.name} (execution {ctx.execution_id})")

        try:
            output = await self.execute(input_, ctx)
            if isinstance(output, Failure):
                raise output.error
            if isinstance(output, Success):
                output = output.data
            if expected_output is not None and not isinstance(output, expected_output):
                raise WorkflowTypeError(
                    f"Workflow {self.name} returned {type(output).__name__}, "
                    f"expected {expected_output.__name__}"
                )
        except Exception as exc:
            logger.error(f"Workflow {self.name} failed: {exc}")
            await self.compensate(ctx)
            ctx.status = ExecutionStatus.FAILED
            return WorkflowResult.failure(exc)

        ctx.discard_compensations()
        ctx.status = ExecutionStatus.SUCCESS
        logger.info(
            f"Workflow {self.name} completed after {len(ctx.executed_steps)} step(s)"
        )
        return WorkflowResult.success(output)

    async def compensate(self, ctx: WorkflowContext) -> None:
        """Unwind every compensation registered so far."""
        ctx.status = ExecutionStatus.COMPENSATING
        summary = await ctx.run_compensations()
        if summary.failed:
            logger.warning(
                f"Workflow {self.name} left {len(summary.failed)} compensation(s) failed: "
                f"{', '.join(summary.failed)}"
            )


async def parallel(*branches: Awaitable[T]) -> list[T]:
    """Run branches concurrently and wait for all of them to settle.

    Steps invoked inside each branch register their compensations as they
    succeed, so when one branch fails the siblings' completed work is
    compensated together with the rest of the saga.

    Args:
        branches: Awaitables, typically coroutines invoking one or more steps

    Returns:
        Branch results in argument order

    Raises:
        Exception: The first failure, by argument order, after every branch settled
    """
    results = await asyncio.gather(*branches, return_exceptions=True)
    errors = [result for result in results if isinstance(result, BaseException)]
    if errors:
        for extra in errors[1:]:
            logger.warning(f"Additional parallel branch failure: {extra}")
        raise errors[0]
    return list(results)
