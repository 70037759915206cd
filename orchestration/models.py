"""Orchestration models - WorkflowContext, StepResponse, WorkflowResult, WorkflowOptions."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar
from uuid import uuid4

from core.domain.enums.execution_status import ExecutionStatus
from core.infrastructure.logging import get_logger

from .errors import ContextValueMissingError, ErrorKind, classify, describe_error
from .events import COMPENSATION_FAILED

T = TypeVar("T")

CompensationAction = Callable[[], Awaitable[None]]
EventSink = Callable[[str, dict[str, object]], Awaitable[None]]
LockAcquirer = Callable[[str], Awaitable[None]]

logger = get_logger("orchestration.context")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContextKey(Generic[T]):
    """Typed handle for a value stored in a WorkflowContext.

    A key addresses the same slot as its plain-string name, so typed and
    string access can be mixed within one execution.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"ContextKey({self.name!r})"


def _key_name(key: "str | ContextKey[Any]") -> str:
    return key.name if isinstance(key, ContextKey) else key


@dataclass(frozen=True)
class StepResponse(Generic[T]):
    """Output of a step plus the data its compensation needs."""

    data: T
    compensation_data: object = None

    @classmethod
    def of(cls, data: T, compensation_data: object = None) -> "StepResponse[T]":
        return cls(data=data, compensation_data=compensation_data)


@dataclass(frozen=True)
class CompensationEntry:
    step_name: str
    action: CompensationAction


@dataclass(frozen=True)
class CompensationSummary:
    """Outcome of unwinding a compensation stack."""

    compensated: list[str]
    failed: list[str]


@dataclass
class WorkflowContext:
    """Per-execution state: metadata, executed steps and the compensation stack.

    A context belongs to exactly one execution and is discarded when the
    execution returns.
    """

    execution_id: str = field(default_factory=lambda: str(uuid4()))
    workflow_name: str | None = None
    correlation_id: str | None = None
    parent_execution_id: str | None = None
    started_at: datetime = field(default_factory=utc_now)
    status: ExecutionStatus = ExecutionStatus.PENDING
    metadata: dict[str, object] = field(default_factory=dict)
    _executed_steps: list[str] = field(default_factory=list, init=False, repr=False)
    _compensations: list[CompensationEntry] = field(default_factory=list, init=False, repr=False)
    _event_sink: EventSink | None = field(default=None, init=False, repr=False)
    _lock_acquirer: LockAcquirer | None = field(default=None, init=False, repr=False)
    _held_lock_keys: set[str] = field(default_factory=set, init=False, repr=False)

    # String-keyed API

    def add_metadata(self, key: "str | ContextKey[Any]", value: object) -> None:
        self.metadata[_key_name(key)] = value

    def get_metadata(self, key: "str | ContextKey[Any]", default: object = None) -> object:
        return self.metadata.get(_key_name(key), default)

    # Typed API

    def set(self, key: ContextKey[T], value: T) -> None:
        self.metadata[key.name] = value

    def get(self, key: ContextKey[T], default: T | None = None) -> T | None:
        return self.metadata.get(key.name, default)  # type: ignore[return-value]

    def require(self, key: ContextKey[T]) -> T:
        """Return the value stored under key.

        Raises:
            ContextValueMissingError: If no earlier step stored the value
        """
        if key.name not in self.metadata:
            raise ContextValueMissingError(
                f"Context value '{key.name}' is missing in execution {self.execution_id}"
            )
        return self.metadata[key.name]  # type: ignore[return-value]

    def has(self, key: "str | ContextKey[Any]") -> bool:
        return _key_name(key) in self.metadata

    # Step bookkeeping

    def record_step(self, step_name: str) -> None:
        self._executed_steps.append(step_name)

    @property
    def executed_steps(self) -> list[str]:
        return list(self._executed_steps)

    # Compensation stack

    def push_compensation(self, step_name: str, action: CompensationAction) -> None:
        self._compensations.append(CompensationEntry(step_name=step_name, action=action))

    @property
    def pending_compensations(self) -> int:
        return len(self._compensations)

    def discard_compensations(self) -> None:
        self._compensations.clear()

    async def run_compensations(self) -> CompensationSummary:
        """Unwind the compensation stack in reverse order of registration.

        Each entry is popped before it runs, so it runs at most once. A
        failing compensation is logged and the unwinding continues.

        Returns:
            CompensationSummary with compensated and failed step names
        """
        compensated: list[str] = []
        failed: list[str] = []

        if self._compensations:
            logger.info(
                f"Compensating {len(self._compensations)} step(s) for execution {self.execution_id}"
            )

        while self._compensations:
            entry = self._compensations.pop()
            try:
                await entry.action()
            except Exception as exc:
                failed.append(entry.step_name)
                logger.error(
                    f"Compensation failed for step '{entry.step_name}' "
                    f"in execution {self.execution_id}: {exc}",
                    exc_info=True,
                )
                await self.emit(
                    COMPENSATION_FAILED,
                    {"step_name": entry.step_name, "error": str(exc)},
                )
            else:
                compensated.append(entry.step_name)
                logger.info(f"Compensated step '{entry.step_name}'")

        return CompensationSummary(compensated=compensated, failed=failed)

    # Additional aggregate locks

    def attach_lock_acquirer(self, acquirer: LockAcquirer | None, held: list[str] | None = None) -> None:
        self._lock_acquirer = acquirer
        self._held_lock_keys = set(held or [])

    @property
    def held_lock_keys(self) -> list[str]:
        return sorted(self._held_lock_keys)

    async def lock(self, *keys: str) -> None:
        """Hold further aggregate locks until the execution finishes.

        Keys are acquired in sorted order and keys this execution already
        holds are skipped. Outside the engine there is no lock manager and
        this is a no-op.

        Raises:
            WorkflowLockError: If a lock was not acquired in time
        """
        if self._lock_acquirer is None:
            return
        for key in sorted(set(keys) - self._held_lock_keys):
            await self._lock_acquirer(key)
            self._held_lock_keys.add(key)

    # Lifecycle events

    def attach_event_sink(self, sink: EventSink | None) -> None:
        self._event_sink = sink

    async def emit(self, event_name: str, payload: dict[str, object]) -> None:
        if self._event_sink is not None:
            await self._event_sink(event_name, payload)


class WorkflowResult(ABC, Generic[T]):
    """Outcome of a workflow execution: exactly one of Success or Failure."""

    def is_success(self) -> bool:
        return isinstance(self, Success)

    def is_failure(self) -> bool:
        return isinstance(self, Failure)

    @abstractmethod
    def get_or_none(self) -> T | None:
        ...

    @abstractmethod
    def get_or_raise(self) -> T:
        """Return the data, or raise the failure's error."""

    @abstractmethod
    def to_dict(self) -> dict[str, object]:
        ...

    @staticmethod
    def success(data: T) -> "Success[T]":
        return Success(data)

    @staticmethod
    def failure(error: BaseException) -> "Failure[Any]":
        return Failure(error)


@dataclass(frozen=True)
class Success(WorkflowResult[T]):
    data: T

    def get_or_none(self) -> T | None:
        return self.data

    def get_or_raise(self) -> T:
        return self.data

    def to_dict(self) -> dict[str, object]:
        return {"success": True, "data": self.data}


@dataclass(frozen=True)
class Failure(WorkflowResult[T]):
    error: BaseException

    def __post_init__(self) -> None:
        if not isinstance(self.error, BaseException):
            raise TypeError(f"Failure requires an exception, got {type(self.error).__name__}")

    @property
    def kind(self) -> ErrorKind:
        return classify(self.error)

    def get_or_none(self) -> T | None:
        return None

    def get_or_raise(self) -> T:
        raise self.error

    def to_dict(self) -> dict[str, object]:
        return {"success": False, "error": describe_error(self.error)}


@dataclass(frozen=True)
class WorkflowOptions:
    """Per-call execution options."""

    correlation_id: str | None = None
    lock_key: str | None = None
    timeout_seconds: float | None = None
    lock_wait_seconds: float | None = None
    parent_execution_id: str | None = None


@dataclass
class ExecutionRecord:
    """Summary of a finished execution, kept in the execution history."""

    execution_id: str
    workflow_name: str
    correlation_id: str | None
    status: ExecutionStatus
    started_at: datetime
    finished_at: datetime
    steps: list[str] = field(default_factory=list)
    lock_key: str | None = None
    parent_execution_id: str | None = None
    error_kind: ErrorKind | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def duration_ms(self) -> int:
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, object]:
        return {
            "execution_id": self.execution_id,
            "workflow_name": self.workflow_name,
            "correlation_id": self.correlation_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_ms": self.duration_ms,
            "steps": list(self.steps),
            "lock_key": self.lock_key,
            "parent_execution_id": self.parent_execution_id,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
