"""Execution history - records finished executions for inspection."""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass

from core.domain.enums.execution_status import ExecutionStatus

from .models import ExecutionRecord


@dataclass(frozen=True)
class WorkflowStatistics:
    """Aggregated outcome counts for one workflow name."""

    workflow_name: str
    total: int
    succeeded: int
    failed: int
    timed_out: int
    average_duration_ms: int

    def to_dict(self) -> dict[str, object]:
        return {
            "workflow_name": self.workflow_name,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "timed_out": self.timed_out,
            "average_duration_ms": self.average_duration_ms,
        }


class ExecutionRecorder(ABC):
    """Sink for finished executions."""

    @abstractmethod
    async def record(self, record: ExecutionRecord) -> None:
        ...

    @abstractmethod
    async def get(self, execution_id: str) -> ExecutionRecord | None:
        ...

    @abstractmethod
    async def list_recent(
        self, workflow_name: str | None = None, limit: int = 50
    ) -> list[ExecutionRecord]:
        ...

    async def statistics(self, workflow_name: str) -> WorkflowStatistics:
        """Outcome counts over the retained executions of a workflow."""
        records = await self.list_recent(workflow_name, limit=0)
        durations = [r.duration_ms for r in records]
        return WorkflowStatistics(
            workflow_name=workflow_name,
            total=len(records),
            succeeded=sum(1 for r in records if r.status == ExecutionStatus.SUCCESS),
            failed=sum(1 for r in records if r.status == ExecutionStatus.FAILED),
            timed_out=sum(1 for r in records if r.status == ExecutionStatus.TIMED_OUT),
            average_duration_ms=int(sum(durations) / len(durations)) if durations else 0,
        )


class InMemoryExecutionRecorder(ExecutionRecorder):
    """Bounded in-memory history; the oldest records are evicted first."""

    def __init__(self, max_records: int = 1000) -> None:
        self._records: deque[ExecutionRecord] = deque(maxlen=max_records)

    async def record(self, record: ExecutionRecord) -> None:
        self._records.append(record)

    async def get(self, execution_id: str) -> ExecutionRecord | None:
        for record in reversed(self._records):
            if record.execution_id == execution_id:
                return record
        return None

    async def list_recent(
        self, workflow_name: str | None = None, limit: int = 50
    ) -> list[ExecutionRecord]:
        """Newest first. A limit of 0 returns every retained record."""
        matching = [
            r for r in reversed(self._records)
            if workflow_name is None or r.workflow_name == workflow_name
        ]
        return matching[:limit] if limit > 0 else matching
