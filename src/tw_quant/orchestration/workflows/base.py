"""
Base Workflow Implementation
============================

Result types shared by the workflows and the concurrent task-group runner.
"""

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from tw_quant.infrastructure.observability import get_pipeline_logger, trading_date_context
from tw_quant.orchestration.ports import (
    CancellationToken,
    IUpdateTask,
    Sleep,
    TaskStatus,
    WorkflowStatus,
)

logger = get_pipeline_logger("workflow")


@dataclass
class TaskOutcome:
    """Captured result of one task call."""

    name: str
    status: TaskStatus
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {"name": self.name, "status": self.status.value}
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class WorkflowResult:
    """Result of workflow execution."""

    workflow: str
    date: str | None
    status: WorkflowStatus
    duration_seconds: float = 0.0
    tasks: list[TaskOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def wrote(self) -> int:
        return sum(1 for task in self.tasks if task.status is TaskStatus.WROTE)

    @property
    def failed(self) -> int:
        return sum(1 for task in self.tasks if task.status is TaskStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "workflow": self.workflow,
            "date": self.date,
            "status": self.status.value,
            "duration_seconds": self.duration_seconds,
            "tasks": [task.to_dict() for task in self.tasks],
            "errors": self.errors,
            "metadata": self.metadata,
        }


async def run_task(task: IUpdateTask, date: str | None, force: bool = False) -> TaskOutcome:
    """Call one task, turning an exception into a FAILED outcome."""
    try:
        with trading_date_context(date, task=task.name):
            result = await task(date, force=force)
    except Exception as e:
        logger.error("task_failed", task=task.name, date=date, error=str(e))
        return TaskOutcome(name=task.name, status=TaskStatus.FAILED, error=str(e))
    return TaskOutcome(name=task.name, status=TaskStatus.from_result(result))


async def run_task_group(
    tasks: Sequence[IUpdateTask], date: str | None, force: bool = False
) -> list[TaskOutcome]:
    """
    Run sibling tasks concurrently.

    Each task's failure is captured in its own outcome; siblings keep
    running and are never cancelled.
    """
    return list(await asyncio.gather(*(run_task(task, date, force) for task in tasks)))


class BaseWorkflow:
    """
    Base class for the update workflows.

    Holds the injectable pause between steps and the optional cancellation
    token, and measures durations.
    """

    name = "workflow"

    def __init__(self, sleep: Sleep = asyncio.sleep, cancel_token: CancellationToken | None = None):
        self._sleep = sleep
        self.cancel_token = cancel_token
        self._status = WorkflowStatus.PENDING
        self._logger = get_pipeline_logger("workflow", workflow=self.name)

    @property
    def cancelled(self) -> bool:
        return self.cancel_token is not None and self.cancel_token.cancelled

    async def pause(self, seconds: float) -> None:
        if seconds > 0:
            await self._sleep(seconds)

    def get_status(self) -> WorkflowStatus:
        return self._status

    def _finish(
        self, date: str | None, started: float, outcomes: list[TaskOutcome], **metadata: Any
    ) -> WorkflowResult:
        if self.cancelled:
            status = WorkflowStatus.CANCELLED
        elif any(outcome.status is TaskStatus.FAILED for outcome in outcomes):
            status = WorkflowStatus.PARTIAL
        else:
            status = WorkflowStatus.SUCCESS
        self._status = status
        return WorkflowResult(
            workflow=self.name,
            date=date,
            status=status,
            duration_seconds=round(time.monotonic() - started, 3),
            tasks=outcomes,
            errors=[f"{o.name}: {o.error}" for o in outcomes if o.error],
            metadata=metadata,
        )

    def _holiday(self, date: str, started: float) -> WorkflowResult:
        self._status = WorkflowStatus.SKIPPED
        self._logger.info("workflow_skipped_holiday", date=date)
        return WorkflowResult(
            workflow=self.name,
            date=date,
            status=WorkflowStatus.SKIPPED,
            duration_seconds=round(time.monotonic() - started, 3),
            metadata={"reason": "holiday"},
        )
