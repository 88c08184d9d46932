"""
Orchestration Layer Protocol Definitions
=========================================

Status vocabularies and the small protocols the workflows depend on, so
tests can inject a no-op sleep and a pre-set cancellation token.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol, runtime_checkable


class WorkflowStatus(str, Enum):
    """Workflow execution status."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"  # finished, some tasks failed
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"  # holiday


class TaskStatus(str, Enum):
    """Outcome of one update task call."""

    WROTE = "wrote"  # task returned True
    NO_CHANGE = "no_change"  # task returned False
    HOLIDAY = "holiday"  # task returned None
    FAILED = "failed"  # task raised

    @classmethod
    def from_result(cls, result: bool | None) -> "TaskStatus":
        if result is None:
            return cls.HOLIDAY
        return cls.WROTE if result else cls.NO_CHANGE


class DateStatus(str, Enum):
    """Per-date backfill status."""

    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


Sleep = Callable[[float], Awaitable[None]]


@runtime_checkable
class IUpdateTask(Protocol):
    """A named async update callable: ``(date) -> True | False | None``."""

    name: str

    async def __call__(self, date: str | None = None, force: bool = False) -> bool | None: ...


class CancellationToken:
    """Cooperative cancellation checked between groups, dates and scheduler polls."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait until cancelled or ``timeout`` elapses; returns ``cancelled``."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except TimeoutError:
            pass
        return self.cancelled


class WorkflowError(Exception):
    """Base exception for workflow errors."""


__all__ = [
    "CancellationToken",
    "DateStatus",
    "IUpdateTask",
    "Sleep",
    "TaskStatus",
    "WorkflowError",
    "WorkflowStatus",
]
