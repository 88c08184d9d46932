"""Workflow implementations."""

from .backfill_workflow import BackfillReport, BackfillRequest, BackfillWorkflow, MissingDatesReport
from .base import TaskOutcome, WorkflowResult, run_task_group
from .daily_update import DailyUpdateWorkflow, MarketStatsUpdateWorkflow, TickerUpdateWorkflow

__all__ = [
    "BackfillReport",
    "BackfillRequest",
    "BackfillWorkflow",
    "DailyUpdateWorkflow",
    "MarketStatsUpdateWorkflow",
    "MissingDatesReport",
    "TaskOutcome",
    "TickerUpdateWorkflow",
    "WorkflowResult",
    "run_task_group",
]
