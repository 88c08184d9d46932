"""
Orchestration Layer - Update Workflows and Scheduling
=====================================================

    Scheduler (cadence -> job)
        │
        ▼
    DailyUpdateWorkflow
        ├── TickerUpdateWorkflow       groups in order, concurrent inside a group
        ├── MarketStatsUpdateWorkflow  one task at a time
        └── TechnicalIndicatorEngine   optional, for the ticker date

    BackfillWorkflow                   date by date, never raises
"""

from .ports import CancellationToken, DateStatus, TaskStatus, WorkflowError, WorkflowStatus
from .scheduler import Cadence, ScheduledJob, Scheduler

__all__ = [
    "Cadence",
    "CancellationToken",
    "DateStatus",
    "ScheduledJob",
    "Scheduler",
    "TaskStatus",
    "WorkflowError",
    "WorkflowStatus",
]
