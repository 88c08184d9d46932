"""
In-process scheduler.

An explicit table of ``Cadence -> job``. Each poll checks which jobs are due
for the current minute and runs each one at most once per minute slot.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tw_quant.infrastructure.observability import get_pipeline_logger
from tw_quant.infrastructure.ports.system import IClock
from tw_quant.orchestration.ports import CancellationToken

logger = get_pipeline_logger("scheduler")

Job = Callable[[], Awaitable[Any]]

ALL_WEEKDAYS = frozenset(range(7))


def _parse_field(expr: str, low: int, high: int) -> frozenset[int]:
    """Expand one cron field (``*``, ``a-b``, ``*/n``, ``a-b/n``, lists)."""
    values: set[int] = set()
    for part in expr.split(","):
        base, _, step_text = part.partition("/")
        step = int(step_text) if step_text else 1
        if step <= 0:
            raise ValueError(f"invalid step in {expr!r}")
        if base == "*":
            start, end = low, high
        elif "-" in base:
            start, end = (int(v) for v in base.split("-", 1))
        else:
            start = int(base)
            end = high if step_text else start
        if start < low or end > high or start > end:
            raise ValueError(f"{expr!r} outside {low}-{high}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


@dataclass(frozen=True)
class Cadence:
    """
    When a job runs: a set of hours, minutes and weekdays.

    Weekdays follow Python's ``datetime.weekday()`` (Monday = 0).
    """

    hours: frozenset[int]
    minutes: frozenset[int]
    weekdays: frozenset[int] = ALL_WEEKDAYS

    @classmethod
    def at(cls, hour: int, minute: int = 0, weekdays: frozenset[int] = ALL_WEEKDAYS) -> "Cadence":
        return cls(hours=frozenset({hour}), minutes=frozenset({minute}), weekdays=weekdays)

    @classmethod
    def from_cron(cls, expr: str) -> "Cadence":
        """
        Build from a five-field cron expression.

        Day-of-month and month must be ``*``. Cron weekdays (Sunday = 0 or
        7) are converted to Python weekdays.
        """
        fields = expr.split()
        if len(fields) != 5:
            raise ValueError(f"expected 5 cron fields, got {expr!r}")
        minute, hour, day_of_month, month, day_of_week = fields
        if day_of_month != "*" or month != "*":
            raise ValueError(f"day-of-month and month must be '*' in {expr!r}")

        cron_days = _parse_field(day_of_week, 0, 7)
        return cls(
            hours=_parse_field(hour, 0, 23),
            minutes=_parse_field(minute, 0, 59),
            weekdays=frozenset((day - 1) % 7 for day in cron_days),
        )

    def matches(self, moment: datetime) -> bool:
        return (
            moment.weekday() in self.weekdays
            and moment.hour in self.hours
            and moment.minute in self.minutes
        )


@dataclass
class ScheduledJob:
    name: str
    cadence: Cadence
    job: Job
    last_slot: datetime | None = None
    runs: int = 0
    failures: int = 0


def _slot(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)


@dataclass
class Scheduler:
    """
    Poll loop over registered jobs.

    Due jobs start as background tasks so polling continues while they run.
    A failing job is logged and does not affect the others. A job whose
    previous run is still in progress skips the new slot.
    """

    clock: IClock
    poll_seconds: float = 30.0
    jobs: dict[str, ScheduledJob] = field(default_factory=dict)
    _running: dict[str, asyncio.Task] = field(default_factory=dict, init=False, repr=False)

    def add_job(self, name: str, cadence: Cadence, job: Job) -> ScheduledJob:
        if name in self.jobs:
            raise ValueError(f"job {name!r} already registered")
        scheduled = ScheduledJob(name=name, cadence=cadence, job=job)
        self.jobs[name] = scheduled
        logger.info("job_registered", job=name)
        return scheduled

    def due(self, now: datetime | None = None) -> list[ScheduledJob]:
        """Jobs whose cadence matches ``now`` and that have not run in this minute."""
        moment = now or self.clock.now()
        slot = _slot(moment)
        return [
            job
            for job in self.jobs.values()
            if job.cadence.matches(moment) and job.last_slot != slot
        ]

    @property
    def running(self) -> list[str]:
        return [name for name, task in self._running.items() if not task.done()]

    async def _run_job(self, job: ScheduledJob) -> None:
        log = logger.bind(job=job.name)
        log.info("job_started")
        try:
            await job.job()
        except Exception as e:
            job.failures += 1
            log.error("job_failed", error=str(e))
            return
        job.runs += 1
        log.info("job_completed")

    def start_due(self, now: datetime | None = None) -> dict[str, asyncio.Task]:
        """Start every due job as a task and return the started ones by name."""
        moment = now or self.clock.now()
        started: dict[str, asyncio.Task] = {}
        for job in self.due(moment):
            job.last_slot = _slot(moment)
            if job.name in self.running:
                logger.warning("job_still_running", job=job.name, slot=job.last_slot.isoformat())
                continue
            task = asyncio.create_task(self._run_job(job), name=f"job:{job.name}")
            self._running[job.name] = task
            started[job.name] = task
        return started

    async def tick(self, now: datetime | None = None) -> list[str]:
        """Run every due job once and wait for them; returns the names that ran."""
        started = self.start_due(now)
        await asyncio.gather(*started.values())
        return list(started)

    async def run_forever(self, cancel_token: CancellationToken | None = None) -> None:
        """Poll until cancelled, then wait for jobs still in flight."""
        token = cancel_token or CancellationToken()
        logger.info("scheduler_started", jobs=sorted(self.jobs), poll_seconds=self.poll_seconds)
        while not token.cancelled:
            self.start_due()
            if await token.wait(self.poll_seconds):
                break
        if in_flight := self.running:
            logger.info("scheduler_draining", jobs=in_flight)
            await asyncio.gather(*(self._running[name] for name in in_flight))
        logger.info("scheduler_stopped")
