"""
Backfill Workflow Implementation
================================

Recomputes technical indicators (and optionally re-runs ingestion) over a
list or range of dates, one date at a time with a fixed pause between
dates. The run never raises: every date ends up in the report as
success, error or skipped.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from tw_quant.calendar.holidays import HolidayOracle
from tw_quant.common.utils.date_utils import date_range, format_date
from tw_quant.features.engine import TechnicalIndicatorEngine
from tw_quant.infrastructure.observability import trading_date_context
from tw_quant.orchestration.ports import (
    CancellationToken,
    DateStatus,
    Sleep,
    WorkflowError,
    WorkflowStatus,
)
from tw_quant.orchestration.workflows.base import BaseWorkflow
from tw_quant.orchestration.workflows.daily_update import DailyUpdateWorkflow
from tw_quant.storage.repositories.technical_indicator import TechnicalIndicatorRepository
from tw_quant.storage.repositories.ticker import TickerRepository


@dataclass
class BackfillRequest:
    """Parameters of a backfill request."""

    start_date: str | None = None
    end_date: str | None = None
    dates: list[str] | None = None
    discover_missing: bool = False  # ticker dates without indicator snapshots
    only_available_dates: bool = False  # range mode: only dates with ticker rows
    include_ingestion: bool = False
    force: bool = False

    def validate(self) -> None:
        """Raise WorkflowError when the request names no dates."""
        if self.dates:
            for value in self.dates:
                format_date(value)
            return
        if self.discover_missing:
            return
        if not self.start_date or not self.end_date:
            raise WorkflowError("request needs dates, start_date/end_date or discover_missing")
        if format_date(self.start_date) > format_date(self.end_date):
            raise WorkflowError(f"start_date {self.start_date} is after end_date {self.end_date}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BackfillRequest":
        known = set(cls.__dataclass_fields__)
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass
class MissingDatesReport:
    total_ticker_dates: int
    total_tech_dates: int
    missing_dates: list[str]

    @property
    def missing_count(self) -> int:
        return len(self.missing_dates)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_ticker_dates": self.total_ticker_dates,
            "total_tech_dates": self.total_tech_dates,
            "missing_dates": self.missing_dates,
            "missing_count": self.missing_count,
        }


@dataclass
class DateOutcome:
    date: str
    status: DateStatus
    error: str | None = None
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"date": self.date, "status": self.status.value}
        if self.error:
            data["error"] = self.error
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class BackfillReport:
    """Result of a backfill run."""

    status: WorkflowStatus
    results: list[DateOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def _count(self, status: DateStatus) -> int:
        return sum(1 for outcome in self.results if outcome.status is status)

    @property
    def succeeded(self) -> int:
        return self._count(DateStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return self._count(DateStatus.ERROR)

    @property
    def skipped(self) -> int:
        return self._count(DateStatus.SKIPPED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "total": len(self.results),
            "success": self.succeeded,
            "error": self.failed,
            "skipped": self.skipped,
            "results": [outcome.to_dict() for outcome in self.results],
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
        }


class BackfillWorkflow(BaseWorkflow):
    """
    Coordinates indicator backfill over historical dates.

    Responsibilities:
    - Expand the request into an ordered list of dates
    - Skip holidays without touching feeds or the engine
    - Optionally re-run the daily ingestion for a date first
    - Capture each date's failure and keep going
    """

    name = "backfill"

    def __init__(
        self,
        engine: TechnicalIndicatorEngine,
        oracle: HolidayOracle,
        ticker_repository: TickerRepository,
        indicator_repository: TechnicalIndicatorRepository,
        ingestion: DailyUpdateWorkflow | None = None,
        date_delay_seconds: float = 1.0,
        sleep: Sleep = asyncio.sleep,
        cancel_token: CancellationToken | None = None,
    ):
        """
        Initialize backfill workflow.

        Args:
            engine: Indicator engine
            oracle: Holiday oracle
            ticker_repository: Source of available ticker dates
            indicator_repository: Source of dates already computed
            ingestion: Daily workflow used when a request asks for ingestion
            date_delay_seconds: Pause between dates
            sleep: Awaitable sleep, injectable for tests
            cancel_token: Optional cooperative cancellation
        """
        super().__init__(sleep=sleep, cancel_token=cancel_token)
        self.engine = engine
        self.oracle = oracle
        self.ticker_repository = ticker_repository
        self.indicator_repository = indicator_repository
        self.ingestion = ingestion
        self.date_delay_seconds = date_delay_seconds

    async def find_missing_dates(self) -> MissingDatesReport:
        """Dates with ticker rows but no indicator snapshots, ascending."""
        ticker_dates = set(await self.ticker_repository.get_all_dates())
        tech_dates = set(await self.indicator_repository.get_all_dates())
        return MissingDatesReport(
            total_ticker_dates=len(ticker_dates),
            total_tech_dates=len(tech_dates),
            missing_dates=sorted(ticker_dates - tech_dates),
        )

    async def resolve_dates(self, request: BackfillRequest) -> list[str]:
        if request.dates:
            return sorted({format_date(value) for value in request.dates})

        if request.discover_missing:
            missing = (await self.find_missing_dates()).missing_dates
            if request.start_date:
                missing = [d for d in missing if d >= format_date(request.start_date)]
            if request.end_date:
                missing = [d for d in missing if d <= format_date(request.end_date)]
            return missing

        start, end = format_date(request.start_date), format_date(request.end_date)
        if request.only_available_dates:
            return sorted(await self.ticker_repository.get_available_dates(start, end))
        return date_range(start, end)

    async def _process_date(self, date: str, request: BackfillRequest) -> DateOutcome:
        if await self.oracle.is_holiday(date):
            return DateOutcome(date=date, status=DateStatus.SKIPPED, reason="holiday")

        details: dict[str, Any] = {}
        try:
            with trading_date_context(date, workflow=self.name):
                if request.include_ingestion and self.ingestion is not None:
                    ingested = await self.ingestion.run(
                        date, force=request.force, compute_indicators=False
                    )
                    details["ingestion"] = ingested.to_dict()

                computed = await self.engine.compute_for_date(date)
                details["indicators"] = computed.to_dict()
        except Exception as e:
            self._logger.error("backfill_date_failed", date=date, error=str(e))
            return DateOutcome(date=date, status=DateStatus.ERROR, error=str(e))

        if computed.total > 0 and computed.failed == computed.total:
            return DateOutcome(
                date=date,
                status=DateStatus.ERROR,
                error=f"all {computed.total} symbols failed",
                details=details,
            )
        return DateOutcome(date=date, status=DateStatus.SUCCESS, details=details)

    async def run(self, request: BackfillRequest) -> BackfillReport:
        """
        Execute the backfill.

        Returns:
            Report with one entry per resolved date
        """
        started = time.monotonic()
        self._status = WorkflowStatus.RUNNING
        log = self._logger

        try:
            request.validate()
            dates = await self.resolve_dates(request)
        except (WorkflowError, ValueError) as e:
            log.error("backfill_rejected", error=str(e))
            self._status = WorkflowStatus.FAILED
            return BackfillReport(status=WorkflowStatus.FAILED, errors=[str(e)])
        except Exception as e:
            # missing-date discovery and available-date lookups read the store
            log.error("backfill_dates_unresolved", error=str(e), error_type=type(e).__name__)
            self._status = WorkflowStatus.FAILED
            return BackfillReport(
                status=WorkflowStatus.FAILED,
                errors=[f"resolving dates failed: {e}"],
                duration_seconds=round(time.monotonic() - started, 3),
            )

        log.info("backfill_started", dates=len(dates))
        report = BackfillReport(status=WorkflowStatus.RUNNING)

        for index, date in enumerate(dates):
            if self.cancelled:
                report.results.append(
                    DateOutcome(date=date, status=DateStatus.SKIPPED, reason="cancelled")
                )
                continue
            if index > 0:
                await self.pause(self.date_delay_seconds)

            outcome = await self._process_date(date, request)
            log.info("backfill_date_done", date=date, status=outcome.status.value)
            report.results.append(outcome)

        if self.cancelled:
            report.status = WorkflowStatus.CANCELLED
        elif report.failed:
            report.status = WorkflowStatus.PARTIAL
        else:
            report.status = WorkflowStatus.SUCCESS
        self._status = report.status
        report.errors = [f"{o.date}: {o.error}" for o in report.results if o.error]
        report.duration_seconds = round(time.monotonic() - started, 3)

        log.info(
            "backfill_completed",
            status=report.status.value,
            success=report.succeeded,
            error=report.failed,
            skipped=report.skipped,
        )
        return report
