"""
Daily Update Workflows
======================

Ticker groups run one after another in a fixed order with a pause between
groups; tasks inside a group run concurrently. Market statistics tasks run
one at a time with a pause between tasks. The daily workflow chains both
and optionally recomputes the day's technical indicators.
"""

import asyncio
import time
from collections.abc import Sequence

from tw_quant.calendar.holidays import HolidayOracle
from tw_quant.calendar.resolver import TradingCalendarResolver
from tw_quant.features.engine import TechnicalIndicatorEngine
from tw_quant.ingestion.tasks.base import UpdateTask
from tw_quant.ingestion.tasks.ticker_tasks import ticker_groups
from tw_quant.orchestration.ports import CancellationToken, Sleep, WorkflowStatus
from tw_quant.orchestration.workflows.base import (
    BaseWorkflow,
    TaskOutcome,
    WorkflowResult,
    run_task,
    run_task_group,
)


class TickerUpdateWorkflow(BaseWorkflow):
    name = "ticker_update"

    def __init__(
        self,
        tasks: dict[str, UpdateTask],
        oracle: HolidayOracle,
        resolver: TradingCalendarResolver,
        group_delay_seconds: float = 5.0,
        sleep: Sleep = asyncio.sleep,
        cancel_token: CancellationToken | None = None,
    ):
        super().__init__(sleep=sleep, cancel_token=cancel_token)
        self.tasks = tasks
        self.oracle = oracle
        self.resolver = resolver
        self.group_delay_seconds = group_delay_seconds

    async def run(self, date: str | None = None, force: bool = False) -> WorkflowResult:
        """
        Run every ticker group for one trading date.

        Args:
            date: Trading date; resolved with the ticker cutoff when omitted
            force: Bypass each task's existence firewall
        """
        started = time.monotonic()
        target = date or await self.resolver.resolve_target_date()
        if await self.oracle.is_holiday(target):
            return self._holiday(target, started)

        self._status = WorkflowStatus.RUNNING
        log = self._logger.bind(date=target)
        outcomes: list[TaskOutcome] = []
        completed_groups: list[str] = []

        for index, (group, members) in enumerate(ticker_groups(self.tasks)):
            if self.cancelled:
                log.warning("workflow_cancelled", remaining_from=group)
                break
            if index > 0:
                await self.pause(self.group_delay_seconds)

            log.info("group_started", group=group, tasks=[task.name for task in members])
            outcomes.extend(await run_task_group(members, target, force))
            completed_groups.append(group)

        result = self._finish(target, started, outcomes, groups=completed_groups)
        log.info("workflow_completed", status=result.status.value, wrote=result.wrote)
        return result


class MarketStatsUpdateWorkflow(BaseWorkflow):
    name = "market_stats_update"

    def __init__(
        self,
        tasks: Sequence[UpdateTask],
        oracle: HolidayOracle,
        resolver: TradingCalendarResolver,
        task_delay_seconds: float = 2.0,
        sleep: Sleep = asyncio.sleep,
        cancel_token: CancellationToken | None = None,
    ):
        super().__init__(sleep=sleep, cancel_token=cancel_token)
        self.tasks = list(tasks)
        self.oracle = oracle
        self.resolver = resolver
        self.task_delay_seconds = task_delay_seconds

    async def run(self, date: str | None = None, force: bool = False) -> WorkflowResult:
        """Run the market statistics tasks sequentially for one trading date."""
        started = time.monotonic()
        target = date or await self.resolver.resolve_target_date()
        if await self.oracle.is_holiday(target):
            return self._holiday(target, started)

        self._status = WorkflowStatus.RUNNING
        log = self._logger.bind(date=target)
        outcomes: list[TaskOutcome] = []

        for index, task in enumerate(self.tasks):
            if self.cancelled:
                log.warning("workflow_cancelled", remaining_from=task.name)
                break
            if index > 0:
                await self.pause(self.task_delay_seconds)
            outcomes.append(await run_task(task, target, force))

        result = self._finish(target, started, outcomes)
        log.info("workflow_completed", status=result.status.value, wrote=result.wrote)
        return result


class DailyUpdateWorkflow(BaseWorkflow):
    """Tickers, then market statistics, then (optionally) indicators."""

    name = "daily_update"

    def __init__(
        self,
        ticker_workflow: TickerUpdateWorkflow,
        market_stats_workflow: MarketStatsUpdateWorkflow,
        engine: TechnicalIndicatorEngine | None = None,
        sleep: Sleep = asyncio.sleep,
        cancel_token: CancellationToken | None = None,
    ):
        super().__init__(sleep=sleep, cancel_token=cancel_token)
        self.ticker_workflow = ticker_workflow
        self.market_stats_workflow = market_stats_workflow
        self.engine = engine

    async def run(
        self,
        date: str | None = None,
        force: bool = False,
        compute_indicators: bool = True,
    ) -> WorkflowResult:
        """
        Run the full daily update.

        Without ``date`` the target is resolved once with the ticker cutoff
        and every stage (market statistics and indicators included) uses it.
        """
        started = time.monotonic()
        self._status = WorkflowStatus.RUNNING

        tickers = await self.ticker_workflow.run(date, force=force)
        if tickers.status is WorkflowStatus.SKIPPED:
            return self._holiday(tickers.date, started)

        outcomes = list(tickers.tasks)
        metadata = {"tickers": tickers.to_dict()}

        if not self.cancelled:
            market_stats = await self.market_stats_workflow.run(tickers.date, force=force)
            outcomes.extend(market_stats.tasks)
            metadata["market_stats"] = market_stats.to_dict()

        if compute_indicators and self.engine is not None and not self.cancelled:
            try:
                computed = await self.engine.compute_for_date(tickers.date)
                metadata["indicators"] = computed.to_dict()
            except Exception as e:
                self._logger.error("indicators_failed", date=tickers.date, error=str(e))
                metadata["indicators"] = {"date": tickers.date, "error": str(e)}

        result = self._finish(tickers.date, started, outcomes, **metadata)
        if "error" in metadata.get("indicators", {}) and result.status is WorkflowStatus.SUCCESS:
            result.status = self._status = WorkflowStatus.PARTIAL
            result.errors.append(f"indicators: {metadata['indicators']['error']}")
        return result
