"""
Composition root for tw-quant.

Wires together:
- Clock, document store and HTTP client
- Holiday cache, holiday oracle and the two calendar resolvers
- Ticker, market statistics and technical indicator repositories
- Feeds (TWSE, TPEx, TAIFEX) and the update tasks built on them
- Daily update, backfill and indicator engine
- Scheduler jobs from the configured cron table

The holiday cache is built once here and shared by reference, so every
component sees the same cached table.
"""

import asyncio
from datetime import timedelta

from tw_quant.calendar.holidays import HolidayCache, HolidayOracle
from tw_quant.calendar.resolver import TradingCalendarResolver
from tw_quant.config.state import ConfigState, get_config
from tw_quant.features.engine import TechnicalIndicatorEngine
from tw_quant.features.signals import SignalThresholds
from tw_quant.infrastructure.impls.system import SystemClock
from tw_quant.infrastructure.observability import get_infrastructure_logger
from tw_quant.infrastructure.ports.system import IClock
from tw_quant.ingestion.adapters.holiday_calendar import HttpHolidayCalendarSource
from tw_quant.ingestion.adapters.http_feed import HttpMarketFeed
from tw_quant.ingestion.config.value_objects import FeedEndpoint, HttpClientConfig
from tw_quant.ingestion.connectors.aiohttp_client import AiohttpClient
from tw_quant.ingestion.feed_status import FeedStatusRegistry
from tw_quant.ingestion.ports.feeds import IMarketFeed
from tw_quant.ingestion.ports.http import IHttpClient
from tw_quant.ingestion.tasks.base import UpdateTask
from tw_quant.ingestion.tasks.market_stats_tasks import build_market_stats_tasks
from tw_quant.ingestion.tasks.ticker_tasks import build_ticker_tasks
from tw_quant.orchestration.ports import CancellationToken, Sleep
from tw_quant.orchestration.scheduler import Cadence, Job, Scheduler
from tw_quant.orchestration.workflows.backfill_workflow import BackfillWorkflow
from tw_quant.orchestration.workflows.daily_update import (
    DailyUpdateWorkflow,
    MarketStatsUpdateWorkflow,
    TickerUpdateWorkflow,
)
from tw_quant.shared.models.enums import Exchange
from tw_quant.storage.adapters import create_document_store
from tw_quant.storage.ports import IDocumentStore
from tw_quant.storage.repositories.market_stats import MarketStatsRepository
from tw_quant.storage.repositories.technical_indicator import TechnicalIndicatorRepository
from tw_quant.storage.repositories.ticker import TickerRepository

logger = get_infrastructure_logger("dependency-container")

FEED_NAMES = ("twse", "tpex", "taifex")


class TwQuantContainer:
    """
    Single place where all concrete implementations are chosen.

    Usage:
        container = TwQuantContainer(get_config())
        await container.start()
        try:
            await container.daily_update.run()
        finally:
            await container.close()

    Tests pass an in-memory store, a fixed clock, fake feeds and a no-op
    sleep.
    """

    def __init__(
        self,
        config: ConfigState | None = None,
        store: IDocumentStore | None = None,
        clock: IClock | None = None,
        http_client: IHttpClient | None = None,
        feeds: dict[str, IMarketFeed] | None = None,
        sleep: Sleep = asyncio.sleep,
        cancel_token: CancellationToken | None = None,
    ):
        """
        Initialize the container.

        Args:
            config: Configuration state (loaded from config/ if None)
            store: Document store (built from database.url if None)
            clock: Exchange-local clock
            http_client: HTTP client shared by feeds and the holiday source
            feeds: Feeds by name (twse, tpex, taifex); HTTP feeds if None
            sleep: Awaitable sleep used for every inter-step delay
            cancel_token: Token shared by every workflow and the scheduler
        """
        self.config = config or get_config()
        self.clock = clock or SystemClock(self.config.calendar.timezone)
        self.store = store or create_document_store(self.config.database)
        self.http_client = http_client or AiohttpClient(HttpClientConfig())
        self.cancel_token = cancel_token or CancellationToken()
        self._sleep = sleep

        self._build_calendar()
        self._build_repositories()
        self.feeds = feeds or self._build_feeds()
        self.feed_status = FeedStatusRegistry()
        self._build_tasks()
        self._build_workflows()

        logger.info(
            "container_initialized",
            env=self.config.env,
            store=type(self.store).__name__,
            ticker_tasks=len(self.ticker_tasks),
            market_stats_tasks=len(self.market_stats_tasks),
        )

    # ==================== Calendar ====================

    def _build_calendar(self) -> None:
        holidays = self.config.holidays
        calendar = self.config.calendar

        self.holiday_cache = HolidayCache(
            self.clock, ttl=timedelta(hours=holidays.cache_ttl_hours)
        )
        source = (
            HttpHolidayCalendarSource(
                self.http_client, holidays.source_url, timeout=holidays.timeout
            )
            if holidays.source_url
            else None
        )
        self.oracle = HolidayOracle(
            self.holiday_cache,
            source=source,
            known_holidays=holidays.known,
            max_lookahead_days=calendar.max_lookback_days,
        )
        self.ticker_resolver = TradingCalendarResolver(
            self.oracle,
            self.clock,
            cutoff_hour=calendar.ticker_cutoff_hour,
            max_lookback_days=calendar.max_lookback_days,
        )
        self.market_stats_resolver = TradingCalendarResolver(
            self.oracle,
            self.clock,
            cutoff_hour=calendar.market_stats_cutoff_hour,
            max_lookback_days=calendar.max_lookback_days,
        )

    # ==================== Storage ====================

    def _build_repositories(self) -> None:
        database = self.config.database
        self.ticker_repository = TickerRepository(
            self.store, self.clock, database.tickers_collection
        )
        self.market_stats_repository = MarketStatsRepository(
            self.store, self.clock, database.market_stats_collection
        )
        self.indicator_repository = TechnicalIndicatorRepository(
            self.store, self.clock, database.technical_indicators_collection
        )

    # ==================== Ingestion ====================

    def _build_feeds(self) -> dict[str, IMarketFeed]:
        return {
            name: HttpMarketFeed(
                FeedEndpoint.from_config(name, getattr(self.config.feeds, name)),
                self.http_client,
            )
            for name in FEED_NAMES
        }

    def _build_tasks(self) -> None:
        board_feeds = {Exchange.TWSE: self.feeds["twse"], Exchange.TPEX: self.feeds["tpex"]}
        self.ticker_tasks = build_ticker_tasks(
            board_feeds,
            self.ticker_repository,
            self.oracle,
            self.ticker_resolver,
            self.feed_status,
        )
        self.market_stats_tasks = build_market_stats_tasks(
            self.feeds,
            self.market_stats_repository,
            self.oracle,
            self.market_stats_resolver,
            self.feed_status,
        )

    @property
    def tasks(self) -> dict[str, UpdateTask]:
        """Every update task by name, independently callable."""
        return {**self.ticker_tasks, **{task.name: task for task in self.market_stats_tasks}}

    # ==================== Workflows ====================

    def _build_workflows(self) -> None:
        orchestration = self.config.orchestration
        indicators = self.config.indicators

        self.engine = TechnicalIndicatorEngine(
            self.ticker_repository,
            self.indicator_repository,
            lookback=indicators.lookback,
            min_history=indicators.min_history,
            fidelity=indicators.fidelity,
            thresholds=SignalThresholds(
                rsi_overbought=indicators.rsi_overbought,
                rsi_oversold=indicators.rsi_oversold,
                volume_breakout_ratio=indicators.volume_breakout_ratio,
            ),
        )
        self.ticker_workflow = TickerUpdateWorkflow(
            self.ticker_tasks,
            self.oracle,
            self.ticker_resolver,
            group_delay_seconds=orchestration.ticker_group_delay_seconds,
            sleep=self._sleep,
            cancel_token=self.cancel_token,
        )
        self.market_stats_workflow = MarketStatsUpdateWorkflow(
            self.market_stats_tasks,
            self.oracle,
            self.market_stats_resolver,
            task_delay_seconds=orchestration.market_task_delay_seconds,
            sleep=self._sleep,
            cancel_token=self.cancel_token,
        )
        self.daily_update = DailyUpdateWorkflow(
            self.ticker_workflow,
            self.market_stats_workflow,
            engine=self.engine,
            sleep=self._sleep,
            cancel_token=self.cancel_token,
        )
        self.backfill = BackfillWorkflow(
            self.engine,
            self.oracle,
            self.ticker_repository,
            self.indicator_repository,
            ingestion=self.daily_update,
            date_delay_seconds=orchestration.backfill_date_delay_seconds,
            sleep=self._sleep,
            cancel_token=self.cancel_token,
        )

    async def compute_indicators(self, date: str | None = None):
        target = date or await self.ticker_resolver.resolve_target_date()
        return await self.engine.compute_for_date(target)

    def _job_for(self, name: str) -> Job:
        if name in self.tasks:
            return self.tasks[name]
        if name == "market_stats":
            return self.market_stats_workflow.run
        if name == "technical_indicators":
            return self.compute_indicators
        if name == "daily_update":
            return self.daily_update.run
        raise ValueError(f"Unknown scheduled job: {name}")

    def build_scheduler(self) -> Scheduler:
        """Scheduler with one job per entry of the configured cron table."""
        scheduler = Scheduler(
            clock=self.clock, poll_seconds=self.config.orchestration.scheduler_poll_seconds
        )
        for name, expr in self.config.schedule.jobs.items():
            scheduler.add_job(name, Cadence.from_cron(expr), self._job_for(name))
        return scheduler

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        await self.store.connect()

    async def close(self) -> None:
        """Release the HTTP session and the store connection."""
        await self.http_client.close()
        await self.store.close()
        logger.info("container_closed")
