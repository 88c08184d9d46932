"""
Tests for the ticker, market statistics and daily update workflows.
"""

import pytest

from tests.fakes import FakeFeed, taipei
from tw_quant.calendar.resolver import TradingCalendarResolver
from tw_quant.features.engine import TechnicalIndicatorEngine
from tw_quant.ingestion.tasks.market_stats_tasks import build_market_stats_tasks
from tw_quant.ingestion.tasks.ticker_tasks import build_ticker_tasks
from tw_quant.orchestration.ports import CancellationToken, TaskStatus, WorkflowStatus
from tw_quant.orchestration.workflows.daily_update import (
    DailyUpdateWorkflow,
    MarketStatsUpdateWorkflow,
    TickerUpdateWorkflow,
)
from tw_quant.shared.models.enums import Exchange

DATE = "2024-03-06"


@pytest.fixture
def feeds() -> dict[str, FakeFeed]:
    return {name: FakeFeed(name) for name in ("twse", "tpex", "taifex")}


@pytest.fixture
def ticker_workflow(feeds, ticker_repository, oracle, resolver, feed_status, sleep):
    tasks = build_ticker_tasks(
        {Exchange.TWSE: feeds["twse"], Exchange.TPEX: feeds["tpex"]},
        ticker_repository,
        oracle,
        resolver,
        feed_status,
    )
    return TickerUpdateWorkflow(tasks, oracle, resolver, sleep=sleep)


@pytest.fixture
def market_stats_workflow(feeds, market_stats_repository, oracle, resolver, feed_status, sleep):
    tasks = build_market_stats_tasks(feeds, market_stats_repository, oracle, resolver, feed_status)
    return MarketStatsUpdateWorkflow(tasks, oracle, resolver, sleep=sleep)


@pytest.fixture
def daily(ticker_workflow, market_stats_workflow, ticker_repository, indicator_repository, sleep):
    engine = TechnicalIndicatorEngine(ticker_repository, indicator_repository)
    return DailyUpdateWorkflow(ticker_workflow, market_stats_workflow, engine=engine, sleep=sleep)


def quote(symbol: str, close: float) -> dict:
    return {
        "symbol": symbol,
        "name": f"name-{symbol}",
        "openPrice": close - 1,
        "highPrice": close + 2,
        "lowPrice": close - 2,
        "closePrice": close,
        "tradeVolume": 1000,
    }


class TestTickerUpdateWorkflow:
    @pytest.mark.asyncio
    async def test_holiday_fetches_nothing(self, ticker_workflow, feeds, sleep):
        result = await ticker_workflow.run("2024-04-04")

        assert result.status is WorkflowStatus.SKIPPED
        assert result.metadata == {"reason": "holiday"}
        assert feeds["twse"].calls == []
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_groups_run_in_order_with_pauses(self, ticker_workflow, feeds, sleep):
        result = await ticker_workflow.run(DATE)

        assert result.status is WorkflowStatus.SUCCESS
        assert result.metadata["groups"] == [
            "indices_quotes",
            "market_trades",
            "indices_trades",
            "equities_quotes",
            "equities_inst_investors_trades",
        ]
        assert [dataset for dataset, _ in feeds["twse"].calls] == result.metadata["groups"]
        assert sleep.delays == [5.0, 5.0, 5.0, 5.0]
        assert all(task.status is TaskStatus.NO_CHANGE for task in result.tasks)

    @pytest.mark.asyncio
    async def test_resolves_date_when_omitted(self, ticker_workflow):
        result = await ticker_workflow.run()
        assert result.date == DATE

    @pytest.mark.asyncio
    async def test_failing_task_does_not_stop_siblings(self, ticker_workflow, feeds, ticker_repository):
        feeds["twse"].responses[("equities_quotes", DATE)] = RuntimeError("boom")
        feeds["tpex"].responses[("equities_quotes", DATE)] = [quote("6488", 500.0)]

        result = await ticker_workflow.run(DATE)

        statuses = {task.name: task.status for task in result.tasks}
        assert statuses["twse_equities_quotes"] is TaskStatus.FAILED
        assert statuses["tpex_equities_quotes"] is TaskStatus.WROTE
        assert result.status is WorkflowStatus.PARTIAL
        assert result.errors == ["twse_equities_quotes: boom"]
        # later groups still ran
        assert ("equities_inst_investors_trades", DATE) in feeds["twse"].calls
        assert await ticker_repository.count() == 1

    @pytest.mark.asyncio
    async def test_cancellation_stops_before_next_group(self, ticker_workflow, feeds):
        token = CancellationToken()
        ticker_workflow.cancel_token = token
        original = feeds["twse"].fetch

        async def cancel_after_first(dataset, date):
            token.cancel()
            return await original(dataset, date)

        feeds["twse"].fetch = cancel_after_first
        result = await ticker_workflow.run(DATE)

        assert result.status is WorkflowStatus.CANCELLED
        assert result.metadata["groups"] == ["indices_quotes"]


class TestMarketStatsUpdateWorkflow:
    @pytest.mark.asyncio
    async def test_tasks_run_sequentially_with_pauses(self, market_stats_workflow, feeds, sleep):
        result = await market_stats_workflow.run(DATE)

        assert len(result.tasks) == 9
        assert sleep.delays == [2.0] * 8
        assert [dataset for dataset, _ in feeds["taifex"].calls][:2] == [
            "fini_txf_net_oi",
            "fini_txo_net_oi_value",
        ]

    @pytest.mark.asyncio
    async def test_slices_merge_into_one_document(self, market_stats_workflow, feeds, market_stats_repository):
        feeds["twse"].responses[("market_trades", DATE)] = [
            {"price": 19000.5, "change": 120.0, "tradeValue": 3.5e11}
        ]
        feeds["taifex"].responses[("exchange_rates", DATE)] = [{"usdtwd": 31.5}]

        result = await market_stats_workflow.run(DATE)

        assert result.wrote == 2
        stats = await market_stats_repository.get_by_date(DATE)
        assert stats.taiex_price == 19000.5
        assert stats.usdtwd == 31.5


class TestDailyUpdateWorkflow:
    @pytest.mark.asyncio
    async def test_holiday_short_circuits(self, daily, feeds):
        result = await daily.run("2024-04-05")

        assert result.status is WorkflowStatus.SKIPPED
        assert all(feed.calls == [] for feed in feeds.values())

    @pytest.mark.asyncio
    async def test_tickers_then_market_stats_then_indicators(self, daily, feeds, indicator_repository, sleep):
        feeds["twse"].responses[("equities_quotes", DATE)] = [quote("2330", 700.0)]

        result = await daily.run(DATE)

        assert result.status is WorkflowStatus.SUCCESS
        assert set(result.metadata) == {"tickers", "market_stats", "indicators"}
        assert len(result.tasks) == 10 + 9
        assert sleep.delays == [5.0] * 4 + [2.0] * 8
        # one row of history is below the minimum
        assert result.metadata["indicators"]["skipped"] == 1
        assert await indicator_repository.count() == 0

    @pytest.mark.asyncio
    async def test_indicators_can_be_skipped(self, daily):
        result = await daily.run(DATE, compute_indicators=False)
        assert "indicators" not in result.metadata

    @pytest.mark.asyncio
    async def test_engine_failure_marks_partial(self, daily, monkeypatch):
        async def broken(date):
            raise RuntimeError("store offline")

        monkeypatch.setattr(daily.engine, "compute_for_date", broken)
        result = await daily.run(DATE)

        assert result.status is WorkflowStatus.PARTIAL
        assert result.errors == ["indicators: store offline"]

    @pytest.mark.asyncio
    async def test_one_date_for_every_stage_between_cutoffs(
        self, ticker_workflow, feeds, market_stats_repository, oracle, feed_status, clock, sleep
    ):
        # 14:30 is past the ticker cutoff but before the market statistics one
        clock.set(taipei(2024, 3, 6, 14, 30))
        stats_resolver = TradingCalendarResolver(oracle, clock, cutoff_hour=15)
        tasks = build_market_stats_tasks(feeds, market_stats_repository, oracle, stats_resolver, feed_status)
        stats_workflow = MarketStatsUpdateWorkflow(tasks, oracle, stats_resolver, sleep=sleep)
        daily = DailyUpdateWorkflow(ticker_workflow, stats_workflow, sleep=sleep)

        result = await daily.run()

        assert result.date == DATE
        assert result.metadata["market_stats"]["date"] == DATE
        assert {date for feed in feeds.values() for _, date in feed.calls} == {DATE}
