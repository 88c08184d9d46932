"""
Tests for the update task pipeline and the record builders.
"""

import pytest

from tests.fakes import FakeFeed
from tw_quant.ingestion.feed_status import FeedIssue, FeedStatusRegistry, IssueStatus
from tw_quant.ingestion.tasks.base import pick
from tw_quant.ingestion.tasks.market_stats_tasks import (
    MARKET_STATS_TASK_SPECS,
    build_market_stats,
    build_market_stats_tasks,
)
from tw_quant.ingestion.tasks.ticker_tasks import (
    TICKER_TASK_SPECS,
    build_ticker,
    build_ticker_tasks,
    ticker_groups,
)
from tw_quant.ingestion.ports.feeds import TickerDataset
from tw_quant.shared.exceptions import FeedUnavailable, InvalidRecordError
from tw_quant.shared.models.enums import Exchange, Market, TickerType

DATE = "2024-03-06"


@pytest.fixture
def twse() -> FakeFeed:
    return FakeFeed("twse")


@pytest.fixture
def tasks(twse, ticker_repository, oracle, resolver, feed_status):
    return build_ticker_tasks(
        {Exchange.TWSE: twse, Exchange.TPEX: FakeFeed("tpex")},
        ticker_repository,
        oracle,
        resolver,
        feed_status,
    )


@pytest.fixture
def quotes_task(tasks):
    return tasks["twse_equities_quotes"]


def quote(symbol: str, close: float) -> dict:
    return {"symbol": symbol, "name": "TSMC", "closePrice": close, "tradeVolume": 1000}


class TestUpdateTask:
    @pytest.mark.asyncio
    async def test_writes_new_rows(self, quotes_task, twse, ticker_repository):
        twse.responses[("equities_quotes", DATE)] = [quote("2330", 700.0), quote("2317", 150.0)]

        assert await quotes_task(DATE) is True
        assert await ticker_repository.count() == 2

    @pytest.mark.asyncio
    async def test_holiday_returns_none_without_fetching(self, quotes_task, twse):
        assert await quotes_task("2024-04-04") is None
        assert twse.calls == []

    @pytest.mark.asyncio
    async def test_existing_slice_blocks_refetch(self, quotes_task, twse):
        twse.responses[("equities_quotes", DATE)] = [quote("2330", 700.0)]
        await quotes_task(DATE)

        assert await quotes_task(DATE) is False
        assert len(twse.calls) == 1

    @pytest.mark.asyncio
    async def test_force_bypasses_firewall_but_not_comparison(self, quotes_task, twse, ticker_repository):
        twse.responses[("equities_quotes", DATE)] = [quote("2330", 700.0)]
        await quotes_task(DATE)

        assert await quotes_task(DATE, force=True) is False
        assert len(twse.calls) == 2

        twse.responses[("equities_quotes", DATE)] = [quote("2330", 705.0)]
        assert await quotes_task(DATE, force=True) is True
        stored = await ticker_repository.get({"date": DATE, "symbol": "2330", "exchange": "TWSE"})
        assert stored.close_price == 705.0

    @pytest.mark.asyncio
    async def test_firewall_is_per_slice(self, tasks, twse):
        twse.responses[("equities_quotes", DATE)] = [quote("2330", 700.0)]
        twse.responses[("equities_inst_investors_trades", DATE)] = [
            {"symbol": "2330", "finiNetBuySell": 1200.0}
        ]
        await tasks["twse_equities_quotes"](DATE)

        # quotes landed; institutional flows have not
        assert await tasks["twse_equities_inst_investors_trades"](DATE) is True

    @pytest.mark.asyncio
    async def test_empty_feed_returns_false(self, quotes_task):
        assert await quotes_task(DATE) is False

    @pytest.mark.asyncio
    async def test_unavailable_feed_returns_false(self, quotes_task, twse):
        twse.responses[("equities_quotes", DATE)] = FeedUnavailable("down", source="twse", status_code=503)
        assert await quotes_task(DATE) is False

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, quotes_task, twse):
        twse.responses[("equities_quotes", DATE)] = RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await quotes_task(DATE)

    @pytest.mark.asyncio
    async def test_invalid_rows_are_dropped(self, quotes_task, twse, ticker_repository):
        twse.responses[("equities_quotes", DATE)] = [quote("2330", 700.0), quote("", 1.0), quote("2317", -5.0)]

        assert await quotes_task(DATE) is True
        assert await ticker_repository.count() == 1

    @pytest.mark.asyncio
    async def test_date_defaults_to_resolver(self, quotes_task, twse):
        await quotes_task()
        assert twse.calls == [("equities_quotes", DATE)]


class TestTickerBuilders:
    def test_groups_follow_fixed_order(self, tasks):
        groups = ticker_groups(tasks)

        assert [name for name, _ in groups] == [dataset.value for dataset in TickerDataset]
        assert all(len(members) == 2 for _, members in groups)

    def test_headline_index_row(self):
        spec = TICKER_TASK_SPECS[TickerDataset.MARKET_TRADES]

        ticker = build_ticker(spec, Exchange.TPEX, DATE, {"tradeValue": 5.0e10, "transaction": 900})

        assert ticker.symbol == "IX0043"
        assert ticker.type is TickerType.INDEX
        assert ticker.market is Market.OTC
        assert ticker.trade_value == 5.0e10
        assert ticker.close_price is None

    def test_only_spec_fields_are_kept(self):
        spec = TICKER_TASK_SPECS[TickerDataset.EQUITIES_INST_INVESTORS_TRADES]

        ticker = build_ticker(
            spec, Exchange.TWSE, DATE, {"symbol": " 2330 ", "finiNetBuySell": 1.0, "closePrice": 9.0}
        )

        assert ticker.symbol == "2330"
        assert ticker.fini_net_buy_sell == 1.0
        assert ticker.close_price is None

    def test_missing_symbol(self):
        spec = TICKER_TASK_SPECS[TickerDataset.EQUITIES_QUOTES]

        with pytest.raises(InvalidRecordError):
            build_ticker(spec, Exchange.TWSE, DATE, {"closePrice": 1.0})

    def test_pick_accepts_both_spellings(self):
        assert pick({"close_price": 1.0}, "close_price") == 1.0
        assert pick({"closePrice": 2.0}, "close_price") == 2.0
        assert pick({}, "close_price") is None


class TestMarketStatsBuilders:
    def test_one_task_per_slice(self, market_stats_repository, oracle, resolver, feed_status):
        feeds = {name: FakeFeed(name) for name in ("twse", "tpex", "taifex")}

        tasks = build_market_stats_tasks(feeds, market_stats_repository, oracle, resolver, feed_status)

        assert [task.name for task in tasks][:3] == [
            "market_stats_taiex",
            "market_stats_inst_investors_trades",
            "market_stats_margin_transactions",
        ]
        assert tasks[0].existence_filter == {"taiexPrice": {"$ne": None}}
        assert tasks[-1].feed is feeds["taifex"]

    def test_field_map(self):
        spec = MARKET_STATS_TASK_SPECS[0]

        stats = build_market_stats(spec, DATE, {"price": 18000.0, "change": -12.5})

        assert stats.taiex_price == 18000.0
        assert stats.taiex_change == -12.5
        assert stats.taiex_trade_value is None

    def test_row_without_slice_fields(self):
        with pytest.raises(InvalidRecordError):
            build_market_stats(MARKET_STATS_TASK_SPECS[-1], DATE, {"other": 1})


class TestFeedStatusRegistry:
    def test_range_issue_covers_dates(self):
        issue = FeedIssue(
            start_date="2025-10-24",
            end_date="2025-10-26",
            feeds=("twse:market_trades",),
            description="outage",
        )

        assert issue.covers("2025-10-25", "twse:market_trades")
        assert not issue.covers("2025-10-27", "twse:market_trades")
        assert not issue.covers("2025-10-25", "tpex:market_trades")

    def test_single_day_issue(self):
        registry = FeedStatusRegistry(issues=[])
        registry.add_known_issue(
            FeedIssue(start_date="2024-03-06", feeds=("taifex:exchange_rates",), description="late")
        )

        assert registry.has_known_issue("2024-03-06", "taifex:exchange_rates")
        assert not registry.has_known_issue("2024-03-07", "taifex:exchange_rates")

    def test_current_issues(self):
        ongoing = FeedIssue(
            start_date="2024-01-01", feeds=("twse:x",), description="a", status=IssueStatus.ONGOING
        )
        resolved = FeedIssue(start_date="2024-01-01", feeds=("twse:y",), description="b")
        registry = FeedStatusRegistry(issues=[ongoing, resolved])

        assert registry.current_issues("2024-03-06") == [ongoing]

    def test_default_issues_loaded(self):
        assert FeedStatusRegistry().has_known_issue("2025-10-24", "twse:inst_investors_trades")
