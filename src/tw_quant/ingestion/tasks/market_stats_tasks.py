"""Market statistics update tasks.

Each task lands its own slice of the per-date MarketStats document, taken
from a TWSE aggregate or a TAIFEX derivatives/FX dataset. They run one after
another with a pause between them.
"""

from dataclasses import dataclass
from functools import partial

from tw_quant.calendar.holidays import HolidayOracle
from tw_quant.calendar.resolver import TradingCalendarResolver
from tw_quant.ingestion.feed_status import FeedStatusRegistry
from tw_quant.ingestion.ports.feeds import IMarketFeed, MarketStatsDataset, Row, TickerDataset
from tw_quant.ingestion.tasks.base import UpdateTask, pick
from tw_quant.shared.exceptions import InvalidRecordError
from tw_quant.storage.repositories.market_stats import MarketStatsRepository
from tw_quant.storage.schemas.records import MarketStats


@dataclass(frozen=True)
class MarketStatsTaskSpec:
    name: str
    description: str
    source: str  # feed name: twse or taifex
    dataset: str
    # MarketStats field -> canonical row field
    field_map: dict[str, str]


def _same(*names: str) -> dict[str, str]:
    return {name: name for name in names}


MARKET_STATS_TASK_SPECS = (
    MarketStatsTaskSpec(
        name="taiex",
        description="TAIEX price and trade value",
        source="twse",
        dataset=TickerDataset.MARKET_TRADES.value,
        field_map={
            "taiex_price": "price",
            "taiex_change": "change",
            "taiex_trade_value": "trade_value",
        },
    ),
    MarketStatsTaskSpec(
        name="inst_investors_trades",
        description="institutional investors net buy/sell",
        source="twse",
        dataset=MarketStatsDataset.INST_INVESTORS_TRADES.value,
        field_map=_same("fini_net_buy_sell", "sitc_net_buy_sell", "dealers_net_buy_sell"),
    ),
    MarketStatsTaskSpec(
        name="margin_transactions",
        description="margin and short balances",
        source="twse",
        dataset=MarketStatsDataset.MARGIN_TRANSACTIONS.value,
        field_map=_same(
            "margin_balance",
            "margin_balance_change",
            "margin_balance_value",
            "margin_balance_value_change",
            "short_balance",
            "short_balance_change",
        ),
    ),
    MarketStatsTaskSpec(
        name="fini_txf_net_oi",
        description="foreign investors TXF net open interest",
        source="taifex",
        dataset=MarketStatsDataset.FINI_TXF_NET_OI.value,
        field_map=_same("fini_txf_net_oi"),
    ),
    MarketStatsTaskSpec(
        name="fini_txo_net_oi_value",
        description="foreign investors TXO net open interest value",
        source="taifex",
        dataset=MarketStatsDataset.FINI_TXO_NET_OI_VALUE.value,
        field_map=_same("fini_txo_calls_net_oi_value", "fini_txo_puts_net_oi_value"),
    ),
    MarketStatsTaskSpec(
        name="large_traders_txf_net_oi",
        description="top ten specific traders TXF net open interest",
        source="taifex",
        dataset=MarketStatsDataset.LARGE_TRADERS_TXF_NET_OI.value,
        field_map=_same(
            "top_ten_specific_front_month_txf_net_oi",
            "top_ten_specific_back_months_txf_net_oi",
        ),
    ),
    MarketStatsTaskSpec(
        name="retail_mxf_position",
        description="retail MXF position",
        source="taifex",
        dataset=MarketStatsDataset.RETAIL_MXF_POSITION.value,
        field_map=_same("retail_mxf_net_oi", "retail_mxf_long_short_ratio"),
    ),
    MarketStatsTaskSpec(
        name="txo_put_call_ratio",
        description="TXO put/call ratio",
        source="taifex",
        dataset=MarketStatsDataset.TXO_PUT_CALL_RATIO.value,
        field_map=_same("txo_put_call_ratio"),
    ),
    MarketStatsTaskSpec(
        name="usdtwd",
        description="USD/TWD exchange rate",
        source="taifex",
        dataset=MarketStatsDataset.EXCHANGE_RATES.value,
        field_map=_same("usdtwd"),
    ),
)


def build_market_stats(spec: MarketStatsTaskSpec, date: str, row: Row) -> MarketStats:
    """Map one canonical row to a MarketStats slice."""
    values = {
        target: value
        for target, source in spec.field_map.items()
        if (value := pick(row, source)) is not None
    }
    if not values:
        raise InvalidRecordError(f"row carries none of {sorted(spec.field_map.values())}", record=row)
    return MarketStats(date=pick(row, "date") or date, **values)


def market_stats_task_name(spec: MarketStatsTaskSpec) -> str:
    return f"market_stats_{spec.name}"


def build_market_stats_tasks(
    feeds: dict[str, IMarketFeed],
    repository: MarketStatsRepository,
    oracle: HolidayOracle,
    resolver: TradingCalendarResolver,
    feed_status: FeedStatusRegistry,
) -> list[UpdateTask]:
    """
    Build the market statistics tasks in execution order.

    Args:
        feeds: Feed by name (twse, taifex)
        repository: MarketStats repository
        oracle: Holiday oracle
        resolver: Resolver with the market statistics cutoff hour
        feed_status: Known-issue registry
    """
    tasks = []
    for spec in MARKET_STATS_TASK_SPECS:
        marker = MarketStats.alias_for(next(iter(spec.field_map)))
        tasks.append(
            UpdateTask(
                name=market_stats_task_name(spec),
                description=spec.description,
                feed=feeds[spec.source],
                dataset=spec.dataset,
                repository=repository,
                build_record=partial(build_market_stats, spec),
                oracle=oracle,
                resolver=resolver,
                feed_status=feed_status,
                existence_filter={marker: {"$ne": None}},
            )
        )
    return tasks
