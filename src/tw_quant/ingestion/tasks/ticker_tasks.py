"""Ticker update tasks for the TWSE and TPEx boards.

Every dataset is published by both boards, giving one task per
(exchange, dataset). Tasks are grouped by dataset and the groups run in
``TICKER_GROUP_ORDER``; siblings in a group touch different exchanges, so
their writes never overlap.
"""

from dataclasses import dataclass
from functools import partial

from tw_quant.calendar.holidays import HolidayOracle
from tw_quant.calendar.resolver import TradingCalendarResolver
from tw_quant.ingestion.feed_status import FeedStatusRegistry
from tw_quant.ingestion.ports.feeds import IMarketFeed, Row, TickerDataset
from tw_quant.ingestion.tasks.base import UpdateTask, pick
from tw_quant.shared.exceptions import InvalidRecordError
from tw_quant.shared.models.enums import Exchange, TickerType
from tw_quant.storage.repositories.ticker import TickerRepository
from tw_quant.storage.schemas.records import Ticker

PRICE_FIELDS = ("open_price", "high_price", "low_price", "close_price", "change", "change_percent")
TRADE_FIELDS = ("trade_volume", "trade_value", "transaction")
INSTITUTIONAL_FIELDS = ("fini_net_buy_sell", "sitc_net_buy_sell", "dealers_net_buy_sell")


@dataclass(frozen=True)
class TickerTaskSpec:
    dataset: TickerDataset
    description: str
    ticker_type: TickerType
    fields: tuple[str, ...]
    # field whose presence marks the slice as already landed
    marker_field: str
    # single headline row keyed on the board's index symbol
    headline_index: bool = False


TICKER_TASK_SPECS = {
    TickerDataset.INDICES_QUOTES: TickerTaskSpec(
        dataset=TickerDataset.INDICES_QUOTES,
        description="index quotes",
        ticker_type=TickerType.INDEX,
        fields=PRICE_FIELDS,
        marker_field="closePrice",
    ),
    TickerDataset.MARKET_TRADES: TickerTaskSpec(
        dataset=TickerDataset.MARKET_TRADES,
        description="market trades",
        ticker_type=TickerType.INDEX,
        fields=TRADE_FIELDS,
        marker_field="tradeValue",
        headline_index=True,
    ),
    TickerDataset.INDICES_TRADES: TickerTaskSpec(
        dataset=TickerDataset.INDICES_TRADES,
        description="sector index trades",
        ticker_type=TickerType.INDEX,
        fields=(*TRADE_FIELDS, "trade_weight"),
        marker_field="tradeWeight",
    ),
    TickerDataset.EQUITIES_QUOTES: TickerTaskSpec(
        dataset=TickerDataset.EQUITIES_QUOTES,
        description="equity quotes",
        ticker_type=TickerType.EQUITY,
        fields=(*PRICE_FIELDS, *TRADE_FIELDS),
        marker_field="closePrice",
    ),
    TickerDataset.EQUITIES_INST_INVESTORS_TRADES: TickerTaskSpec(
        dataset=TickerDataset.EQUITIES_INST_INVESTORS_TRADES,
        description="equity institutional investor trades",
        ticker_type=TickerType.EQUITY,
        fields=INSTITUTIONAL_FIELDS,
        marker_field="finiNetBuySell",
    ),
}

# quotes -> market aggregates -> sector aggregates -> equities -> institutional flows
TICKER_GROUP_ORDER = (
    TickerDataset.INDICES_QUOTES,
    TickerDataset.MARKET_TRADES,
    TickerDataset.INDICES_TRADES,
    TickerDataset.EQUITIES_QUOTES,
    TickerDataset.EQUITIES_INST_INVESTORS_TRADES,
)


def ticker_task_name(exchange: Exchange, dataset: TickerDataset) -> str:
    return f"{exchange.name.lower()}_{dataset.value}"


def build_ticker(spec: TickerTaskSpec, exchange: Exchange, date: str, row: Row) -> Ticker:
    """Map one canonical feed row to a (possibly partial) Ticker."""
    symbol = exchange.index_symbol if spec.headline_index else pick(row, "symbol")
    if not symbol:
        raise InvalidRecordError("row has no symbol", record=row)

    values = {name: value for name in spec.fields if (value := pick(row, name)) is not None}
    return Ticker(
        date=pick(row, "date") or date,
        symbol=str(symbol).strip(),
        exchange=exchange,
        type=spec.ticker_type,
        market=exchange.market,
        name=pick(row, "name"),
        **values,
    )


def build_ticker_tasks(
    feeds: dict[Exchange, IMarketFeed],
    repository: TickerRepository,
    oracle: HolidayOracle,
    resolver: TradingCalendarResolver,
    feed_status: FeedStatusRegistry,
) -> dict[str, UpdateTask]:
    """
    Build every ticker task.

    Args:
        feeds: Feed per exchange board
        repository: Ticker repository
        oracle: Holiday oracle
        resolver: Resolver with the ticker cutoff hour
        feed_status: Known-issue registry

    Returns:
        Task name -> UpdateTask, in group order
    """
    tasks: dict[str, UpdateTask] = {}
    for dataset in TICKER_GROUP_ORDER:
        spec = TICKER_TASK_SPECS[dataset]
        for exchange, feed in feeds.items():
            existence_filter: dict = {
                "exchange": exchange.value,
                "type": spec.ticker_type.value,
                spec.marker_field: {"$ne": None},
            }
            if spec.headline_index:
                existence_filter["symbol"] = exchange.index_symbol

            name = ticker_task_name(exchange, dataset)
            tasks[name] = UpdateTask(
                name=name,
                description=f"{exchange.value} {spec.description}",
                feed=feed,
                dataset=dataset.value,
                repository=repository,
                build_record=partial(build_ticker, spec, exchange),
                oracle=oracle,
                resolver=resolver,
                feed_status=feed_status,
                existence_filter=existence_filter,
            )
    return tasks


def ticker_groups(tasks: dict[str, UpdateTask]) -> list[tuple[str, list[UpdateTask]]]:
    """Group ticker tasks by dataset in the fixed update order."""
    groups = []
    for dataset in TICKER_GROUP_ORDER:
        members = [task for task in tasks.values() if task.dataset == dataset.value]
        if members:
            groups.append((dataset.value, members))
    return groups
