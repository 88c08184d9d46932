"""Market feed port.

A feed serves canonical, already-parsed rows per (dataset, trading date).
Provider-specific parsing lives outside this package; the adapters here only
route requests and validate the envelope.
"""

import enum
from typing import Any, Protocol, runtime_checkable

Row = dict[str, Any]


class TickerDataset(str, enum.Enum):
    """Board datasets published by TWSE and TPEx."""

    INDICES_QUOTES = "indices_quotes"
    MARKET_TRADES = "market_trades"
    INDICES_TRADES = "indices_trades"
    EQUITIES_QUOTES = "equities_quotes"
    EQUITIES_INST_INVESTORS_TRADES = "equities_inst_investors_trades"


class MarketStatsDataset(str, enum.Enum):
    """Market-wide datasets (TWSE aggregates, TAIFEX derivatives, FX)."""

    INST_INVESTORS_TRADES = "inst_investors_trades"
    MARGIN_TRANSACTIONS = "margin_transactions"
    FINI_TXF_NET_OI = "fini_txf_net_oi"
    FINI_TXO_NET_OI_VALUE = "fini_txo_net_oi_value"
    LARGE_TRADERS_TXF_NET_OI = "large_traders_txf_net_oi"
    RETAIL_MXF_POSITION = "retail_mxf_position"
    TXO_PUT_CALL_RATIO = "txo_put_call_ratio"
    EXCHANGE_RATES = "exchange_rates"


@runtime_checkable
class IMarketFeed(Protocol):
    """Source of canonical rows for one provider (twse, tpex, taifex)."""

    name: str

    async def fetch(self, dataset: str, date: str) -> list[Row] | None:
        """
        Fetch canonical rows for a dataset on a trading date.

        Args:
            dataset: Dataset name (TickerDataset or MarketStatsDataset value)
            date: Trading date ``YYYY-MM-DD``

        Returns:
            Rows, or None when nothing is published for that date

        Raises:
            FeedUnavailable: On transport failure or a malformed envelope
        """
        ...
