"""Ticker repository.

Daily board rows keyed on (date, symbol, exchange). Besides upserts it
serves the trailing price history the indicator engine reads.
"""

from tw_quant.shared.models.enums import Exchange
from tw_quant.storage.repositories.base import SmartUpsertRepository
from tw_quant.storage.schemas.records import Ticker


class TickerRepository(SmartUpsertRepository[Ticker]):
    model = Ticker
    default_collection = "tickers"

    async def find_by_date(
        self,
        date: str,
        exchange: Exchange | None = None,
        valid_only: bool = False,
    ) -> list[Ticker]:
        """All rows for one trading date, ordered by symbol."""
        filters: dict = {"date": date}
        if exchange is not None:
            filters["exchange"] = exchange.value
        if valid_only:
            filters["closePrice"] = {"$gt": 0}
        return await self.find(filters, sort=[("symbol", 1)])

    async def find_history(
        self,
        symbol: str,
        date: str,
        limit: int,
        exchange: Exchange | None = None,
    ) -> list[Ticker]:
        """
        Trailing window ending at ``date`` (inclusive), most recent first.

        Only rows usable for indicators (close price > 0) are returned.
        """
        filters: dict = {
            "symbol": symbol,
            "date": {"$lte": date},
            "closePrice": {"$gt": 0},
        }
        if exchange is not None:
            filters["exchange"] = exchange.value
        return await self.find(filters, sort=[("date", -1)], limit=limit)
