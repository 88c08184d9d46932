"""Technical indicator repository.

Written only by the indicator engine. The engine output is authoritative,
so writes replace every field (``merge_partial = False``) while still
reporting created/updated/unchanged.
"""

from dataclasses import dataclass
from typing import Any

from tw_quant.infrastructure.observability import get_storage_logger
from tw_quant.storage.repositories.base import SmartUpsertRepository
from tw_quant.storage.schemas.records import TechnicalIndicator

logger = get_storage_logger("technical-indicator-repository")

BULLISH_SCORE = 20
BEARISH_SCORE = -20


@dataclass
class MarketOverview:
    """Score distribution across all symbols for one date."""

    date: str
    total: int
    bullish: int
    bearish: int
    neutral: int

    def _pct(self, count: int) -> float:
        return round(count / self.total * 100, 2) if self.total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "total": self.total,
            "bullish": self.bullish,
            "bearish": self.bearish,
            "neutral": self.neutral,
            "bullish_pct": self._pct(self.bullish),
            "bearish_pct": self._pct(self.bearish),
            "neutral_pct": self._pct(self.neutral),
        }


class TechnicalIndicatorRepository(SmartUpsertRepository[TechnicalIndicator]):
    model = TechnicalIndicator
    default_collection = "technical_indicators"
    merge_partial = False

    async def find_by_symbol_and_date(self, symbol: str, date: str) -> TechnicalIndicator | None:
        return await self.get({"date": date, "symbol": symbol})

    async def find_latest(self, symbol: str) -> TechnicalIndicator | None:
        """Most recent snapshot that has at least the 5-day average."""
        rows = await self.find(
            {"symbol": symbol, "ma5": {"$ne": None}}, sort=[("date", -1)], limit=1
        )
        return rows[0] if rows else None

    async def find_by_date(self, date: str) -> list[TechnicalIndicator]:
        return await self.find({"date": date}, sort=[("symbol", 1)])

    async def find_history(
        self,
        symbol: str,
        start_date: str | None = None,
        end_date: str | None = None,
        limit: int | None = None,
    ) -> list[TechnicalIndicator]:
        """Snapshots for a symbol, most recent first."""
        date_filter: dict[str, str] = {}
        if start_date:
            date_filter["$gte"] = start_date
        if end_date:
            date_filter["$lte"] = end_date
        filters: dict[str, Any] = {"symbol": symbol}
        if date_filter:
            filters["date"] = date_filter
        return await self.find(filters, sort=[("date", -1)], limit=limit)

    async def top_rated(self, date: str, limit: int = 20) -> list[TechnicalIndicator]:
        return await self.find({"date": date}, sort=[("technicalScore", -1)], limit=limit)

    async def buy_signal_symbols(self, date: str) -> list[TechnicalIndicator]:
        """Snapshots carrying at least one bullish signal, best score first."""
        rows = [row for row in await self.find_by_date(date) if row.signals.bullish]
        return sorted(rows, key=lambda row: row.technical_score, reverse=True)

    async def sell_signal_symbols(self, date: str) -> list[TechnicalIndicator]:
        """Snapshots carrying at least one bearish signal, worst score first."""
        rows = [row for row in await self.find_by_date(date) if row.signals.bearish]
        return sorted(rows, key=lambda row: row.technical_score)

    async def market_overview(self, date: str) -> MarketOverview:
        rows = await self.find_by_date(date)
        bullish = sum(1 for row in rows if row.technical_score > BULLISH_SCORE)
        bearish = sum(1 for row in rows if row.technical_score < BEARISH_SCORE)
        return MarketOverview(
            date=date,
            total=len(rows),
            bullish=bullish,
            bearish=bearish,
            neutral=len(rows) - bullish - bearish,
        )

    async def delete_before(self, date: str) -> int:
        """Retention trim: drop snapshots older than ``date``."""
        deleted = await self.store.delete_many(self.collection, {"date": {"$lt": date}})
        logger.info("indicators_trimmed", before=date, deleted=deleted)
        return deleted
