"""Market statistics repository (one document per trading date)."""

from tw_quant.storage.repositories.base import SmartUpsertRepository
from tw_quant.storage.schemas.records import MarketStats


class MarketStatsRepository(SmartUpsertRepository[MarketStats]):
    model = MarketStats
    default_collection = "market_stats"

    async def get_by_date(self, date: str) -> MarketStats | None:
        return await self.get({"date": date})

    async def find_range(self, start_date: str, end_date: str) -> list[MarketStats]:
        return await self.find(
            {"date": {"$gte": start_date, "$lte": end_date}}, sort=[("date", 1)]
        )
