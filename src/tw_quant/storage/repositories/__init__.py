"""Idempotent upsert repositories."""

from .base import BatchUpsertResult, SmartUpsertRepository
from .market_stats import MarketStatsRepository
from .technical_indicator import MarketOverview, TechnicalIndicatorRepository
from .ticker import TickerRepository

__all__ = [
    "BatchUpsertResult",
    "MarketOverview",
    "MarketStatsRepository",
    "SmartUpsertRepository",
    "TechnicalIndicatorRepository",
    "TickerRepository",
]
