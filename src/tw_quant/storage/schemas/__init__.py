from .records import (
    CanonicalRecord,
    MarketStats,
    TechnicalIndicator,
    TechnicalSignals,
    Ticker,
)

__all__ = [
    "CanonicalRecord",
    "MarketStats",
    "TechnicalIndicator",
    "TechnicalSignals",
    "Ticker",
]
