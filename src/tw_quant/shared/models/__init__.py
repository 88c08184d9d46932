"""Shared domain enumerations."""

from tw_quant.shared.models.enums import (
    INDEX_SYMBOLS,
    Exchange,
    Fidelity,
    Market,
    Recommendation,
    TickerType,
    TrendDirection,
    WriteOutcome,
)

__all__ = [
    "INDEX_SYMBOLS",
    "Exchange",
    "Fidelity",
    "Market",
    "Recommendation",
    "TickerType",
    "TrendDirection",
    "WriteOutcome",
]
