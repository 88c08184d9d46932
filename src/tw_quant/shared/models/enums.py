"""
Shared enumerations for tw-quant.

Exchange boards, record classifications and the result vocabularies used by
the upsert layer, the indicator engine and the orchestration workflows.
"""

import enum


# ============================================================================
# MARKET CLASSIFICATION
# ============================================================================
class Exchange(str, enum.Enum):
    """Exchange board a ticker row was published by."""

    TWSE = "TWSE"  # primary board
    TPEX = "TPEx"  # OTC board

    @property
    def market(self) -> "Market":
        return Market.TSE if self is Exchange.TWSE else Market.OTC

    @property
    def index_symbol(self) -> str:
        """Symbol of the board's headline index row."""
        return INDEX_SYMBOLS[self]


class Market(str, enum.Enum):
    TSE = "TSE"
    OTC = "OTC"


class TickerType(str, enum.Enum):
    EQUITY = "Equity"
    INDEX = "Index"


INDEX_SYMBOLS = {
    Exchange.TWSE: "IX0001",  # TAIEX
    Exchange.TPEX: "IX0043",  # TPEx index
}


# ============================================================================
# UPSERT OUTCOMES
# ============================================================================
class WriteOutcome(str, enum.Enum):
    """Result of a single read-compare-write."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"

    @property
    def wrote(self) -> bool:
        return self is not WriteOutcome.UNCHANGED


# ============================================================================
# TECHNICAL ANALYSIS
# ============================================================================
class TrendDirection(str, enum.Enum):
    UP = "up"
    DOWN = "down"
    SIDEWAYS = "sideways"


class Recommendation(str, enum.Enum):
    """Recommendation derived from the technical score."""

    STRONG_SELL = "strong_sell"
    SELL = "sell"
    HOLD = "hold"
    BUY = "buy"
    STRONG_BUY = "strong_buy"

    @classmethod
    def from_score(cls, score: float) -> "Recommendation":
        if score >= 50:
            return cls.STRONG_BUY
        if score >= 20:
            return cls.BUY
        if score <= -50:
            return cls.STRONG_SELL
        if score <= -20:
            return cls.SELL
        return cls.HOLD


class Fidelity(str, enum.Enum):
    """Formula set used for MACD signal and stochastic D.

    SIMPLIFIED keeps signal = MACD, histogram = 0 and D = K.
    FULL uses a 9-period EMA of the MACD series and a 3-period SMA of K.
    """

    SIMPLIFIED = "simplified"
    FULL = "full"
