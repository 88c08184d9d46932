"""Canonical record models for the storage layer.

Models for:
- Ticker: one board row per (date, symbol, exchange)
- MarketStats: market-wide aggregates per date
- TechnicalIndicator: derived indicators and signals per (date, symbol)

All models use:
- Pydantic validation with snake_case attributes
- camelCase document aliases (``closePrice``, ``kdGoldenCross``) so stored
  documents keep the field names downstream readers already query
- Optional fields everywhere except the record key, so partial records from
  independently scheduled sources can be merged
"""

from datetime import date as _date
from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from tw_quant.shared.models.enums import (
    Exchange,
    Market,
    Recommendation,
    TickerType,
    TrendDirection,
)


class CanonicalRecord(BaseModel):
    """Base for every stored record.

    Subclasses declare ``KEY_FIELDS`` (unique key) and ``COMPARE_FIELDS``
    (fields whose change triggers a write).
    """

    KEY_FIELDS: ClassVar[tuple[str, ...]] = ()
    COMPARE_FIELDS: ClassVar[tuple[str, ...]] = ()

    date: str = Field(..., description="Trading date (YYYY-MM-DD)")
    created_at: datetime | None = Field(None, description="First write (UTC)")
    updated_at: datetime | None = Field(None, description="Last real change (UTC)")

    class Config:
        """Pydantic configuration."""

        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v: Any) -> str:
        if isinstance(v, datetime):
            return v.date().isoformat()
        if isinstance(v, _date):
            return v.isoformat()
        if isinstance(v, str):
            # raises ValueError on anything that is not YYYY-MM-DD
            return _date.fromisoformat(v.strip().replace("/", "-")).isoformat()
        raise ValueError(f"Unsupported date value: {v!r}")

    def key(self) -> dict[str, Any]:
        """Unique key as a document filter (aliased field names)."""
        doc = self.to_document(exclude_none=False)
        return {self.alias_for(name): doc[self.alias_for(name)] for name in self.KEY_FIELDS}

    def to_document(self, exclude_none: bool = True) -> dict[str, Any]:
        """Serialize for the document store (JSON-safe, aliased)."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=exclude_none,
            exclude={"created_at", "updated_at"},
        )

    @classmethod
    def alias_for(cls, field_name: str) -> str:
        return cls.model_fields[field_name].alias or field_name


class Ticker(CanonicalRecord):
    """Daily board row for an equity or index.

    Stored in: tickers (unique key: date, symbol, exchange)
    """

    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("date", "symbol", "exchange")
    COMPARE_FIELDS: ClassVar[tuple[str, ...]] = (
        "close_price",
        "open_price",
        "high_price",
        "low_price",
        "trade_volume",
        "trade_value",
        # slices landed by the sector and institutional tasks
        "trade_weight",
        "transaction",
        "change",
        "change_percent",
        "fini_net_buy_sell",
        "sitc_net_buy_sell",
        "dealers_net_buy_sell",
    )

    symbol: str = Field(..., min_length=1)
    exchange: Exchange
    type: TickerType | None = None
    market: Market | None = None
    name: str | None = None

    open_price: float | None = Field(None, ge=0)
    high_price: float | None = Field(None, ge=0)
    low_price: float | None = Field(None, ge=0)
    close_price: float | None = Field(None, ge=0)
    change: float | None = None
    change_percent: float | None = None

    trade_volume: float | None = Field(None, ge=0)
    trade_value: float | None = Field(None, ge=0)
    transaction: int | None = Field(None, ge=0)
    trade_weight: float | None = None

    fini_net_buy_sell: float | None = None
    sitc_net_buy_sell: float | None = None
    dealers_net_buy_sell: float | None = None

    @property
    def is_valid_for_indicators(self) -> bool:
        return self.close_price is not None and self.close_price > 0


class MarketStats(CanonicalRecord):
    """Market-wide aggregates for one trading date.

    Every source lands its own slice of fields, so every field is compared.

    Stored in: market_stats (unique key: date)
    """

    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("date",)
    COMPARE_FIELDS: ClassVar[tuple[str, ...]] = (
        "taiex_price",
        "taiex_change",
        "fini_net_buy_sell",
        "sitc_net_buy_sell",
        "dealers_net_buy_sell",
        "taiex_trade_value",
        "margin_balance",
        "margin_balance_change",
        "margin_balance_value",
        "margin_balance_value_change",
        "short_balance",
        "short_balance_change",
        "fini_txf_net_oi",
        "fini_txo_calls_net_oi_value",
        "fini_txo_puts_net_oi_value",
        "top_ten_specific_front_month_txf_net_oi",
        "top_ten_specific_back_months_txf_net_oi",
        "retail_mxf_net_oi",
        "retail_mxf_long_short_ratio",
        "txo_put_call_ratio",
        "usdtwd",
    )

    taiex_price: float | None = None
    taiex_change: float | None = None
    taiex_trade_value: float | None = None

    fini_net_buy_sell: float | None = None
    sitc_net_buy_sell: float | None = None
    dealers_net_buy_sell: float | None = None

    margin_balance: float | None = None
    margin_balance_change: float | None = None
    margin_balance_value: float | None = None
    margin_balance_value_change: float | None = None
    short_balance: float | None = None
    short_balance_change: float | None = None

    fini_txf_net_oi: float | None = None
    fini_txo_calls_net_oi_value: float | None = None
    fini_txo_puts_net_oi_value: float | None = None
    top_ten_specific_front_month_txf_net_oi: float | None = None
    top_ten_specific_back_months_txf_net_oi: float | None = None
    retail_mxf_net_oi: float | None = None
    retail_mxf_long_short_ratio: float | None = None
    txo_put_call_ratio: float | None = None

    usdtwd: float | None = None


class TechnicalSignals(BaseModel):
    """The twelve named signals. Serialized in camelCase."""

    macd_buy: bool = False
    macd_sell: bool = False
    rsi_overbought: bool = False
    rsi_oversold: bool = False
    kd_golden_cross: bool = False
    kd_death_cross: bool = False
    volume_breakout: bool = False
    price_breakout: bool = False
    bollinger_buy_signal: bool = False
    bollinger_sell_signal: bool = False
    williams_oversold: bool = False
    williams_overbought: bool = False

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @property
    def bullish(self) -> bool:
        return (
            self.macd_buy
            or self.kd_golden_cross
            or self.volume_breakout
            or self.price_breakout
            or self.bollinger_buy_signal
        )

    @property
    def bearish(self) -> bool:
        return self.macd_sell or self.kd_death_cross or self.bollinger_sell_signal


class TechnicalIndicator(CanonicalRecord):
    """Indicator snapshot for one symbol on one trading date.

    Indicator fields stay None until the trailing window is long enough.

    Stored in: technical_indicators (unique key: date, symbol)
    """

    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("date", "symbol")
    COMPARE_FIELDS: ClassVar[tuple[str, ...]] = (
        "name", "type", "open_price", "high_price", "low_price", "close_price", "volume",
        "ma5", "ma10", "ma20", "ma60", "ma120", "ma240",
        "ema12", "ema26", "macd", "macd_signal", "macd_histogram",
        "rsi6", "rsi12", "rsi24", "k9", "d9", "wr10", "wr20",
        "bb_upper", "bb_middle", "bb_lower", "bb_width",
        "volume_ma5", "volume_ma20", "volume_ratio",
        "price_strength", "trend_direction", "trend_strength",
        "support_level", "resistance_level",
        "signals", "technical_score", "recommendation",
    )  # fmt: skip

    symbol: str = Field(..., min_length=1)
    name: str | None = None
    type: TickerType | None = None

    open_price: float | None = None
    high_price: float | None = None
    low_price: float | None = None
    close_price: float | None = None
    volume: float | None = None

    ma5: float | None = None
    ma10: float | None = None
    ma20: float | None = None
    ma60: float | None = None
    ma120: float | None = None
    ma240: float | None = None

    ema12: float | None = None
    ema26: float | None = None
    macd: float | None = None
    macd_signal: float | None = None
    macd_histogram: float | None = None

    rsi6: float | None = None
    rsi12: float | None = None
    rsi24: float | None = None

    k9: float | None = None
    d9: float | None = None
    wr10: float | None = None
    wr20: float | None = None

    bb_upper: float | None = None
    bb_middle: float | None = None
    bb_lower: float | None = None
    bb_width: float | None = None

    volume_ma5: float | None = None
    volume_ma20: float | None = None
    volume_ratio: float | None = None

    price_strength: float | None = None
    trend_direction: TrendDirection | None = None
    trend_strength: float | None = Field(None, ge=0, le=100)
    support_level: float | None = None
    resistance_level: float | None = None

    signals: TechnicalSignals = Field(default_factory=TechnicalSignals)
    technical_score: float = Field(0.0, ge=-100, le=100)
    recommendation: Recommendation = Recommendation.HOLD


__all__ = [
    "CanonicalRecord",
    "MarketStats",
    "TechnicalIndicator",
    "TechnicalSignals",
    "Ticker",
]
