"""Technical indicator engine.

Reads each symbol's trailing price history from the ticker store, computes
the indicator snapshot, signals and score, and writes one
TechnicalIndicator per (date, symbol). Nothing is carried between runs:
every snapshot is recomputed from the window it is given.
"""

import enum
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from tw_quant.features import indicators as ind
from tw_quant.features.signals import (
    SignalThresholds,
    Snapshot,
    detect_signals,
    recommend,
    technical_score,
)
from tw_quant.infrastructure.observability import get_processing_logger
from tw_quant.shared.models.enums import Exchange, Fidelity, WriteOutcome
from tw_quant.storage.repositories.technical_indicator import TechnicalIndicatorRepository
from tw_quant.storage.repositories.ticker import TickerRepository
from tw_quant.storage.schemas.records import TechnicalIndicator, Ticker

logger = get_processing_logger("indicator-engine")

MA_PERIODS = (5, 10, 20, 60, 120, 240)
HISTORY_COLUMNS = ("close_price", "high_price", "low_price", "trade_volume")


class SymbolStatus(str, enum.Enum):
    COMPUTED = "computed"
    SKIPPED = "skipped_insufficient_history"
    FAILED = "failed"


@dataclass
class SymbolOutcome:
    symbol: str
    status: SymbolStatus
    outcome: WriteOutcome | None = None
    history_points: int = 0
    error: str | None = None


@dataclass
class DateComputationResult:
    """Per-date batch outcome; one entry per symbol."""

    date: str
    outcomes: list[SymbolOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def _count(self, status: SymbolStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def computed(self) -> int:
        return self._count(SymbolStatus.COMPUTED)

    @property
    def skipped(self) -> int:
        return self._count(SymbolStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(SymbolStatus.FAILED)

    @property
    def errors(self) -> list[str]:
        return [f"{o.symbol}: {o.error}" for o in self.outcomes if o.error]

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "total": self.total,
            "computed": self.computed,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": self.errors,
        }


def history_frame(history: list[Ticker]) -> pd.DataFrame:
    """
    Price history as numeric columns, most recent first.

    Missing highs and lows fall back to the close and missing volume to 0,
    so index rows without a full quote still feed the range indicators.
    """
    frame = pd.DataFrame(
        [{name: getattr(row, name) for name in HISTORY_COLUMNS} for row in history],
        columns=list(HISTORY_COLUMNS),
    )
    frame = frame.apply(pd.to_numeric, errors="coerce")
    frame["high_price"] = frame["high_price"].fillna(frame["close_price"])
    frame["low_price"] = frame["low_price"].fillna(frame["close_price"])
    frame["trade_volume"] = frame["trade_volume"].fillna(0.0)
    return frame


class TechnicalIndicatorEngine:
    def __init__(
        self,
        ticker_repository: TickerRepository,
        indicator_repository: TechnicalIndicatorRepository,
        lookback: int = 250,
        min_history: int = 5,
        fidelity: Fidelity = Fidelity.SIMPLIFIED,
        thresholds: SignalThresholds | None = None,
    ):
        self.ticker_repository = ticker_repository
        self.indicator_repository = indicator_repository
        self.lookback = lookback
        self.min_history = min_history
        self.fidelity = fidelity
        self.thresholds = thresholds or SignalThresholds()

    # ------------------------------------------------------------------
    # Pure computation
    # ------------------------------------------------------------------

    def _snapshot(self, frame: pd.DataFrame) -> tuple[Snapshot, dict[str, Any]]:
        closes = frame["close_price"].tolist()
        highs = frame["high_price"].tolist()
        lows = frame["low_price"].tolist()
        volumes = frame["trade_volume"].tolist()

        macd = ind.macd(closes, fidelity=self.fidelity)
        k, d = ind.stochastic_kd(highs, lows, closes, fidelity=self.fidelity)
        bands = ind.bollinger(closes)
        volume = ind.volume_stats(volumes)
        support, resistance = ind.support_resistance(highs, lows)

        values: dict[str, Any] = {f"ma{n}": ind.sma(closes, n) for n in MA_PERIODS}
        values.update(
            ema12=ind.ema(closes, 12),
            ema26=ind.ema(closes, 26),
            macd=macd.macd,
            macd_signal=macd.signal,
            macd_histogram=macd.histogram,
            rsi6=ind.rsi(closes, 6),
            rsi12=ind.rsi(closes, 12),
            rsi24=ind.rsi(closes, 24),
            k9=k,
            d9=d,
            wr10=ind.williams_r(highs, lows, closes, 10),
            wr20=ind.williams_r(highs, lows, closes, 20),
            bb_upper=bands.upper if bands else None,
            bb_middle=bands.middle if bands else None,
            bb_lower=bands.lower if bands else None,
            bb_width=bands.width if bands else None,
            volume_ma5=volume.ma5,
            volume_ma20=volume.ma20,
            volume_ratio=volume.ratio,
            support_level=support,
            resistance_level=resistance,
            price_strength=ind.price_strength(closes[0], support, resistance),
        )
        direction, strength = ind.trend(closes[0], values["ma5"], values["ma20"], values["ma60"])
        values.update(trend_direction=direction, trend_strength=strength)

        snapshot = Snapshot(
            close=closes[0],
            macd=macd.macd,
            macd_signal=macd.signal,
            rsi6=values["rsi6"],
            k=k,
            d=d,
            wr10=values["wr10"],
            bb_upper=values["bb_upper"],
            bb_lower=values["bb_lower"],
            volume_ratio=volume.ratio,
            resistance=resistance,
        )
        return snapshot, values

    def build_indicator(self, ticker: Ticker, history: list[Ticker]) -> TechnicalIndicator:
        """
        Compute the full snapshot for ``ticker`` from its history window.

        Args:
            ticker: The evaluation-day row (denormalized into the snapshot)
            history: Trailing window ending at the evaluation day, most recent first
        """
        frame = history_frame(history)
        today, values = self._snapshot(frame)
        previous = self._snapshot(frame.iloc[1:])[0] if len(frame) > 1 else None
        before_previous = self._snapshot(frame.iloc[2:])[0] if len(frame) > 2 else None

        signals = detect_signals(
            today,
            previous,
            before_previous,
            fidelity=self.fidelity,
            thresholds=self.thresholds,
        )
        score = technical_score(signals, values["trend_direction"], values["trend_strength"])

        return TechnicalIndicator(
            date=ticker.date,
            symbol=ticker.symbol,
            name=ticker.name,
            type=ticker.type,
            open_price=ticker.open_price,
            high_price=ticker.high_price,
            low_price=ticker.low_price,
            close_price=ticker.close_price,
            volume=ticker.trade_volume,
            signals=signals,
            technical_score=score,
            recommendation=recommend(score),
            **values,
        )

    # ------------------------------------------------------------------
    # Store round trips
    # ------------------------------------------------------------------

    async def _compute_ticker(self, ticker: Ticker) -> SymbolOutcome:
        history = await self.ticker_repository.find_history(
            ticker.symbol, ticker.date, self.lookback, exchange=ticker.exchange
        )
        if len(history) < self.min_history:
            return SymbolOutcome(
                symbol=ticker.symbol,
                status=SymbolStatus.SKIPPED,
                history_points=len(history),
            )

        indicator = self.build_indicator(ticker, history)
        outcome = await self.indicator_repository.upsert(indicator)
        return SymbolOutcome(
            symbol=ticker.symbol,
            status=SymbolStatus.COMPUTED,
            outcome=outcome,
            history_points=len(history),
        )

    async def compute_and_store(
        self, symbol: str, date: str, exchange: Exchange | None = None
    ) -> SymbolOutcome:
        """Compute and write one symbol's snapshot for ``date``."""
        filters: dict[str, Any] = {"date": date, "symbol": symbol}
        if exchange is not None:
            filters["exchange"] = exchange.value
        rows = await self.ticker_repository.find(filters, limit=1)
        if not rows or not rows[0].is_valid_for_indicators:
            return SymbolOutcome(symbol=symbol, status=SymbolStatus.SKIPPED)
        try:
            return await self._compute_ticker(rows[0])
        except Exception as e:
            logger.error("symbol_failed", symbol=symbol, date=date, error=str(e))
            return SymbolOutcome(symbol=symbol, status=SymbolStatus.FAILED, error=str(e))

    async def compute_for_date(self, date: str) -> DateComputationResult:
        """
        Compute snapshots for every valid ticker on ``date``.

        One symbol's failure is logged and recorded; the batch continues.
        """
        log = logger.bind(date=date)
        tickers = await self.ticker_repository.find_by_date(date, valid_only=True)
        result = DateComputationResult(date=date)
        log.info("indicator_batch_started", tickers=len(tickers))

        for ticker in tickers:
            try:
                outcome = await self._compute_ticker(ticker)
            except Exception as e:
                log.error("symbol_failed", symbol=ticker.symbol, error=str(e))
                outcome = SymbolOutcome(
                    symbol=ticker.symbol, status=SymbolStatus.FAILED, error=str(e)
                )
            result.outcomes.append(outcome)

        log.info(
            "indicator_batch_completed",
            total=result.total,
            computed=result.computed,
            skipped=result.skipped,
            failed=result.failed,
        )
        return result
