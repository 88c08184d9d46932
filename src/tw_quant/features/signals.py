"""
Signal detection and technical scoring.

Signals compare the evaluation day's snapshot with the previous day's, both
computed from the same trailing window (the previous snapshot uses the
window shifted by one day).
"""

from dataclasses import dataclass

from tw_quant.shared.models.enums import Fidelity, Recommendation, TrendDirection
from tw_quant.storage.schemas.records import TechnicalSignals


@dataclass(frozen=True)
class SignalThresholds:
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    kd_high: float = 80.0
    kd_low: float = 20.0
    williams_overbought: float = -20.0
    williams_oversold: float = -80.0
    volume_breakout_ratio: float = 2.0


@dataclass(frozen=True)
class Snapshot:
    """Indicator values needed by the signal rules for one day."""

    close: float | None = None
    macd: float | None = None
    macd_signal: float | None = None
    rsi6: float | None = None
    k: float | None = None
    d: float | None = None
    wr10: float | None = None
    bb_upper: float | None = None
    bb_lower: float | None = None
    volume_ratio: float | None = None
    resistance: float | None = None


# contribution of each signal to the technical score
SIGNAL_WEIGHTS = {
    "macd_buy": 20.0,
    "macd_sell": -20.0,
    "rsi_oversold": 15.0,
    "rsi_overbought": -15.0,
    "kd_golden_cross": 15.0,
    "kd_death_cross": -15.0,
    "volume_breakout": 10.0,
    "price_breakout": 15.0,
    "bollinger_buy_signal": 10.0,
    "bollinger_sell_signal": -10.0,
    "williams_oversold": 10.0,
    "williams_overbought": -10.0,
}
TREND_WEIGHT = 0.3


def _crossed_above(prev_a, prev_b, a, b) -> bool:
    if None in (prev_a, prev_b, a, b):
        return False
    return prev_a <= prev_b and a > b


def _crossed_below(prev_a, prev_b, a, b) -> bool:
    if None in (prev_a, prev_b, a, b):
        return False
    return prev_a >= prev_b and a < b


def detect_signals(
    today: Snapshot,
    previous: Snapshot | None,
    before_previous: Snapshot | None = None,
    fidelity: Fidelity = Fidelity.SIMPLIFIED,
    thresholds: SignalThresholds | None = None,
) -> TechnicalSignals:
    """
    Evaluate the twelve signals for one day.

    In SIMPLIFIED mode the MACD signal line equals the MACD line and D
    equals K, so crosses are read differently: MACD buy/sell is a zero-line
    cross, and the KD cross uses the previous day's K as today's D (which
    needs ``before_previous`` for the day-before comparison).
    """
    t = thresholds or SignalThresholds()
    prev = previous or Snapshot()

    if fidelity is Fidelity.SIMPLIFIED:
        macd_buy = _crossed_above(prev.macd, 0.0, today.macd, 0.0)
        macd_sell = _crossed_below(prev.macd, 0.0, today.macd, 0.0)
        before = before_previous or Snapshot()
        k_now, d_now, k_prev, d_prev = today.k, prev.k, prev.k, before.k
    else:
        macd_buy = _crossed_above(prev.macd, prev.macd_signal, today.macd, today.macd_signal)
        macd_sell = _crossed_below(prev.macd, prev.macd_signal, today.macd, today.macd_signal)
        k_now, d_now, k_prev, d_prev = today.k, today.d, prev.k, prev.d

    kd_golden = _crossed_above(k_prev, d_prev, k_now, d_now) and k_now < t.kd_high
    kd_death = _crossed_below(k_prev, d_prev, k_now, d_now) and k_now > t.kd_low

    close = today.close
    rising = close is not None and prev.close is not None and close > prev.close

    return TechnicalSignals(
        macd_buy=macd_buy,
        macd_sell=macd_sell,
        rsi_overbought=today.rsi6 is not None and today.rsi6 >= t.rsi_overbought,
        rsi_oversold=today.rsi6 is not None and today.rsi6 <= t.rsi_oversold,
        kd_golden_cross=kd_golden,
        kd_death_cross=kd_death,
        volume_breakout=(
            today.volume_ratio is not None
            and today.volume_ratio >= t.volume_breakout_ratio
            and rising
        ),
        price_breakout=(
            close is not None and prev.resistance is not None and close > prev.resistance
        ),
        bollinger_buy_signal=(
            close is not None and today.bb_lower is not None and close <= today.bb_lower
        ),
        bollinger_sell_signal=(
            close is not None and today.bb_upper is not None and close >= today.bb_upper
        ),
        williams_oversold=today.wr10 is not None and today.wr10 <= t.williams_oversold,
        williams_overbought=today.wr10 is not None and today.wr10 >= t.williams_overbought,
    )


def technical_score(
    signals: TechnicalSignals,
    trend_direction: TrendDirection | None = None,
    trend_strength: float | None = None,
) -> float:
    """Weighted sum of fired signals and trend, clamped to [-100, 100]."""
    score = sum(
        weight for name, weight in SIGNAL_WEIGHTS.items() if getattr(signals, name)
    )
    if trend_strength is not None:
        if trend_direction is TrendDirection.UP:
            score += trend_strength * TREND_WEIGHT
        elif trend_direction is TrendDirection.DOWN:
            score -= trend_strength * TREND_WEIGHT
    return round(max(-100.0, min(100.0, score)), 2)


def recommend(score: float) -> Recommendation:
    return Recommendation.from_score(score)
