"""Technical indicator formulas.

Pure functions over trailing windows ordered most recent first (index 0 is
the evaluation day). A function returns None when the window is shorter
than it needs.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from tw_quant.shared.models.enums import Fidelity, TrendDirection

Values = Sequence[float]


def _window(values: Values, period: int) -> np.ndarray | None:
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if len(values) < period:
        return None
    return np.asarray(values[:period], dtype=float)


# ============================================================================
# Averages
# ============================================================================


def sma(values: Values, period: int) -> float | None:
    """Mean of the most recent ``period`` values."""
    window = _window(values, period)
    return None if window is None else float(window.mean())


def ema_series(values: Values, period: int) -> list[float]:
    """
    EMA at every index where it is defined, most recent first.

    Seeded with the SMA of the oldest ``period`` values of the window, then
    rolled forward with ``k = 2 / (period + 1)``. Nothing is carried between
    calls: each call recomputes from the window it is given.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if len(values) < period:
        return []

    chronological = np.asarray(values[::-1], dtype=float)
    k = 2.0 / (period + 1)
    current = float(chronological[:period].mean())
    series = [current]
    for price in chronological[period:]:
        current = float(price) * k + current * (1 - k)
        series.append(current)
    return series[::-1]


def ema(values: Values, period: int) -> float | None:
    series = ema_series(values, period)
    return series[0] if series else None


# ============================================================================
# Momentum
# ============================================================================


@dataclass(frozen=True)
class Macd:
    macd: float | None = None
    signal: float | None = None
    histogram: float | None = None


def macd(
    closes: Values,
    fast: int = 12,
    slow: int = 26,
    signal_period: int = 9,
    fidelity: Fidelity = Fidelity.SIMPLIFIED,
) -> Macd:
    """
    MACD line ``EMA(fast) - EMA(slow)`` with signal and histogram.

    SIMPLIFIED: signal = MACD, histogram = 0.
    FULL: signal = EMA(signal_period) of the MACD series over the window,
    histogram = MACD - signal.
    """
    fast_series = ema_series(closes, fast)
    slow_series = ema_series(closes, slow)
    if not slow_series or not fast_series:
        return Macd()

    # both series are most recent first, so zip aligns them on the same days
    macd_series = [f - s for f, s in zip(fast_series, slow_series, strict=False)]
    line = macd_series[0]

    if fidelity is Fidelity.SIMPLIFIED:
        return Macd(macd=line, signal=line, histogram=0.0)

    signal = ema(macd_series, signal_period)
    return Macd(
        macd=line,
        signal=signal,
        histogram=None if signal is None else line - signal,
    )


def rsi(values: Values, period: int) -> float | None:
    """
    Relative strength index over ``period`` day-over-day changes.

    Needs ``period + 1`` values. A window without losses scores 100.
    """
    window = _window(values, period + 1)
    if window is None:
        return None

    changes = window[:-1] - window[1:]  # today minus the day before
    gains = float(changes[changes > 0].sum())
    losses = float(-changes[changes < 0].sum())
    if losses == 0:
        return 100.0

    relative_strength = (gains / period) / (losses / period)
    return 100.0 - 100.0 / (1.0 + relative_strength)


def _raw_k(highs: Values, lows: Values, closes: Values, period: int) -> float | None:
    if len(closes) < period or len(highs) < period or len(lows) < period:
        return None
    highest = max(highs[:period])
    lowest = min(lows[:period])
    if highest == lowest:
        return 50.0
    return (closes[0] - lowest) / (highest - lowest) * 100.0


def stochastic_kd(
    highs: Values,
    lows: Values,
    closes: Values,
    period: int = 9,
    d_period: int = 3,
    fidelity: Fidelity = Fidelity.SIMPLIFIED,
) -> tuple[float | None, float | None]:
    """
    Stochastic oscillator (K, D).

    K = (close - lowest low) / (highest high - lowest low) * 100; both are
    50 when the range is zero. SIMPLIFIED: D = K. FULL: D = SMA(d_period)
    of K.
    """
    k = _raw_k(highs, lows, closes, period)
    if k is None:
        return None, None
    if max(highs[:period]) == min(lows[:period]):
        return 50.0, 50.0
    if fidelity is Fidelity.SIMPLIFIED:
        return k, k

    k_series = [_raw_k(highs[i:], lows[i:], closes[i:], period) for i in range(d_period)]
    if any(value is None for value in k_series):
        return k, None
    return k, float(np.mean(k_series))


def williams_r(highs: Values, lows: Values, closes: Values, period: int) -> float | None:
    """Williams %R in [-100, 0]; -50 when the range is zero."""
    if len(closes) < period or len(highs) < period or len(lows) < period:
        return None
    highest = max(highs[:period])
    lowest = min(lows[:period])
    if highest == lowest:
        return -50.0
    return (highest - closes[0]) / (highest - lowest) * -100.0


# ============================================================================
# Volatility, volume, levels
# ============================================================================


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float
    width: float | None


def bollinger(closes: Values, period: int = 20, num_std: float = 2.0) -> BollingerBands | None:
    """SMA(period) middle band with bands at ``num_std`` population standard deviations."""
    window = _window(closes, period)
    if window is None:
        return None
    middle = float(window.mean())
    deviation = float(window.std(ddof=0))
    upper = middle + num_std * deviation
    lower = middle - num_std * deviation
    width = (upper - lower) / middle if middle else None
    return BollingerBands(upper=upper, middle=middle, lower=lower, width=width)


@dataclass(frozen=True)
class VolumeStats:
    ma5: float | None
    ma20: float | None
    ratio: float | None


def volume_stats(volumes: Values) -> VolumeStats:
    """Volume averages and today's volume relative to the 20-day average."""
    ma5 = sma(volumes, 5)
    ma20 = sma(volumes, 20)
    ratio = volumes[0] / ma20 if volumes and ma20 else None
    return VolumeStats(ma5=ma5, ma20=ma20, ratio=ratio)


def support_resistance(
    highs: Values, lows: Values, window: int = 20
) -> tuple[float | None, float | None]:
    """Lowest low and highest high over the trailing window."""
    if not highs or not lows:
        return None, None
    return float(min(lows[:window])), float(max(highs[:window]))


def price_strength(
    close: float | None, support: float | None, resistance: float | None
) -> float | None:
    """Position of the close inside the support/resistance range, 0..100."""
    if close is None or support is None or resistance is None:
        return None
    if resistance == support:
        return 50.0
    return (close - support) / (resistance - support) * 100.0


def trend(
    close: float | None,
    ma5: float | None,
    ma20: float | None,
    ma60: float | None = None,
) -> tuple[TrendDirection | None, float | None]:
    """
    Trend direction from moving-average alignment.

    UP when close >= MA5 > MA20 (> MA60 when known), DOWN for the mirror
    image, SIDEWAYS otherwise. Strength is the MA5/MA20 spread scaled so a
    10% spread reads 100.
    """
    if close is None or ma5 is None or ma20 is None or ma20 == 0:
        return None, None

    if ma5 > ma20 and (ma60 is None or ma20 > ma60) and close >= ma5:
        direction = TrendDirection.UP
    elif ma5 < ma20 and (ma60 is None or ma20 < ma60) and close <= ma5:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.SIDEWAYS

    strength = min(100.0, abs(ma5 - ma20) / ma20 * 1000.0)
    return direction, round(strength, 2)
