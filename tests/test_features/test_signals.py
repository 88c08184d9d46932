"""
Tests for signal detection and scoring.
"""

import pytest

from tw_quant.features.signals import (
    SignalThresholds,
    Snapshot,
    detect_signals,
    recommend,
    technical_score,
)
from tw_quant.shared.models.enums import Fidelity, Recommendation, TrendDirection
from tw_quant.storage.schemas.records import TechnicalSignals


class TestDetectSignals:
    def test_nothing_fires_on_empty_snapshots(self):
        signals = detect_signals(Snapshot(), None)
        assert signals == TechnicalSignals()

    def test_rsi_thresholds(self):
        assert detect_signals(Snapshot(rsi6=75.0), None).rsi_overbought
        assert detect_signals(Snapshot(rsi6=25.0), None).rsi_oversold
        relaxed = SignalThresholds(rsi_overbought=80.0)
        assert not detect_signals(Snapshot(rsi6=75.0), None, thresholds=relaxed).rsi_overbought

    def test_macd_zero_line_cross_in_simplified_mode(self):
        buy = detect_signals(Snapshot(macd=0.5), Snapshot(macd=-0.2))
        sell = detect_signals(Snapshot(macd=-0.5), Snapshot(macd=0.2))
        assert buy.macd_buy and not buy.macd_sell
        assert sell.macd_sell and not sell.macd_buy

    def test_macd_signal_cross_in_full_mode(self):
        signals = detect_signals(
            Snapshot(macd=3.0, macd_signal=2.0),
            Snapshot(macd=1.0, macd_signal=2.0),
            fidelity=Fidelity.FULL,
        )
        assert signals.macd_buy

    def test_kd_cross_uses_previous_k_in_simplified_mode(self):
        golden = detect_signals(Snapshot(k=60.0), Snapshot(k=40.0), Snapshot(k=50.0))
        death = detect_signals(Snapshot(k=40.0), Snapshot(k=60.0), Snapshot(k=50.0))
        assert golden.kd_golden_cross
        assert death.kd_death_cross

    def test_kd_golden_cross_ignored_when_overbought(self):
        signals = detect_signals(
            Snapshot(k=85.0, d=80.0), Snapshot(k=70.0, d=75.0), fidelity=Fidelity.FULL
        )
        assert not signals.kd_golden_cross

    def test_volume_breakout_needs_rising_close(self):
        up = detect_signals(Snapshot(close=11.0, volume_ratio=2.5), Snapshot(close=10.0))
        down = detect_signals(Snapshot(close=9.0, volume_ratio=2.5), Snapshot(close=10.0))
        assert up.volume_breakout
        assert not down.volume_breakout

    def test_price_breakout_over_previous_resistance(self):
        signals = detect_signals(Snapshot(close=105.0), Snapshot(close=99.0, resistance=100.0))
        assert signals.price_breakout

    def test_bollinger_and_williams(self):
        signals = detect_signals(Snapshot(close=90.0, bb_lower=91.0, bb_upper=110.0, wr10=-85.0), None)
        assert signals.bollinger_buy_signal
        assert not signals.bollinger_sell_signal
        assert signals.williams_oversold


class TestScore:
    def test_weighted_sum_with_trend(self):
        signals = TechnicalSignals(macd_buy=True, rsi_oversold=True)
        assert technical_score(signals, TrendDirection.UP, 50.0) == pytest.approx(50.0)

    def test_downtrend_subtracts(self):
        signals = TechnicalSignals(macd_sell=True)
        assert technical_score(signals, TrendDirection.DOWN, 10.0) == pytest.approx(-23.0)

    def test_clamped(self):
        signals = TechnicalSignals(
            macd_buy=True,
            rsi_oversold=True,
            kd_golden_cross=True,
            volume_breakout=True,
            price_breakout=True,
            bollinger_buy_signal=True,
            williams_oversold=True,
        )
        assert technical_score(signals, TrendDirection.UP, 100.0) == 100.0

    @pytest.mark.parametrize(
        "score,expected",
        [
            (50, Recommendation.STRONG_BUY),
            (20, Recommendation.BUY),
            (19.99, Recommendation.HOLD),
            (-20, Recommendation.SELL),
            (-50, Recommendation.STRONG_SELL),
        ],
    )
    def test_recommendation_thresholds(self, score, expected):
        assert recommend(score) is expected

    def test_signals_serialize_camel_case(self):
        dumped = TechnicalSignals(kd_golden_cross=True).model_dump(by_alias=True)
        assert dumped["kdGoldenCross"] is True
        assert "bollingerBuySignal" in dumped
