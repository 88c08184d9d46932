"""Technical indicators, signals and the per-date indicator engine."""

from .engine import DateComputationResult, SymbolOutcome, SymbolStatus, TechnicalIndicatorEngine
from .signals import SignalThresholds, detect_signals, technical_score

__all__ = [
    "DateComputationResult",
    "SignalThresholds",
    "SymbolOutcome",
    "SymbolStatus",
    "TechnicalIndicatorEngine",
    "detect_signals",
    "technical_score",
]
