"""
Shared types and defaults for the candle cache and signal detector.

This module provides:
- TimeFrame, Candle, SignalKind, Direction and TradingSignal
- Centralized default values for retention and pattern thresholds
"""
from .types import (
    TimeFrame,
    ALL_TIMEFRAMES,
    Candle,
    SignalKind,
    Direction,
    TradingSignal,
)
from .defaults import (
    MAX_KLINES, UPDATE_FETCH_LIMIT, FETCH_WORKERS,
    STRONG_SIGNAL_CONFIDENCE, MAX_CONFIDENCE,
    SETTLE_SECONDS,
)

__all__ = [
    'TimeFrame',
    'ALL_TIMEFRAMES',
    'Candle',
    'SignalKind',
    'Direction',
    'TradingSignal',
    'MAX_KLINES', 'UPDATE_FETCH_LIMIT', 'FETCH_WORKERS',
    'STRONG_SIGNAL_CONFIDENCE', 'MAX_CONFIDENCE',
    'SETTLE_SECONDS',
]
