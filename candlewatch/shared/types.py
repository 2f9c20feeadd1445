"""
Shared types for the candle cache and signal modules.

This module consolidates the TimeFrame enum, the Candle record and the
TradingSignal dataclass used by the cache, the detector and the monitor
so every layer agrees on one representation.
"""
import pandas as pd
from typing import Any, Dict, List, Tuple
from dataclasses import dataclass
from enum import Enum


_TIMEFRAME_MINUTES = {
    "5m": 5,
    "15m": 15,
    "30m": 30,
    "1h": 60,
    "4h": 240,
    "1d": 1440,
}

# Provider interval code per timeframe (fixed 1:1 mapping)
_INTERVAL_CODES = {
    "5m": "5m",
    "15m": "15m",
    "30m": "30m",
    "1h": "1h",
    "4h": "4h",
    "1d": "1d",
}


class TimeFrame(Enum):
    """Candle granularity. Closed set; no dynamic timeframes."""
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"

    @property
    def minutes(self) -> int:
        return _TIMEFRAME_MINUTES[self.value]

    @property
    def milliseconds(self) -> int:
        return self.minutes * 60_000

    @property
    def interval_code(self) -> str:
        """Interval code understood by the market data provider."""
        return _INTERVAL_CODES[self.value]

    @classmethod
    def from_code(cls, code: str) -> "TimeFrame":
        """
        Parse a timeframe code such as "15m" or "4H".

        Raises:
            ValueError: If the code is not one of the supported timeframes
        """
        normalized = str(code).strip().lower()
        for tf in cls:
            if tf.value == normalized:
                return tf
        valid = ", ".join(tf.value for tf in cls)
        raise ValueError(f"Unknown timeframe '{code}' (valid: {valid})")

    def __str__(self) -> str:
        return self.value


ALL_TIMEFRAMES: List[TimeFrame] = [
    TimeFrame.M5,
    TimeFrame.M15,
    TimeFrame.M30,
    TimeFrame.H1,
    TimeFrame.H4,
    TimeFrame.D1,
]


@dataclass(frozen=True)
class Candle:
    """
    OHLCV summary of one time bucket.

    open_time is epoch milliseconds and identifies the candle within a series.
    """
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def upper_shadow(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_shadow(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    @property
    def open_datetime(self) -> pd.Timestamp:
        return pd.Timestamp(self.open_time, unit="ms", tz="UTC")


class SignalKind(Enum):
    """Pattern that produced a signal."""
    BULLISH_PIN_BAR = "bullish_pin_bar"
    BEARISH_PIN_BAR = "bearish_pin_bar"
    VOLUME_SPIKE = "volume_spike"
    ENGULFING = "engulfing"


class Direction(Enum):
    """Trade direction suggested by a signal."""
    LONG = "long"
    SHORT = "short"


@dataclass(frozen=True)
class TradingSignal:
    """
    Represents a detected pattern with a suggested stop-loss.

    Immutable once produced and compared by value; two detector runs over
    the same candles produce equal signals.
    """
    symbol: str
    timeframe: TimeFrame
    kind: SignalKind
    direction: Direction
    price: float  # Trigger price (close of the candle that completed the pattern)
    stop_loss: float
    confidence: int  # 0-100 heuristic strength
    reason: str = ""

    @property
    def group_key(self) -> Tuple[str, TimeFrame, Direction]:
        return (self.symbol, self.timeframe, self.direction)

    def to_dict(self) -> Dict[str, Any]:
        """Plain mapping for alerting/execution consumers."""
        return {
            "symbol": self.symbol,
            "timeframe": self.timeframe.value,
            "kind": self.kind.value,
            "direction": self.direction.value,
            "price": self.price,
            "stop_loss": self.stop_loss,
            "confidence": self.confidence,
            "reason": self.reason,
        }
