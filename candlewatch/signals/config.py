"""
Configuration for pattern detection and the monitor loop.

Config validation runs at construction time (fail fast with clear errors).
"""
from dataclasses import dataclass, field
from typing import List, Optional

from ..shared.types import ALL_TIMEFRAMES, TimeFrame
from ..shared.defaults import (
    MAX_KLINES, FETCH_WORKERS, SETTLE_SECONDS,
    PIN_BAR_SHADOW_BODY_RATIO, PIN_BAR_MAX_BODY_RATIO,
    PIN_BAR_LONG_STOP_FACTOR, PIN_BAR_SHORT_STOP_FACTOR,
    VOLUME_SPIKE_MIN_RATIO,
    VOLUME_SPIKE_LONG_STOP_FACTOR, VOLUME_SPIKE_SHORT_STOP_FACTOR,
    ENGULFING_STRONG_BODY_RATIO,
    ENGULFING_LONG_STOP_FACTOR, ENGULFING_SHORT_STOP_FACTOR,
    STRONG_SIGNAL_CONFIDENCE,
)

PROVIDERS = ("binance", "yahoo")


def _validate_stop_factors(name: str, long_factor: float, short_factor: float) -> None:
    if not (0 < long_factor <= 1):
        raise ValueError(f"{name} long stop factor must be in (0, 1], got {long_factor}")
    if short_factor < 1:
        raise ValueError(f"{name} short stop factor must be >= 1, got {short_factor}")


@dataclass
class DetectorConfig:
    """Thresholds and switches for the pattern rules."""
    # Rule enable/disable
    use_pin_bar: bool = True
    use_volume_spike: bool = True
    use_engulfing: bool = True

    # Pin bar
    pin_bar_shadow_body_ratio: float = PIN_BAR_SHADOW_BODY_RATIO
    pin_bar_max_body_ratio: float = PIN_BAR_MAX_BODY_RATIO
    pin_bar_long_stop_factor: float = PIN_BAR_LONG_STOP_FACTOR
    pin_bar_short_stop_factor: float = PIN_BAR_SHORT_STOP_FACTOR

    # Volume spike
    volume_spike_min_ratio: float = VOLUME_SPIKE_MIN_RATIO
    volume_spike_long_stop_factor: float = VOLUME_SPIKE_LONG_STOP_FACTOR
    volume_spike_short_stop_factor: float = VOLUME_SPIKE_SHORT_STOP_FACTOR

    # Engulfing
    engulfing_strong_body_ratio: float = ENGULFING_STRONG_BODY_RATIO
    engulfing_long_stop_factor: float = ENGULFING_LONG_STOP_FACTOR
    engulfing_short_stop_factor: float = ENGULFING_SHORT_STOP_FACTOR

    # Signals at or above this confidence count as strong
    strong_confidence: int = STRONG_SIGNAL_CONFIDENCE

    def __post_init__(self) -> None:
        if self.pin_bar_shadow_body_ratio <= 0:
            raise ValueError(
                f"pin_bar_shadow_body_ratio must be > 0, got {self.pin_bar_shadow_body_ratio}"
            )
        if not (0 < self.pin_bar_max_body_ratio <= 1):
            raise ValueError(
                f"pin_bar_max_body_ratio must be in (0, 1], got {self.pin_bar_max_body_ratio}"
            )
        if self.volume_spike_min_ratio <= 1:
            raise ValueError(
                f"volume_spike_min_ratio must be > 1, got {self.volume_spike_min_ratio}"
            )
        if self.engulfing_strong_body_ratio < 1:
            raise ValueError(
                f"engulfing_strong_body_ratio must be >= 1, got {self.engulfing_strong_body_ratio}"
            )
        if not (0 <= self.strong_confidence <= 100):
            raise ValueError(f"strong_confidence must be in [0, 100], got {self.strong_confidence}")
        _validate_stop_factors("pin bar", self.pin_bar_long_stop_factor, self.pin_bar_short_stop_factor)
        _validate_stop_factors(
            "volume spike", self.volume_spike_long_stop_factor, self.volume_spike_short_stop_factor
        )
        _validate_stop_factors(
            "engulfing", self.engulfing_long_stop_factor, self.engulfing_short_stop_factor
        )


@dataclass
class MonitorConfig:
    """Configuration for the polling signal monitor."""
    symbols: List[str] = field(default_factory=list)
    timeframes: List[TimeFrame] = field(default_factory=lambda: list(ALL_TIMEFRAMES))
    provider: str = "binance"
    max_klines: int = MAX_KLINES
    fetch_workers: int = FETCH_WORKERS

    # None = sleep until the next candle close of the shortest timeframe
    poll_interval_seconds: Optional[float] = None
    settle_seconds: float = SETTLE_SECONDS
    timezone: str = "UTC"

    min_confidence: int = STRONG_SIGNAL_CONFIDENCE
    log_path: Optional[str] = None

    detector: DetectorConfig = field(default_factory=DetectorConfig)

    def __post_init__(self) -> None:
        self.timeframes = [
            tf if isinstance(tf, TimeFrame) else TimeFrame.from_code(tf) for tf in self.timeframes
        ]
        if not self.timeframes:
            raise ValueError("At least one timeframe is required")
        if self.provider not in PROVIDERS:
            raise ValueError(f"provider must be one of {PROVIDERS}, got '{self.provider}'")
        if self.max_klines < 2:
            raise ValueError(f"max_klines must be >= 2 (two-candle patterns), got {self.max_klines}")
        if self.fetch_workers < 1:
            raise ValueError(f"fetch_workers must be >= 1, got {self.fetch_workers}")
        if self.poll_interval_seconds is not None and self.poll_interval_seconds <= 0:
            raise ValueError(
                f"poll_interval_seconds must be > 0 or None, got {self.poll_interval_seconds}"
            )
        if self.settle_seconds < 0:
            raise ValueError(f"settle_seconds must be >= 0, got {self.settle_seconds}")
        if not (0 <= self.min_confidence <= 100):
            raise ValueError(f"min_confidence must be in [0, 100], got {self.min_confidence}")
