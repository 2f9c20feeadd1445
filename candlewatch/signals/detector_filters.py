"""
Signal filtering and grouping for detector output.

Pure functions: filter by confidence or direction, group by
(symbol, timeframe, direction), and pick the best signal.
"""
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from ..shared.types import Direction, TimeFrame, TradingSignal
from ..shared.defaults import STRONG_SIGNAL_CONFIDENCE

SignalGroupKey = Tuple[str, TimeFrame, Direction]


def filter_strong_signals(
    signals: List[TradingSignal],
    min_confidence: int = STRONG_SIGNAL_CONFIDENCE,
) -> List[TradingSignal]:
    """
    Keep only signals with confidence >= min_confidence.

    Args:
        signals: List of trading signals
        min_confidence: Inclusive threshold (default 80)

    Returns:
        Filtered list preserving order
    """
    return [s for s in signals if s.confidence >= min_confidence]


def filter_signals_by_direction(
    signals: List[TradingSignal],
    direction: Direction,
) -> List[TradingSignal]:
    """Keep only signals pointing in direction."""
    return [s for s in signals if s.direction is direction]


def combine_signals(signals: List[TradingSignal]) -> Dict[SignalGroupKey, List[TradingSignal]]:
    """
    Group signals by (symbol, timeframe, direction).

    Args:
        signals: List of trading signals

    Returns:
        Ordered mapping from key to the signals sharing it; groups appear in
        order of first occurrence and keep input order internally
    """
    combined: Dict[SignalGroupKey, List[TradingSignal]] = OrderedDict()
    for signal in signals:
        combined.setdefault(signal.group_key, []).append(signal)
    return combined


def best_signal(signals: List[TradingSignal]) -> Optional[TradingSignal]:
    """Highest-confidence signal (first one wins ties), or None if empty."""
    if not signals:
        return None
    return max(signals, key=lambda s: s.confidence)
