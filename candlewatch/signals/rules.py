"""
Pluggable candle pattern rules.

Rules read the most recent candles of one (symbol, timeframe) series and
return TradingSignals; the detector fetches candles and concatenates results.
New rules can be added without changing detector logic.

All threshold comparisons are strict unless noted; a candle sitting exactly on
a boundary does not qualify.
"""
import logging
from typing import List, Protocol, Sequence

from ..shared.types import Candle, Direction, SignalKind, TimeFrame, TradingSignal
from ..shared.defaults import (
    MAX_CONFIDENCE,
    PIN_BAR_BASE_CONFIDENCE, PIN_BAR_SHADOW_TIERS, PIN_BAR_BODY_TIERS,
    PIN_BAR_OPPOSITE_SHADOW_RATIO, PIN_BAR_OPPOSITE_SHADOW_BONUS,
    VOLUME_SPIKE_BASE_CONFIDENCE, VOLUME_SPIKE_TIERS,
    ENGULFING_BASE_CONFIDENCE, ENGULFING_STRONG_CONFIDENCE,
)
from .config import DetectorConfig

logger = logging.getLogger(__name__)


class SignalRule(Protocol):
    """Protocol for a rule that evaluates the latest candles of one series."""

    candles_required: int

    def evaluate(
        self,
        candles: Sequence[Candle],
        symbol: str,
        timeframe: TimeFrame,
        config: DetectorConfig,
    ) -> List[TradingSignal]:
        """
        Evaluate rule on the latest candles.

        Args:
            candles: Most recent candles, oldest first (at most candles_required)
            symbol: Symbol the candles belong to
            timeframe: Timeframe of the series
            config: DetectorConfig with thresholds

        Returns:
            Signals produced (may be empty)
        """
        ...


def pin_bar_confidence(shadow: float, body: float, opposite_shadow: float, total_range: float) -> int:
    """
    Score a pin bar from its proportions.

    60 base, plus a bonus for a long dominant shadow, a small body and a short
    opposite shadow; capped at 100.
    """
    confidence = PIN_BAR_BASE_CONFIDENCE

    shadow_ratio = shadow / total_range
    for threshold, bonus in PIN_BAR_SHADOW_TIERS:
        if shadow_ratio > threshold:
            confidence += bonus
            break

    body_ratio = body / total_range
    for threshold, bonus in PIN_BAR_BODY_TIERS:
        if body_ratio < threshold:
            confidence += bonus
            break

    if opposite_shadow < body * PIN_BAR_OPPOSITE_SHADOW_RATIO:
        confidence += PIN_BAR_OPPOSITE_SHADOW_BONUS

    return min(confidence, MAX_CONFIDENCE)


def volume_spike_confidence(volume_ratio: float) -> int:
    """Tiered score for a current/previous volume ratio (ratio at or above each tier)."""
    for threshold, score in VOLUME_SPIKE_TIERS:
        if volume_ratio >= threshold:
            return score
    return VOLUME_SPIKE_BASE_CONFIDENCE


def engulfing_confidence(current_body: float, previous_body: float, strong_body_ratio: float) -> int:
    if current_body > previous_body * strong_body_ratio:
        return ENGULFING_STRONG_CONFIDENCE
    return ENGULFING_BASE_CONFIDENCE


def stop_loss_for(candle: Candle, direction: Direction, long_factor: float, short_factor: float) -> float:
    """Stop below the low for longs, above the high for shorts."""
    if direction is Direction.LONG:
        return candle.low * long_factor
    return candle.high * short_factor


def _log_signal(signal: TradingSignal) -> None:
    logger.info(
        f"[Signal] {signal.symbol} {signal.timeframe.value} - {signal.kind.value} "
        f"{signal.direction.value} (confidence {signal.confidence}) | "
        f"price {signal.price:.2f} | stop {signal.stop_loss:.2f}"
    )


class PinBarRule:
    """Long lower shadow (bullish) or long upper shadow (bearish) on the latest candle."""

    candles_required = 1

    def evaluate(
        self,
        candles: Sequence[Candle],
        symbol: str,
        timeframe: TimeFrame,
        config: DetectorConfig,
    ) -> List[TradingSignal]:
        signals: List[TradingSignal] = []
        if not candles:
            return signals

        candle = candles[-1]
        body = candle.body
        upper = candle.upper_shadow
        lower = candle.lower_shadow
        total_range = candle.range

        if total_range == 0 or body == 0:
            return signals

        small_body = body < total_range * config.pin_bar_max_body_ratio

        if lower > body * config.pin_bar_shadow_body_ratio and small_body and upper < body:
            signals.append(
                TradingSignal(
                    symbol=symbol,
                    timeframe=timeframe,
                    kind=SignalKind.BULLISH_PIN_BAR,
                    direction=Direction.LONG,
                    price=candle.close,
                    stop_loss=stop_loss_for(
                        candle, Direction.LONG,
                        config.pin_bar_long_stop_factor, config.pin_bar_short_stop_factor,
                    ),
                    confidence=pin_bar_confidence(lower, body, upper, total_range),
                    reason=(
                        f"Bullish pin bar: lower shadow {lower / total_range * 100:.2f}%, "
                        f"body {body / total_range * 100:.2f}%"
                    ),
                )
            )

        if upper > body * config.pin_bar_shadow_body_ratio and small_body and lower < body:
            signals.append(
                TradingSignal(
                    symbol=symbol,
                    timeframe=timeframe,
                    kind=SignalKind.BEARISH_PIN_BAR,
                    direction=Direction.SHORT,
                    price=candle.close,
                    stop_loss=stop_loss_for(
                        candle, Direction.SHORT,
                        config.pin_bar_long_stop_factor, config.pin_bar_short_stop_factor,
                    ),
                    confidence=pin_bar_confidence(upper, body, lower, total_range),
                    reason=(
                        f"Bearish pin bar: upper shadow {upper / total_range * 100:.2f}%, "
                        f"body {body / total_range * 100:.2f}%"
                    ),
                )
            )

        for signal in signals:
            _log_signal(signal)
        return signals


class VolumeSpikeRule:
    """Latest candle's volume at least volume_spike_min_ratio times the previous one."""

    candles_required = 2

    def evaluate(
        self,
        candles: Sequence[Candle],
        symbol: str,
        timeframe: TimeFrame,
        config: DetectorConfig,
    ) -> List[TradingSignal]:
        if len(candles) < 2:
            return []
        previous, current = candles[-2], candles[-1]

        if previous.volume == 0:
            return []

        volume_ratio = current.volume / previous.volume
        if volume_ratio < config.volume_spike_min_ratio:
            return []

        direction = Direction.SHORT if current.close < current.open else Direction.LONG
        signal = TradingSignal(
            symbol=symbol,
            timeframe=timeframe,
            kind=SignalKind.VOLUME_SPIKE,
            direction=direction,
            price=current.close,
            stop_loss=stop_loss_for(
                current, direction,
                config.volume_spike_long_stop_factor, config.volume_spike_short_stop_factor,
            ),
            confidence=volume_spike_confidence(volume_ratio),
            reason=f"Volume spike {volume_ratio:.1f}x ({previous.volume:.0f} -> {current.volume:.0f})",
        )
        _log_signal(signal)
        return [signal]


class EngulfingRule:
    """Latest candle's body engulfs the previous opposite-colored body."""

    candles_required = 2

    def evaluate(
        self,
        candles: Sequence[Candle],
        symbol: str,
        timeframe: TimeFrame,
        config: DetectorConfig,
    ) -> List[TradingSignal]:
        signals: List[TradingSignal] = []
        if len(candles) < 2:
            return signals
        previous, current = candles[-2], candles[-1]

        previous_body = previous.body
        current_body = current.body
        confidence = engulfing_confidence(current_body, previous_body, config.engulfing_strong_body_ratio)

        if (
            previous.close < previous.open
            and current.close > current.open
            and current.open < previous.close
            and current.close > previous.open
            and current_body > previous_body
        ):
            signals.append(
                TradingSignal(
                    symbol=symbol,
                    timeframe=timeframe,
                    kind=SignalKind.ENGULFING,
                    direction=Direction.LONG,
                    price=current.close,
                    stop_loss=stop_loss_for(
                        current, Direction.LONG,
                        config.engulfing_long_stop_factor, config.engulfing_short_stop_factor,
                    ),
                    confidence=confidence,
                    reason="Bullish engulfing",
                )
            )

        if (
            previous.close > previous.open
            and current.close < current.open
            and current.open > previous.close
            and current.close < previous.open
            and current_body > previous_body
        ):
            signals.append(
                TradingSignal(
                    symbol=symbol,
                    timeframe=timeframe,
                    kind=SignalKind.ENGULFING,
                    direction=Direction.SHORT,
                    price=current.close,
                    stop_loss=stop_loss_for(
                        current, Direction.SHORT,
                        config.engulfing_long_stop_factor, config.engulfing_short_stop_factor,
                    ),
                    confidence=confidence,
                    reason="Bearish engulfing",
                )
            )

        for signal in signals:
            _log_signal(signal)
        return signals


def get_signal_rules(config: DetectorConfig) -> List[SignalRule]:
    """
    Return the list of pattern rules enabled by config.

    Order: pin bar, volume spike, engulfing (DetectAllSignals output order).
    """
    rules: List[SignalRule] = []
    if getattr(config, "use_pin_bar", True):
        rules.append(PinBarRule())
    if getattr(config, "use_volume_spike", True):
        rules.append(VolumeSpikeRule())
    if getattr(config, "use_engulfing", True):
        rules.append(EngulfingRule())
    return rules
