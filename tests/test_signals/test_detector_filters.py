"""Tests for detector_filters: confidence/direction filters, grouping, best signal."""
from candlewatch.shared.types import Direction, SignalKind, TimeFrame, TradingSignal
from candlewatch.signals.detector_filters import (
    filter_strong_signals,
    filter_signals_by_direction,
    combine_signals,
    best_signal,
)


def _signal(
    confidence: int,
    symbol: str = "BTCUSDT",
    timeframe: TimeFrame = TimeFrame.H1,
    direction: Direction = Direction.LONG,
    kind: SignalKind = SignalKind.ENGULFING,
):
    return TradingSignal(
        symbol=symbol,
        timeframe=timeframe,
        kind=kind,
        direction=direction,
        price=100.0,
        stop_loss=99.0 if direction is Direction.LONG else 101.0,
        confidence=confidence,
    )


class TestFilterStrongSignals:
    def test_threshold_is_inclusive(self):
        signals = [_signal(79), _signal(80), _signal(95)]
        assert filter_strong_signals(signals) == [signals[1], signals[2]]

    def test_custom_threshold(self):
        signals = [_signal(70), _signal(85), _signal(90)]
        assert filter_strong_signals(signals, min_confidence=90) == [signals[2]]

    def test_empty(self):
        assert filter_strong_signals([]) == []


class TestFilterSignalsByDirection:
    def test_keeps_matching_direction_in_order(self):
        long_a = _signal(80)
        short = _signal(85, direction=Direction.SHORT)
        long_b = _signal(90, timeframe=TimeFrame.D1)
        signals = [long_a, short, long_b]

        assert filter_signals_by_direction(signals, Direction.LONG) == [long_a, long_b]
        assert filter_signals_by_direction(signals, Direction.SHORT) == [short]


class TestCombineSignals:
    def test_groups_by_symbol_timeframe_direction(self):
        pin = _signal(100, kind=SignalKind.BULLISH_PIN_BAR)
        vol = _signal(95, kind=SignalKind.VOLUME_SPIKE)
        short = _signal(85, direction=Direction.SHORT, kind=SignalKind.VOLUME_SPIKE)
        eth = _signal(80, symbol="ETHUSDT")

        combined = combine_signals([pin, short, vol, eth])

        assert list(combined.keys()) == [
            ("BTCUSDT", TimeFrame.H1, Direction.LONG),
            ("BTCUSDT", TimeFrame.H1, Direction.SHORT),
            ("ETHUSDT", TimeFrame.H1, Direction.LONG),
        ]
        assert combined[("BTCUSDT", TimeFrame.H1, Direction.LONG)] == [pin, vol]
        assert combined[("BTCUSDT", TimeFrame.H1, Direction.SHORT)] == [short]

    def test_empty(self):
        assert combine_signals([]) == {}


class TestBestSignal:
    def test_highest_confidence(self):
        signals = [_signal(80), _signal(95), _signal(90)]
        assert best_signal(signals) is signals[1]

    def test_first_wins_ties(self):
        first = _signal(90, kind=SignalKind.VOLUME_SPIKE)
        second = _signal(90, kind=SignalKind.ENGULFING)
        assert best_signal([first, second]) is first

    def test_empty_returns_none(self):
        assert best_signal([]) is None
