"""
Pattern signal detector over the candle cache.

Stateless apart from a reference to the cache and its config: every call
reads the latest one or two candles of a (symbol, timeframe) series and
applies deterministic threshold rules. Nothing here mutates the cache.
"""
import logging
from typing import List, Optional, Sequence

from ..shared.types import ALL_TIMEFRAMES, Candle, TimeFrame, TradingSignal
from ..market.cache import CandleCache
from ..market.errors import CacheError
from .config import DetectorConfig
from .rules import (
    SignalRule,
    PinBarRule,
    VolumeSpikeRule,
    EngulfingRule,
    get_signal_rules,
)

logger = logging.getLogger(__name__)


class SignalDetector:
    """
    Pin bar, volume spike and engulfing detection on cached candles.

    Detection is best-effort analytics: cache lookup failures (unknown symbol,
    missing timeframe, empty series) produce an empty signal list instead of
    an exception. Safe to share between threads.
    """

    def __init__(self, cache: CandleCache, config: Optional[DetectorConfig] = None):
        """
        Initialize the signal detector.

        Args:
            cache: Candle cache to read from
            config: DetectorConfig with thresholds (default: DetectorConfig())
        """
        self.cache = cache
        self.config = config or DetectorConfig()
        self.rules: List[SignalRule] = get_signal_rules(self.config)

    def detect_all_signals(
        self,
        symbol: str,
        timeframes: Optional[Sequence[TimeFrame]] = None,
    ) -> List[TradingSignal]:
        """
        Run every enabled rule on every requested timeframe.

        Args:
            symbol: Symbol to analyze
            timeframes: Timeframes to scan (default: all six)

        Returns:
            Signals ordered timeframe-major, rule-minor (pin bar, volume spike, engulfing)
        """
        signals: List[TradingSignal] = []
        for tf in (timeframes if timeframes is not None else ALL_TIMEFRAMES):
            for rule in self.rules:
                signals.extend(self._run_rule(rule, symbol, tf))
        return signals

    def detect_pin_bar(self, symbol: str, timeframe: TimeFrame) -> List[TradingSignal]:
        """Bullish or bearish pin bar on the latest candle."""
        return self._run_rule(PinBarRule(), symbol, timeframe)

    def detect_volume_spike(self, symbol: str, timeframe: TimeFrame) -> List[TradingSignal]:
        """Volume of the latest candle versus the previous one."""
        return self._run_rule(VolumeSpikeRule(), symbol, timeframe)

    def detect_engulfing(self, symbol: str, timeframe: TimeFrame) -> List[TradingSignal]:
        """Bullish or bearish engulfing on the latest two candles."""
        return self._run_rule(EngulfingRule(), symbol, timeframe)

    def _run_rule(self, rule: SignalRule, symbol: str, timeframe: TimeFrame) -> List[TradingSignal]:
        candles = self._latest_candles(symbol, timeframe, rule.candles_required)
        if len(candles) < rule.candles_required:
            return []
        return rule.evaluate(candles, symbol, timeframe, self.config)

    def _latest_candles(self, symbol: str, timeframe: TimeFrame, count: int) -> List[Candle]:
        try:
            if count == 1:
                return [self.cache.get_latest_kline(symbol, timeframe)]
            return self.cache.get_latest_two_klines(symbol, timeframe)
        except CacheError as e:
            logger.debug(f"No candles for {symbol} {timeframe.value}: {e}")
            return []
