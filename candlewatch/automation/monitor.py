"""
Polling signal monitor.

Keeps the candle cache fresh for the configured symbols and runs the
detector after every refresh. Signals at or above the configured confidence
are logged and handed to an optional callback (alerting/execution layers
live outside this package).
"""
import logging
import threading
from typing import Callable, List, Optional

from ..shared.types import TradingSignal
from ..market.cache import CandleCache, SeriesStatus
from ..signals.config import MonitorConfig
from ..signals.detector import SignalDetector
from ..signals.detector_filters import filter_strong_signals, combine_signals
from .scheduler import RefreshScheduler


logger = logging.getLogger(__name__)


class SignalMonitor:
    """
    Refresh-then-detect loop over a fixed symbol list.

    Responsibilities:
    - Initialize every configured symbol in the cache
    - Incrementally update each symbol and scan it for signals
    - Sleep a fixed interval or until the next candle close
    """

    def __init__(
        self,
        cache: CandleCache,
        detector: SignalDetector,
        config: MonitorConfig,
        scheduler: Optional[RefreshScheduler] = None,
        on_signal: Optional[Callable[[TradingSignal], None]] = None,
    ):
        """
        Initialize monitor.

        Args:
            cache: Candle cache shared with the detector
            detector: Signal detector reading from cache
            config: MonitorConfig with symbols, timeframes and thresholds
            scheduler: Candle-close scheduler (default: built from config)
            on_signal: Called once per reported signal
        """
        self.cache = cache
        self.detector = detector
        self.config = config
        self.scheduler = scheduler or RefreshScheduler(
            timezone=config.timezone,
            settle_seconds=config.settle_seconds,
        )
        self.on_signal = on_signal
        self.iterations = 0

    def initialize(self) -> List[str]:
        """
        Load initial history for every configured symbol.

        Returns:
            Symbols that are initialized afterwards
        """
        ready = []
        for symbol in self.config.symbols:
            try:
                self.cache.init_symbol(symbol, self.config.max_klines)
            except Exception as e:
                logger.error(f"Failed to initialize {symbol}: {e}")
                continue
            ready.append(symbol)

            missing = [
                tf.value for tf, status in self.cache.status(symbol).items()
                if status is SeriesStatus.MISSING
            ]
            if missing:
                logger.warning(f"{symbol}: no data for {', '.join(missing)}")

        logger.info(f"Initialized {len(ready)}/{len(self.config.symbols)} symbols")
        return ready

    def scan_symbol(self, symbol: str) -> List[TradingSignal]:
        """
        Refresh one symbol and return its signals above min_confidence.

        Symbols that are not in the cache yet are initialized instead of updated.
        """
        if self.cache.is_initialized(symbol):
            self.cache.update_symbol(symbol)
        else:
            self.cache.init_symbol(symbol, self.config.max_klines)

        signals = self.detector.detect_all_signals(symbol, self.config.timeframes)
        return filter_strong_signals(signals, self.config.min_confidence)

    def poll_once(self) -> List[TradingSignal]:
        """
        Run one refresh-and-detect pass over all symbols.

        A failing symbol is logged and skipped; the rest are still scanned.

        Returns:
            Reported signals, symbol-major in config order
        """
        collected: List[TradingSignal] = []
        for symbol in self.config.symbols:
            try:
                collected.extend(self.scan_symbol(symbol))
            except Exception as e:
                logger.error(f"Error scanning {symbol}: {e}")

        for (symbol, timeframe, direction), group in combine_signals(collected).items():
            kinds = ", ".join(s.kind.value for s in group)
            top = max(s.confidence for s in group)
            logger.info(
                f"{symbol} {timeframe.value} {direction.value}: "
                f"{len(group)} signal(s) [{kinds}], max confidence {top}"
            )

        if self.on_signal is not None:
            for signal in collected:
                self.on_signal(signal)

        self.iterations += 1
        logger.info(
            f"Pass {self.iterations}: scanned {len(self.config.symbols)} symbols, "
            f"found {len(collected)} signals"
        )
        return collected

    def next_sleep_seconds(self) -> float:
        """Fixed poll interval if configured, otherwise time to the next candle close."""
        if self.config.poll_interval_seconds is not None:
            return float(self.config.poll_interval_seconds)
        return self.scheduler.seconds_until_next_close(self.config.timeframes)

    def run(
        self,
        stop_event: Optional[threading.Event] = None,
        max_iterations: Optional[int] = None,
    ) -> int:
        """
        Initialize, then poll until stopped.

        Args:
            stop_event: Set to request a graceful stop (checked between passes and while sleeping)
            max_iterations: Stop after this many passes (None = run until stop_event)

        Returns:
            Number of passes completed
        """
        self.initialize()
        completed = 0

        while stop_event is None or not stop_event.is_set():
            self.poll_once()
            completed += 1
            if max_iterations is not None and completed >= max_iterations:
                break

            seconds = self.next_sleep_seconds()
            logger.debug(f"Sleeping {seconds:.1f}s until next poll")
            if self.scheduler.sleep(seconds, stop_event):
                logger.info("Stop requested, leaving poll loop")
                break

        return completed
