"""
CandleCache: bounded multi-timeframe candle history per symbol.

Holds, for every initialized symbol, one chronologically ordered series per
timeframe. Series are filled once by init_symbol and then refreshed
incrementally by update_symbol, which only asks the provider for the latest
two candles per timeframe.

Candle lifecycle is positional: only the last candle of a series may still be
forming. A fetched candle with the same open_time overwrites it; a fetched
candle with a later open_time closes it and is appended.

Locking:
- a cache-wide lock guards the symbol map and is never held across provider I/O
- a per-symbol init lock makes concurrent init_symbol calls fetch only once
- a per-symbol read/write lock guards the series; updates fetch outside it
  and merge under its write side
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

import pandas as pd

from ..shared.types import ALL_TIMEFRAMES, Candle, TimeFrame
from ..shared.defaults import MAX_KLINES, UPDATE_FETCH_LIMIT, FETCH_WORKERS
from ..data.provider import MarketDataProvider, normalize_candles
from ..data.frames import candles_to_frame
from .errors import NotInitializedError, UnknownTimeFrameError, NoDataError
from .locks import ReadWriteLock


logger = logging.getLogger(__name__)


class SeriesStatus(Enum):
    """Health of one timeframe series within a symbol record."""
    POPULATED = "populated"  # Stored, last fetch succeeded
    MISSING = "missing"  # Never fetched successfully; reads raise UnknownTimeFrameError
    STALE = "stale"  # Stored, but the most recent update fetch failed


@dataclass
class SymbolRecord:
    """Per-symbol timeframe series. Mutated only through CandleCache writes."""
    symbol: str
    series: Dict[TimeFrame, List[Candle]] = field(default_factory=dict)
    status: Dict[TimeFrame, SeriesStatus] = field(default_factory=dict)
    lock: ReadWriteLock = field(default_factory=ReadWriteLock, repr=False)
    update_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class CandleCache:
    """
    Thread-safe candle cache shared by the detector and its callers.

    Construct one instance and pass it around; there is no global cache.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        max_klines: int = MAX_KLINES,
        timeframes: Optional[Sequence[TimeFrame]] = None,
        fetch_workers: int = FETCH_WORKERS,
    ):
        """
        Initialize the cache.

        Args:
            provider: Market data source
            max_klines: Retention cap per series, applied by every write path
            timeframes: Timeframes to maintain (default: all six)
            fetch_workers: Parallel per-timeframe fetches (1 = sequential)
        """
        if max_klines < 1:
            raise ValueError(f"max_klines must be >= 1, got {max_klines}")
        if fetch_workers < 1:
            raise ValueError(f"fetch_workers must be >= 1, got {fetch_workers}")

        self.provider = provider
        self.max_klines = max_klines
        self.timeframes: List[TimeFrame] = list(timeframes) if timeframes else list(ALL_TIMEFRAMES)
        self.fetch_workers = fetch_workers

        self._records: Dict[str, SymbolRecord] = {}
        self._init_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def init_symbol(self, symbol: str, max_klines: Optional[int] = None) -> None:
        """
        Load the initial history of every timeframe for symbol.

        Idempotent: returns immediately if the symbol is already initialized.
        A failed timeframe fetch leaves that timeframe MISSING; the record is
        installed once all fetch attempts have completed.

        Args:
            symbol: Trading symbol
            max_klines: Candles to request per timeframe (default: retention cap).
                Stored series are still capped at the cache's max_klines.
        """
        with self._lock:
            if symbol in self._records:
                logger.debug(f"{symbol} already initialized, skipping")
                return
            init_lock = self._init_locks.setdefault(symbol, threading.Lock())

        with init_lock:
            # Another caller may have finished while we waited
            with self._lock:
                if symbol in self._records:
                    logger.debug(f"{symbol} initialized by a concurrent caller")
                    return

            limit = self.max_klines if max_klines is None else max_klines
            if limit < 1:
                raise ValueError(f"max_klines must be >= 1, got {limit}")

            record = SymbolRecord(symbol=symbol)
            fetched = self._fetch_all(symbol, limit, action="load")
            for tf in self.timeframes:
                candles = fetched[tf]
                if candles is None:
                    record.status[tf] = SeriesStatus.MISSING
                    continue
                record.series[tf] = self._trim(normalize_candles(candles))
                record.status[tf] = SeriesStatus.POPULATED
                logger.info(f"Loaded {symbol} {tf.value}: {len(record.series[tf])} candles")

            with self._lock:
                self._records[symbol] = record
                self._init_locks.pop(symbol, None)

        missing = [tf.value for tf, st in record.status.items() if st is SeriesStatus.MISSING]
        if missing:
            logger.warning(f"{symbol} initialized without timeframes: {', '.join(missing)}")

    def update_symbol(self, symbol: str) -> None:
        """
        Refresh every timeframe of symbol with the provider's latest candles.

        Per timeframe: an empty fetch leaves the series unchanged; an empty
        series adopts the fetched candles; otherwise the fetched latest candle
        is appended (new open_time) or overwrites the forming candle (same
        open_time). Series are then truncated to the retention cap.

        Raises:
            NotInitializedError: If init_symbol has not completed for symbol
        """
        record = self._get_record(symbol)

        with record.update_lock:
            fetched = self._fetch_all(symbol, UPDATE_FETCH_LIMIT, action="update")
            with record.lock.write_locked():
                for tf in self.timeframes:
                    candles = fetched[tf]
                    if candles is None:
                        if record.status.get(tf) is SeriesStatus.POPULATED:
                            record.status[tf] = SeriesStatus.STALE
                        continue
                    self._merge(record, tf, normalize_candles(candles))

    def _merge(self, record: SymbolRecord, tf: TimeFrame, candles: List[Candle]) -> None:
        """Merge a fetched batch into one series. Caller holds the write lock."""
        if not candles:
            return

        existing = record.series.get(tf)
        if not existing:
            record.series[tf] = self._trim(candles)
            record.status[tf] = SeriesStatus.POPULATED
            return

        latest = candles[-1]
        last = existing[-1]
        if latest.open_time > last.open_time:
            existing.append(latest)
            logger.info(
                f"{record.symbol} {tf.value}: new candle "
                f"({latest.open_datetime.strftime('%Y-%m-%d %H:%M')} UTC)"
            )
        elif latest.open_time == last.open_time:
            existing[-1] = latest
        else:
            logger.debug(
                f"{record.symbol} {tf.value}: ignoring stale candle {latest.open_time} "
                f"(stored latest {last.open_time})"
            )

        record.series[tf] = self._trim(existing)
        record.status[tf] = SeriesStatus.POPULATED

    def _fetch_all(self, symbol: str, limit: int, action: str) -> Dict[TimeFrame, Optional[List[Candle]]]:
        """Fetch every timeframe; None marks a failed fetch."""

        def fetch_one(tf: TimeFrame) -> Optional[List[Candle]]:
            try:
                return self.provider.fetch_candles(symbol, tf.interval_code, limit)
            except Exception as e:
                logger.warning(f"Failed to {action} {symbol} {tf.value} klines: {e}")
                return None

        if self.fetch_workers <= 1 or len(self.timeframes) <= 1:
            return {tf: fetch_one(tf) for tf in self.timeframes}

        results: Dict[TimeFrame, Optional[List[Candle]]] = {}
        workers = min(self.fetch_workers, len(self.timeframes))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(fetch_one, tf): tf for tf in self.timeframes}
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        return {tf: results[tf] for tf in self.timeframes}

    def _trim(self, candles: List[Candle]) -> List[Candle]:
        if len(candles) > self.max_klines:
            return candles[-self.max_klines:]
        return candles

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def get_klines(self, symbol: str, timeframe: TimeFrame, limit: int) -> List[Candle]:
        """
        Return the most recent `limit` candles in chronological order.

        Returns the whole series if it is shorter than limit. The returned list
        is a copy.

        Raises:
            NotInitializedError: Unknown symbol
            UnknownTimeFrameError: No series stored for timeframe
            ValueError: Negative limit
        """
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        record = self._get_record(symbol)
        with record.lock.read_locked():
            candles = record.series.get(timeframe)
            if candles is None:
                raise UnknownTimeFrameError(symbol, timeframe)
            if limit == 0:
                return []
            return list(candles[-limit:])

    def get_latest_kline(self, symbol: str, timeframe: TimeFrame) -> Candle:
        """Most recent candle (possibly still forming). Raises NoDataError if the series is empty."""
        klines = self.get_klines(symbol, timeframe, 1)
        if not klines:
            raise NoDataError(symbol, timeframe)
        return klines[0]

    def get_latest_two_klines(self, symbol: str, timeframe: TimeFrame) -> List[Candle]:
        """Up to two most recent candles, oldest first. Raises NoDataError if the series is empty."""
        klines = self.get_klines(symbol, timeframe, 2)
        if not klines:
            raise NoDataError(symbol, timeframe)
        return klines

    def get_frame(self, symbol: str, timeframe: TimeFrame, limit: Optional[int] = None) -> pd.DataFrame:
        """OHLCV DataFrame view of the most recent candles (default: whole series)."""
        klines = self.get_klines(symbol, timeframe, self.max_klines if limit is None else limit)
        return candles_to_frame(klines)

    def status(self, symbol: str) -> Dict[TimeFrame, SeriesStatus]:
        """Per-timeframe status snapshot for symbol."""
        record = self._get_record(symbol)
        with record.lock.read_locked():
            return dict(record.status)

    def symbols(self) -> List[str]:
        with self._lock:
            return sorted(self._records)

    def is_initialized(self, symbol: str) -> bool:
        with self._lock:
            return symbol in self._records

    def __contains__(self, symbol: str) -> bool:
        return self.is_initialized(symbol)

    def _get_record(self, symbol: str) -> SymbolRecord:
        with self._lock:
            record = self._records.get(symbol)
        if record is None:
            raise NotInitializedError(symbol)
        return record

    def __repr__(self) -> str:
        return (
            f"CandleCache(symbols={len(self.symbols())}, "
            f"timeframes={[tf.value for tf in self.timeframes]}, max_klines={self.max_klines})"
        )
