"""
Multi-timeframe candle cache.

Keeps a bounded recent history per (symbol, timeframe) and refreshes it
incrementally from a market data provider.
"""
from .cache import CandleCache, SymbolRecord, SeriesStatus
from .errors import CacheError, NotInitializedError, UnknownTimeFrameError, NoDataError
from .locks import ReadWriteLock

__all__ = [
    'CandleCache',
    'SymbolRecord',
    'SeriesStatus',
    'CacheError',
    'NotInitializedError',
    'UnknownTimeFrameError',
    'NoDataError',
    'ReadWriteLock',
]
