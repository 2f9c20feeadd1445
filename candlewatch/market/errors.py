"""Exceptions raised by CandleCache read and update operations."""
from ..shared.types import TimeFrame


class CacheError(Exception):
    """Base class for candle cache lookup failures."""
    pass


class NotInitializedError(CacheError):
    """Raised when an operation addresses a symbol that was never initialized."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"symbol {symbol} not initialized")


class UnknownTimeFrameError(CacheError):
    """Raised when an initialized symbol has no series for the timeframe."""

    def __init__(self, symbol: str, timeframe: TimeFrame):
        self.symbol = symbol
        self.timeframe = timeframe
        super().__init__(f"timeframe {timeframe.value} not found for {symbol}")


class NoDataError(CacheError):
    """Raised when a series exists but holds no candles."""

    def __init__(self, symbol: str, timeframe: TimeFrame):
        self.symbol = symbol
        self.timeframe = timeframe
        super().__init__(f"no klines available for {symbol} {timeframe.value}")
