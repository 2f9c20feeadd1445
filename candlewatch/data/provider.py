"""
Market data provider contract.

The cache only needs one call from an exchange binding: fetch the most recent
`limit` candles for a symbol at a given interval. Implementations live next to
this module (Binance REST, Yahoo Finance); tests use in-memory fakes.
"""
from typing import Iterable, List, Protocol

from ..shared.types import Candle


class ProviderFetchError(Exception):
    """Raised when a provider cannot deliver candles for a symbol/interval."""

    def __init__(self, symbol: str, interval_code: str, message: str):
        self.symbol = symbol
        self.interval_code = interval_code
        super().__init__(f"{symbol} {interval_code}: {message}")


class MarketDataProvider(Protocol):
    """Protocol for anything that can supply ordered candles."""

    def fetch_candles(self, symbol: str, interval_code: str, limit: int) -> List[Candle]:
        """
        Fetch the latest candles for symbol at interval_code.

        Args:
            symbol: Trading symbol (e.g. "BTCUSDT")
            interval_code: Provider interval code (e.g. "15m")
            limit: Maximum number of candles to return

        Returns:
            Candles in chronological order (may be fewer than limit)

        Raises:
            ProviderFetchError: On any transport or payload failure
        """
        ...


def normalize_candles(candles: Iterable[Candle]) -> List[Candle]:
    """
    Sort candles by open_time and collapse duplicate open_times.

    The last occurrence of a duplicated open_time wins, matching the provider's
    convention that later rows are fresher.
    """
    by_time = {}
    for candle in candles:
        by_time[candle.open_time] = candle
    return [by_time[t] for t in sorted(by_time)]
