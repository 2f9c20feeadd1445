"""
Market data module.

Provides the provider contract the candle cache consumes and concrete
providers for Binance (REST) and Yahoo Finance (yfinance).
"""
from .provider import MarketDataProvider, ProviderFetchError, normalize_candles
from .frames import candles_to_frame, frame_to_candles
from .binance import BinanceProvider
from .yahoo import YahooProvider


def make_provider(name: str) -> MarketDataProvider:
    """
    Build a provider by name.

    Args:
        name: "binance" or "yahoo"

    Raises:
        ValueError: If the name is unknown
    """
    key = name.strip().lower()
    if key == "binance":
        return BinanceProvider()
    if key == "yahoo":
        return YahooProvider()
    raise ValueError(f"Unknown provider '{name}' (valid: binance, yahoo)")


__all__ = [
    'MarketDataProvider',
    'ProviderFetchError',
    'normalize_candles',
    'candles_to_frame',
    'frame_to_candles',
    'BinanceProvider',
    'YahooProvider',
    'make_provider',
]
