"""
Yahoo Finance candle provider.

Backed by yfinance. Yahoo has no native 4h interval, so the 4h series is built
by resampling hourly bars onto epoch-aligned 4 hour buckets.
"""
import logging
import warnings
from typing import Dict, List, Tuple

import pandas as pd
import yfinance as yf

from ..shared.types import Candle
from .frames import frame_to_candles
from .provider import ProviderFetchError

# Suppress yfinance's pandas deprecation warnings (will be fixed in future yfinance version)
warnings.filterwarnings('ignore', message='.*Timestamp.utcnow.*')

logger = logging.getLogger(__name__)

# interval_code -> (yfinance interval, download period, resample rule or None)
YAHOO_INTERVALS: Dict[str, Tuple[str, str, str]] = {
    "5m": ("5m", "5d", None),
    "15m": ("15m", "1mo", None),
    "30m": ("30m", "1mo", None),
    "1h": ("1h", "3mo", None),
    "4h": ("1h", "6mo", "4h"),
    "1d": ("1d", "2y", None),
}

RESAMPLE_AGG = {
    "Open": "first",
    "High": "max",
    "Low": "min",
    "Close": "last",
    "Volume": "sum",
}


def resample_ohlcv(df: pd.DataFrame, rule: str) -> pd.DataFrame:
    """
    Aggregate an OHLCV frame into coarser buckets aligned to the Unix epoch.

    Buckets without any source bar are dropped.
    """
    resampled = df.resample(rule, origin="epoch", label="left", closed="left").agg(RESAMPLE_AGG)
    return resampled.dropna(subset=["Open", "Close"])


class YahooProvider:
    """Fetch candles from Yahoo Finance via yfinance."""

    def fetch_candles(self, symbol: str, interval_code: str, limit: int) -> List[Candle]:
        if interval_code not in YAHOO_INTERVALS:
            raise ProviderFetchError(symbol, interval_code, "interval not supported by Yahoo Finance")
        yf_interval, period, resample_rule = YAHOO_INTERVALS[interval_code]

        try:
            df = yf.download(
                symbol,
                period=period,
                interval=yf_interval,
                progress=False,
                auto_adjust=False,
            )
        except Exception as e:
            # yfinance surfaces transport and parsing problems as assorted exception types
            raise ProviderFetchError(symbol, interval_code, f"{type(e).__name__}: {e}") from e

        if df is None or df.empty:
            raise ProviderFetchError(symbol, interval_code, "no data returned")

        # Flatten multi-level columns if present (yfinance sometimes returns these)
        if isinstance(df.columns, pd.MultiIndex):
            df.columns = df.columns.get_level_values(0)

        if df.index.tz is None:
            df.index = df.index.tz_localize("UTC")
        else:
            df.index = df.index.tz_convert("UTC")

        if resample_rule is not None:
            df = resample_ohlcv(df, resample_rule)

        try:
            candles = frame_to_candles(df)
        except ValueError as e:
            raise ProviderFetchError(symbol, interval_code, str(e)) from e

        if limit > 0:
            candles = candles[-limit:]
        logger.debug(f"Fetched {len(candles)} {interval_code} candles for {symbol} from Yahoo")
        return candles
