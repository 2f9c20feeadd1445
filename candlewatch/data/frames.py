"""
Conversion between Candle lists and pandas OHLCV frames.

Frames use the column names yfinance produces (Open, High, Low, Close, Volume)
and a UTC DatetimeIndex of candle open times.
"""
from typing import List

import numpy as np
import pandas as pd

from ..shared.types import Candle

OHLCV_COLUMNS = ["Open", "High", "Low", "Close", "Volume"]


def candles_to_frame(candles: List[Candle]) -> pd.DataFrame:
    """
    Build an OHLCV DataFrame from candles.

    Args:
        candles: Candles in chronological order

    Returns:
        DataFrame indexed by UTC open time; empty frame with OHLCV columns if no candles
    """
    if not candles:
        return pd.DataFrame(
            columns=OHLCV_COLUMNS,
            index=pd.DatetimeIndex([], tz="UTC", name="open_time"),
            dtype=float,
        )
    index = pd.to_datetime([c.open_time for c in candles], unit="ms", utc=True)
    index.name = "open_time"
    return pd.DataFrame(
        {
            "Open": [c.open for c in candles],
            "High": [c.high for c in candles],
            "Low": [c.low for c in candles],
            "Close": [c.close for c in candles],
            "Volume": [c.volume for c in candles],
        },
        index=index,
    )


def frame_to_candles(df: pd.DataFrame) -> List[Candle]:
    """
    Convert an OHLCV DataFrame with a DatetimeIndex into candles.

    Rows with a missing price are dropped; a missing volume counts as zero.
    Naive timestamps are treated as UTC.
    """
    if df is None or df.empty:
        return []

    # Flatten multi-level columns if present (yfinance sometimes returns these)
    if isinstance(df.columns, pd.MultiIndex):
        df = df.copy()
        df.columns = df.columns.get_level_values(0)

    missing = [col for col in OHLCV_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Frame is missing OHLCV columns: {missing}")

    frame = df[OHLCV_COLUMNS].dropna(subset=["Open", "High", "Low", "Close"])
    frame = frame.fillna({"Volume": 0.0})

    index = pd.DatetimeIndex(frame.index)
    if index.tz is None:
        index = index.tz_localize("UTC")
    else:
        index = index.tz_convert("UTC")
    epoch = pd.Timestamp(0, tz="UTC")
    open_times = np.asarray((index - epoch) // pd.Timedelta(milliseconds=1), dtype=np.int64)

    values = frame.to_numpy(dtype=float)
    return [
        Candle(
            open_time=int(open_time),
            open=float(row[0]),
            high=float(row[1]),
            low=float(row[2]),
            close=float(row[3]),
            volume=float(row[4]),
        )
        for open_time, row in zip(open_times, values)
    ]
