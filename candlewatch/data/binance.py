"""Binance public REST klines provider."""
import logging
from typing import List, Optional

import requests

from ..shared.types import Candle
from .provider import ProviderFetchError

logger = logging.getLogger(__name__)

BINANCE_BASE_URL = "https://api.binance.com"
KLINES_ENDPOINT = "/api/v3/klines"
MAX_LIMIT = 1000  # Binance rejects larger limits


class BinanceProvider:
    """
    Fetch candles from Binance's public klines endpoint.

    No authentication is involved; the endpoint returns rows of
    [open_time, open, high, low, close, volume, close_time, ...] with prices
    encoded as strings.
    """

    def __init__(
        self,
        base_url: str = BINANCE_BASE_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            base_url: API root (override for testnet or a proxy)
            timeout: Per-request timeout in seconds
            session: Optional shared requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_candles(self, symbol: str, interval_code: str, limit: int) -> List[Candle]:
        params = {
            "symbol": symbol.upper(),
            "interval": interval_code,
            "limit": max(1, min(int(limit), MAX_LIMIT)),
        }
        try:
            response = self.session.get(
                f"{self.base_url}{KLINES_ENDPOINT}", params=params, timeout=self.timeout
            )
            response.raise_for_status()
            rows = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ProviderFetchError(symbol, interval_code, f"{type(e).__name__}: {e}") from e

        if not isinstance(rows, list):
            raise ProviderFetchError(symbol, interval_code, f"unexpected payload: {rows!r}")

        candles = []
        for row in rows:
            try:
                candles.append(
                    Candle(
                        open_time=int(row[0]),
                        open=float(row[1]),
                        high=float(row[2]),
                        low=float(row[3]),
                        close=float(row[4]),
                        volume=float(row[5]),
                    )
                )
            except (TypeError, ValueError, IndexError) as e:
                raise ProviderFetchError(symbol, interval_code, f"malformed kline row {row!r}") from e

        logger.debug(f"Fetched {len(candles)} {interval_code} candles for {symbol}")
        return candles
