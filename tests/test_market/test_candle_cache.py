"""
Tests for CandleCache: initialization, incremental merge, reads and locking.

Covers:
- init_symbol: six-timeframe load, idempotence, partial failure, retention cap
- update_symbol: forming-candle overwrite, new-period append, idempotence,
  truncation, stale/missing timeframe handling
- get_klines family: ordering, limits, error taxonomy
- Concurrency: single fetch sequence for concurrent init, reads during update I/O
"""
import threading
import time

import pandas as pd
import pytest

from candlewatch.data.provider import ProviderFetchError
from candlewatch.market.cache import CandleCache, SeriesStatus
from candlewatch.market.errors import NotInitializedError, UnknownTimeFrameError, NoDataError
from candlewatch.shared.types import ALL_TIMEFRAMES, Candle, TimeFrame

BASE_TIME = 1_700_000_000_000
STEP = 300_000  # 5 minutes


def _candle(i: int, close: float = 100.5, volume: float = 10.0) -> Candle:
    return Candle(
        open_time=BASE_TIME + i * STEP,
        open=100.0,
        high=max(101.0, close + 0.5),
        low=min(99.0, close - 0.5),
        close=close,
        volume=volume,
    )


def _series(n: int, start: int = 0):
    return [_candle(i) for i in range(start, start + n)]


class FakeProvider:
    """In-memory provider: returns the tail of a per-interval candle list."""

    def __init__(self, data=None, fail=None, delay: float = 0.0):
        self.data = data if data is not None else {}
        self.fail = set(fail or [])
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def fetch_candles(self, symbol, interval_code, limit):
        with self._lock:
            self.calls.append((symbol, interval_code, limit))
        if self.delay:
            time.sleep(self.delay)
        if interval_code in self.fail:
            raise ProviderFetchError(symbol, interval_code, "boom")
        return list(self.data.get(interval_code, []))[-limit:]


def _all_intervals(candles):
    return {tf.interval_code: list(candles) for tf in ALL_TIMEFRAMES}


def _assert_ordered(candles):
    times = [c.open_time for c in candles]
    assert times == sorted(times)
    assert len(set(times)) == len(times)


class TestInitSymbol:
    """Tests for the initial load."""

    def test_loads_all_six_timeframes(self):
        provider = FakeProvider(_all_intervals(_series(20)))
        cache = CandleCache(provider)

        cache.init_symbol("BTCUSDT", 20)

        assert cache.is_initialized("BTCUSDT")
        assert "BTCUSDT" in cache
        assert len(provider.calls) == 6
        assert {c[1] for c in provider.calls} == {"5m", "15m", "30m", "1h", "4h", "1d"}
        assert all(c[2] == 20 for c in provider.calls)
        for tf in ALL_TIMEFRAMES:
            assert len(cache.get_klines("BTCUSDT", tf, 100)) == 20
        assert set(cache.status("BTCUSDT").values()) == {SeriesStatus.POPULATED}

    def test_init_is_idempotent(self):
        provider = FakeProvider(_all_intervals(_series(5)))
        cache = CandleCache(provider)

        cache.init_symbol("BTCUSDT", 20)
        cache.init_symbol("BTCUSDT", 20)

        assert len(provider.calls) == 6

    def test_failed_timeframe_is_missing_but_others_load(self):
        provider = FakeProvider(_all_intervals(_series(5)), fail={"4h"})
        cache = CandleCache(provider)

        cache.init_symbol("ETHUSDT")

        status = cache.status("ETHUSDT")
        assert status[TimeFrame.H4] is SeriesStatus.MISSING
        assert status[TimeFrame.H1] is SeriesStatus.POPULATED
        with pytest.raises(UnknownTimeFrameError):
            cache.get_klines("ETHUSDT", TimeFrame.H4, 5)
        assert len(cache.get_klines("ETHUSDT", TimeFrame.H1, 5)) == 5

    def test_all_timeframes_failing_still_installs_record(self):
        provider = FakeProvider({}, fail={tf.interval_code for tf in ALL_TIMEFRAMES})
        cache = CandleCache(provider)

        cache.init_symbol("XRPUSDT")

        assert cache.is_initialized("XRPUSDT")
        assert set(cache.status("XRPUSDT").values()) == {SeriesStatus.MISSING}

    def test_generic_provider_exception_is_not_fatal(self):
        class BrokenProvider:
            def fetch_candles(self, symbol, interval_code, limit):
                raise ConnectionError("network down")

        cache = CandleCache(BrokenProvider())
        cache.init_symbol("BTCUSDT")

        assert set(cache.status("BTCUSDT").values()) == {SeriesStatus.MISSING}

    def test_stored_series_capped_at_retention(self):
        provider = FakeProvider(_all_intervals(_series(50)))
        cache = CandleCache(provider, max_klines=20)

        cache.init_symbol("BTCUSDT", 50)

        klines = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
        assert len(klines) == 20
        assert klines[-1] == _candle(49)
        assert klines[0] == _candle(30)

    def test_default_fetch_size_is_retention_cap(self):
        provider = FakeProvider(_all_intervals(_series(5)))
        cache = CandleCache(provider, max_klines=12)

        cache.init_symbol("BTCUSDT")

        assert all(c[2] == 12 for c in provider.calls)

    def test_unsorted_duplicate_provider_output_is_normalized(self):
        candles = [_candle(2), _candle(0), _candle(1), _candle(1, close=100.9)]
        provider = FakeProvider({"5m": candles})
        cache = CandleCache(provider, timeframes=[TimeFrame.M5])

        cache.init_symbol("BTCUSDT")

        klines = cache.get_klines("BTCUSDT", TimeFrame.M5, 10)
        _assert_ordered(klines)
        assert len(klines) == 3
        assert klines[1].close == 100.9

    def test_parallel_fetch_workers_load_everything(self):
        provider = FakeProvider(_all_intervals(_series(8)), delay=0.01)
        cache = CandleCache(provider, fetch_workers=6)

        cache.init_symbol("BTCUSDT")

        assert len(provider.calls) == 6
        for tf in ALL_TIMEFRAMES:
            assert len(cache.get_klines("BTCUSDT", tf, 20)) == 8

    def test_invalid_fetch_size_rejected(self):
        cache = CandleCache(FakeProvider())
        with pytest.raises(ValueError):
            cache.init_symbol("BTCUSDT", 0)
        assert not cache.is_initialized("BTCUSDT")


class TestUpdateSymbol:
    """Tests for the incremental merge policy."""

    def _cache(self, initial, timeframes=(TimeFrame.M5,), max_klines=20):
        provider = FakeProvider({"5m": list(initial)})
        cache = CandleCache(provider, max_klines=max_klines, timeframes=list(timeframes))
        cache.init_symbol("BTCUSDT")
        return cache, provider

    def test_update_requires_initialization(self):
        cache = CandleCache(FakeProvider())
        with pytest.raises(NotInitializedError):
            cache.update_symbol("BTCUSDT")

    def test_update_fetches_latest_two(self):
        cache, provider = self._cache(_series(5))
        provider.calls.clear()

        cache.update_symbol("BTCUSDT")

        assert provider.calls == [("BTCUSDT", "5m", 2)]

    def test_forming_candle_is_overwritten(self):
        cache, provider = self._cache(_series(5))
        updated_last = _candle(4, close=103.0, volume=55.0)
        provider.data["5m"] = [_candle(3), updated_last]

        cache.update_symbol("BTCUSDT")

        klines = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
        assert len(klines) == 5
        assert klines[-1] == updated_last
        assert klines[-1].close == 103.0
        assert klines[-1].volume == 55.0

    def test_new_period_appends_one_candle(self):
        initial = _series(5)
        cache, provider = self._cache(initial)
        new_candle = _candle(5, close=102.0)
        provider.data["5m"] = [_candle(4, close=101.0), new_candle]

        cache.update_symbol("BTCUSDT")

        klines = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
        assert len(klines) == 6
        assert klines[-2] == initial[-1]
        assert klines[-1] == new_candle

    def test_update_twice_with_identical_data_is_idempotent(self):
        cache, provider = self._cache(_series(5))
        provider.data["5m"] = [_candle(4), _candle(5, close=102.0)]

        cache.update_symbol("BTCUSDT")
        after_first = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
        cache.update_symbol("BTCUSDT")
        after_second = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)

        assert after_second == after_first

    def test_series_truncated_to_retention_cap(self):
        cache, provider = self._cache(_series(20))

        for i in range(20, 25):
            provider.data["5m"] = [_candle(i - 1), _candle(i)]
            cache.update_symbol("BTCUSDT")

        klines = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
        assert len(klines) == 20
        assert klines[0] == _candle(5)
        assert klines[-1] == _candle(24)

    def test_empty_fetch_leaves_series_unchanged(self):
        cache, provider = self._cache(_series(5))
        before = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
        provider.data["5m"] = []

        cache.update_symbol("BTCUSDT")

        assert cache.get_klines("BTCUSDT", TimeFrame.M5, 100) == before

    def test_empty_series_adopts_fetched_candles(self):
        cache, provider = self._cache([])
        assert cache.get_klines("BTCUSDT", TimeFrame.M5, 10) == []
        provider.data["5m"] = [_candle(0), _candle(1)]

        cache.update_symbol("BTCUSDT")

        assert cache.get_klines("BTCUSDT", TimeFrame.M5, 10) == [_candle(0), _candle(1)]

    def test_older_fetched_candle_is_ignored(self):
        cache, provider = self._cache(_series(5))
        before = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
        provider.data["5m"] = [_candle(1, close=90.0), _candle(2, close=90.0)]

        cache.update_symbol("BTCUSDT")

        after = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
        assert after == before
        _assert_ordered(after)

    def test_failed_update_marks_stale_and_recovers(self):
        cache, provider = self._cache(_series(5))
        before = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
        provider.fail.add("5m")

        cache.update_symbol("BTCUSDT")

        assert cache.status("BTCUSDT")[TimeFrame.M5] is SeriesStatus.STALE
        assert cache.get_klines("BTCUSDT", TimeFrame.M5, 100) == before

        provider.fail.clear()
        provider.data["5m"] = [_candle(4), _candle(5)]
        cache.update_symbol("BTCUSDT")

        assert cache.status("BTCUSDT")[TimeFrame.M5] is SeriesStatus.POPULATED
        assert len(cache.get_klines("BTCUSDT", TimeFrame.M5, 100)) == 6

    def test_missing_timeframe_adopted_on_update(self):
        provider = FakeProvider({"5m": _series(3)}, fail={"5m"})
        cache = CandleCache(provider, timeframes=[TimeFrame.M5])
        cache.init_symbol("BTCUSDT")
        assert cache.status("BTCUSDT")[TimeFrame.M5] is SeriesStatus.MISSING

        provider.fail.clear()
        cache.update_symbol("BTCUSDT")

        assert cache.status("BTCUSDT")[TimeFrame.M5] is SeriesStatus.POPULATED
        assert cache.get_klines("BTCUSDT", TimeFrame.M5, 10) == _series(3)[-2:]

    def test_ordering_invariant_over_mixed_updates(self):
        cache, provider = self._cache(_series(18))
        batches = [
            [_candle(17, close=101.0), _candle(18)],
            [_candle(18), _candle(18, close=99.0)],
            [_candle(19)],
            [_candle(10), _candle(11)],
            [_candle(20), _candle(19)],
            [_candle(21), _candle(22)],
            [],
            [_candle(23)],
        ]
        for batch in batches:
            provider.data["5m"] = batch
            cache.update_symbol("BTCUSDT")
            klines = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
            _assert_ordered(klines)
            assert len(klines) <= 20

        assert cache.get_klines("BTCUSDT", TimeFrame.M5, 1)[0] == _candle(23)


class TestReads:
    """Tests for get_klines, get_latest_kline, get_latest_two_klines and get_frame."""

    @pytest.fixture
    def cache(self):
        provider = FakeProvider({"5m": _series(10), "1h": []})
        cache = CandleCache(provider, timeframes=[TimeFrame.M5, TimeFrame.H1])
        cache.init_symbol("BTCUSDT")
        return cache

    def test_unknown_symbol_raises_not_initialized(self, cache):
        with pytest.raises(NotInitializedError):
            cache.get_klines("DOGEUSDT", TimeFrame.M5, 5)
        with pytest.raises(NotInitializedError):
            cache.get_latest_kline("DOGEUSDT", TimeFrame.M5)

    def test_untracked_timeframe_raises_unknown_timeframe(self, cache):
        with pytest.raises(UnknownTimeFrameError):
            cache.get_klines("BTCUSDT", TimeFrame.D1, 5)

    def test_returns_most_recent_in_chronological_order(self, cache):
        klines = cache.get_klines("BTCUSDT", TimeFrame.M5, 3)
        assert klines == [_candle(7), _candle(8), _candle(9)]

    def test_limit_larger_than_series_returns_everything(self, cache):
        assert len(cache.get_klines("BTCUSDT", TimeFrame.M5, 500)) == 10

    def test_zero_limit_returns_empty_and_negative_raises(self, cache):
        assert cache.get_klines("BTCUSDT", TimeFrame.M5, 0) == []
        with pytest.raises(ValueError):
            cache.get_klines("BTCUSDT", TimeFrame.M5, -1)

    def test_returned_list_is_a_copy(self, cache):
        klines = cache.get_klines("BTCUSDT", TimeFrame.M5, 5)
        klines.clear()
        assert len(cache.get_klines("BTCUSDT", TimeFrame.M5, 5)) == 5

    def test_latest_kline(self, cache):
        assert cache.get_latest_kline("BTCUSDT", TimeFrame.M5) == _candle(9)

    def test_latest_two_klines(self, cache):
        assert cache.get_latest_two_klines("BTCUSDT", TimeFrame.M5) == [_candle(8), _candle(9)]

    def test_empty_series_raises_no_data(self, cache):
        with pytest.raises(NoDataError):
            cache.get_latest_kline("BTCUSDT", TimeFrame.H1)
        with pytest.raises(NoDataError):
            cache.get_latest_two_klines("BTCUSDT", TimeFrame.H1)

    def test_get_frame(self, cache):
        df = cache.get_frame("BTCUSDT", TimeFrame.M5, 4)
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ["Open", "High", "Low", "Close", "Volume"]
        assert len(df) == 4
        assert df.index[-1] == pd.Timestamp(_candle(9).open_time, unit="ms", tz="UTC")

    def test_symbols_listing(self, cache):
        assert cache.symbols() == ["BTCUSDT"]


class TestConcurrency:
    """Tests for the locking discipline."""

    def test_concurrent_init_fetches_once(self):
        provider = FakeProvider(_all_intervals(_series(5)), delay=0.02)
        cache = CandleCache(provider)
        barrier = threading.Barrier(2)

        def worker():
            barrier.wait()
            cache.init_symbol("BTCUSDT")

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        assert len(provider.calls) == 6
        assert cache.is_initialized("BTCUSDT")

    def test_init_of_different_symbols_in_parallel(self):
        provider = FakeProvider(_all_intervals(_series(5)), delay=0.01)
        cache = CandleCache(provider)
        symbols = ["BTCUSDT", "ETHUSDT", "SOLUSDT"]

        threads = [threading.Thread(target=cache.init_symbol, args=(s,)) for s in symbols]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        assert cache.symbols() == sorted(symbols)
        assert len(provider.calls) == 18

    def test_reads_not_blocked_during_update_fetch(self):
        entered = threading.Event()
        release = threading.Event()

        class BlockingProvider(FakeProvider):
            def fetch_candles(self, symbol, interval_code, limit):
                if limit == 2:
                    entered.set()
                    release.wait(5)
                return super().fetch_candles(symbol, interval_code, limit)

        provider = BlockingProvider({"5m": _series(5)})
        cache = CandleCache(provider, timeframes=[TimeFrame.M5])
        cache.init_symbol("BTCUSDT")

        updater = threading.Thread(target=cache.update_symbol, args=("BTCUSDT",))
        updater.start()
        try:
            assert entered.wait(5)
            # Provider call is in flight; reads must still proceed
            assert len(cache.get_klines("BTCUSDT", TimeFrame.M5, 10)) == 5
        finally:
            release.set()
            updater.join(5)
        assert not updater.is_alive()

    def test_concurrent_updates_keep_invariants(self):
        provider = FakeProvider({"5m": _series(20)})
        cache = CandleCache(provider, timeframes=[TimeFrame.M5])
        cache.init_symbol("BTCUSDT")
        provider.data["5m"] = [_candle(20), _candle(21)]

        threads = [threading.Thread(target=cache.update_symbol, args=("BTCUSDT",)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        klines = cache.get_klines("BTCUSDT", TimeFrame.M5, 100)
        _assert_ordered(klines)
        assert len(klines) == 20
        assert klines[-1] == _candle(21)


class TestCacheConstruction:
    def test_rejects_invalid_settings(self):
        with pytest.raises(ValueError):
            CandleCache(FakeProvider(), max_klines=0)
        with pytest.raises(ValueError):
            CandleCache(FakeProvider(), fetch_workers=0)

    def test_defaults(self):
        cache = CandleCache(FakeProvider())
        assert cache.max_klines == 20
        assert cache.timeframes == ALL_TIMEFRAMES
        assert "max_klines=20" in repr(cache)
