"""
Scheduler for candle-close timing.

Candles of every timeframe are aligned to the Unix epoch in UTC (a 4h candle
opens at 00:00, 04:00, ... UTC; a 1d candle at UTC midnight). The monitor uses
this to poll shortly after the next candle closes instead of on a fixed timer.
"""
import logging
import time
from datetime import datetime
from typing import Optional, Sequence

import pytz

from ..shared.types import TimeFrame
from ..shared.defaults import SETTLE_SECONDS


logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Candle boundary arithmetic and sleeping.

    Responsibilities:
    - Compute the open time of the current candle and the next close per timeframe
    - Calculate how long to sleep until the next close (plus a settle delay)
    - Render candle times in the configured display timezone
    """

    def __init__(self, timezone: str = "UTC", settle_seconds: float = SETTLE_SECONDS):
        """
        Initialize scheduler.

        Args:
            timezone: Display timezone for logged times (default: UTC)
            settle_seconds: Delay after a candle close before polling, so the
                provider has published the new candle
        """
        self.tz = pytz.timezone(timezone)
        self.settle_seconds = settle_seconds

    def get_current_time(self) -> datetime:
        """Get current time in the display timezone."""
        return datetime.now(self.tz)

    def _to_epoch_ms(self, moment: Optional[datetime]) -> int:
        if moment is None:
            moment = self.get_current_time()
        if moment.tzinfo is None:
            moment = self.tz.localize(moment)
        return int(moment.timestamp() * 1000)

    def current_open_time(self, timeframe: TimeFrame, now: Optional[datetime] = None) -> int:
        """Open time (epoch ms) of the candle forming at `now`."""
        now_ms = self._to_epoch_ms(now)
        return (now_ms // timeframe.milliseconds) * timeframe.milliseconds

    def next_close(self, timeframe: TimeFrame, now: Optional[datetime] = None) -> datetime:
        """
        Close time of the candle forming at `now`.

        Args:
            timeframe: Candle timeframe
            now: Reference time (default: current time; naive values use the display timezone)

        Returns:
            Timezone-aware datetime in the display timezone
        """
        close_ms = self.current_open_time(timeframe, now) + timeframe.milliseconds
        return datetime.fromtimestamp(close_ms / 1000, tz=pytz.utc).astimezone(self.tz)

    def seconds_until_next_close(
        self,
        timeframes: Sequence[TimeFrame],
        now: Optional[datetime] = None,
    ) -> float:
        """
        Seconds until the earliest upcoming close among timeframes, plus settle delay.

        Raises:
            ValueError: If timeframes is empty
        """
        if not timeframes:
            raise ValueError("At least one timeframe is required")
        now_ms = self._to_epoch_ms(now)
        soonest_ms = min(
            (now_ms // tf.milliseconds + 1) * tf.milliseconds for tf in timeframes
        )
        return (soonest_ms - now_ms) / 1000 + self.settle_seconds

    def format_time(self, open_time_ms: int) -> str:
        """Render an epoch-ms candle time in the display timezone."""
        moment = datetime.fromtimestamp(open_time_ms / 1000, tz=pytz.utc).astimezone(self.tz)
        return moment.strftime('%Y-%m-%d %H:%M %Z')

    def sleep(self, seconds: float, stop_event=None) -> bool:
        """
        Sleep for `seconds`, waking early if stop_event is set.

        Returns:
            True if the sleep was interrupted by stop_event
        """
        if seconds <= 0:
            return bool(stop_event is not None and stop_event.is_set())
        if stop_event is None:
            time.sleep(seconds)
            return False
        return stop_event.wait(seconds)
