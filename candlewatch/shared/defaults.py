"""
Centralized default values for the cache and the pattern rules.

This is the SINGLE SOURCE OF TRUTH for retention, fetch sizes, pattern
thresholds and confidence tiers. All modules should import from here to
ensure consistency.

Tier tables are ordered (threshold, score) pairs; the first matching tier wins.
"""

# Candle cache
MAX_KLINES = 20  # Retention cap per (symbol, timeframe) series, both write paths
UPDATE_FETCH_LIMIT = 2  # Latest candles requested per timeframe on update (last one may still be forming)
FETCH_WORKERS = 1  # Sequential per-timeframe fetches unless configured otherwise

# Pin bar
PIN_BAR_SHADOW_BODY_RATIO = 1.5  # Dominant shadow must exceed body * ratio
PIN_BAR_MAX_BODY_RATIO = 0.3  # Body must be below range * ratio
PIN_BAR_BASE_CONFIDENCE = 60
PIN_BAR_SHADOW_TIERS = ((0.7, 25), (0.6, 20), (0.5, 15))  # shadow/range strictly above threshold
PIN_BAR_BODY_TIERS = ((0.15, 10), (0.25, 5))  # body/range strictly below threshold
PIN_BAR_OPPOSITE_SHADOW_RATIO = 0.5  # Opposite shadow below body * ratio earns the bonus
PIN_BAR_OPPOSITE_SHADOW_BONUS = 5
PIN_BAR_LONG_STOP_FACTOR = 0.997  # 0.3% below the low
PIN_BAR_SHORT_STOP_FACTOR = 1.003  # 0.3% above the high

# Volume spike
VOLUME_SPIKE_MIN_RATIO = 1.5
VOLUME_SPIKE_BASE_CONFIDENCE = 70
VOLUME_SPIKE_TIERS = ((3.0, 95), (2.5, 90), (2.0, 85), (1.8, 80))  # ratio at or above threshold
VOLUME_SPIKE_LONG_STOP_FACTOR = 0.997
VOLUME_SPIKE_SHORT_STOP_FACTOR = 1.003

# Engulfing
ENGULFING_BASE_CONFIDENCE = 80
ENGULFING_STRONG_CONFIDENCE = 90
ENGULFING_STRONG_BODY_RATIO = 1.5  # Current body > previous body * ratio -> strong
ENGULFING_LONG_STOP_FACTOR = 0.995  # 0.5% below the low
ENGULFING_SHORT_STOP_FACTOR = 1.005  # 0.5% above the high

# Signal filtering
MAX_CONFIDENCE = 100
STRONG_SIGNAL_CONFIDENCE = 80

# Monitor loop
SETTLE_SECONDS = 2  # Wait after a candle boundary before polling the provider
