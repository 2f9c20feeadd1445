"""
Multi-timeframe candle cache and pattern signal detector.

Provides unified interfaces for:
- Market data providers (Binance REST, Yahoo Finance)
- A thread-safe, bounded candle cache per (symbol, timeframe)
- Pattern signals (pin bar, volume spike, engulfing) read from the cache
- A polling monitor that keeps the cache fresh and reports strong signals
"""
