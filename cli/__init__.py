"""
Command-line entry points.

Provides command-line interfaces for:
- Running the candle signal monitor (continuous or single pass)
"""
