"""
Automation module for the long-running signal monitor.

Handles candle-close scheduling and the refresh/detect polling loop.
"""
from .scheduler import RefreshScheduler
from .monitor import SignalMonitor

__all__ = ["RefreshScheduler", "SignalMonitor"]
