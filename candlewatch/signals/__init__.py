"""
Signal generation module.

Pattern detector reading the candle cache: pin bars, volume spikes and
engulfing candles, each scored 0-100. Filters and grouping helpers work on
the resulting signal lists.
"""
from .detector import SignalDetector
from .config import DetectorConfig, MonitorConfig
from .config_loader import load_monitor_config_from_yaml, monitor_config_from_dict
from .detector_filters import (
    filter_strong_signals,
    filter_signals_by_direction,
    combine_signals,
    best_signal,
)
from .rules import (
    SignalRule,
    PinBarRule,
    VolumeSpikeRule,
    EngulfingRule,
    get_signal_rules,
    pin_bar_confidence,
    volume_spike_confidence,
    engulfing_confidence,
)

__all__ = [
    'SignalDetector',
    'DetectorConfig',
    'MonitorConfig',
    'load_monitor_config_from_yaml',
    'monitor_config_from_dict',
    'filter_strong_signals',
    'filter_signals_by_direction',
    'combine_signals',
    'best_signal',
    'SignalRule',
    'PinBarRule',
    'VolumeSpikeRule',
    'EngulfingRule',
    'get_signal_rules',
    'pin_bar_confidence',
    'volume_spike_confidence',
    'engulfing_confidence',
]
