"""
YAML configuration loader for the signal monitor.

Loads monitor and detector settings from YAML files, allowing symbol lists
and thresholds to change without code changes.
"""
import yaml
from pathlib import Path
from typing import Any, Dict, Union

from .config import DetectorConfig, MonitorConfig
from ..shared.types import ALL_TIMEFRAMES
from ..shared.defaults import *


def _detector_config_from_dict(signals: Dict[str, Any]) -> DetectorConfig:
    rules = signals.get('rules', {}) or {}
    pin_bar = rules.get('pin_bar', {}) or {}
    volume_spike = rules.get('volume_spike', {}) or {}
    engulfing = rules.get('engulfing', {}) or {}

    return DetectorConfig(
        use_pin_bar=pin_bar.get('enabled', True),
        pin_bar_shadow_body_ratio=pin_bar.get('shadow_body_ratio', PIN_BAR_SHADOW_BODY_RATIO),
        pin_bar_max_body_ratio=pin_bar.get('max_body_ratio', PIN_BAR_MAX_BODY_RATIO),
        pin_bar_long_stop_factor=pin_bar.get('long_stop_factor', PIN_BAR_LONG_STOP_FACTOR),
        pin_bar_short_stop_factor=pin_bar.get('short_stop_factor', PIN_BAR_SHORT_STOP_FACTOR),

        use_volume_spike=volume_spike.get('enabled', True),
        volume_spike_min_ratio=volume_spike.get('min_ratio', VOLUME_SPIKE_MIN_RATIO),
        volume_spike_long_stop_factor=volume_spike.get('long_stop_factor', VOLUME_SPIKE_LONG_STOP_FACTOR),
        volume_spike_short_stop_factor=volume_spike.get('short_stop_factor', VOLUME_SPIKE_SHORT_STOP_FACTOR),

        use_engulfing=engulfing.get('enabled', True),
        engulfing_strong_body_ratio=engulfing.get('strong_body_ratio', ENGULFING_STRONG_BODY_RATIO),
        engulfing_long_stop_factor=engulfing.get('long_stop_factor', ENGULFING_LONG_STOP_FACTOR),
        engulfing_short_stop_factor=engulfing.get('short_stop_factor', ENGULFING_SHORT_STOP_FACTOR),

        strong_confidence=signals.get('strong_confidence', STRONG_SIGNAL_CONFIDENCE),
    )


def monitor_config_from_dict(config_dict: Dict[str, Any]) -> MonitorConfig:
    """
    Build a MonitorConfig from the nested YAML structure.

    Sections: data (provider, symbols, timeframes, max_klines, fetch_workers),
    signals (min_confidence, strong_confidence, rules), automation
    (poll_interval_seconds, settle_seconds, timezone, log_path).

    Raises:
        ValueError: If values are invalid
    """
    data_params = config_dict.get('data', {}) or {}
    signals = config_dict.get('signals', {}) or {}
    automation = config_dict.get('automation', {}) or {}

    raw_symbols = data_params.get('symbols') or []
    symbols = raw_symbols if isinstance(raw_symbols, list) else [raw_symbols]

    raw_timeframes = data_params.get('timeframes')
    if raw_timeframes is None:
        timeframes = [tf.value for tf in ALL_TIMEFRAMES]
    else:
        timeframes = raw_timeframes if isinstance(raw_timeframes, list) else [raw_timeframes]

    detector = _detector_config_from_dict(signals)

    return MonitorConfig(
        symbols=[str(s) for s in symbols],
        timeframes=[str(tf) for tf in timeframes],
        provider=str(data_params.get('provider', 'binance')).lower(),
        max_klines=data_params.get('max_klines', MAX_KLINES),
        fetch_workers=data_params.get('fetch_workers', FETCH_WORKERS),
        poll_interval_seconds=automation.get('poll_interval_seconds'),
        settle_seconds=automation.get('settle_seconds', SETTLE_SECONDS),
        timezone=automation.get('timezone', 'UTC'),
        min_confidence=signals.get('min_confidence', detector.strong_confidence),
        log_path=automation.get('log_path'),
        detector=detector,
    )


def load_monitor_config_from_yaml(yaml_path: Union[str, Path]) -> MonitorConfig:
    """
    Load monitor configuration from YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        MonitorConfig object

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If YAML is empty or values are invalid
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, 'r') as f:
        config_dict = yaml.safe_load(f)

    if not config_dict:
        raise ValueError(f"Empty config file: {yaml_path}")
    if not isinstance(config_dict, dict):
        raise ValueError(f"Config file must contain a mapping: {yaml_path}")

    return monitor_config_from_dict(config_dict)
