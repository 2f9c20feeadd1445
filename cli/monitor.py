#!/usr/bin/env python3
"""
Candle signal monitor service.

Long-running service that:
1. Loads recent candles for every configured symbol and timeframe
2. Waits for the next candle close (or a fixed interval)
3. Refreshes the cache incrementally
4. Reports pin bar, volume spike and engulfing signals
5. Repeats until stopped

Usage:
    python -m cli.monitor --symbols BTCUSDT ETHUSDT --timeframes 15m 1h
    python -m cli.monitor --config configs/monitor.yaml --once
"""
import sys
import signal
import logging
import argparse
import threading
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from candlewatch.shared.types import TradingSignal
from candlewatch.data import make_provider
from candlewatch.market.cache import CandleCache
from candlewatch.signals.config import MonitorConfig
from candlewatch.signals.config_loader import load_monitor_config_from_yaml
from candlewatch.signals.detector import SignalDetector
from candlewatch.automation.monitor import SignalMonitor


# Set by SIGTERM/SIGINT for graceful shutdown
shutdown_event = threading.Event()


def signal_handler(signum, frame):
    """Handle shutdown signals (SIGTERM, SIGINT)."""
    logger = logging.getLogger(__name__)
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_event.set()


def setup_logging(log_path: Optional[Path] = None, verbose: bool = False):
    """
    Setup logging to stdout and optionally to file.

    Args:
        log_path: Path to log file (None = stdout only)
        verbose: If True, use DEBUG level, otherwise INFO
    """
    level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Monitor candles and report pattern signals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Scan two symbols once and print strong signals
    python -m cli.monitor --symbols BTCUSDT ETHUSDT --once

    # Run continuously with a YAML config
    python -m cli.monitor --config configs/monitor.yaml

    # Yahoo Finance symbols, hourly and daily only
    python -m cli.monitor --provider yahoo --symbols AAPL MSFT --timeframes 1h 1d --once
        """
    )
    parser.add_argument("--config", type=str, help="Path to monitor YAML config")
    parser.add_argument("--symbols", nargs="+", help="Symbols to monitor (overrides config)")
    parser.add_argument("--timeframes", nargs="+", help="Timeframes, e.g. 5m 15m 1h (overrides config)")
    parser.add_argument("--provider", choices=["binance", "yahoo"], help="Market data provider (overrides config)")
    parser.add_argument("--min-confidence", type=int, help="Report signals at or above this confidence")
    parser.add_argument("--once", action="store_true", help="Run a single pass and print signals")
    parser.add_argument("--log-file", type=str, help="Also write logs to this file")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging (DEBUG level)")
    return parser


def resolve_config(args: argparse.Namespace) -> MonitorConfig:
    """
    Merge YAML config (if any) with command-line overrides.

    Raises:
        FileNotFoundError: If --config points to a missing file
        ValueError: If the resulting config is invalid or has no symbols
    """
    config = load_monitor_config_from_yaml(args.config) if args.config else MonitorConfig()

    overrides = {}
    if args.symbols:
        overrides["symbols"] = args.symbols
    if args.timeframes:
        overrides["timeframes"] = args.timeframes
    if args.provider:
        overrides["provider"] = args.provider
    if args.min_confidence is not None:
        overrides["min_confidence"] = args.min_confidence
    if args.log_file:
        overrides["log_path"] = args.log_file

    if overrides:
        config = replace(config, **overrides)

    if not config.symbols:
        raise ValueError("No symbols configured (use --symbols or data.symbols in the config)")
    return config


def format_signals(signals: List[TradingSignal]) -> str:
    """Render signals as a fixed-width table."""
    if not signals:
        return "No signals found"
    header = f"{'Symbol':<12} {'TF':<4} {'Kind':<16} {'Dir':<5} {'Price':>12} {'Stop':>12} {'Conf':>4}  Reason"
    lines = [header, "-" * len(header)]
    for s in signals:
        lines.append(
            f"{s.symbol:<12} {s.timeframe.value:<4} {s.kind.value:<16} {s.direction.value:<5} "
            f"{s.price:>12.4f} {s.stop_loss:>12.4f} {s.confidence:>4}  {s.reason}"
        )
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Main service loop."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = resolve_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(Path(config.log_path) if config.log_path else None, args.verbose)
    logger = logging.getLogger(__name__)

    logger.info("=" * 80)
    logger.info("Candle Signal Monitor Starting")
    logger.info("=" * 80)
    logger.info(f"Provider: {config.provider}")
    logger.info(f"Symbols: {', '.join(config.symbols)}")
    logger.info(f"Timeframes: {', '.join(tf.value for tf in config.timeframes)}")
    logger.info(f"Min confidence: {config.min_confidence}")

    try:
        provider = make_provider(config.provider)
        cache = CandleCache(
            provider,
            max_klines=config.max_klines,
            timeframes=config.timeframes,
            fetch_workers=config.fetch_workers,
        )
        detector = SignalDetector(cache, config.detector)
        monitor = SignalMonitor(cache, detector, config)
    except Exception as e:
        logger.exception(f"Failed to initialize components: {e}")
        return 1

    if args.once:
        monitor.initialize()
        signals = monitor.poll_once()
        print(format_signals(signals))
        return 0

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    logger.info("Entering main service loop...")
    try:
        passes = monitor.run(stop_event=shutdown_event)
    except Exception as e:
        logger.exception(f"Fatal error in main loop: {e}")
        return 1
    finally:
        logger.info("Service stopped")

    logger.info(f"Completed {passes} passes")
    return 0


if __name__ == "__main__":
    sys.exit(main())
