"""Command-line entry point for dirwatcher.

Usage:
    python -m dirwatcher PATH                Print events until Ctrl-C
    python -m dirwatcher PATH --polling      Use the polling backend
    python -m dirwatcher PATH --async-scan   Scan in the background
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import signal
import sys
import threading

from dirwatcher import __app_name__, __version__
from dirwatcher.config import BACKEND_POLLING, Config
from dirwatcher.errors import WatchCreationError
from dirwatcher.events import EventBatch
from dirwatcher.platform_utils import get_log_path, platform_name
from dirwatcher.watcher import DirectoryWatcher

logger = logging.getLogger(__name__)


def _setup_logging(config: Config, log_file: bool) -> None:
    """Configure stderr logging and, optionally, a rotating file log."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level)
    sh.setFormatter(fmt)
    root_logger.addHandler(sh)

    if log_file:
        fh = logging.handlers.RotatingFileHandler(
            str(get_log_path()),
            maxBytes=config.max_log_size_mb * 1024 * 1024,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
        fh.setLevel(level)
        fh.setFormatter(fmt)
        root_logger.addHandler(fh)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dirwatcher",
        description=f"{__app_name__} {__version__}: print changes to a directory ({platform_name()})",
    )
    parser.add_argument("path", help="directory to watch")
    parser.add_argument("--polling", action="store_true", help="use the polling backend")
    parser.add_argument(
        "--async-scan",
        action="store_true",
        help="return immediately and scan the directory in the background",
    )
    parser.add_argument("--config", help="path to a JSON config file")
    parser.add_argument("--log-level", help="override the configured log level")
    parser.add_argument("--log-file", action="store_true", help="also log to the platform log file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Watch a directory and print its events; returns the exit status."""
    args = _parse_args(argv)
    config = Config(args.config) if args.config else Config.defaults()
    if args.polling:
        config.backend = BACKEND_POLLING
    if args.log_level:
        config.log_level = args.log_level
    _setup_logging(config, args.log_file)

    done = threading.Event()

    def on_events(batch: EventBatch, is_initial: bool) -> None:
        tag = "initial" if is_initial else "live"
        for event in batch:
            print(f"[{tag}] {event}", flush=True)
        if batch.is_terminal:
            done.set()

    try:
        watcher = DirectoryWatcher.create(
            args.path, on_events, wait_for_initial_sync=not args.async_scan, config=config
        )
    except WatchCreationError as exc:
        logger.error("Cannot watch %s: %s", args.path, exc)
        return 1

    def _handler(sig, frame):
        watcher.close()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)

    print(f"Watching {watcher.path} (press Ctrl-C to stop)…", file=sys.stderr)
    while not done.wait(timeout=1):
        pass
    watcher.close(timeout=config.stop_timeout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
