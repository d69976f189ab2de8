"""Configuration management for dirwatcher.

Stores and retrieves watcher settings from a JSON config file in the
platform-appropriate application data directory.  A watch created
without an explicit :class:`Config` uses the defaults; nothing is
written to disk unless :meth:`Config.save` is called.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

from dirwatcher.platform_utils import get_config_dir as _platform_config_dir

logger = logging.getLogger(__name__)

# Raw change backends
BACKEND_AUTO = "auto"  # native OS notifications
BACKEND_POLLING = "polling"  # periodic directory snapshots
BACKENDS = (BACKEND_AUTO, BACKEND_POLLING)

DEFAULT_CONFIG: dict[str, Any] = {
    "backend": BACKEND_AUTO,
    "poll_interval_seconds": 0.5,  # polling backend only
    # how long the monitor waits for more notifications before
    # delivering what it has as one batch
    "coalesce_latency_seconds": 0.05,
    "stop_timeout_seconds": 5.0,  # observer join on teardown
    "log_level": "INFO",
    # ---- log rotation (CLI) ----
    "max_log_size_mb": 10,
    "log_backup_count": 3,
}


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return _platform_config_dir() / "config.json"


class Config:
    """Configuration manager backed by a JSON file."""

    def __init__(self, path: Path | str | None = None, load: bool = True):
        """Load config from *path*, falling back to the platform default."""
        self._path = Path(path) if path else get_config_path()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if load:
            self.load()

    @classmethod
    def defaults(cls) -> Config:
        """Return an in-memory config holding only the defaults."""
        return cls(load=False)

    def _number(self, key: str, minimum: float, cast: type = float) -> Any:
        """Return the stored *key* as a number no lower than *minimum*.

        Loaded values never pass through the setters; anything that is
        not a finite number yields the default.
        """
        value = self._data.get(key, DEFAULT_CONFIG[key])
        try:
            number = cast(value)
        except (TypeError, ValueError, OverflowError):
            number = None
        if number is None or not math.isfinite(number):
            logger.warning("Invalid %s %r; using %r", key, value, DEFAULT_CONFIG[key])
            number = cast(DEFAULT_CONFIG[key])
        return max(cast(minimum), number)

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys."""
        if not self._path.exists():
            self._data = dict(DEFAULT_CONFIG)
            logger.debug("No configuration at %s; using defaults.", self._path)
            return
        try:
            with open(self._path, encoding="utf-8") as fh:
                stored = json.load(fh)
            if not isinstance(stored, dict):
                raise ValueError("top-level JSON value is not an object")
            # Merge stored values over defaults so new keys get defaults
            self._data = {**DEFAULT_CONFIG, **stored}
            logger.info("Configuration loaded from %s", self._path)
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            logger.warning("Could not read config (%s); using defaults.", exc)
            self._data = dict(DEFAULT_CONFIG)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
            logger.info("Configuration saved to %s", self._path)
        except OSError as exc:
            logger.error("Failed to save configuration: %s", exc)

    # ---- backend ----

    @property
    def backend(self) -> str:
        """Return the raw change backend name."""
        value = self._data.get("backend", BACKEND_AUTO)
        return value if value in BACKENDS else BACKEND_AUTO

    @backend.setter
    def backend(self, value: str) -> None:
        """Set the backend, falling back to ``auto`` for unknown names."""
        value = value.strip().lower()
        if value not in BACKENDS:
            logger.warning("Unknown backend %r; using %r", value, BACKEND_AUTO)
            value = BACKEND_AUTO
        self._data["backend"] = value

    @property
    def poll_interval(self) -> float:
        """Return the polling backend interval in seconds."""
        return self._number("poll_interval_seconds", 0.05)

    @poll_interval.setter
    def poll_interval(self, value: float) -> None:
        """Set the polling interval (minimum 0.05 s)."""
        self._data["poll_interval_seconds"] = max(0.05, float(value))

    # ---- monitor ----

    @property
    def coalesce_latency(self) -> float:
        """Return the batching window for live notifications in seconds."""
        return self._number("coalesce_latency_seconds", 0.0)

    @coalesce_latency.setter
    def coalesce_latency(self, value: float) -> None:
        """Set the batching window (minimum 0 s)."""
        self._data["coalesce_latency_seconds"] = max(0.0, float(value))

    @property
    def stop_timeout(self) -> float:
        """Return how long teardown waits for the OS observer to stop."""
        return self._number("stop_timeout_seconds", 0.1)

    @stop_timeout.setter
    def stop_timeout(self, value: float) -> None:
        """Set the observer join timeout (minimum 0.1 s)."""
        self._data["stop_timeout_seconds"] = max(0.1, float(value))

    # ---- logging ----

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        value = self._data.get("log_level", "INFO")
        return value if isinstance(value, str) else "INFO"

    @log_level.setter
    def log_level(self, value: str) -> None:
        """Set the logging level name."""
        self._data["log_level"] = value.strip().upper()

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return self._number("max_log_size_mb", 1, int)

    @max_log_size_mb.setter
    def max_log_size_mb(self, value: int) -> None:
        """Set the maximum log file size in MB (minimum 1)."""
        self._data["max_log_size_mb"] = max(1, int(value))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return self._number("log_backup_count", 0, int)

    @log_backup_count.setter
    def log_backup_count(self, value: int) -> None:
        """Set the number of rotated log backups to keep."""
        self._data["log_backup_count"] = max(0, int(value))
