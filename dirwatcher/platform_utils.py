"""
Cross-platform utilities for dirwatcher.

Centralises all OS-detection logic so the backend selection, config and
CLI modules import a single canonical set of helpers rather than
scattering ``sys.platform`` checks throughout the codebase.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# ---- platform flags ----------------------------------------------------

IS_WINDOWS: bool = sys.platform == "win32"
IS_MACOS: bool = sys.platform == "darwin"
IS_LINUX: bool = sys.platform.startswith("linux")
IS_BSD: bool = "bsd" in sys.platform or sys.platform.startswith("dragonfly")

_APP_DIR_NAME = "dirwatcher"

# ---- directories -------------------------------------------------------


def get_config_dir(create: bool = False) -> Path:
    """
    Return the application config directory.

    - Windows : ``%APPDATA%\\dirwatcher``
    - macOS   : ``~/Library/Application Support/dirwatcher``
    - Linux   : ``$XDG_CONFIG_HOME/dirwatcher`` (default ``~/.config``)
    """
    if IS_WINDOWS:
        base = os.environ.get("APPDATA", str(Path.home()))
    elif IS_MACOS:
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))

    config_dir = Path(base) / _APP_DIR_NAME
    if create:
        config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_log_path() -> Path:
    """Return the path to the log file (inside the config directory)."""
    return get_config_dir(create=True) / "dirwatcher.log"


def platform_name() -> str:
    """Return a short human-readable name for the host platform."""
    if IS_WINDOWS:
        return "Windows"
    if IS_MACOS:
        return "macOS"
    if IS_LINUX:
        return "Linux"
    if IS_BSD:
        return "BSD"
    return sys.platform
