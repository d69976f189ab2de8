"""One-time enumeration of the watched directory.

The scanner lists the direct entries of a directory (files,
subdirectories and symlinks alike, without recursing) and turns each
one into a ``MODIFIED`` event for the initial batch.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from dirwatcher.errors import (
    DirectoryAccessError,
    DirectoryNotFoundError,
    NotADirectoryWatchError,
)
from dirwatcher.events import Event

logger = logging.getLogger(__name__)


def check_directory(path: str | Path) -> str:
    """Validate that *path* is an existing, listable directory.

    Returns the absolute path as a string.  Raises a
    :class:`~dirwatcher.errors.WatchCreationError` subclass otherwise.
    """
    abs_path = os.path.abspath(os.fspath(path))
    try:
        st = os.stat(abs_path)
    except FileNotFoundError:
        raise DirectoryNotFoundError(abs_path) from None
    except PermissionError:
        raise DirectoryAccessError(abs_path) from None
    if not stat.S_ISDIR(st.st_mode):
        raise NotADirectoryWatchError(abs_path)
    if not os.access(abs_path, os.R_OK | os.X_OK):
        raise DirectoryAccessError(abs_path)
    return abs_path


def scan_directory(path: str | Path) -> list[Event]:
    """Return one ``MODIFIED`` event per direct entry of *path*.

    Order is whatever the OS lists; treat the result as a set.  Entries
    that vanish or cannot be inspected while listing are skipped.
    """
    abs_path = check_directory(path)
    events: list[Event] = []
    try:
        with os.scandir(abs_path) as it:
            for entry in it:
                try:
                    # lstat so dangling symlinks still count as entries
                    entry.stat(follow_symlinks=False)
                except (PermissionError, FileNotFoundError) as exc:
                    logger.debug("Skipping %s during scan: %s", entry.path, exc)
                    continue
                events.append(Event.modified(entry.name))
    except FileNotFoundError:
        raise DirectoryNotFoundError(abs_path) from None
    except NotADirectoryError:
        raise NotADirectoryWatchError(abs_path) from None
    except PermissionError:
        raise DirectoryAccessError(abs_path) from None

    logger.debug("Initial scan of %s found %d entries", abs_path, len(events))
    return events
