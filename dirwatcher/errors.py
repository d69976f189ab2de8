"""Exceptions raised when a directory watch cannot be created.

All of them derive from :class:`WatchCreationError`, which is itself an
``OSError`` so callers can catch either.  Nothing that happens after a
watch is live is reported here: directory removal and subscription loss
are delivered through the event stream.
"""

from __future__ import annotations

import errno


class WatchCreationError(OSError):
    """The watch could not be set up; no partial watch was left running."""

    def __init__(self, message: str, path: str = "", err: int | None = None):
        if err is None:
            super().__init__(message)
        else:
            super().__init__(err, message)
        self.path = path

    def __str__(self) -> str:
        text = self.strerror or (self.args[0] if self.args else "")
        if self.path:
            return f"{text}: {self.path}"
        return str(text)


class DirectoryNotFoundError(WatchCreationError):
    """The path to watch does not exist."""

    def __init__(self, path: str):
        super().__init__("Directory does not exist", path, errno.ENOENT)


class NotADirectoryWatchError(WatchCreationError):
    """The path to watch exists but is not a directory."""

    def __init__(self, path: str):
        super().__init__("Not a directory", path, errno.ENOTDIR)


class DirectoryAccessError(WatchCreationError):
    """The directory exists but cannot be listed."""

    def __init__(self, path: str):
        super().__init__("Directory is not readable", path, errno.EACCES)


class SubscriptionError(WatchCreationError):
    """The OS declined the change-notification subscription."""
