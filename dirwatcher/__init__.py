"""dirwatcher: watch the direct contents of a directory.

Reports file creation, modification and removal as a typed, ordered
event stream to a single callback, using the host's native change
notifications (or polling) through watchdog.
"""

from dirwatcher.errors import (
    DirectoryAccessError,
    DirectoryNotFoundError,
    NotADirectoryWatchError,
    SubscriptionError,
    WatchCreationError,
)
from dirwatcher.events import Event, EventBatch, EventKind, WatchState
from dirwatcher.watcher import DirectoryWatcher, create

__version__ = "1.0.0"
__app_name__ = "dirwatcher"

__all__ = [
    "DirectoryAccessError",
    "DirectoryNotFoundError",
    "DirectoryWatcher",
    "Event",
    "EventBatch",
    "EventKind",
    "NotADirectoryWatchError",
    "SubscriptionError",
    "WatchCreationError",
    "WatchState",
    "create",
]
