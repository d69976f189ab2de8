"""Raw change notification backends.

A backend subscribes to OS change notifications for one directory and
forwards them, as :class:`RawChange` records, to a sink callable.  The
monitor only ever talks to the :class:`ChangeSource` interface; the
concrete implementation wraps a watchdog observer and is chosen once,
when the watch is created, by :func:`select_change_source`.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Protocol

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from dirwatcher.config import BACKEND_POLLING, Config
from dirwatcher.errors import SubscriptionError
from dirwatcher.platform_utils import IS_BSD, IS_LINUX, IS_MACOS, IS_WINDOWS

logger = logging.getLogger(__name__)


class RawKind(str, Enum):
    """What the OS reported, before translation into consumer events."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"
    ROOT_REMOVED = "root_removed"


@dataclass(frozen=True)
class RawChange:
    """One notification from a backend; paths are absolute."""

    kind: RawKind
    path: str = ""
    dest_path: str = ""


ChangeSink = Callable[[RawChange], None]


class ChangeSource(Protocol):
    """Capability interface every raw notification backend satisfies."""

    name: str

    def start(self, path: str, sink: ChangeSink) -> None:
        """Subscribe to *path*; raise ``SubscriptionError`` on refusal."""
        ...

    def stop(self, timeout: float | None = None) -> None:
        """Release the subscription.  Safe to call more than once."""
        ...

    def is_alive(self) -> bool:
        """Return False once the subscription has been lost."""
        ...


class RootPath:
    """Maps absolute paths reported by a backend onto the watched directory.

    Some backends report resolved paths (e.g. ``/private/var`` on macOS),
    so both the absolute and the real path of the root are accepted.
    """

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self._aliases = {os.path.normcase(self.path)}
        self._aliases.add(os.path.normcase(os.path.realpath(self.path)))

    def is_root(self, path: str) -> bool:
        return os.path.normcase(os.path.normpath(path)) in self._aliases

    def child_name(self, path: str) -> str | None:
        """Return the entry name if *path* is a direct child, else None."""
        if not path:
            return None
        parent, name = os.path.split(os.path.normpath(path))
        if name and os.path.normcase(parent) in self._aliases:
            return name
        return None


class _ForwardingHandler(FileSystemEventHandler):
    """Watchdog handler that turns watchdog events into RawChange records."""

    def __init__(self, root: RootPath, sink: ChangeSink):
        super().__init__()
        self._root = root
        self._sink = sink

    def on_any_event(self, event: FileSystemEvent) -> None:
        change = self.translate(event)
        if change is not None:
            self._sink(change)

    def translate(self, event: FileSystemEvent) -> RawChange | None:
        src = os.fsdecode(event.src_path)
        dest = os.fsdecode(getattr(event, "dest_path", "") or "")
        event_type = event.event_type

        if self._root.is_root(src):
            # The watched directory itself; only its disappearance matters
            if event_type in (EVENT_TYPE_DELETED, EVENT_TYPE_MOVED):
                return RawChange(RawKind.ROOT_REMOVED, src)
            return None

        if event_type == EVENT_TYPE_CREATED:
            return RawChange(RawKind.CREATED, src)
        if event_type == EVENT_TYPE_MODIFIED:
            return RawChange(RawKind.MODIFIED, src)
        if event_type == EVENT_TYPE_DELETED:
            return RawChange(RawKind.DELETED, src)
        if event_type == EVENT_TYPE_MOVED:
            return RawChange(RawKind.MOVED, src, dest)
        # opened / closed notifications carry no change
        return None


class WatchdogChangeSource:
    """A :class:`ChangeSource` backed by a non-recursive watchdog observer."""

    def __init__(self, observer_factory: Callable[[], BaseObserver], name: str = "native"):
        self.name = name
        self._observer_factory = observer_factory
        self._observer: Any | None = None
        self._lock = threading.Lock()

    def start(self, path: str, sink: ChangeSink) -> None:
        root = RootPath(path)
        handler = _ForwardingHandler(root, sink)
        observer = self._observer_factory()
        try:
            observer.schedule(handler, root.path, recursive=False)
            observer.start()
        except OSError as exc:
            logger.error("Could not subscribe to %s: %s", root.path, exc)
            if observer.is_alive():
                observer.stop()
                observer.join(timeout=1)
            raise SubscriptionError(
                f"Change notification subscription refused ({exc})",
                root.path,
                exc.errno,
            ) from exc
        with self._lock:
            self._observer = observer
        logger.debug("Subscribed %s observer to %s", self.name, root.path)

    def stop(self, timeout: float | None = None) -> None:
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if observer is not threading.current_thread():
            observer.join(timeout=timeout)
        logger.debug("%s observer stopped", self.name)

    def is_alive(self) -> bool:
        with self._lock:
            observer = self._observer
        if observer is None or not observer.is_alive():
            return False
        # Emitters stop themselves when the watched directory goes away
        return all(emitter.is_alive() for emitter in observer.emitters)


def _native_observer_class() -> Callable[[], BaseObserver]:
    """Return the watchdog observer using the host's native notifications."""
    if IS_LINUX:
        from watchdog.observers.inotify import InotifyObserver

        return InotifyObserver
    if IS_MACOS:
        from watchdog.observers.fsevents import FSEventsObserver

        return FSEventsObserver
    if IS_WINDOWS:
        from watchdog.observers.read_directory_changes import WindowsApiObserver

        return WindowsApiObserver
    if IS_BSD:
        from watchdog.observers.kqueue import KqueueObserver

        return KqueueObserver
    from watchdog.observers import Observer

    return Observer


def select_change_source(config: Config) -> WatchdogChangeSource:
    """Pick the backend for a new watch from *config*."""
    if config.backend == BACKEND_POLLING:
        return WatchdogChangeSource(
            partial(PollingObserver, timeout=config.poll_interval),
            name="polling",
        )
    return WatchdogChangeSource(_native_observer_class(), name="native")
