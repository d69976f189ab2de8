"""Background monitor for a single watched directory.

The monitor owns the backend subscription and one daemon thread.  The
backend pushes :class:`~dirwatcher.backends.RawChange` records onto a
queue from its own thread; the monitor thread drains that queue,
translates the records into consumer events and hands them to the
dispatcher.  Removal of the watched directory, loss of the subscription
and stop requests all end in the terminal invalidation batch.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time

from dirwatcher.backends import ChangeSource, RawChange, RawKind, RootPath
from dirwatcher.dispatcher import Dispatcher
from dirwatcher.errors import WatchCreationError
from dirwatcher.events import Event, EventKind
from dirwatcher.scanner import scan_directory

logger = logging.getLogger(__name__)

# How often an idle monitor checks that its subscription is still alive
_IDLE_CHECK_INTERVAL = 0.25
# Upper bound on raw changes folded into one batch
_MAX_BATCH = 1024

_STOP = object()


def coalesce(events: list[Event]) -> list[Event]:
    """Drop repeats of an entry's last event within one batch.

    ``[M a, M b, M a]`` becomes ``[M a, M b]`` but ``[M a, R a, M a]``
    is kept as is, so the final kind of every entry is preserved.
    """
    last: dict[str, EventKind] = {}
    result: list[Event] = []
    for event in events:
        if last.get(event.filename) is event.kind:
            continue
        last[event.filename] = event.kind
        result.append(event)
    return result


class Monitor:
    """Turns raw backend notifications into live events on its own thread."""

    def __init__(
        self,
        path: str,
        source: ChangeSource,
        dispatcher: Dispatcher,
        coalesce_latency: float = 0.05,
        stop_timeout: float = 5.0,
    ):
        self._root = RootPath(path)
        self._source = source
        self._dispatcher = dispatcher
        self._coalesce_latency = coalesce_latency
        self._stop_timeout = stop_timeout
        self._queue: queue.Queue[RawChange | object] = queue.Queue()
        self._scan_first = False
        self._released = False
        self._release_lock = threading.Lock()
        name = os.path.basename(self._root.path) or self._root.path
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=f"dirwatcher-{name}"
        )

    @property
    def path(self) -> str:
        return self._root.path

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    # ---- lifecycle ----

    def subscribe(self) -> None:
        """Open the backend subscription; raises ``SubscriptionError``."""
        self._source.start(self._root.path, self._queue.put)

    def start(self, scan_first: bool = False) -> None:
        """Start the monitor thread.

        With *scan_first* the thread takes the initial snapshot and
        delivers it before handling any live change.
        """
        self._scan_first = scan_first
        self._thread.start()

    def request_stop(self) -> None:
        """Ask the monitor to invalidate the watch; does not wait."""
        self._queue.put(_STOP)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the monitor thread; returns True once it has finished."""
        if threading.current_thread() is self._thread:
            return False
        if self._thread.ident is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def release(self) -> None:
        """Release the backend subscription exactly once."""
        with self._release_lock:
            if self._released:
                return
            self._released = True
        self._source.stop(timeout=self._stop_timeout)
        logger.debug("Released subscription for %s", self._root.path)

    # ---- thread body ----

    def _run(self) -> None:
        try:
            if self._scan_first and not self._initial_sync():
                return
            self._loop()
        finally:
            # No-op after a terminal batch; otherwise the consumer raised
            self._dispatcher.abandon()
            self.release()
            logger.info("Stopped watching %s", self._root.path)

    def _initial_sync(self) -> bool:
        try:
            events = scan_directory(self._root.path)
        except WatchCreationError as exc:
            logger.warning("Initial scan of %s failed: %s", self._root.path, exc)
            self._dispatcher.deliver_terminal(watched_dir_removed=True)
            return False
        self._dispatcher.deliver_initial(events)
        return True

    def _loop(self) -> None:
        while True:
            try:
                first = self._queue.get(timeout=_IDLE_CHECK_INTERVAL)
            except queue.Empty:
                if self._subscription_lost():
                    self._finish_lost()
                    return
                continue

            if first is _STOP or first.kind is RawKind.ROOT_REMOVED:
                items = [first]
            else:
                items = [first, *self._collect()]
            pending: list[Event] = []
            for item in items:
                if item is _STOP:
                    self._dispatcher.deliver(coalesce(pending))
                    self._dispatcher.deliver_terminal()
                    return
                if item.kind is RawKind.ROOT_REMOVED:
                    self._dispatcher.deliver(coalesce(pending))
                    self._dispatcher.deliver_terminal(watched_dir_removed=True)
                    logger.info("Watched directory %s was removed", self._root.path)
                    return
                pending.extend(self._translate(item))
            self._dispatcher.deliver(coalesce(pending))

    def _collect(self) -> list[RawChange | object]:
        """Gather changes that arrive within the coalescing window."""
        items: list[RawChange | object] = []
        deadline = time.monotonic() + max(self._coalesce_latency * 10, 0.5)
        while len(items) < _MAX_BATCH and time.monotonic() < deadline:
            try:
                item = self._queue.get(timeout=self._coalesce_latency)
            except queue.Empty:
                break
            items.append(item)
            if item is _STOP:
                break
        return items

    def _drain(self) -> list[RawChange | object]:
        items: list[RawChange | object] = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    def _subscription_lost(self) -> bool:
        return not self._source.is_alive() or not os.path.isdir(self._root.path)

    def _finish_lost(self) -> None:
        """Flush what the backend delivered before it died, then invalidate."""
        logger.warning("Lost change notifications for %s", self._root.path)
        pending: list[Event] = []
        for item in self._drain():
            if item is _STOP or item.kind is RawKind.ROOT_REMOVED:
                break
            pending.extend(self._translate(item))
        self._dispatcher.deliver(coalesce(pending))
        self._dispatcher.deliver_terminal(watched_dir_removed=True)

    def _translate(self, change: RawChange) -> list[Event]:
        if change.kind is RawKind.MOVED:
            events = []
            src_name = self._root.child_name(change.path)
            if src_name is not None:
                events.append(Event.removed(src_name))
            dest_name = self._root.child_name(change.dest_path)
            if dest_name is not None:
                events.append(Event.modified(dest_name))
            return events

        name = self._root.child_name(change.path)
        if name is None:
            logger.debug("Ignoring change outside watched directory: %s", change.path)
            return []
        if change.kind is RawKind.DELETED:
            return [Event.removed(name)]
        return [Event.modified(name)]
