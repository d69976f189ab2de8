"""Public entry point: watch the direct contents of one directory.

Usage:
    def on_events(batch, is_initial):
        for event in batch:
            print(event.kind, event.filename)

    watcher = DirectoryWatcher.create("/some/dir", on_events)
    ...
    watcher.close()

The callback receives an :class:`~dirwatcher.events.EventBatch` and the
``is_initial`` flag.  It may run on the creating thread (initial batch
with ``wait_for_initial_sync=True``) or on the watch's monitor thread,
never on two threads at once.
"""

from __future__ import annotations

import logging
import weakref
from pathlib import Path
from types import TracebackType

from dirwatcher.backends import ChangeSource, select_change_source
from dirwatcher.config import Config
from dirwatcher.dispatcher import Dispatcher, EventCallback
from dirwatcher.events import WatchState
from dirwatcher.monitor import Monitor
from dirwatcher.scanner import check_directory, scan_directory

logger = logging.getLogger(__name__)


class DirectoryWatcher:
    """Handle for one live directory watch.

    Use :meth:`create` to construct.  Closing the handle, leaving a
    ``with`` block, or dropping the last reference to it all request
    invalidation; the final ``WATCHER_INVALIDATED`` event arrives on the
    monitor thread shortly afterwards.
    """

    def __init__(self, path: str, monitor: Monitor, dispatcher: Dispatcher, config: Config):
        self._path = path
        self._monitor = monitor
        self._dispatcher = dispatcher
        self._config = config
        # Must not reference self, or the handle would never be collected
        self._finalizer = weakref.finalize(self, monitor.request_stop)

    @classmethod
    def create(
        cls,
        path: str | Path,
        callback: EventCallback,
        wait_for_initial_sync: bool = True,
        *,
        config: Config | None = None,
        change_source: ChangeSource | None = None,
    ) -> DirectoryWatcher:
        """Start watching *path* and return the live handle.

        With *wait_for_initial_sync* the initial snapshot is taken and
        delivered before this call returns; otherwise the monitor thread
        does it while the caller carries on.

        Raises :class:`~dirwatcher.errors.WatchCreationError` if the path
        is not a readable directory or the OS refuses the subscription.
        """
        config = config or Config.defaults()
        abs_path = check_directory(path)
        dispatcher = Dispatcher(callback)
        source = change_source or select_change_source(config)
        monitor = Monitor(
            abs_path,
            source,
            dispatcher,
            coalesce_latency=config.coalesce_latency,
            stop_timeout=config.stop_timeout,
        )

        # Subscribe before scanning so nothing between the two is missed
        monitor.subscribe()
        try:
            if wait_for_initial_sync:
                dispatcher.deliver_initial(scan_directory(abs_path))
            monitor.start(scan_first=not wait_for_initial_sync)
        except BaseException:
            monitor.release()
            raise

        logger.info(
            "Watching '%s' (backend=%s, initial sync=%s)",
            abs_path,
            getattr(source, "name", type(source).__name__),
            "blocking" if wait_for_initial_sync else "background",
        )
        return cls(abs_path, monitor, dispatcher, config)

    # ---- lifecycle ----

    def close(self, timeout: float | None = None) -> bool:
        """Request invalidation of the watch.

        Returns immediately unless *timeout* is given, in which case it
        waits up to that long for the monitor thread to finish.  Returns
        True if the monitor has finished.
        """
        self._finalizer()
        if timeout is None:
            return not self._monitor.is_alive
        return self._monitor.join(timeout)

    dispose = close

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the watch to end without requesting it."""
        return self._monitor.join(timeout)

    def __enter__(self) -> DirectoryWatcher:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close(timeout=self._config.stop_timeout)

    # ---- status ----

    @property
    def path(self) -> str:
        """Absolute path of the watched directory."""
        return self._path

    @property
    def state(self) -> WatchState:
        return self._dispatcher.state

    @property
    def is_running(self) -> bool:
        """Return whether the monitor thread is still active."""
        return self._monitor.is_alive

    def __repr__(self) -> str:
        return f"<DirectoryWatcher path={self._path!r} state={self.state.value}>"


def create(
    path: str | Path,
    callback: EventCallback,
    wait_for_initial_sync: bool = True,
    *,
    config: Config | None = None,
    change_source: ChangeSource | None = None,
) -> DirectoryWatcher:
    """Shorthand for :meth:`DirectoryWatcher.create`."""
    return DirectoryWatcher.create(
        path,
        callback,
        wait_for_initial_sync,
        config=config,
        change_source=change_source,
    )
