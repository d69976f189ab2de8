"""Serialized, ordered delivery of event batches to the consumer."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence

from dirwatcher.events import Event, EventBatch, WatchState

logger = logging.getLogger(__name__)

EventCallback = Callable[[EventBatch, bool], None]


class Dispatcher:
    """Single delivery point between the watch and its consumer.

    - the initial snapshot is delivered as exactly one batch with
      ``is_initial=True`` (nothing is delivered for an empty snapshot);
    - live batches are held back until that delivery has completed;
    - the callback is never entered while a previous call is running;
    - nothing is delivered after ``WATCHER_INVALIDATED``.

    Exceptions raised by the callback propagate to whichever thread is
    delivering.  The dispatcher also tracks the watch state, since the
    state changes exactly at its delivery boundaries.
    """

    def __init__(self, callback: EventCallback):
        self._callback = callback
        self._deliver_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._state = WatchState.SCANNING
        self._initial_done = threading.Event()

    # ---- state ----

    @property
    def state(self) -> WatchState:
        with self._state_lock:
            return self._state

    @property
    def invalidated(self) -> bool:
        return self.state is WatchState.INVALIDATED

    def _advance(self, target: WatchState) -> bool:
        with self._state_lock:
            if not self._state.can_move_to(target):
                logger.debug("Ignoring state change %s -> %s", self._state.value, target.value)
                return False
            self._state = target
            return True

    def wait_initial(self, timeout: float | None = None) -> bool:
        """Block until the initial phase has finished."""
        return self._initial_done.wait(timeout)

    # ---- delivery ----

    def deliver_initial(self, events: Sequence[Event]) -> None:
        """Hand the initial snapshot to the consumer and go live."""
        with self._deliver_lock:
            if self._initial_done.is_set():
                raise RuntimeError("Initial batch has already been delivered")
            try:
                if events:
                    self._callback(EventBatch.of(events, is_initial=True), True)
            finally:
                self._advance(WatchState.LIVE)
                self._initial_done.set()

    def deliver(self, events: Sequence[Event]) -> None:
        """Deliver one live batch; empty batches are not delivered."""
        if not events:
            return
        self._initial_done.wait()
        with self._deliver_lock:
            if self.invalidated:
                logger.debug("Dropping %d events delivered after invalidation", len(events))
                return
            self._callback(EventBatch.of(events, is_initial=False), False)

    def deliver_terminal(self, watched_dir_removed: bool = False) -> bool:
        """Invalidate the watch and deliver its final batch.

        Returns False if the watch had already been invalidated, in
        which case nothing is delivered.
        """
        with self._deliver_lock:
            if not self._advance(WatchState.INVALIDATED):
                return False
            # A watch can die before its initial scan finished
            self._initial_done.set()
            events = [Event.watcher_invalidated()]
            if watched_dir_removed:
                events.insert(0, Event.watched_dir_removed())
            self._callback(EventBatch.of(events, is_initial=False), False)
            return True

    def abandon(self) -> bool:
        """Invalidate the watch without calling the consumer.

        Used when delivery can no longer continue, e.g. after the
        callback raised on the monitor thread.  Returns False if the
        watch was already invalidated.
        """
        if not self._advance(WatchState.INVALIDATED):
            return False
        self._initial_done.set()
        logger.warning("Watch abandoned without a final batch")
        return True
