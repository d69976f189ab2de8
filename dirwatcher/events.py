"""Event model shared by the scanner, monitor and dispatcher."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum


class EventKind(str, Enum):
    """Kinds of change reported to the consumer."""

    MODIFIED = "modified"
    REMOVED = "removed"
    WATCHED_DIR_REMOVED = "watched_dir_removed"
    WATCHER_INVALIDATED = "watcher_invalidated"

    @property
    def is_watch_scoped(self) -> bool:
        return self in (EventKind.WATCHED_DIR_REMOVED, EventKind.WATCHER_INVALIDATED)


@dataclass(frozen=True)
class Event:
    """A single change to an entry of the watched directory.

    ``filename`` is relative to the watched directory and is empty
    exactly for watch-scoped kinds.
    """

    kind: EventKind
    filename: str = ""

    def __post_init__(self) -> None:
        if self.kind.is_watch_scoped:
            if self.filename:
                raise ValueError(f"{self.kind.value} event cannot carry a filename")
        elif not self.filename:
            raise ValueError(f"{self.kind.value} event requires a filename")

    @classmethod
    def modified(cls, filename: str) -> Event:
        return cls(EventKind.MODIFIED, filename)

    @classmethod
    def removed(cls, filename: str) -> Event:
        return cls(EventKind.REMOVED, filename)

    @classmethod
    def watched_dir_removed(cls) -> Event:
        return cls(EventKind.WATCHED_DIR_REMOVED)

    @classmethod
    def watcher_invalidated(cls) -> Event:
        return cls(EventKind.WATCHER_INVALIDATED)

    def __str__(self) -> str:
        if self.filename:
            return f"{self.kind.value}: {self.filename}"
        return self.kind.value


@dataclass(frozen=True)
class EventBatch:
    """Ordered, non-empty group of events delivered in one callback."""

    events: tuple[Event, ...]
    is_initial: bool = False

    def __post_init__(self) -> None:
        events = tuple(self.events)
        if not events:
            raise ValueError("An event batch cannot be empty")
        object.__setattr__(self, "events", events)

    @classmethod
    def of(cls, events: Iterable[Event], is_initial: bool = False) -> EventBatch:
        return cls(tuple(events), is_initial)

    def __iter__(self) -> Iterator[Event]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    def __getitem__(self, index: int) -> Event:
        return self.events[index]

    @property
    def is_terminal(self) -> bool:
        """Return True if the batch ends with the watcher invalidation."""
        return self.events[-1].kind is EventKind.WATCHER_INVALIDATED


class WatchState(str, Enum):
    """Lifecycle of a watch; only ever moves forward."""

    SCANNING = "scanning"
    LIVE = "live"
    INVALIDATED = "invalidated"

    def can_move_to(self, target: WatchState) -> bool:
        order = list(WatchState)
        return order.index(target) > order.index(self)
