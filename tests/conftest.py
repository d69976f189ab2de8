"""Shared pytest fixtures for the dirwatcher test suite."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from dirwatcher.backends import ChangeSink, RawChange, RawKind
from dirwatcher.events import Event, EventBatch

# Bounded wait for an expected event sequence to show up
RESULT_TIMEOUT = 3.0


class VerifyingConsumer:
    """Callback that checks the events it receives against expectations.

    Expected events are crossed off as they arrive; anything neither
    expected nor in *optional_live* is recorded as unexpected.  Optional
    live events may show up any number of times.
    """

    def __init__(
        self,
        expected_initial: Iterable[Event] = (),
        expected_live: Iterable[Event] = (),
        optional_live: Iterable[Event] = (),
    ):
        self.expected_initial = list(expected_initial)
        self.expected_live = list(expected_live)
        self.optional_live = set(optional_live)
        self.unexpected_initial: list[Event] = []
        self.unexpected_live: list[Event] = []
        self.batches: list[tuple[EventBatch, bool]] = []
        self._cond = threading.Condition()

    def __call__(self, batch: EventBatch, is_initial: bool) -> None:
        with self._cond:
            self.batches.append((batch, is_initial))
            for event in batch:
                self._consume(event, is_initial)
            self._cond.notify_all()

    def _consume(self, event: Event, is_initial: bool) -> None:
        if is_initial:
            if event in self.expected_initial:
                self.expected_initial.remove(event)
            else:
                self.unexpected_initial.append(event)
        elif event in self.expected_live:
            self.expected_live.remove(event)
        elif event not in self.optional_live:
            self.unexpected_live.append(event)

    def result(self) -> bool | None:
        """True when all expectations are met, False on anything unexpected."""
        if self.unexpected_initial or self.unexpected_live:
            return False
        if not self.expected_initial and not self.expected_live:
            return True
        return None

    def wait(self, timeout: float = RESULT_TIMEOUT) -> bool | None:
        with self._cond:
            self._cond.wait_for(lambda: self.result() is not None, timeout)
            return self.result()

    def wait_for_events(self, count: int, timeout: float = RESULT_TIMEOUT) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: len(self.events()) >= count, timeout)

    def events(self) -> list[tuple[Event, bool]]:
        return [(event, is_initial) for batch, is_initial in self.batches for event in batch]

    def describe(self) -> str:
        lines = []
        for label, items in (
            ("expected but not seen initial", self.expected_initial),
            ("expected but not seen live", self.expected_live),
            ("unexpected initial", self.unexpected_initial),
            ("unexpected live", self.unexpected_live),
        ):
            if items:
                lines.append(f"{label}: {', '.join(str(e) for e in items)}")
        return "; ".join(lines) or "all expectations met"


class FakeChangeSource:
    """In-memory ChangeSource; tests push raw changes through ``emit``."""

    name = "fake"

    def __init__(self, refuse: Exception | None = None):
        self.refuse = refuse
        self.path: str | None = None
        self.alive = False
        self.stop_calls = 0
        self._sink: ChangeSink | None = None

    def start(self, path: str, sink: ChangeSink) -> None:
        if self.refuse is not None:
            raise self.refuse
        self.path = path
        self._sink = sink
        self.alive = True

    def stop(self, timeout: float | None = None) -> None:
        self.stop_calls += 1
        self.alive = False

    def is_alive(self) -> bool:
        return self.alive

    def emit(self, kind: RawKind, name: str = "", dest: str = "") -> None:
        assert self._sink is not None and self.path is not None
        path = str(Path(self.path) / name) if name else self.path
        dest_path = str(Path(self.path) / dest) if dest else ""
        self._sink(RawChange(kind, path, dest_path))

    def emit_raw(self, change: RawChange) -> None:
        assert self._sink is not None
        self._sink(change)


@pytest.fixture
def watched_dir(tmp_path: Path) -> Path:
    path = tmp_path / "watch"
    path.mkdir()
    return path


@pytest.fixture
def make_consumer() -> Callable[..., VerifyingConsumer]:
    return VerifyingConsumer


@pytest.fixture
def fake_source() -> FakeChangeSource:
    return FakeChangeSource()


@pytest.fixture
def add_file(watched_dir: Path) -> Callable[[str], Path]:
    """Return a helper creating an empty file, failing if it already exists."""

    def _add(name: str) -> Path:
        path = watched_dir / name
        with open(path, "x", encoding="utf-8"):
            pass
        return path

    return _add
