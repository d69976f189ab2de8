"""Unit tests: scanner.py (initial snapshot, creation checks)."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from dirwatcher import scanner
from dirwatcher.errors import (
    DirectoryAccessError,
    DirectoryNotFoundError,
    NotADirectoryWatchError,
    WatchCreationError,
)
from dirwatcher.events import Event


@pytest.mark.unit
class TestScanDirectory:
    def test_lists_direct_entries(self, watched_dir: Path) -> None:
        (watched_dir / "a").write_text("1")
        (watched_dir / "b").write_text("2")
        sub = watched_dir / "sub"
        sub.mkdir()
        (sub / "nested").write_text("3")

        events = scanner.scan_directory(watched_dir)

        assert set(events) == {Event.modified("a"), Event.modified("b"), Event.modified("sub")}
        assert len(events) == 3

    def test_empty_directory(self, watched_dir: Path) -> None:
        assert scanner.scan_directory(watched_dir) == []

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_dangling_symlink_counts(self, watched_dir: Path) -> None:
        os.symlink(watched_dir / "missing", watched_dir / "link")
        assert scanner.scan_directory(watched_dir) == [Event.modified("link")]

    def test_unreadable_entry_skipped(self, watched_dir: Path, monkeypatch) -> None:
        (watched_dir / "ok").write_text("1")
        (watched_dir / "locked").write_text("2")
        real_scandir = os.scandir

        class LockedEntry:
            def __init__(self, entry: os.DirEntry) -> None:
                self.name = entry.name
                self.path = entry.path
                self._entry = entry

            def stat(self, *, follow_symlinks: bool = True):
                if self.name == "locked":
                    raise PermissionError(13, "Permission denied", self.path)
                return self._entry.stat(follow_symlinks=follow_symlinks)

        class FakeScandir:
            def __init__(self, path) -> None:
                self._it = real_scandir(path)

            def __enter__(self):
                return (LockedEntry(e) for e in self._it)

            def __exit__(self, *exc) -> None:
                self._it.close()

        monkeypatch.setattr(scanner.os, "scandir", FakeScandir)

        assert scanner.scan_directory(watched_dir) == [Event.modified("ok")]


@pytest.mark.unit
class TestCheckDirectory:
    def test_returns_absolute_path(self, watched_dir: Path, monkeypatch) -> None:
        monkeypatch.chdir(watched_dir.parent)
        result = scanner.check_directory("watch")
        assert os.path.isabs(result)
        assert os.path.samefile(result, watched_dir)

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(DirectoryNotFoundError) as info:
            scanner.check_directory(tmp_path / "nope")
        assert str(tmp_path / "nope") in str(info.value)

    def test_not_a_directory(self, tmp_path: Path) -> None:
        target = tmp_path / "file"
        target.write_text("x")
        with pytest.raises(NotADirectoryWatchError):
            scanner.scan_directory(target)

    @pytest.mark.skipif(
        sys.platform == "win32" or os.geteuid() == 0,
        reason="permission bits are not enforced here",
    )
    def test_unreadable_directory(self, watched_dir: Path) -> None:
        watched_dir.chmod(0)
        try:
            with pytest.raises(DirectoryAccessError):
                scanner.check_directory(watched_dir)
        finally:
            watched_dir.chmod(0o755)

    def test_all_are_creation_errors(self) -> None:
        for cls in (DirectoryNotFoundError, NotADirectoryWatchError, DirectoryAccessError):
            assert issubclass(cls, WatchCreationError)
            assert issubclass(cls, OSError)
