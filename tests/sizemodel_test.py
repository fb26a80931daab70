from __future__ import annotations

import dataclasses
import os
from pathlib import Path

import pytest

from max_dir_size.sizemodel import CycleReport
from max_dir_size.sizemodel import EntryKind
from max_dir_size.sizemodel import FileEntry
from max_dir_size.sizemodel import Snapshot
from max_dir_size.sizemodel import total_size


def test_total_size_of_empty_is_zero() -> None:
    assert total_size([]) == 0
    assert Snapshot("/root").total_size == 0


def test_snapshot_total_size_sums_entries() -> None:
    snapshot = Snapshot(
        "/root",
        entries=(
            FileEntry("/root/a", 100, 1.0),
            FileEntry("/root/b", 50, 2.0),
            FileEntry("/root/c", 80, 3.0),
        ),
    )

    assert snapshot.total_size == 230
    assert len(snapshot) == 3


def test_file_entry_sort_key_breaks_ties_by_path() -> None:
    entries = [
        FileEntry("/root/b", 1, 5.0),
        FileEntry("/root/a", 1, 5.0),
        FileEntry("/root/z", 1, 1.0),
    ]

    ordered = sorted(entries, key=lambda entry: entry.sort_key)

    assert [entry.path for entry in ordered] == ["/root/z", "/root/a", "/root/b"]


def test_file_entry_is_immutable() -> None:
    entry = FileEntry("/root/a", 1, 1.0)

    with pytest.raises(dataclasses.FrozenInstanceError):
        entry.size = 2  # type: ignore[misc]


def test_entry_kind_classify(tmp_path: Path) -> None:
    (tmp_path / "file.txt").write_text("data")
    (tmp_path / "subdir").mkdir()
    os.symlink(tmp_path / "file.txt", tmp_path / "link.txt")
    os.symlink(tmp_path / "subdir", tmp_path / "link_dir")

    with os.scandir(tmp_path) as entries:
        kinds = {entry.name: EntryKind.classify(entry) for entry in entries}

    assert kinds == {
        "file.txt": EntryKind.FILE,
        "subdir": EntryKind.DIRECTORY,
        "link.txt": EntryKind.OTHER,
        "link_dir": EntryKind.OTHER,
    }


def test_cycle_report_str() -> None:
    ok = CycleReport("/data", 300, 100, 1, 0)
    failed = CycleReport("/data", error="gone")

    assert str(ok) == (
        "/data (300 bytes scanned, 100 bytes freed, 1 files removed,"
        " 0 entries skipped) ok"
    )
    assert str(failed).endswith("failed: gone")
