from __future__ import annotations

import dataclasses
import enum
import os
from collections.abc import Iterable


class CycleCancelled(Exception):
    """Raised when a shutdown is requested while a cycle is in progress."""


class EntryKind(enum.Enum):
    """The kinds of directory entries the scanner distinguishes."""

    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"

    @classmethod
    def classify(cls, entry: os.DirEntry[str]) -> EntryKind:
        """
        Classify a directory entry without following symlinks.

        Raises:
            OSError
        """
        if entry.is_symlink():
            return cls.OTHER

        if entry.is_dir(follow_symlinks=False):
            return cls.DIRECTORY

        if entry.is_file(follow_symlinks=False):
            return cls.FILE

        return cls.OTHER


@dataclasses.dataclass(frozen=True)
class FileEntry:
    """A regular file as seen at scan time."""

    path: str
    size: int
    modified_time: float

    @property
    def sort_key(self) -> tuple[float, str]:
        """Oldest first, ties broken by path."""
        return (self.modified_time, self.path)


def total_size(entries: Iterable[FileEntry]) -> int:
    """Return the sum of the sizes of the given entries, 0 when empty."""
    return sum(entry.size for entry in entries)


@dataclasses.dataclass(frozen=True)
class Snapshot:
    """All regular files captured by one scan of the root directory."""

    root: str
    entries: tuple[FileEntry, ...] = ()
    skipped: int = 0
    ignored: int = 0

    @property
    def total_size(self) -> int:
        """Return the total size in bytes of the snapshot."""
        return total_size(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclasses.dataclass(frozen=True)
class EvictionResult:
    """Outcome of evicting files from a single snapshot."""

    bytes_freed: int = 0
    files_removed: int = 0
    skipped: int = 0
    vanished: int = 0
    removed_paths: tuple[str, ...] = ()
    remaining_bytes: int = 0
    cancelled: bool = False


@dataclasses.dataclass(frozen=True)
class CycleReport:
    """Summary of one scan and evict cycle, used for logging and metrics."""

    root: str
    total_bytes: int = 0
    bytes_freed: int = 0
    files_removed: int = 0
    skipped: int = 0
    duration_seconds: float = 0.0
    error: str | None = None

    def __str__(self) -> str:
        """Return a string representation of the cycle."""
        status = f"failed: {self.error}" if self.error else "ok"
        return (
            f"{self.root} ({self.total_bytes} bytes scanned,"
            f" {self.bytes_freed} bytes freed, {self.files_removed} files removed,"
            f" {self.skipped} entries skipped) {status}"
        )
