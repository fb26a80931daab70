from __future__ import annotations

import logging
import os
import threading

from .sizemodel import CycleCancelled
from .sizemodel import EntryKind
from .sizemodel import FileEntry
from .sizemodel import Snapshot


class SizeScanner:
    """Walk a directory tree and capture every regular file in a Snapshot."""

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        root_directory: str,
        *,
        stop_flag: threading.Event | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize a new SizeScanner.

        Args:
            root_directory: The directory to scan. Made absolute on init.

        Keyword Args:
            stop_flag: When set, the scan is abandoned before the next entry.
            logger: Logger to use instead of the module logger.
        """
        self._root = os.path.abspath(root_directory)
        self._stop_flag = stop_flag or threading.Event()
        if logger is not None:
            self.logger = logger

    @property
    def root_directory(self) -> str:
        """Return the absolute root directory being scanned."""
        return self._root

    def scan(self) -> Snapshot:
        """
        Scan the root directory and return a snapshot of its regular files.

        Symlinks are never followed, counted, or removed. Sockets, devices,
        and fifos are ignored the same way.

        Raises:
            FileNotFoundError: The root directory does not exist.
            NotADirectoryError: The root is not a directory.
            OSError: The root directory could not be listed.
            CycleCancelled: The stop flag was set during the scan.
        """
        self._check_root()
        self.logger.debug("Scanning directory: %s", self._root)

        files: list[FileEntry] = []
        skipped = 0
        ignored = 0

        # Explicit stack, no recursion
        pending: list[str] = [self._root]

        while pending:
            dirpath = pending.pop()

            try:
                entries = self._list_directory(dirpath)

            except OSError as error:
                if dirpath == self._root:
                    raise

                self.logger.warning("Skipping directory '%s': %s", dirpath, error)
                skipped += 1
                continue

            for entry in entries:
                if self._stop_flag.is_set():
                    raise CycleCancelled(f"Scan of {self._root} cancelled")

                try:
                    kind = EntryKind.classify(entry)

                    if kind is EntryKind.DIRECTORY:
                        pending.append(entry.path)
                        continue

                    if kind is EntryKind.OTHER:
                        self.logger.debug("Ignoring non-regular entry '%s'", entry.path)
                        ignored += 1
                        continue

                    stat = entry.stat(follow_symlinks=False)

                except OSError as error:
                    # Removed or made unreadable after the listing
                    self.logger.warning("Skipping entry '%s': %s", entry.path, error)
                    skipped += 1
                    continue

                files.append(FileEntry(entry.path, stat.st_size, stat.st_mtime))

        self.logger.debug("Found %s files", len(files))

        return Snapshot(
            root=self._root,
            entries=tuple(files),
            skipped=skipped,
            ignored=ignored,
        )

    def _check_root(self) -> None:
        """Raise if the root directory is missing or not a directory."""
        if not os.path.exists(self._root):
            raise FileNotFoundError(f"Root directory does not exist: {self._root}")

        if not os.path.isdir(self._root):
            raise NotADirectoryError(f"Root is not a directory: {self._root}")

    @staticmethod
    def _list_directory(dirpath: str) -> list[os.DirEntry[str]]:
        """
        List a directory, closing the scandir handle before returning.

        Raises:
            OSError
        """
        with os.scandir(dirpath) as entries:
            return list(entries)
