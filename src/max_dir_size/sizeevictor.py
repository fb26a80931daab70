from __future__ import annotations

import logging
import os
import threading

from .sizemodel import EvictionResult
from .sizemodel import Snapshot


class SizeEvictor:
    """Delete the oldest files of a snapshot until it fits under a threshold."""

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        max_size_bytes: int,
        *,
        stop_flag: threading.Event | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize a new SizeEvictor.

        Args:
            max_size_bytes: The threshold the snapshot total must reach.

        Keyword Args:
            stop_flag: When set, eviction stops before the next deletion.
            logger: Logger to use instead of the module logger.
        """
        self._max_size_bytes = max_size_bytes
        self._stop_flag = stop_flag or threading.Event()
        if logger is not None:
            self.logger = logger

    @property
    def max_size_bytes(self) -> int:
        """Return the eviction threshold in bytes."""
        return self._max_size_bytes

    def evict(self, snapshot: Snapshot) -> EvictionResult:
        """
        Remove files from the snapshot, oldest first, until within the threshold.

        The snapshot is not re-scanned. Files that vanished since the scan are
        subtracted from the running total once and not counted as removed.
        Files that cannot be removed are skipped and left in the total.

        Args:
            snapshot: The snapshot captured at the start of this cycle.

        Returns:
            The outcome of the eviction.
        """
        running_total = snapshot.total_size

        if running_total <= self._max_size_bytes:
            self.logger.debug(
                "Total of %s bytes is within %s bytes, nothing to remove",
                running_total,
                self._max_size_bytes,
            )
            return EvictionResult(remaining_bytes=running_total)

        self.logger.info(
            "Total of %s bytes in %s files exceeds %s bytes, removing oldest files",
            running_total,
            len(snapshot),
            self._max_size_bytes,
        )

        bytes_freed = 0
        skipped = 0
        vanished = 0
        removed_paths: list[str] = []
        cancelled = False

        for entry in sorted(snapshot.entries, key=lambda entry: entry.sort_key):
            if running_total <= self._max_size_bytes:
                break

            if self._stop_flag.is_set():
                self.logger.info("Eviction cancelled with %s bytes left", running_total)
                cancelled = True
                break

            try:
                os.remove(entry.path)

            except FileNotFoundError:
                self.logger.info("'%s' was removed by another process", entry.path)
                running_total -= entry.size
                vanished += 1
                continue

            except OSError as error:
                self.logger.warning("Failed to remove '%s': %s", entry.path, error)
                skipped += 1
                continue

            self.logger.debug("Removed '%s' (%s bytes)", entry.path, entry.size)
            running_total -= entry.size
            bytes_freed += entry.size
            removed_paths.append(entry.path)

        if running_total > self._max_size_bytes and not cancelled:
            self.logger.warning(
                "Unable to reach %s bytes this cycle, %s bytes remain",
                self._max_size_bytes,
                running_total,
            )

        return EvictionResult(
            bytes_freed=bytes_freed,
            files_removed=len(removed_paths),
            skipped=skipped,
            vanished=vanished,
            removed_paths=tuple(removed_paths),
            remaining_bytes=running_total,
            cancelled=cancelled,
        )
