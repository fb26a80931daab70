from __future__ import annotations

import enum
import logging
import threading
import time
from typing import TYPE_CHECKING

from .sizeemitter import SizeEmitter
from .sizeevictor import SizeEvictor
from .sizemodel import CycleCancelled
from .sizemodel import CycleReport
from .sizemodel import EvictionResult
from .sizescanner import SizeScanner

if TYPE_CHECKING:
    from .sizeconfig import SizeConfig


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class SizeScheduler:
    """Keep a directory under its size limit by running a cycle every interval."""

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        config: SizeConfig,
        *,
        stop_flag: threading.Event | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize a new SizeScheduler.

        Args:
            config: The validated configuration. Never re-read during the loop.

        Keyword Args:
            stop_flag: Shared shutdown signal, a new Event is created if omitted.
            logger: Logger given to the scheduler, scanner, and evictor.
        """
        self._config = config
        self._stop_flag = stop_flag or threading.Event()
        self._state = SchedulerState.IDLE
        if logger is not None:
            self.logger = logger

        self._scanner = SizeScanner(
            config.root_directory,
            stop_flag=self._stop_flag,
            logger=logger,
        )
        self._evictor = SizeEvictor(
            config.max_size_bytes,
            stop_flag=self._stop_flag,
            logger=logger,
        )
        self._emitter = SizeEmitter(config)

    @property
    def state(self) -> SchedulerState:
        """Return IDLE between cycles and RUNNING while a cycle is in progress."""
        return self._state

    @property
    def stopped(self) -> bool:
        """True once a shutdown has been requested."""
        return self._stop_flag.is_set()

    def stop(self) -> None:
        """Request a shutdown. Safe to call from a signal handler or thread."""
        self._stop_flag.set()

    def run_once(self) -> CycleReport:
        """
        Run a single scan and evict cycle.

        Recoverable I/O failures are logged and reported, never raised.

        Raises:
            RuntimeError: A cycle is already running.
        """
        if self._state is SchedulerState.RUNNING:
            raise RuntimeError(f"Already running a cycle on {self._config.root_directory}")

        self._state = SchedulerState.RUNNING
        try:
            report = self._run_cycle()

        finally:
            self._state = SchedulerState.IDLE

        self._emitter.add_cycle(report)
        self._emitter.emit()

        return report

    def run_loop(self) -> None:
        """Run a cycle every interval until stop() is called. This is blocking."""
        interval = self._config.interval_seconds

        self.logger.info("Running cleanup loop, every %s seconds", interval)
        try:
            while not self._stop_flag.is_set():
                next_run = time.monotonic() + interval
                self.run_once()

                # A cycle that overran its interval starts the next one at once
                self._stop_flag.wait(max(0.0, next_run - time.monotonic()))

        except KeyboardInterrupt:
            self.stop()

        except Exception as error:
            self.logger.exception("Scheduler stopped due to an error: %s", error)
            raise error

        self.logger.info("Scheduler stopped")

    def _run_cycle(self) -> CycleReport:
        """Scan, aggregate, and evict. Always logs a summary."""
        root = self._scanner.root_directory
        self.logger.info("Running cycle on %s", root)
        tic = time.perf_counter()

        total_bytes = 0
        scan_skipped = 0
        result = EvictionResult()
        error_message: str | None = None

        try:
            snapshot = self._scanner.scan()
            scan_skipped = snapshot.skipped
            total_bytes = snapshot.total_size

            self.logger.info(
                "Total size: %.2f MB in %s files, limit set to %s MB",
                total_bytes / 1024 / 1024,
                len(snapshot),
                self._config.max_size_mb,
            )

            result = self._evictor.evict(snapshot)

        except CycleCancelled as error:
            self.logger.info("%s", error)
            error_message = str(error)

        except OSError as error:
            self.logger.error("Error while reading %s: %s", root, error)
            error_message = str(error)

        toc = time.perf_counter()

        report = CycleReport(
            root=root,
            total_bytes=total_bytes,
            bytes_freed=result.bytes_freed,
            files_removed=result.files_removed,
            skipped=scan_skipped + result.skipped,
            duration_seconds=toc - tic,
            error=error_message,
        )

        self.logger.info(
            "Cycle finished in %.3f seconds: freed %s bytes, removed %s files, "
            "skipped %s entries",
            report.duration_seconds,
            report.bytes_freed,
            report.files_removed,
            report.skipped,
        )

        return report
