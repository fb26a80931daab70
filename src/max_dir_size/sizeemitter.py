from __future__ import annotations

import dataclasses
import logging
import re
from collections import deque
from datetime import datetime
from typing import TYPE_CHECKING

from .sizemodel import CycleReport

if TYPE_CHECKING:
    from typing import Protocol

    class _EmitterConfig(Protocol):
        @property
        def config_name(self) -> str:
            ...

        @property
        def metric_name(self) -> str:
            ...

        @property
        def emit_stdout(self) -> bool:
            ...

        @property
        def emit_file(self) -> bool:
            ...


@dataclasses.dataclass(frozen=True)
class Metric:
    metric_name: str
    dimensions: list[str]
    guage_values: list[str]
    timestamp: int = 0


class SizeEmitter:
    """Emit one metric line per cycle to stdout and/or a daily file."""

    logger = logging.getLogger(__name__)

    def __init__(self, config: _EmitterConfig) -> None:
        """Initialize the emitter."""
        self._config = config
        self._metric_lines: deque[Metric] = deque()

    @property
    def enabled(self) -> bool:
        """True if any destination is configured."""
        return bool(self._config.emit_stdout or self._config.emit_file)

    def add_cycle(self, report: CycleReport, timestamp: int = 0) -> None:
        """
        Queue a metric line describing a finished cycle.

        Args:
            report: The cycle to describe.
            timestamp: Seconds since epoch. If 0, the current time is used.
        """
        if not self.enabled:
            return

        root = self._sanitize_directory_path(report.root)
        self._metric_lines.append(
            Metric(
                metric_name=self._config.metric_name,
                dimensions=[f"root={root}"],
                guage_values=[
                    f"total.bytes={report.total_bytes}",
                    f"freed.bytes={report.bytes_freed}",
                    f"removed.files={report.files_removed}",
                    f"skipped.entries={report.skipped}",
                ],
                timestamp=(timestamp or int(datetime.now().timestamp())) * 1000,
            )
        )

    def emit(self) -> None:
        """Emit all queued metric lines to the configured targets. Empties the queue."""
        lines = self._get_lines()
        if not lines:
            return

        try:
            self.to_stdout(lines)
            self.to_file(lines)

        except OSError as error:
            self.logger.error("Failed to write metric lines: %s", error)

        self.logger.debug("Emitted %d metric lines.", len(lines))

    def _get_lines(self) -> list[str]:
        """Build the list of lines to emit, removing them from the emitter."""
        lines: list[str] = []
        while self._metric_lines:
            metric = self._metric_lines.popleft()
            lines.append(
                f"{metric.metric_name},{','.join(metric.dimensions)} "
                f"{','.join(metric.guage_values)} "
                f"{metric.timestamp}"
            )

        return lines

    def to_file(self, metric_lines: list[str]) -> None:
        """
        Emit metric lines to a file in line protocol format.

        Output:
            A file named <config_name>_<date>_metric_lines.txt
        """
        if not self._config.emit_file or not metric_lines:
            return

        date = datetime.now().strftime("%Y%m%d")
        filename = f"{self._config.config_name}_{date}_metric_lines.txt"

        with open(filename, "a") as file_out:
            file_out.write("\n".join(metric_lines) + "\n")

        self.logger.debug("Emitted %d lines to %s", len(metric_lines), filename)

    def to_stdout(self, metric_lines: list[str]) -> None:
        """Emit metric lines to stdout in line protocol format."""
        if not self._config.emit_stdout or not metric_lines:
            return

        print("\n".join(metric_lines))

    @staticmethod
    def _sanitize_directory_path(path: str) -> str:
        """
        Remove characters that are not valid in a line protocol tag value.

        Args:
            path: The directory path to sanitize.

        Returns:
            The sanitized directory path.
        """
        path = re.sub(r"\s+", "_", path)
        path = path.replace("\\", "\\\\")
        return re.sub(r"[^a-zA-Z0-9\/\\_:.\-]", "", path)
