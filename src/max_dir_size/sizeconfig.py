from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from configparser import ConfigParser

BYTES_PER_MEGABYTE = 1024 * 1024

LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

# Environment variable -> (section, option) in the config file
ENV_OPTIONS = {
    "DIRECTORY": ("maxdirsize", "directory"),
    "MAX_SIZE_MB": ("maxdirsize", "max_size_mb"),
    "INTERVAL_SECONDS": ("maxdirsize", "interval_seconds"),
    "LOG_LEVEL": ("maxdirsize", "log_level"),
    "CONFIG_NAME": ("system", "config_name"),
}

NEW_CONFIG = """\
[system]
# config_name is used to name metric files, keep it unique per config.
config_name = {config_name}

[maxdirsize]
# The directory whose total size is bounded. Every environment variable
# (DIRECTORY, MAX_SIZE_MB, INTERVAL_SECONDS, LOG_LEVEL) overrides this file.
directory = .
max_size_mb = 1024
interval_seconds = 60

# One of: error, warn, info, debug
log_level = info

[emit]
# Emit a metric line per cycle to the following destinations.
metric_name = maxdirsize
stdout = false
file = false

    """


@dataclasses.dataclass(frozen=True)
class SizeConfig:
    """Immutable configuration, read once before the scheduler starts."""

    root_directory: str
    max_size_mb: int
    interval_seconds: int
    log_level: str = "info"
    config_name: str = "maxdirsize"
    metric_name: str = "maxdirsize"
    emit_stdout: bool = False
    emit_file: bool = False

    @property
    def max_size_bytes(self) -> int:
        """Return the eviction threshold in bytes."""
        return self.max_size_mb * BYTES_PER_MEGABYTE

    @property
    def log_level_value(self) -> int:
        """Return the `logging` level matching log_level."""
        return LOG_LEVELS[self.log_level.lower()]

    def validate(self) -> None:
        """
        Check the configuration can be used to start the scheduler.

        Raises:
            ValueError
        """
        if not self.root_directory:
            raise ValueError("Root directory is not set")

        if not os.path.isdir(self.root_directory):
            raise ValueError(f"Root directory is not a directory: {self.root_directory}")

        if self.max_size_mb <= 0:
            raise ValueError(f"Max size must be positive, got {self.max_size_mb}")

        if self.interval_seconds <= 0:
            raise ValueError(f"Interval must be positive, got {self.interval_seconds}")

        if self.log_level.lower() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")


class SizeConfigLoader:
    """Build a SizeConfig from an optional config file and the environment."""

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        filepath: str | None = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """
        Load the configuration sources.

        Args:
            filepath: Path to an ini config file. Optional.

        Keyword Args:
            environ: Environment mapping, defaults to os.environ.

        Raises:
            ValueError: The config file could not be read.
        """
        self._config = ConfigParser(interpolation=None)

        if filepath is not None:
            success = self._config.read(filepath)

            if not success:
                raise ValueError(f"Could not read config file at {filepath}")

            self.logger.debug("Loaded config from %s", filepath)

        self._apply_environment(os.environ if environ is None else environ)

    def _apply_environment(self, environ: Mapping[str, str]) -> None:
        """Override config file values with any set environment variables."""
        for name, (section, option) in ENV_OPTIONS.items():
            value = environ.get(name)
            if value is None:
                continue

            if not self._config.has_section(section):
                self._config.add_section(section)

            self._config.set(section, option, value)
            self.logger.debug("Using %s from environment", name)

    def _getint(self, option: str) -> int:
        """Return a required integer option from the [maxdirsize] section."""
        value = self._config.get("maxdirsize", option, fallback=None)
        if value is None:
            raise ValueError(f"Missing required setting: {option}")

        try:
            return int(value)

        except ValueError:
            raise ValueError(
                f"Setting {option} must be an integer, got {value!r}"
            ) from None

    def build(self) -> SizeConfig:
        """
        Return the immutable configuration.

        Raises:
            ValueError: A required setting is missing or malformed.
        """
        directory = self._config.get("maxdirsize", "directory", fallback="")

        return SizeConfig(
            root_directory=os.path.abspath(directory) if directory else "",
            max_size_mb=self._getint("max_size_mb"),
            interval_seconds=self._getint("interval_seconds"),
            log_level=self._config.get("maxdirsize", "log_level", fallback="info"),
            config_name=self._config.get(
                "system", "config_name", fallback="maxdirsize"
            ),
            metric_name=self._config.get("emit", "metric_name", fallback="maxdirsize"),
            emit_stdout=self._config.getboolean("emit", "stdout", fallback=False),
            emit_file=self._config.getboolean("emit", "file", fallback=False),
        )


def load_config(
    filepath: str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> SizeConfig:
    """Load and return the configuration. Does not validate it."""
    return SizeConfigLoader(filepath, environ=environ).build()


def write_new_config(filename: str) -> None:
    """Write a new config file if one does not exist."""
    if os.path.exists(filename):
        return

    config_name = os.path.splitext(os.path.basename(filename))[0]
    config = NEW_CONFIG.format(config_name=config_name)

    with open(filename, "w") as config_file:
        config_file.write(config)
