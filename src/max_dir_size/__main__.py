from __future__ import annotations

import argparse
import logging
import signal
from pathlib import Path
from types import FrameType

from max_dir_size import __version__
from max_dir_size.sizeconfig import LOG_LEVELS
from max_dir_size.sizeconfig import load_config
from max_dir_size.sizeconfig import write_new_config
from max_dir_size.sizescheduler import SizeScheduler

APP_NAME = "maxdirsize"
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Keep a directory under a maximum size by removing the oldest files.",
    )
    parser.add_argument(
        "config",
        type=str,
        nargs="?",
        default=None,
        help="The path to the configuration file. Environment variables override it.",
    )
    parser.add_argument(
        "--once",
        help="Run a single cycle and exit. Default: False (loop until stopped).",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--debug",
        help="Enable debug logging.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level. Overrides the configured log_level.",
        choices=sorted(LOG_LEVELS),
        default=None,
    )
    parser.add_argument(
        "--log-file",
        help="Enable logging to a file next to the config file.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--make-config",
        help="Create a default configuration file.",
        default=False,
        action="store_true",
    )
    return parser.parse_args(args)


def add_file_handler_to_logging(config_filepath: str) -> None:
    """Add a file handler to the root logger next to the config file provided."""
    filepath = Path(config_filepath).absolute()
    log_filepath = filepath.parent / f"{filepath.stem}.log"
    file_handler = logging.FileHandler(log_filepath)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.getLogger().addHandler(file_handler)


def install_signal_handlers(scheduler: SizeScheduler) -> None:
    """Stop the scheduler gracefully on SIGTERM and SIGINT."""

    def _handler(signum: int, frame: FrameType | None) -> None:
        logger.info("Received signal %s, stopping", signum)
        scheduler.stop()

    signal.signal(signal.SIGTERM, _handler)
    signal.signal(signal.SIGINT, _handler)


def main(*, cli_args: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(cli_args)

    if args.make_config:
        if not args.config:
            print("A config path is required with --make-config")
            return 1

        write_new_config(args.config)
        return 0

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=DATE_FORMAT)

    if args.log_file and args.config:
        add_file_handler_to_logging(args.config)

    try:
        config = load_config(args.config)
        config.validate()

    except ValueError as error:
        logger.error("Invalid configuration: %s", error)
        return 1

    if args.debug:
        level = logging.DEBUG
    elif args.log_level:
        level = LOG_LEVELS[args.log_level]
    else:
        level = config.log_level_value
    logging.getLogger().setLevel(level)

    logger.info(
        "Starting %s-v%s and running every %s seconds on %s with a limit of %s MB",
        APP_NAME,
        __version__,
        config.interval_seconds,
        config.root_directory,
        config.max_size_mb,
    )

    scheduler = SizeScheduler(config)

    if args.once:
        scheduler.run_once()

    else:
        install_signal_handlers(scheduler)
        scheduler.run_loop()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
