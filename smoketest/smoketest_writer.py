from __future__ import annotations

import argparse
import logging
import random
import shutil
import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from string import ascii_lowercase

BASE_DIR: Path = Path(__file__).resolve().parent
TEST_DIR: Path = BASE_DIR / "smoketest_writer"
SUB_DIRECTORIES = ["incoming", "incoming/thumbs", "scratch", "scratch/a/b/c"]
FILE_SIZE_RANGE: tuple[int, int] = (1024, 256 * 1024)
FILE_COUNT_RANGE: tuple[int, int] = (1, 20)

# Time intervals in seconds
FILE_CREATE_INTERVAL = 2
FILE_DELETE_INTERVAL = 7
OUTPUT_INTERVAL = 10

logger = logging.getLogger(__name__)


def build_smoketest_directories() -> None:
    """Create the directories for the smoketest."""
    for name in SUB_DIRECTORIES:
        path = TEST_DIR / name
        logger.debug("Creating %s", path)
        path.mkdir(parents=True, exist_ok=True)


def destroy_smoketest_directories() -> None:
    """Delete the directories for the smoketest."""
    logger.debug("Deleting %s", TEST_DIR)
    shutil.rmtree(TEST_DIR, ignore_errors=True)


def _file_name() -> str:
    """Create a random eight character file name."""
    return "".join(random.choices(ascii_lowercase, k=8))


def _all_files() -> list[Path]:
    return [path for path in TEST_DIR.rglob("*") if path.is_file()]


def thread_file_creator(stop_flag: threading.Event) -> None:
    """Thread handler: Create random sized files at a regular interval."""
    while not stop_flag.wait(FILE_CREATE_INTERVAL):
        file_count = random.randint(*FILE_COUNT_RANGE)
        directory = TEST_DIR / random.choice(SUB_DIRECTORIES)
        logger.info("Creating %s files in %s", file_count, directory)

        for _ in range(file_count):
            size = random.randint(*FILE_SIZE_RANGE)
            (directory / _file_name()).write_bytes(b"\0" * size)


def thread_file_deleter(stop_flag: threading.Event) -> None:
    """Thread handler: Delete random files, racing the size limiter."""
    while not stop_flag.wait(FILE_DELETE_INTERVAL):
        files = _all_files()
        for path in random.sample(files, k=min(len(files), 5)):
            logger.info("Deleting %s", path)
            path.unlink(missing_ok=True)


def thread_output_size(stop_flag: threading.Event) -> None:
    """Output the total size of the test directory."""
    while not stop_flag.wait(OUTPUT_INTERVAL):
        files = _all_files()
        total = 0
        for path in files:
            try:
                total += path.stat().st_size
            except FileNotFoundError:
                continue
        print("*" * 79)
        print(f"{TEST_DIR}: {len(files)} files, {total / 1024 / 1024:.2f} MB")
        print("*" * 79)


def start_threads(
    stop_flag: threading.Event,
    verbose: bool = False,
) -> list[threading.Thread]:
    """Start all threads."""
    targets = [thread_file_creator, thread_file_deleter]
    if verbose:
        targets.append(thread_output_size)

    threads = [threading.Thread(target=target, args=(stop_flag,)) for target in targets]
    for thread in threads:
        thread.start()

    return threads


def stop_threads(threads: list[threading.Thread]) -> None:
    """Join all threads, allowing them to stop."""
    for thread in threads:
        thread.join()


@contextmanager
def smoketest_runner(verbose: bool = False) -> Generator[Path, None, None]:
    """Run the writer threads, yielding the directory they write to."""
    stop_flag = threading.Event()

    logger.debug("Building smoketest directories...")
    build_smoketest_directories()
    threads: list[threading.Thread] = []

    try:
        logger.debug("Starting threads...")
        threads = start_threads(stop_flag, verbose)

        yield TEST_DIR

    finally:
        logger.debug("Stopping threads...")
        stop_flag.set()
        stop_threads(threads)
        logger.debug("Destroying smoketest directories...")
        destroy_smoketest_directories()


def parse_args() -> tuple[str, bool]:
    """Parse command line arguments, return log level and verbose flag."""
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="ERROR",
        help="Set the logging level.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Output the size of the test directory on a regular interval.",
    )
    args = parser.parse_args()
    return args.log_level, args.verbose


def run() -> int:
    """Main function - blocking."""
    level, verbose = parse_args()
    logging.basicConfig(level=level, format="%(asctime)s %(message)s")

    with smoketest_runner(verbose):
        while True:
            try:
                time.sleep(1)
            except KeyboardInterrupt:
                break

    return 0


if __name__ == "__main__":
    raise SystemExit(run())
