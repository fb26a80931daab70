from __future__ import annotations

import logging

from smoketest_writer import smoketest_runner

from max_dir_size.sizeconfig import SizeConfig
from max_dir_size.sizescheduler import SizeScheduler

MAX_SIZE_MB = 5
INTERVAL_SECONDS = 5


def main() -> int:
    """Run the size limiter against the smoketest writer until ctrl-c."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    with smoketest_runner(verbose=True) as directory:
        config = SizeConfig(
            root_directory=str(directory),
            max_size_mb=MAX_SIZE_MB,
            interval_seconds=INTERVAL_SECONDS,
            emit_stdout=True,
        )
        config.validate()
        SizeScheduler(config).run_loop()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
