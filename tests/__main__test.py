from __future__ import annotations

import logging
import os
import signal
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock
from unittest.mock import patch

import pytest

from max_dir_size import __main__

CONFIG_TEMPLATE = """\
[maxdirsize]
directory = {directory}
max_size_mb = 1
interval_seconds = 5
"""


@pytest.fixture
def config_file(tmp_path: Path) -> str:
    filepath = tmp_path / "test_config.ini"
    filepath.write_text(CONFIG_TEMPLATE.format(directory=tmp_path))
    return str(filepath)


@pytest.fixture(autouse=True)
def clean_environment() -> Generator[None, None, None]:
    """Keep the environment from overriding the test config files."""
    names = ["DIRECTORY", "MAX_SIZE_MB", "INTERVAL_SECONDS", "LOG_LEVEL", "CONFIG_NAME"]
    with patch.dict(os.environ):
        for name in names:
            os.environ.pop(name, None)
        yield


def test_parse_args() -> None:
    args = __main__.parse_args(["config", "--once"])
    assert args.config == "config"
    assert args.once is True


def test_parse_args_defaults() -> None:
    args = __main__.parse_args([])
    assert args.config is None
    assert args.once is False
    assert args.debug is False
    assert args.log_level is None


def test_parse_args_rejects_unknown_log_level() -> None:
    with pytest.raises(SystemExit):
        __main__.parse_args(["--log-level", "verbose"])


def test_main_once(config_file: str) -> None:
    cli_args = [config_file, "--once"]

    with patch("max_dir_size.__main__.SizeScheduler.run_once") as mock_run:
        result = __main__.main(cli_args=cli_args)

    assert result == 0
    assert mock_run.call_count == 1


def test_main_loop(config_file: str) -> None:
    cli_args = [config_file]

    with patch("max_dir_size.__main__.install_signal_handlers") as mock_signals:
        with patch("max_dir_size.__main__.SizeScheduler.run_loop") as mock_run:
            result = __main__.main(cli_args=cli_args)

    assert result == 0
    assert mock_run.call_count == 1
    assert mock_signals.call_count == 1


def test_main_from_environment(tmp_path: Path) -> None:
    environ = {
        "DIRECTORY": str(tmp_path),
        "MAX_SIZE_MB": "1",
        "INTERVAL_SECONDS": "1",
    }

    with patch.dict(os.environ, environ):
        with patch("max_dir_size.__main__.SizeScheduler.run_once") as mock_run:
            result = __main__.main(cli_args=["--once"])

    assert result == 0
    assert mock_run.call_count == 1


def test_main_invalid_root_exits_non_zero(tmp_path: Path) -> None:
    environ = {
        "DIRECTORY": str(tmp_path / "missing"),
        "MAX_SIZE_MB": "1",
        "INTERVAL_SECONDS": "1",
    }

    with patch.dict(os.environ, environ):
        with patch("max_dir_size.__main__.SizeScheduler") as mock_scheduler:
            result = __main__.main(cli_args=["--once"])

    assert result == 1
    mock_scheduler.assert_not_called()


def test_main_missing_config_file_exits_non_zero(tmp_path: Path) -> None:
    result = __main__.main(cli_args=[str(tmp_path / "missing.ini"), "--once"])

    assert result == 1


def test_main_non_positive_threshold_exits_non_zero(
    config_file: str,
    caplog: pytest.LogCaptureFixture,
) -> None:
    with patch.dict(os.environ, {"MAX_SIZE_MB": "0"}):
        result = __main__.main(cli_args=[config_file, "--once"])

    assert result == 1
    assert "Invalid configuration" in caplog.text


def test_main_debug_sets_root_level(config_file: str) -> None:
    root = logging.getLogger()
    level = root.level
    try:
        with patch("max_dir_size.__main__.SizeScheduler.run_once"):
            __main__.main(cli_args=[config_file, "--once", "--debug"])

        assert root.level == logging.DEBUG

    finally:
        root.setLevel(level)


def test_main_create_config() -> None:
    cli_args = ["tests/new_test_config.ini", "--make-config"]

    with patch("max_dir_size.__main__.write_new_config") as mock_write:
        result = __main__.main(cli_args=cli_args)

    assert result == 0
    mock_write.assert_called_once_with("tests/new_test_config.ini")


def test_main_create_config_requires_path() -> None:
    with patch("max_dir_size.__main__.write_new_config") as mock_write:
        result = __main__.main(cli_args=["--make-config"])

    assert result == 1
    mock_write.assert_not_called()


def test_main_creates_log_file_with_config(config_file: str) -> None:
    cli_args = [config_file, "--once", "--log-file"]
    log_file = Path(config_file).with_suffix(".log")

    try:
        with patch("max_dir_size.__main__.SizeScheduler.run_once") as mock_run:
            result = __main__.main(cli_args=cli_args)

        assert result == 0
        assert mock_run.call_count == 1
        assert log_file.exists()

    finally:
        for handler in logging.root.handlers[:]:
            if isinstance(handler, logging.FileHandler):
                handler.close()
                logging.root.handlers.remove(handler)


def test_install_signal_handlers_stop_scheduler() -> None:
    scheduler = MagicMock()

    with patch("max_dir_size.__main__.signal.signal") as mock_signal:
        __main__.install_signal_handlers(scheduler)

    signums = [call.args[0] for call in mock_signal.call_args_list]
    assert signums == [signal.SIGTERM, signal.SIGINT]

    handler = mock_signal.call_args_list[0].args[1]
    handler(signal.SIGTERM, None)

    scheduler.stop.assert_called_once()
