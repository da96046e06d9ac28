"""Tests for process logging setup."""

import io
import logging
from pathlib import Path

import pytest

from helio_controller.config import ConfigError, LoggingConfig
from helio_controller.logging import NETWORK_LOGGERS, configure_logging, resolve_level


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    network_levels = {name: logging.getLogger(name).level for name in NETWORK_LOGGERS}
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    for name, value in network_levels.items():
        logging.getLogger(name).setLevel(value)


def test_lines_are_prefixed_with_program_name():
    stream = io.StringIO()
    configure_logging(LoggingConfig(level="INFO"), stream=stream)

    logging.getLogger("helio_controller.schedule.runner").info("Ran line 3")

    line = stream.getvalue().strip()
    assert line.startswith("helio-controller: ")
    assert line.endswith("INFO helio_controller.schedule.runner: Ran line 3")


def test_level_comes_from_settings():
    stream = io.StringIO()
    configure_logging(LoggingConfig(level="warning"), stream=stream)

    logging.getLogger("helio_controller").info("hidden")
    logging.getLogger("helio_controller").warning("shown")

    assert "hidden" not in stream.getvalue()
    assert "shown" in stream.getvalue()


def test_reconfiguring_replaces_own_handlers_only():
    foreign = logging.NullHandler()
    logging.getLogger().addHandler(foreign)
    first, second = io.StringIO(), io.StringIO()

    configure_logging(LoggingConfig(), stream=first)
    configure_logging(LoggingConfig(), stream=second)
    logging.getLogger("helio_controller").info("once")

    assert first.getvalue() == ""
    assert second.getvalue().count("once") == 1
    assert foreign in logging.getLogger().handlers
    logging.getLogger().removeHandler(foreign)


def test_file_handler_mirrors_console(tmp_path: Path):
    log_path = tmp_path / "logs" / "controller.log"
    configure_logging(LoggingConfig(path=log_path), stream=io.StringIO())

    logging.getLogger("helio_controller").info("to disk")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "helio-controller: " in log_path.read_text()
    assert "to disk" in log_path.read_text()


def test_network_loggers_quiet_unless_requested():
    configure_logging(LoggingConfig(), stream=io.StringIO())
    assert logging.getLogger("paho").level == logging.WARNING

    configure_logging(LoggingConfig(log_network=True), stream=io.StringIO())
    assert logging.getLogger("paho").level == logging.NOTSET


def test_resolve_level_accepts_names_and_numbers():
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level("30") == logging.WARNING
    assert resolve_level(logging.ERROR) == logging.ERROR


def test_resolve_level_rejects_unknown_name():
    with pytest.raises(ConfigError):
        resolve_level("loud")
