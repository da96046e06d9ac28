"""Process logging for the controller.

Everything goes to stderr, prefixed with the program name so the lines stay
recognisable when the controller runs under a supervisor that merges the
output of several services. An optional file handler mirrors the same lines.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

from .config import ConfigError, LoggingConfig
from .constants import APP_NAME

LOG_FORMAT = f"{APP_NAME}: %(asctime)s %(levelname)s %(name)s: %(message)s"

# Libraries that log every request or packet at INFO/DEBUG.
NETWORK_LOGGERS = ("aiohttp.access", "aiohttp.server", "paho")

_HANDLER_NAME = f"{APP_NAME}.handler"


def resolve_level(level: str | int) -> int:
    """Map a level name such as ``"debug"`` (or a numeric level) to its value."""

    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ConfigError(f"Unknown log level: {level!r}")
    return value


def configure_logging(
    settings: LoggingConfig, *, stream: Optional[TextIO] = None
) -> logging.Logger:
    """Install the controller's handlers on the root logger.

    Calling it again replaces the handlers installed by an earlier call and
    leaves foreign handlers alone.
    """

    level = resolve_level(settings.level)
    root = logging.getLogger()

    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(stream or sys.stderr)
    console.set_name(_HANDLER_NAME)
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.path:
        settings.path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.path)
        file_handler.set_name(_HANDLER_NAME)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(level)
    logging.captureWarnings(True)

    network_level = logging.NOTSET if settings.log_network else logging.WARNING
    for name in NETWORK_LOGGERS:
        logging.getLogger(name).setLevel(network_level)

    return logging.getLogger(APP_NAME)
