"""Configuration loader for helio-controller.

Settings are resolved once at startup, in increasing precedence: built-in
defaults, the INI file, environment variables, command-line overrides. The
result is an immutable :class:`ControllerConfig` that is handed to every
component; nothing else reads the environment.
"""

from __future__ import annotations

import logging
import os
import re
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from . import constants

LOGGER = logging.getLogger(__name__)

TELEMETRY_TRANSPORTS = ("udp", "mqtt")

_DEFAULT_TRANSPORT_PORTS = {"udp": 8092, "mqtt": 1883}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_TRUTHY = ("true", "1")


class ConfigError(ValueError):
    """Raised when the resolved configuration cannot be used."""


@dataclass(frozen=True, slots=True)
class DeviceConfig:
    host: str = ""
    port: int = constants.DEFAULT_DEVICE_PORT
    multiplier: float = constants.DEFAULT_MULTIPLIER
    connect_timeout: float = constants.DEFAULT_CONNECT_TIMEOUT_SECONDS

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class ScheduleConfig:
    path: Optional[Path] = None
    dummy: bool = False
    delimiter: str = ","
    entry_attempts: int = constants.DEFAULT_ENTRY_ATTEMPTS


@dataclass(frozen=True, slots=True)
class PollConfig:
    interval_seconds: float = 600.0


@dataclass(frozen=True, slots=True)
class TelemetryConfig:
    enabled: bool = True
    transport: str = "udp"
    host: str = "telegraf"
    port: int = 8092
    measurement: str = constants.DEFAULT_MEASUREMENT
    host_tag: str = ""
    group_tag: str = constants.DEFAULT_GROUP_TAG
    user_tag: str = ""
    attempts: int = constants.DEFAULT_TELEMETRY_ATTEMPTS
    retry_delay_seconds: float = constants.DEFAULT_TELEMETRY_RETRY_DELAY
    mqtt_topic: str = constants.DEFAULT_MQTT_TOPIC
    mqtt_username: Optional[str] = None
    mqtt_password: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False


@dataclass(frozen=True, slots=True)
class HealthConfig:
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 0


@dataclass(frozen=True, slots=True)
class ControllerConfig:
    device: DeviceConfig
    schedule: ScheduleConfig
    poll: PollConfig
    telemetry: TelemetryConfig
    logging: LoggingConfig
    health: HealthConfig
    raw: ConfigParser
    path: Path


def parse_duration(value: str) -> float:
    """Parse a duration such as ``10m``, ``1h30m``, ``250ms`` or ``45`` into seconds.

    Bare numbers are taken as seconds.
    """

    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if seconds < 0:
            raise ValueError(f"negative duration: {value!r}")
        return seconds

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


def split_host_port(value: str, default_port: int) -> tuple[str, int]:
    """Split ``host[:port]``; the port falls back to ``default_port``."""

    text = value.strip()
    if text.startswith("[") and "]" in text:
        host, _, rest = text[1:].partition("]")
        port_part = rest[1:] if rest.startswith(":") else ""
    elif text.count(":") == 1:
        host, port_part = text.rsplit(":", 1)
    else:
        host, port_part = text, ""

    if not port_part:
        return host, default_port

    try:
        port = int(port_part)
    except ValueError as exc:
        raise ConfigError(f"invalid port in address {value!r}") from exc
    if not 0 < port < 65536:
        raise ConfigError(f"port out of range in address {value!r}")
    return host, port


def _defaults() -> dict[str, dict[str, str]]:
    return {
        "device": {
            "address": "",
            "multiplier": str(constants.DEFAULT_MULTIPLIER),
            "connect_timeout": str(constants.DEFAULT_CONNECT_TIMEOUT_SECONDS),
        },
        "schedule": {
            "path": "",
            "dummy": "false",
            "delimiter": ",",
            "entry_attempts": str(constants.DEFAULT_ENTRY_ATTEMPTS),
        },
        "poll": {
            "interval": constants.DEFAULT_POLL_INTERVAL,
        },
        "telemetry": {
            "enabled": "true",
            "transport": "udp",
            "host": constants.DEFAULT_TELEGRAF_HOST,
            "measurement": constants.DEFAULT_MEASUREMENT,
            "host_tag": "",
            "group_tag": constants.DEFAULT_GROUP_TAG,
            "user_tag": "",
            "attempts": str(constants.DEFAULT_TELEMETRY_ATTEMPTS),
            "retry_delay": str(constants.DEFAULT_TELEMETRY_RETRY_DELAY),
            "mqtt_topic": constants.DEFAULT_MQTT_TOPIC,
        },
        "logging": {
            "level": "INFO",
            "path": "",
            "log_network": "false",
        },
        "health": {
            "enabled": "false",
            "host": "127.0.0.1",
            "port": "0",
        },
    }


def _apply_environment(parser: ConfigParser, environ: Mapping[str, str]) -> None:
    if address := environ.get("ADDRESS"):
        parser.set("device", "address", address)

    # NAME is the container hostname; HOST_TAG wins when both are present.
    if hostname := environ.get("NAME"):
        parser.set("telemetry", "host_tag", hostname)
    if host_tag := environ.get("HOST_TAG"):
        parser.set("telemetry", "host_tag", host_tag)
    if group_tag := environ.get("GROUP_TAG"):
        parser.set("telemetry", "group_tag", group_tag)
    if user_tag := environ.get("USER_TAG"):
        parser.set("telemetry", "user_tag", user_tag)

    if conditions := environ.get("CONDITIONS_FILE"):
        parser.set("schedule", "path", conditions)
    if telegraf_host := environ.get("TELEGRAF_HOST"):
        parser.set("telemetry", "host", telegraf_host)

    if no_metrics := environ.get("NO_METRICS", "").lower():
        parser.set(
            "telemetry", "enabled", "false" if no_metrics in _TRUTHY else "true"
        )
    if dummy := environ.get("DUMMY", "").lower():
        parser.set("schedule", "dummy", "true" if dummy in _TRUTHY else "false")

    if interval := environ.get("INTERVAL"):
        try:
            parse_duration(interval)
        except ValueError as exc:
            LOGGER.error("Couldn't parse interval from environment: %s", exc)
        else:
            parser.set("poll", "interval", interval)

    if multiplier := environ.get("MULTIPLIER"):
        try:
            float(multiplier)
        except ValueError:
            LOGGER.error(
                "Couldn't parse multiplier from environment: %r", multiplier
            )
        else:
            parser.set("device", "multiplier", multiplier)


def _apply_overrides(
    parser: ConfigParser, overrides: Mapping[str, Mapping[str, Optional[str]]]
) -> None:
    for section, values in overrides.items():
        if not parser.has_section(section):
            parser.add_section(section)
        for key, value in values.items():
            if value is not None:
                parser.set(section, key, value)


def _optional_path(value: str) -> Optional[Path]:
    value = value.strip()
    return Path(value).expanduser() if value else None


def load_config(
    path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Mapping[str, Optional[str]]]] = None,
) -> ControllerConfig:
    """Load configuration from disk and the environment, applying defaults."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(_defaults())

    if config_path.exists():
        parser.read(config_path)

    _apply_environment(parser, os.environ if environ is None else environ)
    if overrides:
        _apply_overrides(parser, overrides)

    address = parser.get("device", "address").strip()
    if address:
        device_host, device_port = split_host_port(
            address, constants.DEFAULT_DEVICE_PORT
        )
    else:
        device_host, device_port = "", constants.DEFAULT_DEVICE_PORT

    try:
        multiplier = parser.getfloat("device", "multiplier")
    except ValueError as exc:
        raise ConfigError(f"invalid multiplier: {exc}") from exc
    if multiplier <= 0:
        raise ConfigError(f"multiplier must be positive, got {multiplier}")

    device = DeviceConfig(
        host=device_host,
        port=device_port,
        multiplier=multiplier,
        connect_timeout=max(
            0.1,
            parser.getfloat(
                "device",
                "connect_timeout",
                fallback=constants.DEFAULT_CONNECT_TIMEOUT_SECONDS,
            ),
        ),
    )

    schedule = ScheduleConfig(
        path=_optional_path(parser.get("schedule", "path")),
        dummy=parser.getboolean("schedule", "dummy", fallback=False),
        delimiter=parser.get("schedule", "delimiter", fallback=",") or ",",
        entry_attempts=max(
            1,
            parser.getint(
                "schedule",
                "entry_attempts",
                fallback=constants.DEFAULT_ENTRY_ATTEMPTS,
            ),
        ),
    )

    try:
        interval_seconds = parse_duration(parser.get("poll", "interval"))
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    poll = PollConfig(interval_seconds=interval_seconds)

    transport = parser.get("telemetry", "transport", fallback="udp").strip().lower()
    if transport not in TELEMETRY_TRANSPORTS:
        raise ConfigError(
            f"unknown telemetry transport {transport!r}; "
            f"expected one of {', '.join(TELEMETRY_TRANSPORTS)}"
        )
    sink_host, sink_port = split_host_port(
        parser.get("telemetry", "host"), _DEFAULT_TRANSPORT_PORTS[transport]
    )

    telemetry = TelemetryConfig(
        enabled=parser.getboolean("telemetry", "enabled", fallback=True),
        transport=transport,
        host=sink_host,
        port=sink_port,
        measurement=parser.get(
            "telemetry", "measurement", fallback=constants.DEFAULT_MEASUREMENT
        ),
        host_tag=parser.get("telemetry", "host_tag", fallback=""),
        group_tag=parser.get("telemetry", "group_tag", fallback=""),
        user_tag=parser.get("telemetry", "user_tag", fallback=""),
        attempts=max(
            1,
            parser.getint(
                "telemetry",
                "attempts",
                fallback=constants.DEFAULT_TELEMETRY_ATTEMPTS,
            ),
        ),
        retry_delay_seconds=max(
            0.0,
            parser.getfloat(
                "telemetry",
                "retry_delay",
                fallback=constants.DEFAULT_TELEMETRY_RETRY_DELAY,
            ),
        ),
        mqtt_topic=parser.get(
            "telemetry", "mqtt_topic", fallback=constants.DEFAULT_MQTT_TOPIC
        ),
        mqtt_username=parser.get("telemetry", "mqtt_username", fallback=None),
        mqtt_password=parser.get("telemetry", "mqtt_password", fallback=None),
    )

    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=_optional_path(parser.get("logging", "path", fallback="")),
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    health = HealthConfig(
        enabled=parser.getboolean("health", "enabled", fallback=False),
        host=parser.get("health", "host", fallback="127.0.0.1"),
        port=parser.getint("health", "port", fallback=0),
    )

    return ControllerConfig(
        device=device,
        schedule=schedule,
        poll=poll,
        telemetry=telemetry,
        logging=logging_config,
        health=health,
        raw=parser,
        path=config_path,
    )
