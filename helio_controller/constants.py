"""Constants used across the helio-controller package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "helio-controller"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / APP_NAME / DEFAULT_CONFIG_FILENAME

DEFAULT_DEVICE_PORT = 23
DEFAULT_CONNECT_TIMEOUT_SECONDS = 30.0
DEFAULT_MULTIPLIER = 10.0

PROMPT_MARKER = b">"
SUCCESS_TOKEN = "OK"

MIN_DEVICE_LEVEL = 0
MAX_DEVICE_LEVEL = 1000

CMD_GET_WAVELENGTHS = "getWl"
CMD_GET_POWER = "getAllRelPower"
CMD_SET_POWER = "setWlsRelPower"

DEFAULT_ENTRY_ATTEMPTS = 10
DEFAULT_POLL_INTERVAL = "10m"

DEFAULT_TELEGRAF_HOST = "telegraf:8092"
DEFAULT_MEASUREMENT = "helio-light"
DEFAULT_GROUP_TAG = "nonspc"
DEFAULT_MQTT_TOPIC = "telegraf/helio-light"
DEFAULT_TELEMETRY_ATTEMPTS = 5
DEFAULT_TELEMETRY_RETRY_DELAY = 0.2

# The white channel reports its colour temperature rather than a wavelength.
KELVIN_LABEL = 6500
