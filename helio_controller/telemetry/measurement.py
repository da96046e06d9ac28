"""Measurement records and their InfluxDB line-protocol rendering."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..constants import KELVIN_LABEL
from ..core.models import ChannelSet

LOGGER = logging.getLogger(__name__)


def _escape(value: str, specials: str) -> str:
    for char in "\\" + specials:
        value = value.replace(char, f"\\{char}")
    return value


def _format_float(value: float) -> str:
    return repr(float(value))


def field_name(label: int) -> str:
    """Field name for a channel: ``450nm``, or ``6500k`` for the white channel."""

    if label == KELVIN_LABEL:
        return f"{label}k"
    return f"{label}nm"


@dataclass(slots=True)
class Measurement:
    name: str
    fields: Dict[str, float] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)
    timestamp_ns: Optional[int] = None

    def add_field(self, key: str, value: float) -> None:
        self.fields[key] = float(value)

    def add_tag(self, key: str, value: str) -> None:
        if value:
            self.tags[key] = value

    def to_line_protocol(self) -> str:
        if not self.fields:
            raise ValueError(f"measurement {self.name!r} has no fields")

        head = _escape(self.name, ", ")
        for key in sorted(self.tags):
            head += f",{_escape(key, ',= ')}={_escape(self.tags[key], ',= ')}"

        body = ",".join(
            f"{_escape(key, ',= ')}={_format_float(value)}"
            for key, value in self.fields.items()
        )
        timestamp = (
            self.timestamp_ns if self.timestamp_ns is not None else time.time_ns()
        )
        return f"{head} {body} {timestamp}"


def build_measurement(
    name: str,
    channels: ChannelSet,
    *,
    host: str = "",
    group: str = "",
    user: str = "",
) -> Measurement:
    measurement = Measurement(name=name)
    for label, value in channels.as_pairs():
        try:
            wavelength = int(label)
        except ValueError:
            LOGGER.warning("Skipping non-numeric wavelength label %r", label)
            continue
        measurement.add_field(field_name(wavelength), value)

    measurement.add_tag("host", host)
    measurement.add_tag("group", group)
    measurement.add_tag("user", user)
    return measurement
