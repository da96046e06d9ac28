"""Core primitives for helio-controller."""

from .codec import ValueCodec, decode, encode
from .models import ChannelSet, ScheduleEntry
from .protocols import DeviceSessionFactory, TelemetryWriter

__all__ = [
    "ChannelSet",
    "DeviceSessionFactory",
    "ScheduleEntry",
    "TelemetryWriter",
    "ValueCodec",
    "decode",
    "encode",
]
