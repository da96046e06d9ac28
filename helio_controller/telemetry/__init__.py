"""Telemetry forwarding to Telegraf."""

from .measurement import Measurement, build_measurement, field_name
from .sink import TelemetryResult, TelemetrySink
from .transports import MqttTransport, TelemetryTransport, UdpTransport, build_transport

__all__ = [
    "Measurement",
    "MqttTransport",
    "TelemetryResult",
    "TelemetrySink",
    "TelemetryTransport",
    "UdpTransport",
    "build_measurement",
    "build_transport",
    "field_name",
]
