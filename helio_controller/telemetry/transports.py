"""Per-call transports delivering one encoded measurement to Telegraf."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from ..adapters.mqtt import MQTTClient
from ..config import TelemetryConfig

LOGGER = logging.getLogger(__name__)


class TelemetryTransport(Protocol):
    async def send(self, payload: bytes) -> None:
        """Deliver ``payload`` or raise."""
        ...


class UdpTransport:
    """Fire-and-forget datagram to a Telegraf ``socket_listener`` input."""

    def __init__(self, host: str, port: int) -> None:
        self.host = host
        self.port = port

    async def send(self, payload: bytes) -> None:
        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            asyncio.DatagramProtocol, remote_addr=(self.host, self.port)
        )
        try:
            transport.sendto(payload)
        finally:
            transport.close()


class MqttTransport:
    """Publishes to a topic consumed by Telegraf's ``mqtt_consumer`` input."""

    def __init__(self, config: TelemetryConfig, *, client_id: str) -> None:
        self._config = config
        self._client_id = client_id

    async def send(self, payload: bytes) -> None:
        client = MQTTClient(
            self._config.host,
            self._config.port,
            client_id=self._client_id,
            username=self._config.mqtt_username,
            password=self._config.mqtt_password,
        )
        await client.connect()
        try:
            await client.publish(self._config.mqtt_topic, payload)
        finally:
            await client.disconnect()


def build_transport(config: TelemetryConfig) -> TelemetryTransport:
    if config.transport == "mqtt":
        suffix = config.host_tag or "controller"
        return MqttTransport(config, client_id=f"helio-controller-{suffix}")
    return UdpTransport(config.host, config.port)
