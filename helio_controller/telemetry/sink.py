"""Best-effort forwarding of channel readings to the metrics endpoint."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ..config import TelemetryConfig
from ..core.models import ChannelSet
from ..retry import RetryPolicy, SleepFunc
from .measurement import Measurement, build_measurement
from .transports import TelemetryTransport, build_transport

if TYPE_CHECKING:
    from ..health import HealthReporter

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TelemetryResult:
    """Outcome of a write; callers are free to ignore it."""

    delivered: bool
    attempts: int = 0
    skipped: bool = False
    error: Optional[str] = None


class TelemetrySink:
    """Builds one measurement per call and writes it with a fixed retry budget.

    :meth:`write` never raises: telemetry trouble must not interrupt polling
    or schedule execution.
    """

    def __init__(
        self,
        config: TelemetryConfig,
        *,
        transport: Optional[TelemetryTransport] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
        health: Optional["HealthReporter"] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._retry_policy = retry_policy or RetryPolicy(
            attempts=config.attempts, delay_seconds=config.retry_delay_seconds
        )
        self._sleep = sleep
        self._health = health

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def build_measurement(self, channels: ChannelSet) -> Measurement:
        return build_measurement(
            self._config.measurement,
            channels,
            host=self._config.host_tag,
            group=self._config.group_tag,
            user=self._config.user_tag,
        )

    async def write(self, channels: ChannelSet) -> TelemetryResult:
        if not self._config.enabled:
            return TelemetryResult(delivered=False, skipped=True)

        measurement = self.build_measurement(channels)
        if not measurement.fields:
            LOGGER.warning("No numeric channels to report; skipping telemetry write")
            return TelemetryResult(
                delivered=False, skipped=True, error="no numeric channels"
            )

        payload = (measurement.to_line_protocol() + "\n").encode("utf-8")
        transport = self._transport or build_transport(self._config)

        outcome = await self._retry_policy.run(
            lambda: transport.send(payload),
            description="Telemetry write",
            sleep=self._sleep,
        )

        if outcome.succeeded:
            await self._report_health(True, None)
            return TelemetryResult(delivered=True, attempts=outcome.attempts)

        error = str(outcome.error) if outcome.error is not None else "unknown error"
        LOGGER.error(
            "Dropping telemetry after %d attempts: %s", outcome.attempts, error
        )
        await self._report_health(False, error)
        return TelemetryResult(delivered=False, attempts=outcome.attempts, error=error)

    async def _report_health(self, healthy: bool, detail: Optional[str]) -> None:
        if self._health is not None:
            await self._health.update("telemetry", healthy, detail)
