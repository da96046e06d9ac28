"""Periodic device polling for metrics-only operation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Callable, Optional

from .core.models import ChannelSet
from .core.protocols import DeviceSessionFactory, TelemetryWriter

if TYPE_CHECKING:
    from .health import HealthReporter

LOGGER = logging.getLogger(__name__)


class PollLoop:
    """Reads the device state on a fixed-rate timer and forwards it.

    The first poll runs immediately. Ticks are anchored to the start time, so
    a slow poll does not shift later ones; ticks missed while a poll was still
    running are dropped rather than queued. An interval of zero polls once.
    """

    def __init__(
        self,
        *,
        session_factory: DeviceSessionFactory,
        telemetry: TelemetryWriter,
        interval_seconds: float,
        output: Callable[[str], None] = print,
        health: Optional["HealthReporter"] = None,
    ) -> None:
        self._session_factory = session_factory
        self._telemetry = telemetry
        self._interval = max(0.0, interval_seconds)
        self._output = output
        self._health = health
        self._stop_event = asyncio.Event()
        self.polls = 0

    def stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()

        await self.poll_once()
        if self._interval <= 0:
            return

        tick = 1
        while not self._stop_event.is_set():
            deadline = started + tick * self._interval
            now = loop.time()
            if deadline <= now:
                missed = int((now - deadline) // self._interval) + 1
                LOGGER.debug("Poll overran; skipping %d tick(s)", missed)
                tick += missed
                continue

            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=deadline - now)
            if self._stop_event.is_set():
                break

            tick += 1
            await self.poll_once()

    async def poll_once(self) -> Optional[ChannelSet]:
        """Run one tick; device errors abandon the tick and return ``None``."""

        self.polls += 1
        try:
            async with self._session_factory() as session:
                power = await session.get_power()
                wavelengths = await session.get_wavelengths()
        except Exception as exc:
            LOGGER.error("Poll failed: %s", exc)
            await self._report_health(False, str(exc))
            return None

        await self._report_health(True, None)
        channels = ChannelSet.aligned(wavelengths, power)
        await self._telemetry.write(channels)

        self._output(f"wavelengths:\t\t {list(wavelengths)}")
        self._output(f"power:\t\t {list(power)}")
        return channels

    async def _report_health(self, healthy: bool, detail: Optional[str]) -> None:
        if self._health is not None:
            await self._health.update("device", healthy, detail)
