"""Main application entry-point for helio-controller."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from .config import ConfigError, ControllerConfig, load_config
from .core.codec import ValueCodec
from .core.protocols import DeviceSessionFactory, TelemetryWriter
from .device import DeviceSession
from .health import HealthReporter, HealthServer
from .logging import configure_logging
from .polling import PollLoop
from .retry import RetryPolicy
from .schedule import ScheduleRunner, ScheduleSourceError, load_schedule
from .telemetry import TelemetrySink

LOGGER = logging.getLogger(__name__)


class RunMode(str, Enum):
    POLL = "poll"
    SCHEDULE = "schedule"


class ControllerState(str, Enum):
    STARTING = "starting"
    POLLING = "polling"
    RUNNING_SCHEDULE = "running_schedule"
    SCHEDULE_COMPLETE = "schedule_complete"
    FAILED = "failed"


def resolve_run_mode(config: ControllerConfig) -> RunMode:
    """Pick the single mode this process runs in."""

    has_schedule = config.schedule.path is not None
    metrics = config.telemetry.enabled

    if not metrics and (config.schedule.dummy or not has_schedule):
        raise ConfigError("metrics disabled and no schedule to run; nothing to do")
    if not config.device.host:
        raise ConfigError("no device address configured")

    if has_schedule and not config.schedule.dummy:
        return RunMode.SCHEDULE
    return RunMode.POLL


class HelioControllerApp:
    """Wires configuration into the poll loop or the schedule runner.

    Collaborators can be injected for testing; by default each device
    operation opens a fresh :class:`DeviceSession` and telemetry goes through
    a :class:`TelemetrySink` built from the configuration.
    """

    def __init__(
        self,
        config: Optional[ControllerConfig] = None,
        *,
        session_factory: Optional[DeviceSessionFactory] = None,
        telemetry: Optional[TelemetryWriter] = None,
    ) -> None:
        self._config = config or load_config()
        self._mode = resolve_run_mode(self._config)
        self._health = HealthReporter()
        self._health_server: Optional[HealthServer] = None
        self._codec = ValueCodec(self._config.device.multiplier)
        self._session_factory = session_factory or self._open_session
        self._telemetry = telemetry or TelemetrySink(
            self._config.telemetry, health=self._health
        )
        self._poll_loop: Optional[PollLoop] = None

    @property
    def mode(self) -> RunMode:
        return self._mode

    @property
    def health(self) -> HealthReporter:
        return self._health

    def _open_session(self) -> DeviceSession:
        return DeviceSession(self._config.device, codec=self._codec)

    async def run(self) -> int:
        """Run the selected mode to completion; returns a process exit code."""

        self._log_settings()
        await self._set_state(ControllerState.STARTING, healthy=True)
        await self._start_health_server()

        try:
            if self._mode is RunMode.POLL:
                await self._run_poll()
                return 0
            return await self._run_schedule()
        except asyncio.CancelledError:
            LOGGER.info("helio-controller received shutdown signal")
            raise
        finally:
            if self._poll_loop is not None:
                self._poll_loop.stop()
            await self._stop_health_server()

    def stop(self) -> None:
        if self._poll_loop is not None:
            self._poll_loop.stop()

    async def _run_poll(self) -> None:
        await self._set_state(ControllerState.POLLING, healthy=True)
        self._poll_loop = PollLoop(
            session_factory=self._session_factory,
            telemetry=self._telemetry,
            interval_seconds=self._config.poll.interval_seconds,
            health=self._health,
        )
        await self._poll_loop.run()

    async def _run_schedule(self) -> int:
        schedule = self._config.schedule
        assert schedule.path is not None

        try:
            entries = load_schedule(schedule.path, delimiter=schedule.delimiter)
        except ScheduleSourceError as exc:
            LOGGER.critical("%s", exc)
            await self._health.update("schedule", False, str(exc))
            await self._set_state(ControllerState.FAILED, healthy=False)
            return 1

        await self._health.update("schedule", True, f"{len(entries)} entries")
        await self._set_state(ControllerState.RUNNING_SCHEDULE, healthy=True)

        runner = ScheduleRunner(
            session_factory=self._session_factory,
            telemetry=self._telemetry,
            retry_policy=RetryPolicy(attempts=schedule.entry_attempts),
            health=self._health,
        )
        state = await runner.run(entries)

        await self._set_state(
            ControllerState.SCHEDULE_COMPLETE,
            healthy=state.failed == 0,
            detail=f"executed={state.executed} failed={state.failed}",
        )
        return 0

    async def _start_health_server(self) -> None:
        health = self._config.health
        if not health.enabled or health.port <= 0:
            return

        server = HealthServer(self._health, health.host, health.port)
        try:
            await server.start()
        except OSError as exc:
            LOGGER.error("Failed to start health endpoint: %s", exc)
            await self._health.update("health-endpoint", False, str(exc))
        else:
            self._health_server = server

    async def _stop_health_server(self) -> None:
        if self._health_server is not None:
            await self._health_server.stop()
            self._health_server = None

    async def _set_state(
        self, state: ControllerState, *, healthy: bool, detail: Optional[str] = None
    ) -> None:
        LOGGER.debug("Controller state -> %s (%s)", state.value, detail or "")
        await self._health.set_state(state.value, healthy=healthy, detail=detail)

    def _log_settings(self) -> None:
        config = self._config
        LOGGER.info("mode:      %s", self._mode.value)
        LOGGER.info("timezone:  %s", datetime.now().astimezone().tzname())
        LOGGER.info("hostTag:   %s", config.telemetry.host_tag)
        LOGGER.info("groupTag:  %s", config.telemetry.group_tag)
        LOGGER.info("address:   %s", config.device.address)
        LOGGER.info("file:      %s", config.schedule.path or "")
        LOGGER.info("interval:  %ss", config.poll.interval_seconds)
        if not config.telemetry.enabled:
            LOGGER.info("metrics:   disabled")

    @classmethod
    def start(cls, config: Optional[ControllerConfig] = None) -> int:
        instance = cls(config=config)
        configure_logging(instance._config.logging)
        try:
            return asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("helio-controller received shutdown signal")
            return 0
