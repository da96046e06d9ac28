"""Schedule execution: catch up on the current state, then follow the timeline."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from ..core.models import ChannelSet, ScheduleEntry
from ..core.protocols import DeviceSessionFactory, TelemetryWriter
from ..retry import RetryPolicy, SleepFunc

if TYPE_CHECKING:
    from ..health import HealthReporter

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class RunnerState:
    """Progress through the schedule; owned by :class:`ScheduleRunner`."""

    cursor: int = 0
    last_past_due: Optional[ScheduleEntry] = None
    catch_up_done: bool = False
    executed: int = 0
    failed: int = 0
    skipped: int = 0


class ScheduleRunner:
    """Walks schedule entries in the order supplied and drives the device.

    Entries already due are skipped, remembering only the latest. When the
    first future entry is reached that remembered entry is executed once
    (catch-up) so a freshly started controller converges on the intended
    state; every later entry is executed at its due time. The runner returns
    when the entries are exhausted.
    """

    def __init__(
        self,
        *,
        session_factory: DeviceSessionFactory,
        telemetry: TelemetryWriter,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Clock = _utc_now,
        sleep: SleepFunc = asyncio.sleep,
        health: Optional["HealthReporter"] = None,
    ) -> None:
        self._session_factory = session_factory
        self._telemetry = telemetry
        self._retry_policy = retry_policy or RetryPolicy(attempts=10)
        self._clock = clock
        self._sleep = sleep
        self._health = health
        self._state = RunnerState()

    @property
    def state(self) -> RunnerState:
        return self._state

    async def run(self, entries: Sequence[ScheduleEntry]) -> RunnerState:
        state = self._state = RunnerState()

        while state.cursor < len(entries):
            entry = entries[state.cursor]
            state.cursor += 1

            if entry.due <= self._clock():
                if state.last_past_due is not None:
                    state.skipped += 1
                state.last_past_due = entry
                continue

            if not state.catch_up_done:
                state.catch_up_done = True
                if state.last_past_due is not None:
                    LOGGER.info(
                        "Running catch-up entry due %s",
                        state.last_past_due.due.isoformat(),
                    )
                    await self._execute_with_retry(state.last_past_due)

            delay = (entry.due - self._clock()).total_seconds()
            LOGGER.info(
                "Sleeping for %ds until %s", int(delay), entry.due.isoformat()
            )
            if delay > 0:
                await self._sleep(delay)

            await self._execute_with_retry(entry)

        LOGGER.info(
            "Schedule exhausted: %d executed, %d failed, %d skipped",
            state.executed,
            state.failed,
            state.skipped,
        )
        return state

    async def execute(self, entry: ScheduleEntry) -> ChannelSet:
        """Apply one entry to the device and forward the result to telemetry."""

        async with self._session_factory() as session:
            wavelengths = await session.get_wavelengths()
            channels = ChannelSet.aligned(wavelengths, entry.targets)
            await session.set_power(channels.values)

        LOGGER.info(
            "Ran %s %s",
            entry.due.strftime("%Y-%m-%dT%H:%M:%S"),
            list(channels.values),
        )
        await self._telemetry.write(channels)
        return channels

    async def _execute_with_retry(self, entry: ScheduleEntry) -> bool:
        outcome = await self._retry_policy.run(
            lambda: self.execute(entry),
            description=f"Schedule entry at line {entry.line}",
            sleep=self._sleep,
        )

        if outcome.succeeded:
            self._state.executed += 1
            await self._report_health(True, f"applied entry due {entry.due.isoformat()}")
            return True

        self._state.failed += 1
        LOGGER.error(
            "Giving up on entry due %s after %d attempts: %s",
            entry.due.isoformat(),
            outcome.attempts,
            outcome.error,
        )
        await self._report_health(False, str(outcome.error))
        return False

    async def _report_health(self, healthy: bool, detail: Optional[str]) -> None:
        if self._health is not None:
            await self._health.update("device", healthy, detail)
