"""Retry policy shared by schedule execution and telemetry writes."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RetryOutcome(Generic[T]):
    succeeded: bool
    attempts: int
    value: Optional[T] = None
    error: Optional[BaseException] = None


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Fixed-count retry with an optional growing, jittered delay.

    With the defaults (``backoff_factor=1`` and no jitter) every pause lasts
    exactly ``delay_seconds``.
    """

    attempts: int
    delay_seconds: float = 0.0
    backoff_factor: float = 1.0
    max_delay_seconds: Optional[float] = None
    jitter_ratio: float = 0.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""

        delay = max(0.0, self.delay_seconds) * (
            max(1.0, self.backoff_factor) ** (attempt - 1)
        )
        if self.max_delay_seconds is not None:
            delay = min(delay, self.max_delay_seconds)

        jitter_ratio = max(0.0, min(1.0, self.jitter_ratio))
        if delay > 0.0 and jitter_ratio > 0.0:
            jitter = delay * jitter_ratio
            delay = random.uniform(max(0.0, delay - jitter), delay + jitter)
        return delay

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        description: str = "operation",
        sleep: SleepFunc = asyncio.sleep,
    ) -> RetryOutcome[T]:
        """Await ``operation`` until it succeeds or the attempts run out.

        Any :class:`Exception` counts as a failed attempt; cancellation is never
        retried.
        """

        last_error: Optional[BaseException] = None
        for attempt in range(1, self.attempts + 1):
            try:
                value = await operation()
            except Exception as exc:
                last_error = exc
                LOGGER.warning(
                    "%s failed (attempt %d/%d): %s",
                    description,
                    attempt,
                    self.attempts,
                    exc,
                )
                if attempt < self.attempts:
                    delay = self.delay_for(attempt)
                    if delay > 0:
                        await sleep(delay)
                continue
            return RetryOutcome(succeeded=True, attempts=attempt, value=value)

        return RetryOutcome(
            succeeded=False, attempts=self.attempts, error=last_error
        )
