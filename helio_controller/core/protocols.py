"""Protocol definitions for the device and telemetry collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Protocol, Sequence

from .models import ChannelSet

if TYPE_CHECKING:
    from ..telemetry.sink import TelemetryResult


class DeviceClient(Protocol):
    """Operations available on an open device session."""

    async def get_wavelengths(self) -> list[str]:
        ...

    async def get_power(self) -> list[float]:
        ...

    async def set_power(self, values: Sequence[float]) -> list[int]:
        """Encode and send per-channel intensities, returning the sent levels."""
        ...


class DeviceSessionContext(Protocol):
    """Async context manager yielding an open :class:`DeviceClient`."""

    async def __aenter__(self) -> DeviceClient:
        ...

    async def __aexit__(self, exc_type, exc, tb) -> None:
        ...


DeviceSessionFactory = Callable[[], DeviceSessionContext]


class TelemetryWriter(Protocol):
    async def write(self, channels: ChannelSet) -> "TelemetryResult":
        """Forward readings best-effort; never raises."""
        ...
