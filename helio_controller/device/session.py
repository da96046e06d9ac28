"""Scoped TCP session with the light fixture.

One session serves one logical operation (a poll or a schedule-entry attempt)
and walks Connect -> Prime -> Exchange(n) -> Close. Use it as an async
context manager so the connection is released on every exit path.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional, Sequence

from .. import constants
from ..config import DeviceConfig
from ..core.codec import ValueCodec
from .protocol import (
    DeviceConnectionError,
    DeviceProtocolError,
    check_response,
    format_set_command,
    parse_int_tokens,
    parse_word_tokens,
)

LOGGER = logging.getLogger(__name__)


class DeviceSession:
    """Request/response exchange over a single device connection."""

    def __init__(
        self,
        config: DeviceConfig,
        *,
        codec: Optional[ValueCodec] = None,
    ) -> None:
        self._config = config
        self._codec = codec or ValueCodec(config.multiplier)
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    async def __aenter__(self) -> "DeviceSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        """Connect to the device and consume everything up to the first prompt."""

        if self._writer is not None:
            raise RuntimeError("Device session already open")

        LOGGER.debug("Connecting to device at %s", self._config.address)
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self._config.host, self._config.port),
                timeout=self._config.connect_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise DeviceConnectionError(
                f"Timed out connecting to {self._config.address}"
            ) from exc
        except OSError as exc:
            raise DeviceConnectionError(
                f"Could not connect to {self._config.address}: {exc}"
            ) from exc

        try:
            await self._read_until_prompt()
        except BaseException:
            await self.close()
            raise

    async def close(self) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return

        writer.close()
        with contextlib.suppress(Exception):
            await writer.wait_closed()

    async def execute(self, command: str) -> str:
        """Send one command and return its acknowledged, trimmed reply."""

        if self._writer is None:
            raise RuntimeError("Device session is not open")

        LOGGER.debug("-> %s", command)
        self._writer.write(f"{command}\n".encode("ascii"))
        await self._writer.drain()

        reply = await self._read_until_prompt()
        LOGGER.debug("<- %s", reply.strip())
        return check_response(reply)

    async def get_wavelengths(self) -> list[str]:
        return parse_word_tokens(await self.execute(constants.CMD_GET_WAVELENGTHS))

    async def get_power(self) -> list[float]:
        levels = parse_int_tokens(await self.execute(constants.CMD_GET_POWER))
        return self._codec.decode_all(levels)

    async def set_power(self, values: Sequence[float]) -> list[int]:
        levels = self._codec.encode_all(values)
        await self.execute(format_set_command(levels))
        return levels

    async def _read_until_prompt(self) -> str:
        assert self._reader is not None

        try:
            data = await self._reader.readuntil(constants.PROMPT_MARKER)
        except asyncio.IncompleteReadError as exc:
            raw = exc.partial.decode("ascii", errors="replace").strip()
            raise DeviceProtocolError(
                f"Connection closed before prompt (received {raw!r})"
            ) from exc
        except asyncio.LimitOverrunError as exc:
            raise DeviceProtocolError("Reply exceeded read buffer") from exc
        return data.decode("ascii", errors="replace")
