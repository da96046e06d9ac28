import asyncio
from typing import Dict, Optional, Sequence

import pytest_asyncio

from helio_controller.config import DeviceConfig


class FakeDevice:
    """Scripted light fixture speaking the prompt-terminated line protocol."""

    def __init__(
        self,
        *,
        banner: str = "Heliospectra LX60 telnet\r\n>",
        wavelengths: Sequence[str] = ("450", "660", "6500"),
        power: Sequence[int] = (100, 200, 300),
    ) -> None:
        self.banner = banner
        self.wavelengths = list(wavelengths)
        self.power = list(power)
        self.overrides: Dict[str, str] = {}
        self.commands: list[str] = []
        self.connections = 0
        self.disconnects = 0
        self.port: Optional[int] = None

    def config(self, **kwargs) -> DeviceConfig:
        assert self.port is not None
        return DeviceConfig(host="127.0.0.1", port=self.port, **kwargs)

    def reply_for(self, command: str) -> str:
        name, _, args = command.partition(" ")
        if name in self.overrides:
            return self.overrides[name]
        if name == "getWl":
            return f"{name}\r\nOK {' '.join(self.wavelengths)}\r\n>"
        if name == "getAllRelPower":
            return f"{name}\r\nOK {' '.join(str(v) for v in self.power)}\r\n>"
        if name == "setWlsRelPower":
            self.power = [int(value) for value in args.split()]
            return f"{name}\r\nOK\r\n>"
        return f"{name}\r\nERROR unknown command\r\n>"

    async def handle(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self.connections += 1
        try:
            writer.write(self.banner.encode("ascii"))
            await writer.drain()
            while True:
                line = await reader.readline()
                if not line:
                    break
                command = line.decode("ascii").strip()
                self.commands.append(command)
                writer.write(self.reply_for(command).encode("ascii"))
                await writer.drain()
        except ConnectionError:
            pass
        finally:
            self.disconnects += 1
            writer.close()


@pytest_asyncio.fixture
async def fake_device():
    device = FakeDevice()
    server = await asyncio.start_server(device.handle, "127.0.0.1", 0)
    device.port = server.sockets[0].getsockname()[1]
    try:
        yield device
    finally:
        server.close()
        await server.wait_closed()
