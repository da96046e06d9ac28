"""Tests for run-mode selection and application wiring."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import pytest

from helio_controller.app import HelioControllerApp, RunMode, resolve_run_mode
from helio_controller.config import ConfigError, ControllerConfig, load_config
from helio_controller.core import ChannelSet
from helio_controller.device import DeviceSession
from helio_controller.telemetry import TelemetryResult


def _config(
    tmp_path: Path,
    *,
    address: Optional[str] = "127.0.0.1",
    conditions: Optional[str] = None,
    dummy: bool = False,
    metrics: bool = True,
    interval: str = "0s",
) -> ControllerConfig:
    return load_config(
        tmp_path / "helio-controller.cfg",
        environ={},
        overrides={
            "device": {"address": address},
            "schedule": {"path": conditions, "dummy": "true" if dummy else "false"},
            "telemetry": {"enabled": "true" if metrics else "false"},
            "poll": {"interval": interval},
        },
    )


class RecordingTelemetry:
    def __init__(self) -> None:
        self.writes: list[ChannelSet] = []

    async def write(self, channels: ChannelSet) -> TelemetryResult:
        self.writes.append(channels)
        return TelemetryResult(delivered=True, attempts=1)


@pytest.mark.parametrize(
    "conditions, dummy, metrics, expected",
    [
        (None, False, True, RunMode.POLL),
        ("plan.csv", True, True, RunMode.POLL),
        ("plan.csv", False, True, RunMode.SCHEDULE),
        ("plan.csv", False, False, RunMode.SCHEDULE),
    ],
)
def test_resolve_run_mode(tmp_path, conditions, dummy, metrics, expected):
    config = _config(tmp_path, conditions=conditions, dummy=dummy, metrics=metrics)

    assert resolve_run_mode(config) is expected


@pytest.mark.parametrize(
    "conditions, dummy",
    [("plan.csv", True), (None, False)],
)
def test_nothing_to_do_is_a_config_error(tmp_path, conditions, dummy):
    config = _config(tmp_path, conditions=conditions, dummy=dummy, metrics=False)

    with pytest.raises(ConfigError):
        resolve_run_mode(config)


def test_missing_address_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError):
        HelioControllerApp(_config(tmp_path, address=""))


@pytest.mark.asyncio
async def test_poll_mode_reads_device_once_with_zero_interval(tmp_path, fake_device):
    config = _config(tmp_path, address=f"127.0.0.1:{fake_device.port}")
    telemetry = RecordingTelemetry()
    app = HelioControllerApp(config, telemetry=telemetry)

    assert await app.run() == 0

    assert app.mode is RunMode.POLL
    assert telemetry.writes == [
        ChannelSet(("450", "660", "6500"), (10.0, 20.0, 30.0))
    ]


@pytest.mark.asyncio
async def test_schedule_mode_missing_source_exits_with_error(tmp_path):
    config = _config(tmp_path, conditions=str(tmp_path / "missing.csv"))
    app = HelioControllerApp(config, telemetry=RecordingTelemetry())

    assert await app.run() == 1

    snapshot = await app.health.snapshot()
    assert snapshot["controllerState"]["state"] == "failed"


@pytest.mark.asyncio
async def test_schedule_mode_applies_catch_up_entry(tmp_path, fake_device):
    now = datetime.now()
    past = (now - timedelta(hours=2)).strftime("%d/%m/%Y %H:%M:%S")
    recent = (now - timedelta(hours=1)).strftime("%d/%m/%Y %H:%M:%S")
    soon = (now + timedelta(seconds=2)).strftime("%d/%m/%Y %H:%M:%S")
    schedule = tmp_path / "conditions.csv"
    schedule.write_text(
        "datetime,a,b,c,450,660,6500\n"
        f"{past},,,,1,1,1\n"
        f"{recent},,,,20,30,40\n"
        f"{soon},,,,50,60,70\n",
        encoding="utf-8",
    )
    config = _config(
        tmp_path,
        address=f"127.0.0.1:{fake_device.port}",
        conditions=str(schedule),
    )
    telemetry = RecordingTelemetry()
    app = HelioControllerApp(
        config,
        telemetry=telemetry,
        session_factory=lambda: DeviceSession(config.device),
    )

    assert await app.run() == 0

    assert fake_device.commands == [
        "getWl",
        "setWlsRelPower 200 300 400",
        "getWl",
        "setWlsRelPower 500 600 700",
    ]
    assert [channels.values for channels in telemetry.writes] == [
        (20.0, 30.0, 40.0),
        (50.0, 60.0, 70.0),
    ]
