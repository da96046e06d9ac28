"""Conversion between user-facing intensities and device power levels."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from ..constants import MAX_DEVICE_LEVEL, MIN_DEVICE_LEVEL


def clamp_level(value: float) -> float:
    return min(max(value, MIN_DEVICE_LEVEL), MAX_DEVICE_LEVEL)


def encode(intensity: float, scale: float) -> int:
    """Scale ``intensity`` to the device's integer unit, saturating at the bounds.

    Infinite products saturate like any other out-of-range value and NaN maps
    to the lower bound, so this never raises.
    """

    scaled = intensity * scale
    if math.isnan(scaled):
        return MIN_DEVICE_LEVEL
    # Clamp before rounding; round() cannot convert an infinity.
    return round(clamp_level(scaled))


def decode(raw: int, scale: float) -> float:
    return raw / scale


@dataclass(frozen=True, slots=True)
class ValueCodec:
    """Bundles the configured scale factor (the ``multiplier``)."""

    scale: float

    def __post_init__(self) -> None:
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")

    def encode(self, intensity: float) -> int:
        return encode(intensity, self.scale)

    def decode(self, raw: int) -> float:
        return decode(raw, self.scale)

    def encode_all(self, intensities: Iterable[float]) -> list[int]:
        return [self.encode(value) for value in intensities]

    def decode_all(self, levels: Iterable[int]) -> list[float]:
        return [self.decode(value) for value in levels]
