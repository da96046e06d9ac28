"""Domain models for schedules and channel readings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScheduleEntry:
    due: datetime
    targets: tuple[float, ...]
    line: int = 0


@dataclass(frozen=True, slots=True)
class ChannelSet:
    """Wavelength labels paired positionally with channel values."""

    labels: tuple[str, ...]
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.labels) != len(self.values):
            raise ValueError(
                f"{len(self.labels)} labels but {len(self.values)} values"
            )

    @classmethod
    def aligned(cls, labels: Sequence[str], values: Sequence[float]) -> "ChannelSet":
        """Pair labels with values, truncating both to the shorter sequence."""

        length = min(len(labels), len(values))
        if len(labels) != len(values):
            LOGGER.warning(
                "Different number of light values (%d) than wavelengths (%d); "
                "using the first %d",
                len(values),
                len(labels),
                length,
            )
        return cls(
            labels=tuple(labels[:length]),
            values=tuple(float(value) for value in values[:length]),
        )

    def __len__(self) -> int:
        return len(self.labels)

    def as_pairs(self) -> list[tuple[str, float]]:
        return list(zip(self.labels, self.values))
