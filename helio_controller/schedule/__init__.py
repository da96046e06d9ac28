"""Schedule parsing and execution."""

from .parser import (
    RowParseResult,
    ScheduleSourceError,
    load_schedule,
    parse_row,
    parse_rows,
    parse_target,
    parse_timestamp,
)
from .runner import RunnerState, ScheduleRunner

__all__ = [
    "RowParseResult",
    "RunnerState",
    "ScheduleRunner",
    "ScheduleSourceError",
    "load_schedule",
    "parse_row",
    "parse_rows",
    "parse_target",
    "parse_timestamp",
]
