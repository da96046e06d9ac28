"""Schedule-source parsing.

Each data row holds a free-text date/time in column 0, three unused columns
and one target intensity per channel from column 4 onward. Every row yields a
:class:`RowParseResult`; problems are reported as warnings on the result
instead of being silently absorbed.
"""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from dateutil import parser as date_parser
from dateutil import tz

from ..core.models import ScheduleEntry

LOGGER = logging.getLogger(__name__)

TARGET_COLUMN_OFFSET = 4

_NUMBER = re.compile(r"[-+]?\d*\.\d+|[-+]?\d+")
# Year-first text is y-m-d; dayfirst would read it as y-d-m.
_YEAR_FIRST = re.compile(r"^\s*\d{4}[-/.]")


class ScheduleSourceError(RuntimeError):
    """Raised when the schedule source cannot be read at all."""


@dataclass(slots=True)
class RowParseResult:
    line: int
    entry: Optional[ScheduleEntry] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.entry is not None


def parse_timestamp(text: str, *, default_tz: Optional[tzinfo] = None) -> datetime:
    """Resolve free-text date/time, day-first, in the local zone when none is given."""

    if not text.strip():
        raise ValueError("empty timestamp")

    try:
        if _YEAR_FIRST.match(text):
            value = date_parser.parse(text, fuzzy=True, yearfirst=True, dayfirst=False)
        else:
            value = date_parser.parse(text, fuzzy=True, dayfirst=True)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"couldn't extract datetime from {text!r}: {exc}") from exc

    if value.tzinfo is None:
        value = value.replace(tzinfo=default_tz or tz.tzlocal())
    return value


def parse_target(text: str) -> float:
    """Extract the first number from a field, tolerating surrounding text."""

    match = _NUMBER.search(text)
    if match is None:
        raise ValueError(f"couldn't parse {text!r} as float")
    return float(match.group(0))


def parse_row(
    fields: Sequence[str], *, line: int, default_tz: Optional[tzinfo] = None
) -> RowParseResult:
    result = RowParseResult(line=line)

    if not fields:
        result.warnings.append(f"line {line}: empty row")
        return result

    try:
        due = parse_timestamp(fields[0], default_tz=default_tz)
    except ValueError as exc:
        result.warnings.append(f"line {line}: {exc}")
        return result

    raw_targets = fields[TARGET_COLUMN_OFFSET:]
    if not raw_targets:
        result.warnings.append(f"line {line}: no target columns")
        return result

    targets: list[float] = []
    for column, raw in enumerate(raw_targets, start=TARGET_COLUMN_OFFSET):
        try:
            targets.append(parse_target(raw))
        except ValueError as exc:
            # Keep the channel position so later columns stay aligned.
            result.warnings.append(f"line {line}, column {column}: {exc}")
            targets.append(0.0)

    result.entry = ScheduleEntry(due=due, targets=tuple(targets), line=line)
    return result


def parse_rows(
    rows: Iterable[Sequence[str]], *, default_tz: Optional[tzinfo] = None
) -> Iterator[RowParseResult]:
    """Parse data rows, skipping the header row and blank lines."""

    for index, fields in enumerate(rows, start=1):
        if index == 1:
            continue
        if not any(value.strip() for value in fields):
            continue
        yield parse_row(fields, line=index, default_tz=default_tz)


def load_schedule(
    path: Path, *, delimiter: str = ",", default_tz: Optional[tzinfo] = None
) -> list[ScheduleEntry]:
    """Read every valid entry from ``path``, logging and skipping bad rows."""

    LOGGER.info("Running conditions file: %s", path)
    try:
        stream = path.open("r", encoding="utf-8", newline="")
    except OSError as exc:
        raise ScheduleSourceError(f"Cannot open schedule {path}: {exc}") from exc

    entries: list[ScheduleEntry] = []
    with stream:
        for result in parse_rows(
            csv.reader(stream, delimiter=delimiter), default_tz=default_tz
        ):
            for warning in result.warnings:
                LOGGER.warning("%s: %s", path.name, warning)
            if result.entry is not None:
                entries.append(result.entry)

    LOGGER.info("Loaded %d schedule entries from %s", len(entries), path)
    return entries
