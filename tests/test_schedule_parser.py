"""Tests for schedule-source parsing."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from helio_controller.schedule import (
    ScheduleSourceError,
    load_schedule,
    parse_row,
    parse_rows,
    parse_target,
    parse_timestamp,
)

UTC = timezone.utc
PLUS_TEN = timezone(timedelta(hours=10))


def test_parse_timestamp_is_day_first_and_uses_default_zone():
    value = parse_timestamp("03/04/2024 06:30", default_tz=PLUS_TEN)

    assert value == datetime(2024, 4, 3, 6, 30, tzinfo=PLUS_TEN)


def test_parse_timestamp_keeps_explicit_offset():
    value = parse_timestamp("2024-04-03T06:30:00+02:00", default_tz=UTC)

    assert value == datetime(2024, 4, 3, 6, 30, tzinfo=timezone(timedelta(hours=2)))
    assert value.utcoffset() == timedelta(hours=2)


@pytest.mark.parametrize(
    "text",
    ["2024-04-03 12:00:00", "2024-04-03T12:00", "2024/04/03 12:00", " 2024.04.03 12:00"],
)
def test_parse_timestamp_reads_year_first_dates_as_year_month_day(text):
    value = parse_timestamp(text, default_tz=UTC)

    assert value == datetime(2024, 4, 3, 12, 0, tzinfo=UTC)


def test_parse_timestamp_still_day_first_without_leading_year():
    value = parse_timestamp("04-03-2024 12:00", default_tz=UTC)

    assert (value.month, value.day) == (3, 4)


def test_parse_timestamp_tolerates_surrounding_text():
    value = parse_timestamp("sunrise at 03/04/2024 06:30", default_tz=UTC)

    assert value == datetime(2024, 4, 3, 6, 30, tzinfo=UTC)


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(ValueError):
        parse_timestamp("tbd", default_tz=UTC)


@pytest.mark.parametrize(
    "text, expected",
    [("12.5", 12.5), (" 40 ", 40.0), ("~.75%", 0.75), ("level 3", 3.0), ("-2", -2.0)],
)
def test_parse_target_extracts_first_number(text, expected):
    assert parse_target(text) == expected


def test_parse_target_rejects_text_without_number():
    with pytest.raises(ValueError):
        parse_target("off")


def test_parse_row_reads_targets_from_fifth_column():
    result = parse_row(
        ["03/04/2024 06:30", "x", "y", "z", "10", "20.5", "30"],
        line=2,
        default_tz=UTC,
    )

    assert result.ok
    assert result.entry.targets == (10.0, 20.5, 30.0)
    assert result.entry.due == datetime(2024, 4, 3, 6, 30, tzinfo=UTC)
    assert result.entry.line == 2
    assert result.warnings == []


def test_parse_row_with_iso_date_is_due_on_that_day():
    result = parse_row(["2024-04-03 12:00", "", "", "", "50"], line=2, default_tz=UTC)

    assert result.entry.due == datetime(2024, 4, 3, 12, 0, tzinfo=UTC)


def test_parse_row_keeps_channel_position_for_bad_field():
    result = parse_row(
        ["03/04/2024 06:30", "", "", "", "10", "n/a", "30"], line=5, default_tz=UTC
    )

    assert result.entry.targets == (10.0, 0.0, 30.0)
    assert len(result.warnings) == 1
    assert "column 5" in result.warnings[0]


def test_parse_row_skips_bad_timestamp():
    result = parse_row(["whenever", "", "", "", "10"], line=3, default_tz=UTC)

    assert not result.ok
    assert "line 3" in result.warnings[0]


def test_parse_row_skips_row_without_targets():
    result = parse_row(["03/04/2024 06:30", "a", "b"], line=4, default_tz=UTC)

    assert not result.ok
    assert "no target columns" in result.warnings[0]


def test_parse_rows_skips_header_and_blank_lines():
    rows = [
        ["datetime", "temp", "hum", "co2", "ch1"],
        ["03/04/2024 06:30", "", "", "", "1"],
        ["", ""],
        ["03/04/2024 07:30", "", "", "", "2"],
    ]

    results = list(parse_rows(rows, default_tz=UTC))

    assert [result.line for result in results] == [2, 4]
    assert [result.entry.targets for result in results] == [(1.0,), (2.0,)]


def test_load_schedule_preserves_file_order(tmp_path: Path):
    path = tmp_path / "conditions.csv"
    path.write_text(
        "datetime,temp,hum,co2,400,450\n"
        "03/04/2024 08:00,20,60,400,10,20\n"
        "03/04/2024 07:00,20,60,400,30,40\n"
        "garbage,20,60,400,1,1\n",
        encoding="utf-8",
    )

    entries = load_schedule(path, default_tz=UTC)

    assert [entry.targets for entry in entries] == [(10.0, 20.0), (30.0, 40.0)]
    assert entries[0].due > entries[1].due


def test_load_schedule_honours_delimiter(tmp_path: Path):
    path = tmp_path / "conditions.tsv"
    path.write_text("header\n03/04/2024 08:00\t\t\t\t55\t65\n", encoding="utf-8")

    entries = load_schedule(path, delimiter="\t", default_tz=UTC)

    assert entries[0].targets == (55.0, 65.0)


def test_load_schedule_missing_file_is_fatal(tmp_path: Path):
    with pytest.raises(ScheduleSourceError):
        load_schedule(tmp_path / "missing.csv")
