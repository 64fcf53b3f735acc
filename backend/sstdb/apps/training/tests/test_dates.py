from __future__ import annotations

from datetime import date, datetime

import pytest

from sstdb.apps.training.dates import parse_flexible_date


@pytest.mark.parametrize("raw", [None, "", "   ", "-", "N/A", "n/a", " n/A ", True])
def test_absent_values(raw):
    assert parse_flexible_date(raw) is None


def test_iso_dates_ignore_time_and_zone():
    assert parse_flexible_date("2023-01-15") == date(2023, 1, 15)
    assert parse_flexible_date("2023-01-15T03:00:00.000Z") == date(2023, 1, 15)


def test_slash_dates_are_day_first():
    assert parse_flexible_date("15/01/2023") == date(2023, 1, 15)
    assert parse_flexible_date("5/3/2024") == date(2024, 3, 5)
    assert parse_flexible_date(" 05/03/2024 ") == date(2024, 3, 5)


def test_impossible_calendar_dates_are_absent():
    assert parse_flexible_date("31/02/2024") is None
    assert parse_flexible_date("2023-13-01") is None


def test_native_dates_are_kept():
    assert parse_flexible_date(date(2022, 7, 1)) == date(2022, 7, 1)
    assert parse_flexible_date(datetime(2024, 5, 6, 14, 30)) == date(2024, 5, 6)


def test_spreadsheet_serial_numbers():
    assert parse_flexible_date(45000) == date(2023, 3, 15)
    assert parse_flexible_date(45000.75) == date(2023, 3, 15)
    assert parse_flexible_date(0) is None
    assert parse_flexible_date(-3) is None


def test_other_text_formats():
    assert parse_flexible_date("15-01-2023") == date(2023, 1, 15)
    assert parse_flexible_date("15.01.2023") == date(2023, 1, 15)
    assert parse_flexible_date("Sun Jan 15 2023 00:00:00 GMT-0300 (Brasilia Standard Time)") == date(2023, 1, 15)


@pytest.mark.parametrize("raw", ["not a date", "NR35", "??/??/????", object()])
def test_garbage_never_raises(raw):
    assert parse_flexible_date(raw) is None


def test_huge_numbers_are_absent():
    assert parse_flexible_date(10**400) is None
    assert parse_flexible_date(-(10**400)) is None
    assert parse_flexible_date(float("inf")) is None
    assert parse_flexible_date(float("nan")) is None


def test_slash_year_must_have_four_digits():
    assert parse_flexible_date("1/1/10000") is None
    assert parse_flexible_date("01/01/20245") is None
