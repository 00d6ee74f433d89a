"""Unit tests for show date normalization."""

import pytest

from showtracker.services.import_service import (
    from_spreadsheet_serial,
    normalize_date,
    setlistfm_to_canonical,
)


def test_spreadsheet_serial() -> None:
    assert normalize_date("44927") == "2023-01-01"
    assert normalize_date("45122") == "2023-07-15"
    assert from_spreadsheet_serial(25569) == "1970-01-01"


def test_spreadsheet_serial_fraction_keeps_day() -> None:
    # 44927.75 is 6 pm on the same day
    assert normalize_date("44927.75") == "2023-01-01"


@pytest.mark.parametrize("serial", ["999", "100000", "123456"])
def test_numbers_outside_serial_range_are_invalid(serial: str) -> None:
    assert normalize_date(serial) is None


@pytest.mark.parametrize("value", ["2023-07-15", "1999-12-31", "2024-02-29"])
def test_iso_dates_are_unchanged(value: str) -> None:
    assert normalize_date(value) == value


def test_iso_single_digit_parts() -> None:
    assert normalize_date("2023-7-5") == "2023-07-05"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("7/15/2023", "2023-07-15"),
        ("07-15-2023", "2023-07-15"),
        ("7.15.2023", "2023-07-15"),
        ("7/15/23", "2023-07-15"),
        ("12/31/49", "2049-12-31"),
        ("1/2/50", "1950-01-02"),
        ("6/1/99", "1999-06-01"),
    ],
)
def test_us_dates(value: str, expected: str) -> None:
    assert normalize_date(value) == expected


def test_us_date_out_of_range() -> None:
    assert normalize_date("13/45/2023") is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("July 15, 2023", "2023-07-15"),
        ("15 Jul 2023", "2023-07-15"),
        ("Sat, Jul 15 2023", "2023-07-15"),
    ],
)
def test_free_text_dates(value: str, expected: str) -> None:
    assert normalize_date(value) == expected


@pytest.mark.parametrize("value", ["", "   ", None, "next tuesday-ish", "not a date", "2023-02-30"])
def test_invalid_dates(value) -> None:
    assert normalize_date(value) is None


def test_surrounding_whitespace() -> None:
    assert normalize_date("  2023-07-15  ") == "2023-07-15"


def test_year_before_1900_rejected_in_free_text() -> None:
    assert normalize_date("July 4, 1776") is None


def test_setlistfm_event_date() -> None:
    assert setlistfm_to_canonical("15-07-2023") == "2023-07-15"
    assert setlistfm_to_canonical("31-02-2023") is None
    assert setlistfm_to_canonical("2023-07-15") is None
    assert setlistfm_to_canonical(None) is None
