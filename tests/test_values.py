"""Tests for raw cell parsing: dates, times, amounts and labels."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

import pandas as pd
import pytest

from core.values import (
    SERIAL_EPOCH,
    UNKNOWN_LABEL,
    age_in_years,
    format_money,
    is_blank,
    normalize_category,
    normalize_label,
    normalize_text,
    parse_amount,
    parse_date,
    parse_integer,
    parse_serial_date,
    parse_time_of_day,
    service_duration_hours,
    stay_days,
)


@pytest.mark.parametrize("value", [None, "", "   ", "nan", "NULL", float("nan"), pd.NaT, pd.NA])
def test_is_blank_true(value: object) -> None:
    assert is_blank(value)


@pytest.mark.parametrize("value", [0, "0", "x", 0.0])
def test_is_blank_false(value: object) -> None:
    assert not is_blank(value)


def test_parse_date_month_first_and_day_first() -> None:
    assert parse_date("3/15/2024") == pd.Timestamp("2024-03-15")
    assert parse_date("15/03/2024") == pd.Timestamp("2024-03-15")
    assert parse_date("03-04-2024") == pd.Timestamp("2024-03-04")


def test_parse_date_year_first() -> None:
    assert parse_date("2024-3-5") == pd.Timestamp("2024-03-05")
    assert parse_date("2024/12/31") == pd.Timestamp("2024-12-31")


def test_parse_date_impossible_calendar_date_is_none() -> None:
    assert parse_date("2/30/2024") is None
    assert parse_date("2024-13-01") is None


def test_parse_date_native_values() -> None:
    assert parse_date(datetime(2024, 1, 2, 10, 30)) == pd.Timestamp("2024-01-02 10:30")
    assert parse_date(date(2024, 1, 2)) == pd.Timestamp("2024-01-02")
    ts = pd.Timestamp("2023-07-01")
    assert parse_date(ts) is ts


def test_parse_date_serial_numbers() -> None:
    assert parse_date(45366) == pd.Timestamp("2024-03-15")
    assert parse_date(45366.5) == pd.Timestamp("2024-03-15 12:00")


@pytest.mark.parametrize("serial", [1, 60, 25569, 43831, 45366, 47000])
def test_serial_date_round_trip(serial: int) -> None:
    parsed = parse_serial_date(serial)
    assert parsed is not None
    assert (parsed - SERIAL_EPOCH).days == serial


def test_parse_date_fallback_and_garbage() -> None:
    assert parse_date("March 15, 2024") == pd.Timestamp("2024-03-15")
    assert parse_date("not a date") is None
    assert parse_date("") is None
    assert parse_date(None) is None


def test_parse_date_drops_timezone() -> None:
    parsed = parse_date("2024-03-15T10:00:00+02:00")
    assert parsed is not None
    assert parsed.tzinfo is None


def test_parse_date_native_aware_values_become_naive() -> None:
    aware = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)
    parsed = parse_date(aware)
    assert parsed == pd.Timestamp("2024-01-02 10:00")
    assert parsed.tzinfo is None
    shifted = parse_date(pd.Timestamp("2024-01-02 10:00", tz=timezone(timedelta(hours=2))))
    assert shifted == pd.Timestamp("2024-01-02 10:00")
    assert shifted.tzinfo is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("9:05", time(9, 5)),
        ("9:05 PM", time(21, 5)),
        ("12:00 AM", time(0, 0)),
        ("12:30 pm", time(12, 30)),
        ("23:59", time(23, 59)),
        (time(7, 45, 12), time(7, 45)),
    ],
)
def test_parse_time_of_day(raw: object, expected: time) -> None:
    assert parse_time_of_day(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "noon", "25:00", "10:75"])
def test_parse_time_of_day_invalid(raw: object) -> None:
    assert parse_time_of_day(raw) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("M 1,234.56", 1234.56),
        ("", 0.0),
        (None, 0.0),
        ("abc", 0.0),
        ("-50", -50.0),
        ("R 2 000", 2000.0),
        (800, 800.0),
        (12.5, 12.5),
        (float("nan"), 0.0),
        ("1.2.3", 1.2),
    ],
)
def test_parse_amount(raw: object, expected: float) -> None:
    assert parse_amount(raw) == expected


def test_parse_amount_never_nan() -> None:
    for raw in ("--", ".", "-", "nan", float("inf"), "1e", object()):
        value = parse_amount(raw)
        assert value == value


def test_parse_integer() -> None:
    assert parse_integer("12") == 12
    assert parse_integer(3.0) == 3
    assert parse_integer("") == 0


def test_numbers_too_large_fall_back_to_zero() -> None:
    assert parse_amount("9" * 400) == 0.0
    assert parse_amount(10**400) == 0.0
    assert parse_integer("1" * 400) == 0
    assert parse_integer("99999999999999999999") == 0
    assert parse_integer("123456789012") == 123456789012


def test_text_normalizers() -> None:
    assert normalize_text("  Jane Doe ") == "Jane Doe"
    assert normalize_text(None) == ""
    assert normalize_label("  ") == UNKNOWN_LABEL
    assert normalize_label(" Oak ") == "Oak"
    assert normalize_category(" north ") == "NORTH"
    assert normalize_category("") == UNKNOWN_LABEL
    assert normalize_category(12.0) == "12"
    assert normalize_category("unknown") == UNKNOWN_LABEL
    assert normalize_category(" UNKNOWN ") == UNKNOWN_LABEL


def test_stay_days() -> None:
    assert stay_days(pd.Timestamp("2024-03-15"), pd.Timestamp("2024-03-10")) == 5
    assert stay_days(pd.Timestamp("2024-03-10 18:00"), pd.Timestamp("2024-03-10")) == 1
    assert stay_days(pd.Timestamp("2024-03-10"), pd.Timestamp("2024-03-15")) == 0
    assert stay_days(None, pd.Timestamp("2024-03-15")) is None
    assert stay_days(pd.Timestamp("2024-03-15"), pd.NaT) is None


def test_service_duration_hours() -> None:
    assert service_duration_hours(time(14, 30), time(9, 0)) == 5.5
    assert service_duration_hours(None, time(9, 0)) is None


def test_age_in_years() -> None:
    born = pd.Timestamp("1950-06-15")
    assert age_in_years(born, pd.Timestamp("2024-06-14")) == 73
    assert age_in_years(born, pd.Timestamp("2024-06-15")) == 74
    assert age_in_years(None, pd.Timestamp("2024-06-15")) is None
    assert age_in_years(pd.Timestamp("2030-01-01"), pd.Timestamp("2024-01-01")) is None


def test_format_money() -> None:
    assert format_money(1234.5) == "M 1,234.50"
    assert format_money("") == "M 0.00"
