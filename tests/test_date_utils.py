from datetime import date, datetime

import pytest

from jetset.utils.date_utils import (
    default_analytics_period,
    format_date_display,
    get_next_day,
    get_safe_date,
    is_iso_date,
    is_past_date,
    parse_to_iso_date,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2026-01-31", "2026-02-01"),
        ("2025-12-31", "2026-01-01"),
        ("2028-02-28", "2028-02-29"),
        ("2027-02-28", "2027-03-01"),
        ("2026-04-30", "2026-05-01"),
    ],
)
def test_get_next_day_rolls_over(value, expected):
    assert get_next_day(value) == expected


def test_get_next_day_without_input_is_today():
    assert get_next_day(None) == date.today().isoformat()


def test_format_date_display():
    assert format_date_display("2026-05-15") == "Fri, May 15"
    assert format_date_display("") == ""


def test_safe_date_is_noon():
    d = get_safe_date("2026-03-08")
    assert (d.year, d.month, d.day, d.hour) == (2026, 3, 8, 12)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2026-02-06", "2026-02-06"),
        ("2026-02-06T14:30:00Z", "2026-02-06"),
        ("Friday, February 6, 2026", "2026-02-06"),
        ("Fri, Feb 6", "2026-02-06"),
        (date(2026, 2, 6), "2026-02-06"),
        (datetime(2026, 2, 6, 9, 0), "2026-02-06"),
    ],
)
def test_parse_to_iso_date(value, expected):
    assert parse_to_iso_date(value, today=date(2026, 1, 10)) == expected


def test_parse_to_iso_date_falls_back_to_today():
    assert parse_to_iso_date("sometime soon", today=date(2026, 1, 10)) == "2026-01-10"
    assert parse_to_iso_date(None, today=date(2026, 1, 10)) == "2026-01-10"


def test_default_analytics_period_is_previous_month():
    assert default_analytics_period(date(2026, 3, 15)) == "2026-02"
    assert default_analytics_period(date(2026, 1, 1)) == "2025-12"


def test_iso_and_past_checks():
    assert is_iso_date("2026-01-01")
    assert not is_iso_date("01/02/2026")
    assert is_past_date("2026-01-01", today=date(2026, 1, 2))
    assert not is_past_date("2026-01-02", today=date(2026, 1, 2))
