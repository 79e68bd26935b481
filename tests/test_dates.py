from datetime import date, datetime

import pytest

from engmat import dates


def test_parse_iso_distinguishes_days_and_instants():
    assert dates.parse_iso("2024-01-10") == date(2024, 1, 10)
    instant = dates.parse_iso("2024-01-10T13:45:00Z")
    assert isinstance(instant, datetime)
    assert instant.utcoffset().total_seconds() == 0


def test_add_days_is_plain_calendar_arithmetic():
    # no weekend skipping; crosses month and leap day
    assert dates.add_days("2024-01-10", 20) == date(2024, 1, 30)
    assert dates.add_days("2024-02-20", 10) == date(2024, 3, 1)
    assert dates.add_days(date(2024, 1, 6), 0) == date(2024, 1, 6)


def test_month_bounds():
    assert dates.start_of_month("2024-02-17") == date(2024, 2, 1)
    assert dates.end_of_month("2024-02-17") == date(2024, 2, 29)
    assert dates.end_of_month("2023-12-03") == date(2023, 12, 31)


def test_difference_in_days_ignores_time_of_day():
    assert dates.difference_in_days("2024-01-31", "2024-01-01") == 30
    assert dates.difference_in_days(datetime(2024, 1, 2, 23, 59), datetime(2024, 1, 1, 0, 1)) == 1


def test_format_date_variants():
    d = date(2024, 3, 2)
    assert dates.format_date(d, "dd/MM/yyyy") == "02/03/2024"
    assert dates.format_date(d, "dd/MM") == "02/03"
    assert dates.format_date(d, "MMM/yyyy") == "mar/2024"
    assert dates.format_date("2024-12-01", "MMM/yyyy") == "dez/2024"
    with pytest.raises(ValueError):
        dates.format_date(d, "yy")


def test_in_range_is_inclusive():
    assert dates.in_range("2024-03-01", "2024-03-01", "2024-03-31")
    assert dates.in_range("2024-03-31", "2024-03-01", "2024-03-31")
    assert not dates.in_range("2024-04-01", "2024-03-01", "2024-03-31")
