from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Union

DateLike = Union[str, date, datetime]

ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MONTHS_PT = ["jan", "fev", "mar", "abr", "mai", "jun", "jul", "ago", "set", "out", "nov", "dez"]


# ---- Parsing ------------------------------------------------------------------
def parse_iso(value: str) -> Union[date, datetime]:
    """
    Parse a boundary string.

    'YYYY-MM-DD' gives a calendar date; anything else is read as an ISO 8601
    instant ('Z' suffix accepted).
    """
    value = value.strip()
    if ISO_DAY.match(value):
        return date.fromisoformat(value)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def to_date(value: DateLike) -> date:
    """Calendar day of a string, date or datetime (aware instants in local time)."""
    if isinstance(value, str):
        value = parse_iso(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


# ---- Arithmetic ---------------------------------------------------------------
def add_days(value: DateLike, days: int) -> date:
    return to_date(value) + timedelta(days=int(days))


def start_of_month(value: DateLike) -> date:
    d = to_date(value)
    return d.replace(day=1)


def end_of_month(value: DateLike) -> date:
    d = to_date(value)
    first_next = (d.replace(day=28) + timedelta(days=4)).replace(day=1)
    return first_next - timedelta(days=1)


def difference_in_days(left: DateLike, right: DateLike) -> int:
    """Whole calendar days from `right` to `left` (time of day ignored)."""
    return (to_date(left) - to_date(right)).days


def in_range(value: DateLike, start: DateLike, end: DateLike) -> bool:
    return to_date(start) <= to_date(value) <= to_date(end)


# ---- Formatting ---------------------------------------------------------------
def iso_day(value: DateLike) -> str:
    return to_date(value).isoformat()


def month_key(value: DateLike) -> str:
    return to_date(value).strftime("%Y-%m")


def now_instant() -> datetime:
    return datetime.now(timezone.utc)


def iso_instant(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


def format_date(value: DateLike, fmt: str = "yyyy-MM-dd") -> str:
    if isinstance(value, str):
        value = parse_iso(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone()
    if fmt == "yyyy-MM-dd":
        return value.strftime("%Y-%m-%d")
    if fmt == "dd/MM/yyyy":
        return value.strftime("%d/%m/%Y")
    if fmt == "dd/MM/yyyy HH:mm":
        return value.strftime("%d/%m/%Y %H:%M")
    if fmt == "dd/MM":
        return value.strftime("%d/%m")
    if fmt == "MMM/yyyy":
        return f"{MONTHS_PT[value.month - 1]}/{value.year}"
    raise ValueError(f"Unsupported date format: {fmt}")
