"""Calendar arithmetic and period keys at hour/day/week/month/year scale.

All functions read the wall-clock fields of the datetimes they are given
(year, month, day, hour) and never convert between timezones. Aware and naive
datetimes are both accepted; arithmetic on aware values is wall-clock
arithmetic within their own tzinfo.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

_KEY_PATTERNS = {
    "week": re.compile(r"^\d{4}-W(0[1-9]|[1-4]\d|5[0-3])$"),
    "month": re.compile(r"^\d{4}-(0[1-9]|1[0-2])$"),
    "year": re.compile(r"^\d{4}$"),
}

# End-of-day is expressed at millisecond precision (23:59:59.999)
_END_OF_DAY = {"hour": 23, "minute": 59, "second": 59, "microsecond": 999000}


@dataclass(frozen=True)
class DateRange:
    """Inclusive start/end of a visible window."""

    start: datetime
    end: datetime


def truncate_to_hour(value: datetime) -> datetime:
    return value.replace(minute=0, second=0, microsecond=0)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(**_END_OF_DAY)


def hour_key(value: datetime) -> str:
    """Zero-padded ``YYYY-MM-DDTHH:00:00`` from the local wall-clock fields."""
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:00:00"
    )


def parse_hour_key(key: str) -> datetime:
    """Rebuild a naive datetime from an hour key.

    Raises:
        ValueError: if the key is not a valid hour key
    """
    date_part, sep, time_part = key.partition("T")
    if not sep:
        raise ValueError(f"Not an hour key: {key!r}")
    year, month, day = (int(p) for p in date_part.split("-"))
    hour = int(time_part.split(":")[0])
    return datetime(year, month, day, hour)


def iso_week_number(value: datetime) -> int:
    """ISO-8601 week number (1-53); weeks belong to the year of their Thursday."""
    return value.isocalendar()[1]


def iso_week_key(value: datetime) -> str:
    iso_year, week, _ = value.isocalendar()
    return f"{iso_year:04d}-W{week:02d}"


def period_key(value: datetime, scale: str) -> str:
    """Canonical, lexically sortable key of the bucket containing ``value``.

    ``hour`` keys are truncated to the hour and ``day`` keys to midnight; both
    scales share the ``YYYY-MM-DDTHH:00:00`` format.

    Raises:
        ValueError: for an unknown scale
    """
    if scale == "hour":
        return hour_key(value)
    if scale == "day":
        return hour_key(start_of_day(value))
    if scale == "week":
        return iso_week_key(value)
    if scale == "month":
        return f"{value.year:04d}-{value.month:02d}"
    if scale == "year":
        return f"{value.year:04d}"
    raise ValueError(f"Unknown time scale: {scale!r}")


def _days_since_sunday(value: datetime) -> int:
    # weekday(): Monday=0 .. Sunday=6
    return (value.weekday() + 1) % 7


def _days_until_saturday(value: datetime) -> int:
    return (5 - value.weekday()) % 7


def visible_range(anchor: datetime, scale: str) -> DateRange:
    """Window a view at ``scale`` renders around ``anchor``.

    - hour: the hour containing the anchor
    - day: midnight to 23:59:59.999
    - week: Sunday to Saturday
    - month: the calendar month padded out to full Sunday-Saturday weeks
    - year: Jan 1 to Dec 31

    Raises:
        ValueError: for an unknown scale
    """
    if scale == "hour":
        start = truncate_to_hour(anchor)
        return DateRange(start, start.replace(minute=59, second=59, microsecond=999000))

    if scale == "day":
        return DateRange(start_of_day(anchor), end_of_day(anchor))

    if scale == "week":
        start = start_of_day(anchor) - timedelta(days=_days_since_sunday(anchor))
        return DateRange(start, end_of_day(start + timedelta(days=6)))

    if scale == "month":
        first = start_of_day(anchor).replace(day=1)
        last = first + relativedelta(months=1) - timedelta(days=1)
        start = first - timedelta(days=_days_since_sunday(first))
        end = last + timedelta(days=_days_until_saturday(last))
        return DateRange(start, end_of_day(end))

    if scale == "year":
        start = start_of_day(anchor).replace(month=1, day=1)
        return DateRange(start, end_of_day(start.replace(month=12, day=31)))

    raise ValueError(f"Unknown time scale: {scale!r}")


def add_period(value: datetime, amount: int, scale: str) -> datetime:
    """Add ``amount`` calendar units of ``scale`` to ``value``.

    Month and year steps clamp to the last day of the target month:
    Jan 31 + 1 month is Feb 28 (or 29), Feb 29 + 1 year is Feb 28.

    Raises:
        ValueError: for an unknown scale
    """
    if scale == "hour":
        return value + timedelta(hours=amount)
    if scale == "day":
        return value + timedelta(days=amount)
    if scale == "week":
        return value + timedelta(days=7 * amount)
    if scale == "month":
        return value + relativedelta(months=amount)
    if scale == "year":
        return value + relativedelta(years=amount)
    raise ValueError(f"Unknown time scale: {scale!r}")


def normalize_period_key(key: str, scale: str) -> str:
    """Validate a caller-supplied key for ``scale`` and return its canonical form.

    Hour and day keys are re-derived from their parsed value: hour keys are
    truncated to the hour boundary and day keys to midnight.

    Raises:
        ValueError: if the key does not fit the scale's format
    """
    if scale in ("hour", "day"):
        return period_key(parse_hour_key(key), scale)
    pattern = _KEY_PATTERNS.get(scale)
    if pattern is None:
        raise ValueError(f"Unknown time scale: {scale!r}")
    if not pattern.match(key):
        raise ValueError(f"Invalid {scale} key: {key!r}")
    return key
