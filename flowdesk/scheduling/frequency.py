"""Frequency text parsing and automation next-run computation."""

import re
from dataclasses import dataclass
from datetime import datetime

from dateutil.relativedelta import relativedelta

RUN_HOUR = 9

_DAILY = ("daily", "every day")
_WEEKLY = ("weekly", "every week")
_MONTHLY = ("monthly", "every month")
_EVERY_N_DAYS = re.compile(r"every\s+(\d+)\s+days?")
MAX_EVERY_N_DAYS = 3650


@dataclass(frozen=True)
class FrequencySchedule:
    """Offset from "now" to the next run.

    ``recognized`` is False when the text did not match any known phrase and
    the schedule fell back to daily.
    """

    days: int = 0
    months: int = 0
    recognized: bool = True

    @property
    def offset(self) -> relativedelta:
        return relativedelta(days=self.days, months=self.months)


DAILY_FALLBACK = FrequencySchedule(days=1, recognized=False)


def parse_frequency(text: str | None) -> FrequencySchedule:
    """Parse a frequency description such as "weekly" or "every 3 days".

    Matching is case-insensitive and ignores surrounding whitespace.
    Unrecognized text never raises: it falls back to a daily cadence with
    ``recognized=False``. So does "every N days" with N outside
    1..MAX_EVERY_N_DAYS.
    """
    if not isinstance(text, str):
        return DAILY_FALLBACK

    phrase = text.strip().lower()

    if phrase in _DAILY:
        return FrequencySchedule(days=1)
    if phrase in _WEEKLY:
        return FrequencySchedule(days=7)
    if phrase in _MONTHLY:
        return FrequencySchedule(months=1)

    match = _EVERY_N_DAYS.search(phrase)
    if match:
        days = int(match.group(1))
        # "every 0 days" would fire on every sweep; huge N overflows datetime
        if 1 <= days <= MAX_EVERY_N_DAYS:
            return FrequencySchedule(days=days)

    return DAILY_FALLBACK


def anchor_to_run_hour(value: datetime) -> datetime:
    """Pin a datetime to 09:00:00.000 on its own calendar date."""
    return value.replace(hour=RUN_HOUR, minute=0, second=0, microsecond=0)


def next_run_for(schedule: FrequencySchedule, from_time: datetime) -> datetime:
    return anchor_to_run_hour(from_time + schedule.offset)


def next_automation_run(frequency: str | None, from_time: datetime) -> datetime:
    """Next scheduled run of an automation, at 09:00 local on the target date.

    Always computed from ``from_time`` (the time of creation or firing), not
    from the previously scheduled run.
    """
    return next_run_for(parse_frequency(frequency), from_time)
