"""Reminder due-check over already-fetched tasks.

The check is read-only: recording that a reminder was answered (status change
and ``last_reminder_sent_at``) is a separate write done by the caller, so
polling ``due_reminders`` repeatedly returns the same set until such a write
happens.
"""

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional

from flowdesk.models.task import HH_MM_PATTERN, Task

VALID_STATUSES = ("todo", "in_progress", "done")


def time_to_minutes(value: object) -> Optional[int]:
    """Minutes since midnight for a strict ``HH:MM`` string, else None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not HH_MM_PATTERN.match(value):
        return None
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def parse_duration(value: object) -> Optional[timedelta]:
    """``HH:MM`` duration as a timedelta of H hours and M minutes, else None."""
    minutes = time_to_minutes(value)
    if minutes is None:
        return None
    return timedelta(minutes=minutes)


def parse_timestamp(value: object) -> Optional[datetime]:
    """Accept a datetime or an ISO-8601 string; anything else is None."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _align(value: datetime, now: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Make ``value`` comparable with ``now`` (both naive or both aware).

    Naive datetimes are wall-clock time in ``tz``; when ``tz`` is not given
    that is the zone of ``now``, or UTC when ``now`` is naive too.
    """
    zone = tz or now.tzinfo or timezone.utc
    if now.tzinfo is None and value.tzinfo is not None:
        return value.astimezone(zone).replace(tzinfo=None)
    if now.tzinfo is not None and value.tzinfo is None:
        return value.replace(tzinfo=zone)
    return value


def is_reminder_due(task: Task, now: datetime, tz: Optional[tzinfo] = None) -> bool:
    """Whether ``task`` should raise a reminder at ``now``.

    ``tz`` is the zone naive timestamps are read in (see ``_align``).

    - done (or unknown) status: never due
    - never reminded: due once the wall clock reaches the reminder time of day
    - in progress with a recurrence: due once ``last_reminder_sent_at`` plus
      the recurrence duration has passed
    - anything malformed: not due
    """
    if task.status not in VALID_STATUSES or task.status == "done":
        return False

    reminder_minutes = time_to_minutes(task.reminder_time_of_day)
    if reminder_minutes is None:
        return False

    now_minutes = now.hour * 60 + now.minute

    if not task.last_reminder_sent_at:
        return now_minutes >= reminder_minutes

    if task.status == "in_progress" and task.recurrence_duration:
        last_sent = parse_timestamp(task.last_reminder_sent_at)
        if last_sent is None:
            return False
        duration = parse_duration(task.recurrence_duration)
        if duration is None:
            return False
        return now >= _align(last_sent, now, tz) + duration

    # A todo task that was already reminded once waits for an explicit response
    return False


def due_reminders(
    tasks: Iterable[Task], now: datetime, tz: Optional[tzinfo] = None
) -> list[Task]:
    """Tasks whose reminder is due, ordered by reminder time of day.

    The sort is stable, so ties keep their input order.
    """
    due = [task for task in tasks if is_reminder_due(task, now, tz)]
    due.sort(key=lambda task: time_to_minutes(task.reminder_time_of_day))
    return due
