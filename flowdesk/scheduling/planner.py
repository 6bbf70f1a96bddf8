"""Planner grid reconciliation.

Views are built on wall-clock time: any tzinfo on the datetimes passed in is
dropped after reading their local fields, matching how period keys are
written.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from flowdesk.models.planner import CompletionStats, GridCell, PlannerSlot
from flowdesk.models.task import Task
from flowdesk.scheduling.periods import (
    DateRange,
    add_period,
    hour_key,
    parse_hour_key,
    period_key,
    start_of_day,
    truncate_to_hour,
    visible_range,
)

LIVE_WINDOW_HOURS = 8
LIVE_DISPLAY_LIMIT = 12
STATS_WINDOW_DAYS = 30

_HOURLY_VIEWS = ("hour", "day", "week")
_DAILY_VIEWS = ("month", "year")


@dataclass(frozen=True)
class QueryKeys:
    """Keys to render and the slot scale to fetch them from."""

    keys: tuple[str, ...]
    query_scale: str

    @property
    def start_key(self) -> str:
        return self.keys[0]

    @property
    def end_key(self) -> str:
        return self.keys[-1]


def _wall(value: datetime) -> datetime:
    return value.replace(tzinfo=None)


def resolve_query_keys(scale: str, window: DateRange) -> QueryKeys:
    """Generate the grid keys for a view at ``scale`` over ``window``.

    Day and week views use an hourly grid and query hourly slots; month and
    year views use one key per calendar day and query daily slots.

    Raises:
        ValueError: for an unknown scale
    """
    start = _wall(window.start)
    end = _wall(window.end)

    if scale in _HOURLY_VIEWS:
        cursor, step, query_scale = truncate_to_hour(start), timedelta(hours=1), "hour"
    elif scale in _DAILY_VIEWS:
        cursor, step, query_scale = start_of_day(start), timedelta(days=1), "day"
    else:
        raise ValueError(f"Unknown time scale: {scale!r}")

    keys = []
    while cursor <= end:
        keys.append(period_key(cursor, query_scale))
        cursor += step
    return QueryKeys(keys=tuple(keys), query_scale=query_scale)


def _index_tasks(tasks: Optional[Iterable[Task]]) -> dict:
    return {task.id: task for task in tasks or ()}


def _cell(
    key: str,
    start: datetime,
    cell_scale: str,
    slot: Optional[PlannerSlot],
    tasks_by_id: dict,
    now: Optional[datetime],
) -> GridCell:
    task = tasks_by_id.get(slot.task_id) if slot is not None and slot.task_id else None
    is_past = now is not None and add_period(start, 1, cell_scale) <= _wall(now)
    return GridCell(period_key=key, start=start, slot=slot, task=task, is_past=is_past)


def merge_slots(
    query: QueryKeys,
    slots: Iterable[PlannerSlot],
    tasks: Optional[Iterable[Task]] = None,
    now: Optional[datetime] = None,
) -> list[GridCell]:
    """Attach persisted slots to the generated grid.

    Only slots of the query scale whose key lies within
    ``[start_key, end_key]`` are considered. When the store holds duplicates
    for one key, the first one wins.
    """
    if not query.keys:
        return []

    lookup: dict[str, PlannerSlot] = {}
    for slot in slots:
        if slot.time_scale != query.query_scale:
            continue
        if not query.start_key <= slot.period_key <= query.end_key:
            continue
        lookup.setdefault(slot.period_key, slot)

    tasks_by_id = _index_tasks(tasks)
    return [
        _cell(key, parse_hour_key(key), query.query_scale, lookup.get(key), tasks_by_id, now)
        for key in query.keys
    ]


def reconcile_planner_window(
    scale: str,
    anchor: datetime,
    slots: Iterable[PlannerSlot],
    tasks: Optional[Iterable[Task]] = None,
    now: Optional[datetime] = None,
) -> list[GridCell]:
    """Grid cells of the calendar view at ``scale`` containing ``anchor``."""
    window = visible_range(_wall(anchor), scale)
    return merge_slots(resolve_query_keys(scale, window), slots, tasks, now)


def live_hour_keys(now: datetime, hours: int = LIVE_WINDOW_HOURS) -> list[str]:
    """Keys of the next ``hours`` hours, starting at the next hour boundary.

    A ``now`` exactly on the hour starts the window at that hour.
    """
    now = _wall(now)
    first = truncate_to_hour(now)
    if first != now:
        first += timedelta(hours=1)
    return [hour_key(first + timedelta(hours=i)) for i in range(hours)]


def live_planner_window(
    slots: Iterable[PlannerSlot],
    now: datetime,
    tasks: Optional[Iterable[Task]] = None,
    hours: int = LIVE_WINDOW_HOURS,
    limit: int = LIVE_DISPLAY_LIMIT,
) -> list[GridCell]:
    """Forward-looking hourly board with incomplete earlier slots carried in.

    Hourly slots that are not done and whose hour is at or before the current
    hour are merged ahead of the forward window. The combined list is sorted
    by time and capped at ``limit`` cells.
    """
    forward_keys = live_hour_keys(now, hours)
    forward = set(forward_keys)
    current_key = hour_key(_wall(now))

    lookup: dict[str, PlannerSlot] = {}
    for slot in slots:
        if slot.time_scale != "hour":
            continue
        if slot.period_key in forward:
            lookup.setdefault(slot.period_key, slot)
        elif not slot.is_done and slot.period_key <= current_key:
            lookup.setdefault(slot.period_key, slot)

    starts: dict[str, datetime] = {}
    for key in forward | set(lookup):
        try:
            starts[key] = parse_hour_key(key)
        except ValueError:
            continue

    ordered = sorted(starts, key=lambda k: starts[k])[:limit]
    tasks_by_id = _index_tasks(tasks)
    return [_cell(key, starts[key], "hour", lookup.get(key), tasks_by_id, now) for key in ordered]


def unassigned_tasks(tasks: Iterable[Task], slots: Iterable[PlannerSlot]) -> list[Task]:
    """Todo tasks not referenced by any of ``slots``."""
    allocated = {slot.task_id for slot in slots if slot.task_id}
    return [task for task in tasks if task.status == "todo" and task.id not in allocated]


def stats_since_key(now: datetime, days: int = STATS_WINDOW_DAYS) -> str:
    """Hour key marking the start of the completion statistics window."""
    return hour_key(_wall(now) - timedelta(days=days))


def completion_stats(slots: Iterable[PlannerSlot]) -> CompletionStats:
    """Total, done and percentage done (rounded half up) of ``slots``."""
    total = 0
    completed = 0
    for slot in slots:
        total += 1
        if slot.is_done:
            completed += 1
    if total == 0:
        return CompletionStats()
    percentage = (completed * 200 + total) // (2 * total)
    return CompletionStats(total=total, completed=completed, percentage=percentage)
