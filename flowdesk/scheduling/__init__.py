"""Pure scheduling core: period keys, frequencies, reminders and planner grids.

Nothing in this package performs I/O; callers fetch records, pass them in and
write back whatever they decide.
"""

from flowdesk.scheduling.frequency import (
    FrequencySchedule,
    next_automation_run,
    parse_frequency,
)
from flowdesk.scheduling.periods import (
    DateRange,
    add_period,
    hour_key,
    iso_week_number,
    parse_hour_key,
    period_key,
    visible_range,
)
from flowdesk.scheduling.planner import (
    QueryKeys,
    completion_stats,
    live_planner_window,
    merge_slots,
    reconcile_planner_window,
    resolve_query_keys,
    unassigned_tasks,
)
from flowdesk.scheduling.reminders import due_reminders, is_reminder_due

__all__ = [
    "DateRange",
    "FrequencySchedule",
    "QueryKeys",
    "add_period",
    "completion_stats",
    "due_reminders",
    "hour_key",
    "is_reminder_due",
    "iso_week_number",
    "live_planner_window",
    "merge_slots",
    "next_automation_run",
    "parse_frequency",
    "parse_hour_key",
    "period_key",
    "reconcile_planner_window",
    "resolve_query_keys",
    "unassigned_tasks",
    "visible_range",
]
