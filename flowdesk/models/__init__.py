"""Models package exports."""

from flowdesk.models.automation import AutomateTaskRequest, SweepResult
from flowdesk.models.planner import (
    AssignSlotRequest,
    CompletionStats,
    GridCell,
    PlannerSlot,
    TimeScale,
)
from flowdesk.models.task import (
    AutomationRule,
    ReminderResponseRequest,
    Task,
    TaskCreateRequest,
    TaskStatus,
    TaskUpdateRequest,
)
from flowdesk.models.user import AuthenticatedUser

__all__ = [
    "AssignSlotRequest",
    "AuthenticatedUser",
    "AutomateTaskRequest",
    "AutomationRule",
    "CompletionStats",
    "GridCell",
    "PlannerSlot",
    "ReminderResponseRequest",
    "SweepResult",
    "Task",
    "TaskCreateRequest",
    "TaskStatus",
    "TaskUpdateRequest",
    "TimeScale",
]
