"""Planner models for slots, grid cells and completion statistics."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, model_validator

from flowdesk.models.task import Task


class TimeScale(str, Enum):
    """Granularity of a planner slot or view."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class PlannerSlot(BaseModel):
    """A task assigned to one scheduling bucket."""

    id: Optional[UUID] = None
    user_id: UUID
    period_key: str
    time_scale: str = TimeScale.HOUR.value
    task_title: str
    task_id: Optional[UUID] = None
    is_done: bool = False
    created_at: Optional[datetime] = None


class GridCell(BaseModel):
    """One rendered bucket of a planner view."""

    period_key: str
    start: datetime
    slot: Optional[PlannerSlot] = None
    task: Optional[Task] = None
    is_past: bool = False


class CompletionStats(BaseModel):
    """Done vs. assigned slot counts."""

    total: int = 0
    completed: int = 0
    percentage: int = 0


class AssignSlotRequest(BaseModel):
    """Assign a task to a bucket, addressed by key or by a start time."""

    task_id: UUID
    time_scale: TimeScale = TimeScale.HOUR
    period_key: Optional[str] = None
    start: Optional[datetime] = None

    @model_validator(mode="after")
    def exactly_one_address(self) -> "AssignSlotRequest":
        if (self.period_key is None) == (self.start is None):
            raise ValueError("Provide exactly one of 'period_key' or 'start'")
        return self
