"""Task models: stored records and validated request bodies."""

import re
from datetime import datetime
from enum import Enum
from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

HH_MM_PATTERN = re.compile(r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$")


class TaskStatus(str, Enum):
    """Valid task statuses."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class AutomationRule(BaseModel):
    """Recurrence rule and optional email payload embedded in a task."""

    model_config = ConfigDict(extra="ignore")

    frequency: str
    description: str
    email_subject: Optional[str] = None
    email_body: Optional[str] = None

    @field_validator("frequency", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Required text fields must contain something besides whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @property
    def sends_email(self) -> bool:
        return bool(self.email_subject and self.email_body)


class Task(BaseModel):
    """A task as persisted in the store.

    Reminder fields are kept as loose strings: the store may hold values that
    no longer validate, and the due-check skips those records instead of
    failing the whole batch.
    """

    id: UUID
    user_id: UUID
    title: str
    description: Optional[str] = None
    status: str = TaskStatus.TODO.value
    due_at: Optional[datetime] = None
    reminder_time_of_day: Optional[str] = None
    recurrence_duration: Optional[str] = None
    last_reminder_sent_at: Optional[Union[datetime, str]] = None
    automation: Optional[AutomationRule] = None
    next_run_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


def _validate_hh_mm(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if v == "":
        return None
    if not HH_MM_PATTERN.match(v):
        raise ValueError("must be in HH:MM format")
    return v


def format_duration(hours: Optional[int], minutes: Optional[int]) -> Optional[str]:
    """Combine hour and minute counts into an HH:MM duration, or None for zero."""
    hours = hours or 0
    minutes = minutes or 0
    if hours == 0 and minutes == 0:
        return None
    return f"{hours:02d}:{minutes:02d}"


class TaskCreateRequest(BaseModel):
    """Validated input for creating a task."""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: TaskStatus = TaskStatus.TODO
    due_at: Optional[datetime] = None
    reminder_time: Optional[str] = None
    frequency_hours: Optional[int] = Field(default=None, ge=0, le=23)
    frequency_minutes: Optional[int] = Field(default=None, ge=0, le=59)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    @field_validator("reminder_time")
    @classmethod
    def reminder_time_format(cls, v: Optional[str]) -> Optional[str]:
        return _validate_hh_mm(v)

    def recurrence_duration(self) -> Optional[str]:
        return format_duration(self.frequency_hours, self.frequency_minutes)


class TaskUpdateRequest(BaseModel):
    """Partial task update. Explicit nulls clear the field."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: Optional[TaskStatus] = None
    due_at: Optional[datetime] = None
    reminder_time: Optional[str] = None
    frequency_hours: Optional[int] = Field(default=None, ge=0, le=23)
    frequency_minutes: Optional[int] = Field(default=None, ge=0, le=59)
    automation: Optional[AutomationRule] = None

    @field_validator("reminder_time")
    @classmethod
    def reminder_time_format(cls, v: Optional[str]) -> Optional[str]:
        return _validate_hh_mm(v)

    def to_updates(self) -> dict:
        """Column updates for the fields the caller actually sent."""
        sent = self.model_fields_set
        updates: dict = {}

        if "title" in sent and self.title is not None:
            updates["title"] = self.title.strip()
        if "description" in sent:
            updates["description"] = self.description
        if "status" in sent and self.status is not None:
            updates["status"] = self.status.value
        if "due_at" in sent:
            updates["due_at"] = self.due_at
        if "reminder_time" in sent:
            updates["reminder_time_of_day"] = self.reminder_time
        if "frequency_hours" in sent or "frequency_minutes" in sent:
            updates["recurrence_duration"] = format_duration(
                self.frequency_hours, self.frequency_minutes
            )
        if "automation" in sent:
            updates["automation"] = self.automation

        return updates


class ReminderResponseRequest(BaseModel):
    """Yes/no answer to a reminder notification."""

    task_id: UUID
    completed: StrictBool
