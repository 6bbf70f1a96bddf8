"""Task and reminder API endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from flowdesk.api.dependencies import get_current_user
from flowdesk.config import get_settings
from flowdesk.models.task import (
    ReminderResponseRequest,
    Task,
    TaskCreateRequest,
    TaskUpdateRequest,
)
from flowdesk.models.user import AuthenticatedUser
from flowdesk.services.reminder_service import ReminderService
from flowdesk.services.task_service import TaskService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _iso(value: object) -> object:
    return value.isoformat() if isinstance(value, datetime) else value


def format_task(task: Task) -> dict:
    """Format a task for API response."""
    return {
        "id": str(task.id),
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "due_at": _iso(task.due_at),
        "reminder_time": task.reminder_time_of_day,
        "recurrence_duration": task.recurrence_duration,
        "last_reminder_sent_at": _iso(task.last_reminder_sent_at),
        "automation": task.automation.model_dump() if task.automation else None,
        "next_run_at": _iso(task.next_run_at),
        "created_at": _iso(task.created_at),
    }


@router.get("")
async def list_tasks(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """List the caller's tasks, newest first."""
    service = TaskService()
    tasks = await service.list_tasks(str(current_user.id))
    return {"tasks": [format_task(t) for t in tasks]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    body: TaskCreateRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Create a task, optionally with a daily reminder and a recurrence."""
    service = TaskService()
    task = await service.create_task(str(current_user.id), body)
    return {"ok": True, "task": format_task(task)}


@router.get("/reminders")
async def list_due_reminders(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Reminders due right now. Safe to poll: nothing is written."""
    service = ReminderService()
    due = await service.get_due_reminders(str(current_user.id))
    return {
        "reminders": [format_task(t) for t in due],
        "poll_interval_seconds": get_settings().reminder_poll_interval_seconds,
    }


@router.post("/reminders/respond")
async def respond_to_reminder(
    body: ReminderResponseRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Answer a reminder: completed marks the task done, otherwise in progress."""
    service = ReminderService()
    new_status = await service.respond(
        str(body.task_id), str(current_user.id), body.completed
    )

    if new_status is None:
        raise HTTPException(status_code=404, detail="Task not found")

    return {"ok": True, "status": new_status}


@router.patch("/{task_id}")
async def update_task(
    task_id: UUID,
    body: TaskUpdateRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Partially update a task the caller owns."""
    service = TaskService()
    task = await service.update_task(
        str(task_id), str(current_user.id), body.to_updates()
    )

    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")

    return {"ok": True, "task": format_task(task)}


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
    """Delete a task. Planner slots pointing at it are kept."""
    service = TaskService()
    if not await service.delete_task(str(task_id), str(current_user.id)):
        raise HTTPException(status_code=404, detail="Task not found")
