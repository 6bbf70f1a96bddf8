"""Reminder polling and yes/no responses around the due-check core."""

from datetime import datetime
from typing import Optional

import structlog

from flowdesk.clock import local_now, local_timezone
from flowdesk.models.task import Task, TaskStatus
from flowdesk.scheduling.reminders import due_reminders, time_to_minutes
from flowdesk.services.task_service import TaskService

logger = structlog.get_logger(__name__)


class ReminderService:
    """Fetches reminder candidates and records reminder answers."""

    def __init__(self, task_service: Optional[TaskService] = None):
        self.task_service = task_service or TaskService()

    async def get_due_reminders(
        self, user_id: str, now: Optional[datetime] = None
    ) -> list[Task]:
        """Tasks of ``user_id`` whose reminder is due at ``now``. Read-only."""
        now = now or local_now()
        candidates = await self.task_service.list_reminder_candidates(user_id)
        for task in candidates:
            if time_to_minutes(task.reminder_time_of_day) is None:
                logger.warning(
                    "reminder_task_skipped",
                    task_id=str(task.id),
                    reminder_time=task.reminder_time_of_day,
                )
        due = due_reminders(candidates, now, local_timezone())

        logger.debug(
            "reminders_checked",
            user_id=user_id,
            candidates=len(candidates),
            due=len(due),
        )
        return due

    async def respond(
        self,
        task_id: str,
        user_id: str,
        completed: bool,
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        """Record an answer: done when completed, otherwise in progress.

        Returns the new status, or None when the task does not exist for
        this user.
        """
        new_status = TaskStatus.DONE if completed else TaskStatus.IN_PROGRESS
        updated = await self.task_service.record_reminder_response(
            task_id,
            user_id,
            new_status.value,
            responded_at=now or local_now(),
        )
        if not updated:
            return None
        return new_status.value
