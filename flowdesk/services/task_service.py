"""Task store access: CRUD, reminder candidates and automation bookkeeping."""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional
from uuid import UUID, uuid4

import structlog
from pydantic import ValidationError

from flowdesk.database import get_pool
from flowdesk.models.task import AutomationRule, Task, TaskCreateRequest

logger = structlog.get_logger(__name__)

TASK_COLUMNS = """
    id, user_id, title, description, status, due_at, reminder_time_of_day,
    recurrence_duration, last_reminder_sent_at, automation, next_run_at, created_at
"""

# Columns a PATCH may touch
UPDATABLE_COLUMNS = (
    "title",
    "description",
    "status",
    "due_at",
    "reminder_time_of_day",
    "recurrence_duration",
    "automation",
)


def _load_automation(raw: Any, task_id: Any) -> Optional[AutomationRule]:
    if raw is None:
        return None
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
        return AutomationRule.model_validate(data)
    except (ValueError, TypeError, ValidationError) as e:
        logger.warning("task_automation_invalid", task_id=str(task_id), error=str(e))
        return None


def row_to_task(row: Any) -> Optional[Task]:
    """Convert a store row to a Task, or None if the row is unusable."""
    data = dict(row)
    data["automation"] = _load_automation(data.get("automation"), data.get("id"))
    try:
        return Task(**data)
    except ValidationError as e:
        logger.warning("task_row_skipped", task_id=str(data.get("id")), error=str(e))
        return None


def rows_to_tasks(rows: list) -> list[Task]:
    tasks = []
    for row in rows:
        task = row_to_task(row)
        if task is not None:
            tasks.append(task)
    return tasks


def _dump_automation(rule: Optional[AutomationRule]) -> Optional[str]:
    if rule is None:
        return None
    return json.dumps(rule.model_dump(exclude_none=True))


class AutomationClaim:
    """A due automation row locked by the current sweep."""

    def __init__(self, conn: Any, task: Task):
        self._conn = conn
        self.task = task

    async def advance(self, next_run_at: datetime) -> bool:
        result = await self._conn.execute(
            """
            UPDATE tasks
            SET next_run_at = $1, updated_at = NOW()
            WHERE id = $2
            """,
            next_run_at,
            self.task.id,
        )
        return result == "UPDATE 1"


class TaskService:
    """Task CRUD scoped to the owning user."""

    async def create_task(self, user_id: str, request: TaskCreateRequest) -> Task:
        """Insert a task from a validated create request."""
        pool = await get_pool()
        task_id = uuid4()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO tasks
                (id, user_id, title, description, status, due_at,
                 reminder_time_of_day, recurrence_duration)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                RETURNING {TASK_COLUMNS}
                """,
                task_id,
                UUID(user_id),
                request.title,
                request.description,
                request.status.value,
                request.due_at,
                request.reminder_time,
                request.recurrence_duration(),
            )

        logger.info(
            "task_created",
            task_id=str(task_id),
            user_id=user_id,
            has_reminder=request.reminder_time is not None,
        )
        return row_to_task(row)

    async def create_automation_task(
        self, user_id: str, rule: AutomationRule, next_run_at: datetime
    ) -> Task:
        """Insert a todo task carrying an automation rule."""
        pool = await get_pool()
        task_id = uuid4()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO tasks (id, user_id, title, status, automation, next_run_at)
                VALUES ($1, $2, $3, 'todo', $4::jsonb, $5)
                RETURNING {TASK_COLUMNS}
                """,
                task_id,
                UUID(user_id),
                rule.description,
                _dump_automation(rule),
                next_run_at,
            )

        logger.info(
            "automation_task_created",
            task_id=str(task_id),
            user_id=user_id,
            frequency=rule.frequency,
            next_run_at=next_run_at.isoformat(),
        )
        return row_to_task(row)

    async def list_tasks(self, user_id: str) -> list[Task]:
        """All tasks of a user, newest first."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {TASK_COLUMNS}
                FROM tasks
                WHERE user_id = $1
                ORDER BY created_at DESC
                """,
                UUID(user_id),
            )

        return rows_to_tasks(rows)

    async def list_todo_tasks(self, user_id: str) -> list[Task]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {TASK_COLUMNS}
                FROM tasks
                WHERE user_id = $1 AND status = 'todo'
                ORDER BY created_at DESC
                """,
                UUID(user_id),
            )

        return rows_to_tasks(rows)

    async def get_task(self, task_id: str, user_id: str) -> Optional[Task]:
        """Get a single task by ID, scoped to user."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {TASK_COLUMNS}
                FROM tasks
                WHERE id = $1 AND user_id = $2
                """,
                UUID(task_id),
                UUID(user_id),
            )

        if row is None:
            return None
        return row_to_task(row)

    async def update_task(
        self, task_id: str, user_id: str, updates: dict
    ) -> Optional[Task]:
        """Apply column updates to a task the user owns.

        Returns the updated task, or None if it does not exist for this user.
        """
        columns = [c for c in UPDATABLE_COLUMNS if c in updates]
        if not columns:
            return await self.get_task(task_id, user_id)

        assignments = []
        values = []
        for index, column in enumerate(columns, start=1):
            value = updates[column]
            if column == "automation":
                assignments.append(f"{column} = ${index}::jsonb")
                value = _dump_automation(value)
            else:
                assignments.append(f"{column} = ${index}")
            values.append(value)

        id_param = len(values) + 1
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE tasks
                SET {", ".join(assignments)}, updated_at = NOW()
                WHERE id = ${id_param} AND user_id = ${id_param + 1}
                RETURNING {TASK_COLUMNS}
                """,
                *values,
                UUID(task_id),
                UUID(user_id),
            )

        if row is None:
            return None

        logger.info("task_updated", task_id=task_id, user_id=user_id, fields=columns)
        return row_to_task(row)

    async def delete_task(self, task_id: str, user_id: str) -> bool:
        """Delete a task. Planner slots referencing it are left in place."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM tasks WHERE id = $1 AND user_id = $2",
                UUID(task_id),
                UUID(user_id),
            )

        deleted = result == "DELETE 1"
        if deleted:
            logger.info("task_deleted", task_id=task_id, user_id=user_id)
        return deleted

    async def list_reminder_candidates(self, user_id: str) -> list[Task]:
        """Not-done tasks that carry a reminder time, in reminder time order."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {TASK_COLUMNS}
                FROM tasks
                WHERE user_id = $1
                AND reminder_time_of_day IS NOT NULL
                AND status <> 'done'
                ORDER BY reminder_time_of_day ASC, created_at ASC
                """,
                UUID(user_id),
            )

        return rows_to_tasks(rows)

    async def record_reminder_response(
        self,
        task_id: str,
        user_id: str,
        new_status: str,
        responded_at: Optional[datetime] = None,
    ) -> bool:
        """Store the answer to a reminder and stamp ``last_reminder_sent_at``."""
        responded_at = responded_at or datetime.now(timezone.utc)
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE tasks
                SET status = $1, last_reminder_sent_at = $2, updated_at = NOW()
                WHERE id = $3 AND user_id = $4
                """,
                new_status,
                responded_at,
                UUID(task_id),
                UUID(user_id),
            )

        updated = result == "UPDATE 1"
        if updated:
            logger.info(
                "reminder_response_recorded",
                task_id=task_id,
                user_id=user_id,
                status=new_status,
            )
        return updated

    async def list_due_automations(self, now: datetime, limit: int) -> list[Task]:
        """Automated, not-done tasks whose ``next_run_at`` has passed."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {TASK_COLUMNS}
                FROM tasks
                WHERE automation IS NOT NULL
                AND next_run_at IS NOT NULL
                AND next_run_at <= $1
                AND status <> 'done'
                ORDER BY next_run_at ASC
                LIMIT $2
                """,
                now,
                limit,
            )

        return rows_to_tasks(rows)

    @asynccontextmanager
    async def claim_due_automation(
        self, task_id: UUID, now: datetime
    ) -> AsyncIterator[Optional[AutomationClaim]]:
        """Lock one due automation for the duration of the block.

        Yields None when another worker holds the row, or when the task is no
        longer due because someone else already advanced it. The lock is
        released when the block exits; an exception rolls back the advance.
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    f"""
                    SELECT {TASK_COLUMNS}
                    FROM tasks
                    WHERE id = $1
                    AND automation IS NOT NULL
                    AND next_run_at IS NOT NULL
                    AND next_run_at <= $2
                    AND status <> 'done'
                    FOR UPDATE SKIP LOCKED
                    """,
                    task_id,
                    now,
                )
                task = row_to_task(row) if row else None
                yield AutomationClaim(conn, task) if task else None

    async def get_user_email(self, user_id: UUID) -> Optional[str]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT email FROM users WHERE id = $1",
                user_id,
            )
