"""Planner slot store access and view assembly."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from flowdesk.clock import local_now
from flowdesk.database import get_pool
from flowdesk.models.planner import CompletionStats, GridCell, PlannerSlot
from flowdesk.models.task import Task
from flowdesk.scheduling.periods import hour_key, visible_range
from flowdesk.scheduling.planner import (
    completion_stats,
    live_hour_keys,
    live_planner_window,
    merge_slots,
    resolve_query_keys,
    stats_since_key,
    unassigned_tasks,
)
from flowdesk.services.task_service import TaskService

logger = structlog.get_logger(__name__)

SLOT_COLUMNS = "id, user_id, period_key, time_scale, task_title, task_id, is_done, created_at"


def row_to_slot(row: Any) -> PlannerSlot:
    return PlannerSlot(**dict(row))


class PlannerService:
    """Reads and writes planner slots for one user at a time."""

    def __init__(self, task_service: Optional[TaskService] = None):
        self.task_service = task_service or TaskService()

    async def list_slots_in_range(
        self, user_id: str, time_scale: str, start_key: str, end_key: str
    ) -> list[PlannerSlot]:
        """Slots of one scale whose key is within ``[start_key, end_key]``."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {SLOT_COLUMNS}
                FROM planner_slots
                WHERE user_id = $1 AND time_scale = $2
                AND period_key >= $3 AND period_key <= $4
                ORDER BY period_key ASC
                """,
                UUID(user_id),
                time_scale,
                start_key,
                end_key,
            )

        return [row_to_slot(row) for row in rows]

    async def list_incomplete_hourly_slots(
        self, user_id: str, up_to_key: str
    ) -> list[PlannerSlot]:
        """Hourly slots not yet done whose hour is at or before ``up_to_key``."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {SLOT_COLUMNS}
                FROM planner_slots
                WHERE user_id = $1 AND time_scale = 'hour'
                AND is_done = FALSE AND period_key <= $2
                ORDER BY period_key ASC
                """,
                UUID(user_id),
                up_to_key,
            )

        return [row_to_slot(row) for row in rows]

    async def get_window(
        self,
        user_id: str,
        scale: str,
        anchor: datetime,
        now: Optional[datetime] = None,
    ) -> list[GridCell]:
        """Calendar view at ``scale`` containing ``anchor``."""
        query = resolve_query_keys(scale, visible_range(anchor, scale))
        slots = await self.list_slots_in_range(
            user_id, query.query_scale, query.start_key, query.end_key
        )
        tasks = await self.task_service.list_tasks(user_id)
        return merge_slots(query, slots, tasks, now or local_now())

    async def get_live_board(
        self, user_id: str, now: Optional[datetime] = None
    ) -> tuple[list[GridCell], list[Task]]:
        """The next-hours board plus the todo tasks not yet placed on it."""
        now = now or local_now()
        keys = live_hour_keys(now)
        upcoming = await self.list_slots_in_range(user_id, "hour", keys[0], keys[-1])
        carried = await self.list_incomplete_hourly_slots(user_id, hour_key(now))
        forward = set(keys)
        slots = upcoming + [s for s in carried if s.period_key not in forward]

        tasks = await self.task_service.list_todo_tasks(user_id)
        cells = live_planner_window(slots, now, tasks)
        return cells, unassigned_tasks(tasks, slots)

    async def assign_task(
        self, user_id: str, period_key: str, time_scale: str, task: Task
    ) -> PlannerSlot:
        """Place ``task`` in a bucket, replacing whatever was there.

        A single upsert on the (user, key, scale) unique constraint: an
        occupied slot gets the new title and task and is reset to not done.
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO planner_slots
                (id, user_id, period_key, time_scale, task_title, task_id, is_done)
                VALUES ($1, $2, $3, $4, $5, $6, FALSE)
                ON CONFLICT (user_id, period_key, time_scale)
                DO UPDATE SET task_title = EXCLUDED.task_title,
                              task_id = EXCLUDED.task_id,
                              is_done = FALSE
                RETURNING {SLOT_COLUMNS}
                """,
                uuid4(),
                UUID(user_id),
                period_key,
                time_scale,
                task.title,
                task.id,
            )

        logger.info(
            "planner_slot_assigned",
            user_id=user_id,
            period_key=period_key,
            time_scale=time_scale,
            task_id=str(task.id),
        )
        return row_to_slot(row)

    async def toggle_done(self, slot_id: str, user_id: str) -> Optional[PlannerSlot]:
        """Flip ``is_done`` on one slot. The referenced task is not touched."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE planner_slots
                SET is_done = NOT is_done
                WHERE id = $1 AND user_id = $2
                RETURNING {SLOT_COLUMNS}
                """,
                UUID(slot_id),
                UUID(user_id),
            )

        if row is None:
            return None

        slot = row_to_slot(row)
        logger.info("planner_slot_toggled", slot_id=slot_id, is_done=slot.is_done)
        return slot

    async def remove_slot(self, slot_id: str, user_id: str) -> bool:
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM planner_slots WHERE id = $1 AND user_id = $2",
                UUID(slot_id),
                UUID(user_id),
            )

        removed = result == "DELETE 1"
        if removed:
            logger.info("planner_slot_removed", slot_id=slot_id, user_id=user_id)
        return removed

    async def get_completion_stats(
        self, user_id: str, now: Optional[datetime] = None
    ) -> CompletionStats:
        """Completion over hourly slots of the trailing 30 days."""
        since_key = stats_since_key(now or local_now())
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {SLOT_COLUMNS}
                FROM planner_slots
                WHERE user_id = $1 AND time_scale = 'hour' AND period_key >= $2
                """,
                UUID(user_id),
                since_key,
            )

        return completion_stats(row_to_slot(row) for row in rows)
