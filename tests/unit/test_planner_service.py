"""Unit tests for PlannerService."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID, uuid4

import pytest

from conftest import make_slot, make_task
from flowdesk.services.planner_service import PlannerService


@pytest.fixture
def task_service():
    return MagicMock(
        list_tasks=AsyncMock(return_value=[]),
        list_todo_tasks=AsyncMock(return_value=[]),
    )


@pytest.fixture
def service(task_service):
    return PlannerService(task_service=task_service)


def slot_row(slot) -> dict:
    return slot.model_dump()


class TestAssignTask:
    @pytest.mark.asyncio
    async def test_upserts_and_resets_done(self, service, user_id, mock_pool):
        pool, conn = mock_pool
        task = make_task(title="Write report")
        conn.fetchrow.return_value = slot_row(
            make_slot(
                "2024-05-20T10:00:00",
                user_id=UUID(user_id),
                task_id=task.id,
                task_title=task.title,
            )
        )

        with patch("flowdesk.services.planner_service.get_pool", return_value=pool):
            slot = await service.assign_task(user_id, "2024-05-20T10:00:00", "hour", task)

        query, *values = conn.fetchrow.call_args[0]
        assert "ON CONFLICT (user_id, period_key, time_scale)" in query
        assert "is_done = FALSE" in query.split("DO UPDATE")[1]
        assert values[1:] == [UUID(user_id), "2024-05-20T10:00:00", "hour", task.title, task.id]
        assert slot.task_title == "Write report"
        assert slot.is_done is False

    @pytest.mark.asyncio
    async def test_replacing_occupant_is_one_statement(self, service, user_id, mock_pool):
        pool, conn = mock_pool
        conn.fetchrow.return_value = slot_row(make_slot("2024-05-20T10:00:00"))

        with patch("flowdesk.services.planner_service.get_pool", return_value=pool):
            await service.assign_task(user_id, "2024-05-20T10:00:00", "hour", make_task(title="A"))
            await service.assign_task(user_id, "2024-05-20T10:00:00", "hour", make_task(title="B"))

        assert conn.fetchrow.await_count == 2
        conn.execute.assert_not_called()


class TestToggleAndRemove:
    @pytest.mark.asyncio
    async def test_toggle(self, service, user_id, mock_pool):
        pool, conn = mock_pool
        conn.fetchrow.return_value = slot_row(make_slot("2024-05-20T10:00:00", is_done=True))

        with patch("flowdesk.services.planner_service.get_pool", return_value=pool):
            slot = await service.toggle_done(str(uuid4()), user_id)

        assert "SET is_done = NOT is_done" in conn.fetchrow.call_args[0][0]
        assert slot.is_done is True

    @pytest.mark.asyncio
    async def test_toggle_missing(self, service, user_id, mock_pool):
        pool, conn = mock_pool
        conn.fetchrow.return_value = None

        with patch("flowdesk.services.planner_service.get_pool", return_value=pool):
            assert await service.toggle_done(str(uuid4()), user_id) is None

    @pytest.mark.asyncio
    async def test_remove(self, service, user_id, mock_pool):
        pool, conn = mock_pool
        conn.execute.return_value = "DELETE 1"

        with patch("flowdesk.services.planner_service.get_pool", return_value=pool):
            assert await service.remove_slot(str(uuid4()), user_id) is True


class TestViews:
    @pytest.mark.asyncio
    async def test_week_window_queries_hourly_range(self, service, user_id, mock_pool):
        pool, conn = mock_pool
        conn.fetch.return_value = [slot_row(make_slot("2024-05-08T10:00:00"))]
        now = datetime(2024, 5, 8, 13)

        with patch("flowdesk.services.planner_service.get_pool", return_value=pool):
            cells = await service.get_window(user_id, "week", now, now=now)

        args = conn.fetch.call_args[0]
        assert args[2:] == ("hour", "2024-05-05T00:00:00", "2024-05-11T23:00:00")
        assert len(cells) == 168
        assert sum(1 for c in cells if c.slot) == 1

    @pytest.mark.asyncio
    async def test_month_window_queries_daily_slots(self, service, user_id, mock_pool):
        pool, conn = mock_pool
        now = datetime(2024, 5, 20)

        with patch("flowdesk.services.planner_service.get_pool", return_value=pool):
            cells = await service.get_window(user_id, "month", now, now=now)

        assert conn.fetch.call_args[0][2] == "day"
        assert len(cells) == 35

    @pytest.mark.asyncio
    async def test_live_board(self, service, task_service, user_id, mock_pool):
        pool, conn = mock_pool
        now = datetime(2024, 5, 8, 10, 15)
        placed = make_task(title="placed")
        free = make_task(title="free")
        upcoming = make_slot("2024-05-08T12:00:00", task_id=placed.id)
        overdue = make_slot("2024-05-08T08:00:00")
        conn.fetch.side_effect = [[slot_row(upcoming)], [slot_row(overdue)]]
        task_service.list_todo_tasks.return_value = [placed, free]

        with patch("flowdesk.services.planner_service.get_pool", return_value=pool):
            cells, unassigned = await service.get_live_board(user_id, now=now)

        range_args = conn.fetch.call_args_list[0][0]
        assert range_args[3:] == ("2024-05-08T11:00:00", "2024-05-08T18:00:00")
        carried_args = conn.fetch.call_args_list[1][0]
        assert carried_args[2] == "2024-05-08T10:00:00"
        assert cells[0].period_key == "2024-05-08T08:00:00"
        assert len(cells) == 9
        assert unassigned == [free]

    @pytest.mark.asyncio
    async def test_completion_stats(self, service, user_id, mock_pool):
        pool, conn = mock_pool
        conn.fetch.return_value = [
            slot_row(make_slot("2024-05-08T10:00:00", is_done=True)),
            slot_row(make_slot("2024-05-08T11:00:00")),
            slot_row(make_slot("2024-05-08T12:00:00", is_done=True)),
        ]

        with patch("flowdesk.services.planner_service.get_pool", return_value=pool):
            stats = await service.get_completion_stats(user_id, now=datetime(2024, 5, 31, 10))

        assert conn.fetch.call_args[0][2] == "2024-05-01T10:00:00"
        assert (stats.total, stats.completed, stats.percentage) == (3, 2, 67)
