"""Planner API endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from flowdesk.api.dependencies import get_current_user
from flowdesk.clock import local_now, to_local
from flowdesk.models.planner import AssignSlotRequest, GridCell, PlannerSlot, TimeScale
from flowdesk.models.task import Task
from flowdesk.models.user import AuthenticatedUser
from flowdesk.scheduling.periods import normalize_period_key, period_key
from flowdesk.services.planner_service import PlannerService
from flowdesk.services.task_service import TaskService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/planner", tags=["Planner"])


def format_slot(slot: PlannerSlot) -> dict:
    """Format a slot for API response."""
    return {
        "id": str(slot.id) if slot.id else None,
        "period_key": slot.period_key,
        "time_scale": slot.time_scale,
        "task_title": slot.task_title,
        "task_id": str(slot.task_id) if slot.task_id else None,
        "is_done": slot.is_done,
        "created_at": slot.created_at.isoformat() if slot.created_at else None,
    }


def _format_task_summary(task: Task) -> dict:
    return {"id": str(task.id), "title": task.title, "status": task.status}


def format_cell(cell: GridCell) -> dict:
    return {
        "period_key": cell.period_key,
        "start": cell.start.isoformat(),
        "is_past": cell.is_past,
        "slot": format_slot(cell.slot) if cell.slot else None,
        "task": _format_task_summary(cell.task) if cell.task else None,
    }


@router.get("")
async def get_planner_window(
    scale: TimeScale = Query(default=TimeScale.WEEK),
    anchor: datetime | None = Query(default=None, description="Defaults to now"),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Calendar view (day, week, month or year) around ``anchor``."""
    service = PlannerService()
    now = local_now()
    cells = await service.get_window(
        str(current_user.id), scale.value, to_local(anchor) if anchor else now, now=now
    )
    return {"scale": scale.value, "cells": [format_cell(c) for c in cells]}


@router.get("/live")
async def get_live_planner(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Next hours with unfinished earlier slots carried in."""
    service = PlannerService()
    cells, unassigned = await service.get_live_board(str(current_user.id))
    return {
        "cells": [format_cell(c) for c in cells],
        "unassigned_tasks": [_format_task_summary(t) for t in unassigned],
    }


@router.get("/stats")
async def get_planner_stats(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Completion statistics over the last 30 days."""
    service = PlannerService()
    stats = await service.get_completion_stats(str(current_user.id))
    return stats.model_dump()


@router.post("/slots")
async def assign_slot(
    body: AssignSlotRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Assign a task to a bucket, replacing the current occupant."""
    scale = body.time_scale.value
    try:
        if body.start is not None:
            key = period_key(to_local(body.start), scale)
        else:
            key = normalize_period_key(body.period_key, scale)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user_id = str(current_user.id)
    task = await TaskService().get_task(str(body.task_id), user_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")

    slot = await PlannerService().assign_task(user_id, key, scale, task)
    return {"ok": True, "slot": format_slot(slot)}


@router.patch("/slots/{slot_id}/toggle")
async def toggle_slot(
    slot_id: UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Flip a slot between done and not done."""
    slot = await PlannerService().toggle_done(str(slot_id), str(current_user.id))
    if slot is None:
        raise HTTPException(status_code=404, detail="Slot not found")
    return {"ok": True, "slot": format_slot(slot)}


@router.delete("/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_slot(
    slot_id: UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
    """Remove a slot. The referenced task is left alone."""
    if not await PlannerService().remove_slot(str(slot_id), str(current_user.id)):
        raise HTTPException(status_code=404, detail="Slot not found")
