"""Automation API endpoints: creation from free text and the cron sweep."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from flowdesk.api.dependencies import get_current_user, require_cron_secret
from flowdesk.api.tasks import format_task
from flowdesk.models.automation import AutomateTaskRequest
from flowdesk.models.user import AuthenticatedUser
from flowdesk.services.automation_service import AutomationService
from flowdesk.services.llm_service import LLMError

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Automations"])


@router.post("/automate-task")
async def automate_task(
    body: AutomateTaskRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Turn a description of a repetitive process into an automated task."""
    service = AutomationService()
    try:
        task, recognized = await service.create_from_description(
            str(current_user.id), body.description
        )
    except LLMError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"AI processing failed: {e}",
        )

    return {
        "ok": True,
        "automation": task.automation.model_dump() if task.automation else None,
        "task": format_task(task),
        "next_run_at": task.next_run_at.isoformat() if task.next_run_at else None,
        "frequency_recognized": recognized,
    }


@router.get("/cron/run-automations", dependencies=[Depends(require_cron_secret)])
async def run_automations() -> dict:
    """Fire every due automation once."""
    service = AutomationService()
    result = await service.run_due_automations()

    response = {"ok": True, "processed": result.processed, "total": result.total}
    if result.skipped:
        response["skipped"] = result.skipped
    if result.errors:
        response["errors"] = result.errors
    return response
