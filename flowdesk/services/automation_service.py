"""Automation creation from free text and the scheduled sweep."""

from datetime import datetime
from typing import Optional

import structlog

from flowdesk.clock import local_now
from flowdesk.config import get_settings
from flowdesk.models.automation import SweepResult
from flowdesk.models.task import AutomationRule, Task
from flowdesk.scheduling.frequency import next_run_for, parse_frequency
from flowdesk.services.email_service import EmailService
from flowdesk.services.llm_service import LLMService
from flowdesk.services.task_service import AutomationClaim, TaskService

logger = structlog.get_logger(__name__)

AUTOMATION_SYSTEM_PROMPT = """You are a task automation assistant. Analyze the user's description of a repetitive process and return a JSON object with automation rules:
{
  "frequency": "How often the task should run (e.g., 'daily', 'weekly', 'monthly', 'every 3 days')",
  "description": "A plain English description of what this automation does (required)",
  "email_subject": "Optional email subject if this automation sends emails",
  "email_body": "Optional email body if this automation sends emails"
}

The frequency and description fields are required. Return valid JSON only."""


class AutomationService:
    """Creates automated tasks and fires the ones that are due."""

    def __init__(
        self,
        task_service: Optional[TaskService] = None,
        llm_service: Optional[LLMService] = None,
        email_service: Optional[EmailService] = None,
    ):
        self.task_service = task_service or TaskService()
        self.llm_service = llm_service or LLMService()
        self.email_service = email_service or EmailService()

    async def create_from_description(
        self,
        user_id: str,
        description: str,
        now: Optional[datetime] = None,
    ) -> tuple[Task, bool]:
        """Structure ``description`` into a rule and store it as a todo task.

        Returns the created task and whether its frequency was recognized
        (False means the daily fallback was applied).

        Raises:
            LLMError: if the description could not be structured
        """
        rule = await self.llm_service.generate_json(
            AUTOMATION_SYSTEM_PROMPT, description, AutomationRule
        )

        schedule = parse_frequency(rule.frequency)
        if not schedule.recognized:
            logger.warning(
                "automation_frequency_unrecognized",
                user_id=user_id,
                frequency=rule.frequency,
                fallback="daily",
            )

        next_run_at = next_run_for(schedule, now or local_now())
        task = await self.task_service.create_automation_task(user_id, rule, next_run_at)
        return task, schedule.recognized

    async def run_due_automations(self, now: Optional[datetime] = None) -> SweepResult:
        """Fire every automation whose ``next_run_at`` has passed.

        Items are independent: a failed email leaves that task's
        ``next_run_at`` untouched so the next sweep retries it, while the
        rest of the batch carries on. Each task is fired under a row lock
        held until it is advanced; tasks locked by a concurrent sweep are
        skipped.
        """
        settings = get_settings()
        now = now or local_now()
        tasks = await self.task_service.list_due_automations(
            now, settings.automation_batch_size
        )

        result = SweepResult(total=len(tasks))
        if not tasks:
            return result

        logger.info("automation_sweep_started", count=len(tasks))

        for task in tasks:
            try:
                async with self.task_service.claim_due_automation(task.id, now) as claim:
                    if claim is None:
                        result.skipped += 1
                        logger.info("automation_run_skipped", task_id=str(task.id))
                        continue
                    error = await self._fire(claim, now)
            except Exception as e:
                error = f"Error processing task {task.id}: {e}"

            if error:
                result.errors.append(error)
                logger.error("automation_run_failed", task_id=str(task.id), error=error)
            else:
                result.processed += 1

        logger.info(
            "automation_sweep_finished",
            processed=result.processed,
            total=result.total,
            skipped=result.skipped,
            failed=len(result.errors),
        )
        return result

    async def _fire(self, claim: AutomationClaim, now: datetime) -> Optional[str]:
        """Run one claimed automation. Returns an error message, or None on success."""
        task = claim.task
        rule = task.automation
        if rule is None:
            return f"Task {task.id} has no valid automation rule"

        if rule.sends_email:
            to_email = await self.task_service.get_user_email(task.user_id)
            if to_email:
                sent = await self.email_service.send_automation_email(
                    to_email, rule.email_subject, rule.email_body
                )
                if not sent:
                    return f"Failed to send email for task {task.id}"
            else:
                logger.warning("automation_email_skipped", task_id=str(task.id), reason="no_email")

        schedule = parse_frequency(rule.frequency)
        next_run_at = next_run_for(schedule, now)
        if not await claim.advance(next_run_at):
            return f"Failed to update task {task.id}"

        logger.info(
            "automation_run_advanced",
            task_id=str(task.id),
            next_run_at=next_run_at.isoformat(),
            frequency_recognized=schedule.recognized,
        )
        return None
