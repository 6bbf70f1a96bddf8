"""Background loop that runs the automation sweep on an interval."""

import asyncio
from typing import Optional

import structlog

from flowdesk.config import get_settings
from flowdesk.services.automation_service import AutomationService

logger = structlog.get_logger(__name__)


class SchedulerService:
    """Polls for due automations and fires them."""

    def __init__(self, automation_service: Optional[AutomationService] = None):
        self.automation_service = automation_service or AutomationService()
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start the scheduler loop as an asyncio background task."""
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info("scheduler_started")

    async def stop(self):
        """Stop the scheduler loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("scheduler_stopped")

    async def _poll_loop(self):
        """Main scheduler loop: sweep, then sleep for the configured interval."""
        interval = get_settings().automation_poll_interval_seconds

        while self._running:
            try:
                await self._poll_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("scheduler_poll_error", error=str(e))

            try:
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break

    async def _poll_once(self):
        """Run a single automation sweep."""
        result = await self.automation_service.run_due_automations()
        if result.total:
            logger.info(
                "scheduler_sweep_complete",
                processed=result.processed,
                total=result.total,
            )
        return result
