"""API package exports."""

from flowdesk.api.automations import router as automations_router
from flowdesk.api.middleware import CorrelationIdMiddleware
from flowdesk.api.planner import router as planner_router
from flowdesk.api.tasks import router as tasks_router

__all__ = [
    "automations_router",
    "planner_router",
    "tasks_router",
    "CorrelationIdMiddleware",
]
