"""Services package exports."""

from flowdesk.services.logging_service import configure_logging

__all__ = [
    "configure_logging",
]
