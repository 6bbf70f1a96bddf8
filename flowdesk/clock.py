"""Wall-clock access for the adapters around the scheduling core."""

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from flowdesk.config import get_settings

logger = structlog.get_logger(__name__)


def local_timezone() -> tzinfo:
    """The configured local timezone, UTC when the name is unknown."""
    name = get_settings().local_timezone
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("local_timezone_invalid", timezone=name)
        return ZoneInfo("UTC")


def local_now() -> datetime:
    """Current time as an aware datetime in the local timezone."""
    return datetime.now(local_timezone())


def to_local(value: datetime) -> datetime:
    """Express an aware datetime in local time; naive values are already local."""
    if value.tzinfo is None:
        return value
    return value.astimezone(local_timezone())
