"""structlog setup: one JSON object per line on stdout, credentials masked."""

import logging
import sys
from typing import Any, Dict

import structlog

REDACTED = "REDACTED"

# Matched as substrings of the lower-cased field name
SENSITIVE_KEYS = (
    "api_key",
    "authorization",
    "secret",
    "password",
    "token",
    "dsn",
    "postgres_url",
)


def _is_sensitive(key: str) -> bool:
    key = key.lower()
    return any(fragment in key for fragment in SENSITIVE_KEYS)


def redact_sensitive(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Replace the value of every credential-like field with ``REDACTED``.

    Catches LLM keys, Authorization headers, the JWT and cron secrets, SMTP
    passwords and database connection strings.
    """
    return {
        key: REDACTED if _is_sensitive(key) else value
        for key, value in event_dict.items()
    }


def build_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_sensitive,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def _resolve_level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog (and stdlib logging) to write JSON to stdout.

    Request handlers bind ``correlation_id`` through structlog contextvars,
    so it appears on every line logged while serving that request. Unknown
    level names fall back to INFO.
    """
    level = _resolve_level(log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=build_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
