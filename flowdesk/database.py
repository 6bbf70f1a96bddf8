"""asyncpg pool lifecycle and the bundled schema migrations."""

from pathlib import Path
from typing import Optional

import asyncpg
import structlog

from flowdesk.config import get_settings

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

# Shared by every service; created in the app lifespan
_pool: Optional[asyncpg.Pool] = None


class DatabaseUnavailableError(RuntimeError):
    """The pool was used before init_database() or after close_database()."""


async def get_pool() -> asyncpg.Pool:
    """The shared pool.

    Raises:
        DatabaseUnavailableError: if init_database() has not run
    """
    if _pool is None:
        raise DatabaseUnavailableError("Database pool is not initialized")
    return _pool


async def init_database() -> asyncpg.Pool:
    """Create the shared pool, sized from settings. A second call is a no-op."""
    global _pool

    if _pool is not None:
        return _pool

    settings = get_settings()
    sizing = {
        "min_size": settings.db_pool_min_size,
        "max_size": settings.db_pool_max_size,
        "command_timeout": settings.db_command_timeout_seconds,
    }

    try:
        _pool = await asyncpg.create_pool(settings.postgres_url, **sizing)
    except Exception as e:
        logger.error("database_pool_creation_failed", error=str(e))
        raise

    logger.info("database_pool_created", **sizing)
    return _pool


async def close_database() -> None:
    global _pool

    pool, _pool = _pool, None
    if pool is None:
        return
    await pool.close()
    logger.info("database_pool_closed")


def migration_files(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    """SQL scripts in ``directory`` in the order they apply (by file name)."""
    if not directory.is_dir():
        return []
    return sorted(directory.glob("*.sql"))


async def run_migrations(directory: Path = MIGRATIONS_DIR) -> int:
    """Apply every script, each in its own transaction.

    Scripts are written with IF NOT EXISTS guards, so this runs on every
    startup. Returns how many scripts were applied.
    """
    scripts = migration_files(directory)
    if not scripts:
        logger.warning("migrations_not_found", path=str(directory))
        return 0

    pool = await get_pool()
    async with pool.acquire() as conn:
        for script in scripts:
            try:
                async with conn.transaction():
                    await conn.execute(script.read_text())
            except Exception as e:
                logger.error("migration_failed", file=script.name, error=str(e))
                raise
            logger.info("migration_applied", file=script.name)

    return len(scripts)


async def health_check() -> bool:
    """True when the pool exists and answers ``SELECT 1``."""
    if _pool is None:
        return False

    try:
        async with _pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return False
