# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Async PostgreSQL pool for the job store
# PURPOSE: Open, share and close the psycopg connection pool
# CREATED: 03 OCT 2026
# ============================================================================
"""
Database Connection Pool

Only opened when the job store backend is "postgres". Settings come from
DatabaseDefaults (DATABASE_URL, or the POSTGRES_* variables).

Usage:
    from repositories.database import init_pool

    pool = await init_pool()
    async with pool.connection() as conn:
        await conn.execute("SELECT 1")
"""

import logging
from typing import Optional

import psycopg
from psycopg import sql as psycopg_sql
from psycopg.conninfo import conninfo_to_dict, make_conninfo
from psycopg_pool import AsyncConnectionPool

from core.config import DatabaseDefaults, get_defaults

logger = logging.getLogger(__name__)

_pool: Optional[AsyncConnectionPool] = None


def get_connection_string(settings: Optional[DatabaseDefaults] = None) -> str:
    """
    Build the libpq connection string.

    Args:
        settings: Connection settings (defaults to environment)
    """
    settings = settings or DatabaseDefaults.from_env()
    if settings.url:
        return settings.url
    return make_conninfo(
        host=settings.host,
        port=settings.port,
        dbname=settings.dbname,
        user=settings.user,
        password=settings.password or None,
        sslmode=settings.sslmode,
    )


def mask_connection_string(conninfo: str) -> str:
    """Connection string without the password, for logs and script output."""
    try:
        params = conninfo_to_dict(conninfo)
    except psycopg.ProgrammingError:
        return "<unparseable connection string>"
    params.pop("password", None)
    return make_conninfo(**params)


async def init_pool(
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
    connection_string: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Open the global pool (idempotent).

    Args:
        min_size: Minimum connections (default POSTGRES_POOL_MIN)
        max_size: Maximum connections (default POSTGRES_POOL_MAX)
        connection_string: Override the environment settings
    """
    global _pool

    if _pool is not None:
        return _pool

    settings = DatabaseDefaults.from_env()
    conninfo = connection_string or get_connection_string(settings)
    min_size = min_size or settings.pool_min_size
    max_size = max_size or settings.pool_max_size

    pool = AsyncConnectionPool(conninfo=conninfo, min_size=min_size, max_size=max_size, open=False)
    await pool.open()
    _pool = pool

    logger.info(
        f"Connection pool opened to {mask_connection_string(conninfo)} "
        f"(min={min_size}, max={max_size})"
    )
    return _pool


async def get_pool() -> AsyncConnectionPool:
    """The global pool, opened on first use."""
    return _pool if _pool is not None else await init_pool()


async def close_pool() -> None:
    global _pool

    if _pool is None:
        return
    pool, _pool = _pool, None
    await pool.close()
    logger.info("Connection pool closed")


# ============================================================================
# TABLE IDENTIFIERS
# ============================================================================

SCHEMA = get_defaults().store.schema

TABLE_MONITORING_JOBS = psycopg_sql.Identifier(SCHEMA, "monitoring_jobs")


__all__ = [
    "get_connection_string",
    "mask_connection_string",
    "init_pool",
    "get_pool",
    "close_pool",
    "SCHEMA",
    "TABLE_MONITORING_JOBS",
]
