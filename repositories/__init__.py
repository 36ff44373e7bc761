# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Job store access layer
# PURPOSE: JobStore interface, implementations and backend selection
# CREATED: 03 OCT 2026
# ============================================================================
"""
Repositories Module

Provides the job store for the monitoring orchestrator.
PostgreSQL uses psycopg3 async with connection pooling; the in-memory
store needs no setup.

Usage:
    from repositories import create_job_repository, get_pool

    store = create_job_repository("postgres", await get_pool())
    job = await store.find_latest_by_identifier(identifier)
"""

from typing import Optional

from psycopg_pool import AsyncConnectionPool

from core.exceptions import ConfigurationError
from .base import JobStore
from .database import get_pool, init_pool, close_pool
from .job_repo import MonitoringJobRepository
from .memory_repo import InMemoryJobRepository


def create_job_repository(
    backend: str = "memory",
    pool: Optional[AsyncConnectionPool] = None,
) -> JobStore:
    """
    Create the job store for a backend.

    Args:
        backend: "memory" or "postgres"
        pool: Open connection pool (required for "postgres")

    Returns:
        JobStore instance

    Raises:
        ConfigurationError: Unknown backend, or postgres without a pool
    """
    backend = (backend or "memory").lower()
    if backend == "memory":
        return InMemoryJobRepository()
    if backend == "postgres":
        if pool is None:
            raise ConfigurationError(
                "The postgres job store needs a connection pool",
                setting="MONITOR_STORE_BACKEND",
            )
        return MonitoringJobRepository(pool)
    raise ConfigurationError(
        f"Unknown job store backend: {backend}", setting="MONITOR_STORE_BACKEND"
    )


__all__ = [
    "JobStore",
    "MonitoringJobRepository",
    "InMemoryJobRepository",
    "create_job_repository",
    "get_pool",
    "init_pool",
    "close_pool",
]
