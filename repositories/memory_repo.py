# ============================================================================
# IN-MEMORY JOB REPOSITORY
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Process-local JobStore
# PURPOSE: Job store for local runs, the CLI and tests
# CREATED: 03 OCT 2026
# ============================================================================
"""
In-Memory Job Repository

Same semantics as MonitoringJobRepository, held in a dict. Records are
copied on the way in and out so callers never share state with the store.
"""

import asyncio
import itertools
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from core.contracts import RemoteJobStatus
from core.exceptions import CollaboratorError, JobNotFoundError
from core.models import MonitoringJob
from .base import JobStore

logger = logging.getLogger(__name__)


class InMemoryJobRepository(JobStore):
    """Dict-backed JobStore."""

    def __init__(self):
        self._jobs: Dict[str, MonitoringJob] = {}
        self._sequence: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = asyncio.Lock()

    def _order_key(self, job: MonitoringJob) -> Tuple[datetime, int]:
        return (job.created_at, self._sequence[job.job_id])

    async def create(self, job: MonitoringJob) -> MonitoringJob:
        async with self._lock:
            if job.job_id in self._jobs:
                raise CollaboratorError(
                    f"Job {job.job_id} already exists",
                    service="job_store",
                    operation="create",
                    status_code=409,
                )
            self._jobs[job.job_id] = job.model_copy(deep=True)
            self._sequence[job.job_id] = next(self._counter)
        logger.info(f"Created job {job.job_id} for purchaser {job.purchaser_identifier}")
        return job

    async def get(self, job_id: str) -> Optional[MonitoringJob]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def find_latest_by_identifier(self, identifier: str) -> Optional[MonitoringJob]:
        matches = [j for j in self._jobs.values() if j.purchaser_identifier == identifier]
        if not matches:
            return None
        return max(matches, key=self._order_key).model_copy(deep=True)

    async def patch_payment(
        self,
        job_id: str,
        amount_paid: bool,
        paid_at: Optional[datetime] = None,
    ) -> MonitoringJob:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if amount_paid:
                job.mark_paid(paid_at or datetime.now(timezone.utc))
            logger.info(f"Patched payment for job {job_id} (amount_paid={job.amount_paid})")
            return job.model_copy(deep=True)

    async def list_recent(self, limit: int = 100) -> List[MonitoringJob]:
        ordered = sorted(self._jobs.values(), key=self._order_key, reverse=True)
        return [job.model_copy(deep=True) for job in ordered[:limit]]

    async def update_status(self, job_id: str, status: RemoteJobStatus) -> bool:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status == status:
                return False
            job.status = status
        logger.debug(f"Job {job_id} status mirrored as {status.value}")
        return True

    def __len__(self) -> int:
        return len(self._jobs)


__all__ = ["InMemoryJobRepository"]
