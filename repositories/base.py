# ============================================================================
# JOB STORE INTERFACE
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Persistence contract consumed by the orchestrator
# PURPOSE: One interface, PostgreSQL and in-memory implementations
# CREATED: 03 OCT 2026
# ============================================================================
"""
Job Store Interface

Every implementation must honour:
- find_latest_by_identifier returns the most recently created record
- patch_payment never flips amount_paid back to False and never
  overwrites an existing paid_at
- failures of the underlying store surface as CollaboratorError
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from core.contracts import RemoteJobStatus
from core.models import MonitoringJob


class JobStore(ABC):
    """Abstract persistence for monitoring jobs."""

    @abstractmethod
    async def create(self, job: MonitoringJob) -> MonitoringJob:
        """
        Persist a new job record.

        Raises:
            CollaboratorError: If the record could not be written
        """
        pass

    @abstractmethod
    async def find_latest_by_identifier(self, identifier: str) -> Optional[MonitoringJob]:
        """Most recently created job for a purchaser identifier, or None."""
        pass

    @abstractmethod
    async def patch_payment(
        self,
        job_id: str,
        amount_paid: bool,
        paid_at: Optional[datetime] = None,
    ) -> MonitoringJob:
        """
        Record payment fields on an existing job.

        Returns:
            The job as stored after the patch

        Raises:
            JobNotFoundError: If no record has this job_id
        """
        pass

    @abstractmethod
    async def list_recent(self, limit: int = 100) -> List[MonitoringJob]:
        """Jobs ordered by created_at, newest first."""
        pass

    @abstractmethod
    async def update_status(self, job_id: str, status: RemoteJobStatus) -> bool:
        """
        Mirror the remote status onto the record.

        Returns:
            True if a record was updated
        """
        pass

    @abstractmethod
    async def get(self, job_id: str) -> Optional[MonitoringJob]:
        """Job by id, or None."""
        pass


__all__ = ["JobStore"]
