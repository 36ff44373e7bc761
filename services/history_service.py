# ============================================================================
# JOB HISTORY SERVICE
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Service - Read side over the job store and processing service
# PURPOSE: List past jobs, check identifiers, check one job's live status
# CREATED: 05 OCT 2026
# ============================================================================
"""
Job History Service

Read-only helpers behind the history views:
- recent jobs, newest first
- does an identifier already have a job (and which one)
- live status of one job, with the parsed report once it has completed

check_job reports parse failures in the result instead of raising, so a
single broken report does not break the history listing.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from core.config import StoreDefaults, get_defaults
from core.exceptions import ParseError, ValidationError
from core.identifiers import is_valid_identifier
from core.logging import ComponentType, get_logger
from core.models import MonitoringJob
from repositories import JobStore
from .processing_client import ProcessingServiceClient
from .result_parser import parse_climate_result

logger = get_logger(__name__, ComponentType.SERVICE)


class IdentifierCheck(BaseModel):
    """Result of looking up an identifier."""
    exists: bool
    job: Optional[MonitoringJob] = None


class JobStatusCheck(BaseModel):
    """Live status of one job."""
    job_id: str
    status: str
    payment_status: Optional[str] = None
    report: Optional[Dict[str, Any]] = None
    parse_error: Optional[str] = None
    job: Optional[MonitoringJob] = None


class JobHistoryService:
    """Service for job history lookups."""

    def __init__(
        self,
        store: JobStore,
        client: ProcessingServiceClient,
        config: Optional[StoreDefaults] = None,
    ):
        """
        Initialize history service.

        Args:
            store: Job store
            client: Processing service client (live status checks)
            config: Store settings (history limits)
        """
        self.store = store
        self.client = client
        self.config = config or get_defaults().store

    async def list_recent(self, limit: Optional[int] = None) -> List[MonitoringJob]:
        """
        Recent jobs, newest first.

        Args:
            limit: Number of jobs (default history_limit, capped at max_history_limit)
        """
        if limit is None:
            limit = self.config.history_limit
        if limit < 1:
            raise ValidationError("limit must be at least 1", field="limit", value=limit)
        limit = min(limit, self.config.max_history_limit)
        return await self.store.list_recent(limit)

    async def check_identifier(self, identifier: str) -> IdentifierCheck:
        """Look up the latest job for an identifier."""
        if not is_valid_identifier(identifier):
            raise ValidationError(
                "Identifier must be exactly 16 digits",
                field="identifier",
                value=identifier,
            )
        job = await self.store.find_latest_by_identifier(identifier)
        return IdentifierCheck(exists=job is not None, job=job)

    async def check_job(self, job_id: str) -> JobStatusCheck:
        """
        Ask the processing service for a job's current status.

        Raises:
            ValidationError: Empty job_id
            CollaboratorError: Status call failed
        """
        if not job_id or not job_id.strip():
            raise ValidationError("job_id is required", field="job_id", value=job_id)

        status = await self.client.get_status(job_id)
        check = JobStatusCheck(
            job_id=job_id,
            status=status.status,
            payment_status=status.payment_status,
            job=await self.store.get(job_id),
        )

        if status.status == "completed" and status.has_result:
            try:
                check.report = parse_climate_result(status.result)
            except ParseError as e:
                logger.warning(f"Job {job_id}: stored result does not parse: {e}")
                check.parse_error = str(e)

        return check


__all__ = ["JobHistoryService", "IdentifierCheck", "JobStatusCheck"]
