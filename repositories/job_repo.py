# ============================================================================
# MONITORING JOB REPOSITORY
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Job CRUD operations
# PURPOSE: Database access for the monitoring_jobs table
# CREATED: 03 OCT 2026
# ============================================================================
"""
Monitoring Job Repository

PostgreSQL implementation of the JobStore. The payment bundle is stored
as JSONB so its timestamps keep the type the processing service sent.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from core.contracts import RemoteJobStatus
from core.exceptions import CollaboratorError, JobNotFoundError
from core.models import MonitoringJob, PaymentBundle
from .base import JobStore
from .database import TABLE_MONITORING_JOBS

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _store_errors(operation: str):
    """Translate driver errors into CollaboratorError."""
    try:
        yield
    except psycopg.Error as e:
        logger.error(f"Job store {operation} failed: {e}")
        raise CollaboratorError(
            f"Job store {operation} failed: {e}",
            service="job_store",
            operation=operation,
            detail=type(e).__name__,
        ) from e


class MonitoringJobRepository(JobStore):
    """Repository for MonitoringJob entities."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool

    async def create(self, job: MonitoringJob) -> MonitoringJob:
        """
        Create a new job.

        Args:
            job: MonitoringJob instance to persist

        Returns:
            The persisted job
        """
        async with _store_errors("create"):
            async with self.pool.connection() as conn:
                await conn.execute(
                    sql.SQL("""
                    INSERT INTO {} (
                        job_id, purchaser_identifier, location, request_text,
                        amount_paid, status, payment, created_at, paid_at
                    ) VALUES (
                        %(job_id)s, %(purchaser_identifier)s, %(location)s,
                        %(request_text)s, %(amount_paid)s, %(status)s,
                        %(payment)s, %(created_at)s, %(paid_at)s
                    )
                    """).format(TABLE_MONITORING_JOBS),
                    {
                        "job_id": job.job_id,
                        "purchaser_identifier": job.purchaser_identifier,
                        "location": job.location,
                        "request_text": job.request_text,
                        "amount_paid": job.amount_paid,
                        "status": job.status.value if job.status else None,
                        "payment": (
                            Json(job.payment.model_dump(mode="json", by_alias=True))
                            if job.payment else None
                        ),
                        "created_at": job.created_at,
                        "paid_at": job.paid_at,
                    },
                )
        logger.info(f"Created job {job.job_id} for purchaser {job.purchaser_identifier}")
        return job

    async def get(self, job_id: str) -> Optional[MonitoringJob]:
        """
        Get a job by ID.

        Args:
            job_id: Job identifier

        Returns:
            MonitoringJob instance or None if not found
        """
        async with _store_errors("get"):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("SELECT * FROM {} WHERE job_id = %s").format(TABLE_MONITORING_JOBS),
                    (job_id,),
                )
                row = await result.fetchone()

        return self._row_to_job(row) if row else None

    async def find_latest_by_identifier(self, identifier: str) -> Optional[MonitoringJob]:
        """
        Most recently created job for a purchaser.

        Identifiers are not unique; the explicit ordering makes the newest
        record win.
        """
        async with _store_errors("find_latest_by_identifier"):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                    SELECT * FROM {}
                    WHERE purchaser_identifier = %s
                    ORDER BY created_at DESC
                    LIMIT 1
                    """).format(TABLE_MONITORING_JOBS),
                    (identifier,),
                )
                row = await result.fetchone()

        return self._row_to_job(row) if row else None

    async def patch_payment(
        self,
        job_id: str,
        amount_paid: bool,
        paid_at: Optional[datetime] = None,
    ) -> MonitoringJob:
        """
        Record payment on a job.

        amount_paid is OR-ed in and paid_at is COALESCE-d, so a repeated
        patch leaves the first confirmation time in place.

        Raises:
            JobNotFoundError: If no record has this job_id
        """
        paid_at = paid_at or datetime.now(timezone.utc)

        async with _store_errors("patch_payment"):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                    UPDATE {}
                    SET amount_paid = amount_paid OR %(amount_paid)s,
                        paid_at = CASE
                            WHEN %(amount_paid)s THEN COALESCE(paid_at, %(paid_at)s)
                            ELSE paid_at
                        END
                    WHERE job_id = %(job_id)s
                    RETURNING *
                    """).format(TABLE_MONITORING_JOBS),
                    {"job_id": job_id, "amount_paid": amount_paid, "paid_at": paid_at},
                )
                row = await result.fetchone()

        if row is None:
            raise JobNotFoundError(job_id)

        logger.info(f"Patched payment for job {job_id} (amount_paid={row['amount_paid']})")
        return self._row_to_job(row)

    async def list_recent(self, limit: int = 100) -> List[MonitoringJob]:
        """
        List jobs, newest first.

        Args:
            limit: Maximum number of jobs to return

        Returns:
            List of MonitoringJob instances
        """
        async with _store_errors("list_recent"):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                    SELECT * FROM {}
                    ORDER BY created_at DESC
                    LIMIT %s
                    """).format(TABLE_MONITORING_JOBS),
                    (limit,),
                )
                rows = await result.fetchall()

        return [self._row_to_job(row) for row in rows]

    async def update_status(self, job_id: str, status: RemoteJobStatus) -> bool:
        """Mirror the remote status. Returns True if a row changed."""
        async with _store_errors("update_status"):
            async with self.pool.connection() as conn:
                result = await conn.execute(
                    sql.SQL("""
                    UPDATE {}
                    SET status = %s
                    WHERE job_id = %s
                      AND status IS DISTINCT FROM %s
                    """).format(TABLE_MONITORING_JOBS),
                    (status.value, job_id, status.value),
                )
                updated = result.rowcount > 0

        if updated:
            logger.debug(f"Job {job_id} status mirrored as {status.value}")
        return updated

    def _row_to_job(self, row: Dict[str, Any]) -> MonitoringJob:
        """
        Convert database row to MonitoringJob model.

        Raises:
            CollaboratorError: The row does not describe a valid job
        """
        status = row.get("status")
        payment = row.get("payment")
        try:
            return MonitoringJob(
                job_id=row["job_id"],
                purchaser_identifier=row["purchaser_identifier"],
                location=row["location"],
                request_text=row["request_text"],
                amount_paid=row["amount_paid"],
                status=RemoteJobStatus(status) if status else None,
                payment=PaymentBundle.model_validate(payment) if payment else None,
                created_at=row["created_at"],
                paid_at=row.get("paid_at"),
            )
        # pydantic's ValidationError is a ValueError, as is an unknown status
        except (KeyError, ValueError) as e:
            logger.error(f"Malformed job row {row.get('job_id')!r}: {e}")
            raise CollaboratorError(
                f"Job store returned a malformed row for job {row.get('job_id')!r}",
                service="job_store",
                operation="read",
                detail=type(e).__name__,
            ) from e


__all__ = ["MonitoringJobRepository"]
