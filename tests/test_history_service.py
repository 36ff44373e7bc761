# ============================================================================
# JOB HISTORY SERVICE TESTS
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Tests - History listing, identifier check, live job status
# PURPOSE: Verify limits, identifier validation and report parsing
# CREATED: 14 OCT 2026
# ============================================================================
"""
Job History Service Tests

Run with:
    pytest tests/test_history_service.py -v
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.config import StoreDefaults
from core.exceptions import ValidationError
from core.models import JobStatusResponse, MonitoringJob
from repositories import InMemoryJobRepository
from services import JobHistoryService


IDENTIFIER = "1234567890123456"


def _make_job(job_id: str, minutes: int = 0) -> MonitoringJob:
    return MonitoringJob(
        job_id=job_id,
        purchaser_identifier=IDENTIFIER,
        location="Berlin",
        request_text="Monitor air quality in Berlin",
        created_at=datetime(2026, 10, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


def _make_service(store=None, status=None) -> JobHistoryService:
    client = MagicMock()
    client.get_status = AsyncMock(return_value=status)
    return JobHistoryService(store or InMemoryJobRepository(), client, StoreDefaults())


class TestListRecent:

    def test_default_limit(self):
        store = MagicMock()
        store.list_recent = AsyncMock(return_value=[])
        asyncio.run(_make_service(store).list_recent())
        store.list_recent.assert_awaited_once_with(100)

    def test_limit_is_capped(self):
        store = MagicMock()
        store.list_recent = AsyncMock(return_value=[])
        asyncio.run(_make_service(store).list_recent(10_000))
        store.list_recent.assert_awaited_once_with(500)

    def test_zero_limit_rejected(self):
        with pytest.raises(ValidationError):
            asyncio.run(_make_service().list_recent(0))


class TestCheckIdentifier:

    def test_existing(self):
        async def run():
            store = InMemoryJobRepository()
            await store.create(_make_job("job-1", minutes=0))
            await store.create(_make_job("job-2", minutes=1))
            return await _make_service(store).check_identifier(IDENTIFIER)

        check = asyncio.run(run())
        assert check.exists is True
        assert check.job.job_id == "job-2"

    def test_unknown(self):
        check = asyncio.run(_make_service().check_identifier("0000000000000000"))
        assert check.exists is False
        assert check.job is None

    def test_malformed(self):
        with pytest.raises(ValidationError):
            asyncio.run(_make_service().check_identifier("42"))


class TestCheckJob:

    def test_completed_report(self):
        status = JobStatusResponse(status="completed", result='{"674": {"measurements": {"pm25": 3}}}')
        check = asyncio.run(_make_service(status=status).check_job("job-1"))
        assert check.report == {"measurements": {"pm25": 3}}
        assert check.parse_error is None

    def test_broken_report_is_reported(self):
        status = JobStatusResponse(status="completed", result="not json")
        check = asyncio.run(_make_service(status=status).check_job("job-1"))
        assert check.report is None
        assert check.parse_error

    def test_non_object_report_is_reported(self):
        status = JobStatusResponse(status="completed", result='{"674": "just text"}')
        check = asyncio.run(_make_service(status=status).check_job("job-1"))
        assert check.report is None
        assert "JSON object" in check.parse_error

    def test_running(self):
        status = JobStatusResponse(status="running", payment_status="completed")
        check = asyncio.run(_make_service(status=status).check_job("job-1"))
        assert check.status == "running"
        assert check.payment_status == "completed"
        assert check.report is None

    def test_blank_job_id(self):
        with pytest.raises(ValidationError):
            asyncio.run(_make_service().check_job(" "))
