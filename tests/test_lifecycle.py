# ============================================================================
# JOB LIFECYCLE ORCHESTRATOR TESTS
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Tests - Create/resume, payment gate, polling, failure handling
# PURPOSE: Drive the orchestrator against an in-memory store and a mocked client
# CREATED: 14 OCT 2026
# ============================================================================
"""
Job Lifecycle Orchestrator Tests

Polling runs with a zero interval so the ceiling is reached instantly.

Run with:
    pytest tests/test_lifecycle.py -v
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.config import PollingDefaults, ProcessingServiceDefaults, StoreDefaults
from core.contracts import FailureKind, MonitorState, RemoteJobStatus
from core.exceptions import (
    CollaboratorError,
    ConfigurationError,
    StateTransitionError,
    ValidationError,
)
from core.models import JobStatusResponse, MonitoringJob, MonitoringSession, StartJobResponse
from orchestrator import JobLifecycleOrchestrator
from orchestrator.lifecycle import REMOTE_FAILED_MESSAGE
from repositories import InMemoryJobRepository


IDENTIFIER = "1234567890123456"
RESULT = '```json\n{"674": {"measurements": {"pm25": 12}, "health_assessment": {"aqi_overall": 42}}}\n```'

START_JOB_BODY = {
    "status": "success",
    "job_id": "job-001",
    "blockchainIdentifier": "bc-123",
    "agentIdentifier": "agent-7",
    "sellerVKey": "vkey-abc",
    "identifierFromPurchaser": IDENTIFIER,
    "amounts": [{"amount": 1500000, "unit": "lovelace"}],
    "input_hash": "hash-xyz",
    "payByTime": "1760000000000",
    "submitResultTime": "1760000600000",
    "unlockTime": "1760001200000",
    "externalDisputeUnlockTime": "1760001800000",
}


def _status(status: str, result: str = None) -> JobStatusResponse:
    return JobStatusResponse(job_id="job-001", status=status, result=result)


def _make_client(statuses=None, start_error=None, payment_error=None):
    """Mocked ProcessingServiceClient."""
    client = MagicMock()
    client.start_job = AsyncMock(
        return_value=StartJobResponse.model_validate(START_JOB_BODY),
        side_effect=start_error,
    )
    client.get_status = AsyncMock(side_effect=statuses or [])
    client.submit_payment = AsyncMock(
        return_value={"status": "success"},
        side_effect=payment_error,
    )
    return client


def _make_session(location: str = "Berlin", identifier: str = IDENTIFIER) -> MonitoringSession:
    return MonitoringSession(purchaser_identifier=identifier, location=location)


def _make_orchestrator(session, store, client, **kwargs) -> JobLifecycleOrchestrator:
    kwargs.setdefault("polling", PollingDefaults(interval_seconds=0, max_attempts=3))
    kwargs.setdefault("processing", ProcessingServiceDefaults(network="Preprod"))
    kwargs.setdefault("store_config", StoreDefaults())
    return JobLifecycleOrchestrator(session, store, client, **kwargs)


def _stored_job(paid: bool = False, location: str = "Berlin") -> MonitoringJob:
    job = MonitoringJob.from_start_response(
        IDENTIFIER,
        location,
        f"Monitor air quality in {location}",
        StartJobResponse.model_validate(START_JOB_BODY),
    )
    if paid:
        job.mark_paid(datetime(2026, 10, 1, tzinfo=timezone.utc))
    return job


# ============================================================================
# RESUME OR CREATE
# ============================================================================

class TestResumeOrCreate:

    def test_new_identifier_creates_job(self):
        store = InMemoryJobRepository()
        client = _make_client()
        session = _make_session()

        asyncio.run(_make_orchestrator(session, store, client).resume_or_create())

        assert session.state == MonitorState.AWAITING_PAYMENT
        assert session.progress == 30
        assert session.job_id == "job-001"
        assert session.payment_display == "1.50 ADA"
        assert len(store) == 1
        client.start_job.assert_awaited_once_with(
            IDENTIFIER,
            "Monitor air quality in Berlin: PM2.5, CO, temperature, and humidity",
        )

    def test_resume_unpaid_is_idempotent(self):
        async def run():
            store = InMemoryJobRepository()
            client = _make_client()
            first, second = _make_session(), _make_session()
            await _make_orchestrator(first, store, client).resume_or_create()
            await _make_orchestrator(second, store, client).resume_or_create()
            return first, second, store, client

        first, second, store, client = asyncio.run(run())

        assert second.state == MonitorState.AWAITING_PAYMENT
        assert second.job_id == first.job_id
        assert second.job.payment == first.job.payment
        assert len(store) == 1
        assert client.start_job.await_count == 1

    def test_resume_paid_goes_to_processing(self):
        async def run():
            store = InMemoryJobRepository()
            await store.create(_stored_job(paid=True))
            client = _make_client()
            session = _make_session()
            await _make_orchestrator(session, store, client).resume_or_create()
            return session, client

        session, client = asyncio.run(run())

        assert session.state == MonitorState.PROCESSING
        assert session.progress == 40
        client.start_job.assert_not_awaited()
        client.submit_payment.assert_not_awaited()

    def test_resume_adopts_stored_location(self):
        async def run():
            store = InMemoryJobRepository()
            await store.create(_stored_job(location="Nairobi"))
            session = _make_session(location="Berlin")
            await _make_orchestrator(session, store, _make_client()).resume_or_create()
            return session

        assert asyncio.run(run()).location == "Nairobi"

    def test_lookup_failure_creates_job(self):
        store = InMemoryJobRepository()
        store.find_latest_by_identifier = AsyncMock(
            side_effect=CollaboratorError("store down", service="job_store")
        )
        client = _make_client()
        session = _make_session()

        asyncio.run(_make_orchestrator(session, store, client).resume_or_create())

        assert session.state == MonitorState.AWAITING_PAYMENT
        client.start_job.assert_awaited_once()

    def test_lookup_failure_with_fail_policy(self):
        store = InMemoryJobRepository()
        store.find_latest_by_identifier = AsyncMock(
            side_effect=CollaboratorError("store down", service="job_store")
        )
        client = _make_client()
        session = _make_session()
        orchestrator = _make_orchestrator(
            session, store, client, store_config=StoreDefaults(resume_on_lookup_failure="fail")
        )

        asyncio.run(orchestrator.resume_or_create())

        assert session.state == MonitorState.ERROR
        assert session.failure.kind == FailureKind.COLLABORATOR
        client.start_job.assert_not_awaited()

    def test_start_job_failure(self):
        store = InMemoryJobRepository()
        client = _make_client(start_error=CollaboratorError("down", service="processing_service"))
        session = _make_session()

        asyncio.run(_make_orchestrator(session, store, client).resume_or_create())

        assert session.state == MonitorState.ERROR
        assert session.failure.retryable is False
        assert session.job is None
        assert len(store) == 0

    def test_store_create_failure(self):
        store = InMemoryJobRepository()
        store.create = AsyncMock(side_effect=CollaboratorError("disk full", service="job_store"))
        session = _make_session()

        asyncio.run(_make_orchestrator(session, store, _make_client()).resume_or_create())

        assert session.state == MonitorState.ERROR
        assert "save" in session.failure.message

    def test_second_initialization_rejected(self):
        store = InMemoryJobRepository()
        client = _make_client()
        session = _make_session()
        orchestrator = _make_orchestrator(session, store, client)
        asyncio.run(orchestrator.resume_or_create())

        with pytest.raises(StateTransitionError):
            asyncio.run(orchestrator.resume_or_create())
        assert client.start_job.await_count == 1

    def test_concurrent_initialization_rejected(self):
        async def run():
            orchestrator = _make_orchestrator(_make_session(), InMemoryJobRepository(), client)
            return await asyncio.gather(
                orchestrator.resume_or_create(),
                orchestrator.resume_or_create(),
                return_exceptions=True,
            )

        client = _make_client()
        outcomes = asyncio.run(run())

        assert sum(isinstance(o, StateTransitionError) for o in outcomes) == 1
        assert client.start_job.await_count == 1

    @pytest.mark.parametrize("location,identifier", [
        ("", IDENTIFIER),
        ("   ", IDENTIFIER),
        ("x" * 257, IDENTIFIER),
        ("Berlin", "12345"),
        ("Berlin", "abcdefghijklmnop"),
    ])
    def test_invalid_inputs_make_no_calls(self, location, identifier):
        store = InMemoryJobRepository()
        client = _make_client()
        session = _make_session(location=location, identifier=identifier)

        with pytest.raises(ValidationError):
            asyncio.run(_make_orchestrator(session, store, client).resume_or_create())

        assert session.state == MonitorState.IDLE
        client.start_job.assert_not_awaited()


# ============================================================================
# PAYMENT
# ============================================================================

def _awaiting_payment(client, store=None):
    store = store or InMemoryJobRepository()
    session = _make_session()
    orchestrator = _make_orchestrator(session, store, client)
    asyncio.run(orchestrator.resume_or_create())
    assert session.state == MonitorState.AWAITING_PAYMENT
    return orchestrator, session, store


class TestConfirmPayment:

    def test_success_moves_to_processing(self):
        client = _make_client()
        orchestrator, session, store = _awaiting_payment(client)

        asyncio.run(orchestrator.confirm_payment())

        assert session.state == MonitorState.PROCESSING
        assert session.job.amount_paid is True
        assert asyncio.run(store.get("job-001")).amount_paid is True

        request = client.submit_payment.await_args.args[0]
        assert request.identifier_from_purchaser == IDENTIFIER
        assert request.network == "Preprod"
        assert request.seller_vkey == "vkey-abc"
        assert request.pay_by_time == "1760000000000"

    def test_failure_stays_awaiting_payment(self):
        client = _make_client(
            payment_error=CollaboratorError("rejected", service="payment_service", status_code=402)
        )
        orchestrator, session, store = _awaiting_payment(client)

        with pytest.raises(CollaboratorError):
            asyncio.run(orchestrator.confirm_payment())

        assert session.state == MonitorState.AWAITING_PAYMENT
        assert session.failure.retryable is True
        assert asyncio.run(store.get("job-001")).amount_paid is False

    def test_retry_after_failure(self):
        client = _make_client()
        client.submit_payment.side_effect = [
            CollaboratorError("timeout", service="payment_service"),
            {"status": "success"},
        ]
        orchestrator, session, _ = _awaiting_payment(client)

        with pytest.raises(CollaboratorError):
            asyncio.run(orchestrator.confirm_payment())
        asyncio.run(orchestrator.confirm_payment())

        assert session.state == MonitorState.PROCESSING
        assert session.failure is None

    def test_missing_configuration_is_not_retryable(self):
        client = _make_client(payment_error=ConfigurationError("no key", setting="MASUMI_API_KEY"))
        orchestrator, session, _ = _awaiting_payment(client)

        with pytest.raises(ConfigurationError):
            asyncio.run(orchestrator.confirm_payment())

        assert session.state == MonitorState.AWAITING_PAYMENT
        assert session.failure.retryable is False

    def test_already_paid_skips_submission(self):
        client = _make_client()
        orchestrator, session, _ = _awaiting_payment(client)
        first_paid_at = datetime(2026, 10, 1, tzinfo=timezone.utc)
        session.job.mark_paid(first_paid_at)

        asyncio.run(orchestrator.confirm_payment())

        assert session.state == MonitorState.PROCESSING
        assert session.job.paid_at == first_paid_at
        client.submit_payment.assert_not_awaited()

    def test_store_failure_after_payment_still_proceeds(self):
        client = _make_client()
        orchestrator, session, store = _awaiting_payment(client)
        store.patch_payment = AsyncMock(side_effect=CollaboratorError("down", service="job_store"))

        asyncio.run(orchestrator.confirm_payment())

        assert session.state == MonitorState.PROCESSING
        assert session.job.amount_paid is True
        assert session.job.paid_at is not None

    def test_concurrent_confirmation_submits_once(self):
        async def slow_payment(request):
            await asyncio.sleep(0.01)
            return {"status": "success"}

        client = _make_client()
        client.submit_payment = AsyncMock(side_effect=slow_payment)
        orchestrator, session, _ = _awaiting_payment(client)

        async def run():
            return await asyncio.gather(
                orchestrator.confirm_payment(),
                orchestrator.confirm_payment(),
                return_exceptions=True,
            )

        outcomes = asyncio.run(run())

        assert client.submit_payment.await_count == 1
        assert sum(isinstance(o, StateTransitionError) for o in outcomes) == 1
        assert session.state == MonitorState.PROCESSING

    def test_repeat_confirmation_after_success_rejected(self):
        client = _make_client()
        orchestrator, session, _ = _awaiting_payment(client)

        asyncio.run(orchestrator.confirm_payment())
        with pytest.raises(StateTransitionError):
            asyncio.run(orchestrator.confirm_payment())

        assert client.submit_payment.await_count == 1
        assert session.state == MonitorState.PROCESSING

    def test_claim_released_after_failure(self):
        client = _make_client()
        client.submit_payment.side_effect = [
            ConfigurationError("no key", setting="MASUMI_API_KEY"),
            {"status": "success"},
        ]
        orchestrator, session, _ = _awaiting_payment(client)

        with pytest.raises(ConfigurationError):
            asyncio.run(orchestrator.confirm_payment())
        asyncio.run(orchestrator.confirm_payment())

        assert session.state == MonitorState.PROCESSING
        assert client.submit_payment.await_count == 2

    def test_wrong_state_rejected(self):
        client = _make_client()
        orchestrator = _make_orchestrator(_make_session(), InMemoryJobRepository(), client)

        with pytest.raises(StateTransitionError):
            asyncio.run(orchestrator.confirm_payment())
        client.submit_payment.assert_not_awaited()


# ============================================================================
# POLLING
# ============================================================================

def _processing(client, observer=None, max_attempts=3):
    async def setup():
        store = InMemoryJobRepository()
        await store.create(_stored_job(paid=True))
        session = _make_session()
        orchestrator = _make_orchestrator(
            session,
            store,
            client,
            observer=observer,
            polling=PollingDefaults(interval_seconds=0, max_attempts=max_attempts),
        )
        await orchestrator.resume_or_create()
        return orchestrator, session, store

    return asyncio.run(setup())


class TestPollStatus:

    def test_completed_with_result(self):
        client = _make_client(statuses=[_status("running"), _status("completed", RESULT)])
        orchestrator, session, store = _processing(client)

        asyncio.run(orchestrator.poll_status())

        assert session.state == MonitorState.COMPLETED
        assert session.progress == 100
        assert session.result["measurements"]["pm25"] == 12
        assert session.report.risk_band.value == "good"
        assert session.poll_attempts == 2
        assert asyncio.run(store.get("job-001")).status == RemoteJobStatus.COMPLETED

    def test_remote_failure(self):
        client = _make_client(statuses=[_status("failed")])
        orchestrator, session, _ = _processing(client)

        asyncio.run(orchestrator.poll_status())

        assert session.state == MonitorState.ERROR
        assert session.failure.kind == FailureKind.REMOTE_FAILED
        assert session.failure.message == REMOTE_FAILED_MESSAGE

    def test_ceiling_reached(self):
        client = _make_client(statuses=[_status("running")] * 3)
        orchestrator, session, _ = _processing(client)

        asyncio.run(orchestrator.poll_status())

        assert session.state == MonitorState.ERROR
        assert session.failure.kind == FailureKind.TIMEOUT
        assert client.get_status.await_count == 3
        assert session.poll_attempts == 3

    def test_completed_without_result(self):
        client = _make_client(statuses=[_status("completed", "  ")])
        orchestrator, session, _ = _processing(client)

        asyncio.run(orchestrator.poll_status())

        assert session.state == MonitorState.ERROR
        assert session.failure.kind == FailureKind.PROTOCOL

    def test_unparseable_result(self):
        client = _make_client(statuses=[_status("completed", '{"other": {}}')])
        orchestrator, session, _ = _processing(client)

        asyncio.run(orchestrator.poll_status())

        assert session.state == MonitorState.ERROR
        assert session.failure.kind == FailureKind.PARSE
        assert session.result is None

    @pytest.mark.parametrize("payload", [
        '{"674": "just text"}',
        '{"674": null}',
        '{"674": [1, 2]}',
    ])
    def test_report_must_be_an_object(self, payload):
        client = _make_client(statuses=[_status("completed", payload)])
        orchestrator, session, _ = _processing(client)

        asyncio.run(orchestrator.poll_status())

        assert session.state == MonitorState.ERROR
        assert session.failure.kind == FailureKind.PARSE
        assert session.result is None

    def test_status_call_failure_stops_polling(self):
        client = _make_client(statuses=[CollaboratorError("down", service="processing_service")])
        orchestrator, session, _ = _processing(client)

        asyncio.run(orchestrator.poll_status())

        assert session.state == MonitorState.ERROR
        assert session.failure.kind == FailureKind.COLLABORATOR
        assert client.get_status.await_count == 1

    def test_unknown_status_keeps_polling(self):
        client = _make_client(statuses=[_status("queued"), _status("completed", RESULT)])
        orchestrator, session, _ = _processing(client)

        asyncio.run(orchestrator.poll_status())

        assert session.state == MonitorState.COMPLETED

    def test_observer_sees_every_status(self):
        seen = []
        client = _make_client(statuses=[_status("running"), _status("completed", RESULT)])
        orchestrator, session, _ = _processing(
            client, observer=lambda s, status: seen.append((s.state, status.status))
        )

        asyncio.run(orchestrator.poll_status())

        assert seen == [
            (MonitorState.PROCESSING, "running"),
            (MonitorState.PROCESSING, "completed"),
        ]

    def test_async_observer(self):
        seen = []

        async def observer(session, status):
            seen.append(status.status)

        client = _make_client(statuses=[_status("completed", RESULT)])
        orchestrator, _, _ = _processing(client, observer=observer)

        asyncio.run(orchestrator.poll_status())

        assert seen == ["completed"]

    def test_failing_observer_does_not_stop_polling(self):
        def observer(session, status):
            raise RuntimeError("display gone")

        client = _make_client(statuses=[_status("running"), _status("completed", RESULT)])
        orchestrator, session, _ = _processing(client, observer=observer)

        asyncio.run(orchestrator.poll_status())

        assert session.state == MonitorState.COMPLETED
        assert client.get_status.await_count == 2

    def test_abort_records_failure(self):
        orchestrator, session, _ = _processing(_make_client())

        orchestrator.abort(RuntimeError("boom"))

        assert session.state == MonitorState.ERROR
        assert session.failure.kind == FailureKind.PROTOCOL
        assert "boom" in session.failure.message
        assert session.failure.restart_hint

    def test_requires_processing_state(self):
        orchestrator = _make_orchestrator(_make_session(), InMemoryJobRepository(), _make_client())
        with pytest.raises(StateTransitionError):
            asyncio.run(orchestrator.poll_status())

    def test_run_polls_paid_job(self):
        async def run():
            store = InMemoryJobRepository()
            await store.create(_stored_job(paid=True))
            client = _make_client(statuses=[_status("completed", RESULT)])
            session = _make_session()
            await _make_orchestrator(session, store, client).run()
            return session

        assert asyncio.run(run()).state == MonitorState.COMPLETED


# ============================================================================
# CLOSE
# ============================================================================

class TestClose:

    def test_close_abandons_wait_without_writes(self):
        async def run():
            store = InMemoryJobRepository()
            await store.create(_stored_job(paid=True))
            client = _make_client()
            client.get_status = AsyncMock(return_value=_status("running"))
            session = _make_session()
            orchestrator = _make_orchestrator(
                session,
                store,
                client,
                polling=PollingDefaults(interval_seconds=60, max_attempts=5),
            )
            await orchestrator.resume_or_create()

            task = asyncio.create_task(orchestrator.poll_status())
            while client.get_status.await_count == 0:
                await asyncio.sleep(0)
            await asyncio.sleep(0)
            snapshot = session.model_copy()

            orchestrator.close()
            await asyncio.wait_for(task, timeout=1)
            return session, snapshot, client

        session, snapshot, client = asyncio.run(run())

        assert session.state == MonitorState.PROCESSING
        assert session.failure is None
        assert session.progress == snapshot.progress
        assert session.updated_at == snapshot.updated_at
        assert client.get_status.await_count == 1

    def test_closed_session_rejects_operations(self):
        client = _make_client()
        orchestrator, session, _ = _awaiting_payment(client)
        orchestrator.close()

        with pytest.raises(StateTransitionError):
            asyncio.run(orchestrator.confirm_payment())
        assert orchestrator.closed is True
        client.submit_payment.assert_not_awaited()
