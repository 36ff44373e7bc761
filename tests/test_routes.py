# ============================================================================
# API ROUTES TESTS
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Tests - HTTP endpoints for sessions and job history
# PURPOSE: Verify status codes, error mapping and response shapes
# CREATED: 15 OCT 2026
# ============================================================================
"""
API Routes Tests

Services are mocked; each test builds its own app with the router.

Run with:
    pytest tests/test_routes.py -v
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.routes import router, set_services
from core.contracts import FailureKind, MonitorState
from core.exceptions import (
    CollaboratorError,
    ConfigurationError,
    SessionNotFoundError,
    StateTransitionError,
    ValidationError,
)
from core.models import MonitoringJob, MonitoringSession, PaymentBundle
from services import IdentifierCheck, JobStatusCheck


IDENTIFIER = "1234567890123456"

PAYMENT = {
    "blockchainIdentifier": "bc-123",
    "agentIdentifier": "agent-7",
    "sellerVKey": "vkey-abc",
    "amounts": [{"amount": 1500000, "unit": "lovelace"}],
    "payByTime": "1760000000000",
    "submitResultTime": "1760000600000",
    "unlockTime": "1760001200000",
    "externalDisputeUnlockTime": "1760001800000",
    "input_hash": "hash-xyz",
}


def _make_job() -> MonitoringJob:
    return MonitoringJob(
        job_id="job-001",
        purchaser_identifier=IDENTIFIER,
        location="Berlin",
        request_text="Monitor air quality in Berlin",
        payment=PaymentBundle.model_validate(PAYMENT),
    )


def _make_session(state=MonitorState.AWAITING_PAYMENT, **fields) -> MonitoringSession:
    return MonitoringSession(
        session_id="s-1",
        purchaser_identifier=IDENTIFIER,
        location="Berlin",
        state=state,
        job=_make_job(),
        **fields,
    )


def _make_test_app(manager=None, history=None):
    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    set_services(session_manager=manager or MagicMock(), history_service=history or MagicMock())
    return app


@pytest.fixture(autouse=True)
def _reset_services():
    yield
    set_services(session_manager=None, history_service=None)


# ============================================================================
# IDENTIFIERS
# ============================================================================

class TestIdentifiers:

    def test_generate(self):
        client = TestClient(_make_test_app())
        resp = client.post("/api/v1/identifiers")
        assert resp.status_code == 201
        identifier = resp.json()["identifier"]
        assert len(identifier) == 16 and identifier.isdigit()


# ============================================================================
# SESSIONS
# ============================================================================

class TestStartSession:

    def test_created(self):
        manager = MagicMock()
        manager.start = AsyncMock(return_value=_make_session())
        client = TestClient(_make_test_app(manager))

        resp = client.post(
            "/api/v1/monitor/sessions",
            json={"location": "Berlin", "identifier": IDENTIFIER},
        )

        assert resp.status_code == 201
        data = resp.json()
        assert data["state"] == "awaiting_payment"
        assert data["price"] == "1.50 ADA"
        assert data["job"]["payment"]["sellerVKey"] == "vkey-abc"
        manager.start.assert_awaited_once_with(
            location="Berlin", identifier=IDENTIFIER, session_id=None
        )

    def test_validation_error(self):
        manager = MagicMock()
        manager.start = AsyncMock(side_effect=ValidationError("Identifier must be exactly 16 digits"))
        client = TestClient(_make_test_app(manager))

        resp = client.post("/api/v1/monitor/sessions", json={"location": "Berlin", "identifier": "1"})

        assert resp.status_code == 400
        assert "16 digits" in resp.json()["detail"]

    def test_location_too_long(self):
        client = TestClient(_make_test_app())
        resp = client.post("/api/v1/monitor/sessions", json={"location": "x" * 300})
        assert resp.status_code == 422

    def test_services_not_initialized(self):
        app = FastAPI()
        app.include_router(router, prefix="/api/v1")
        set_services(session_manager=None, history_service=None)

        resp = TestClient(app).get("/api/v1/monitor/sessions/s-1")
        assert resp.status_code == 500


class TestGetSession:

    def test_completed_with_risk(self):
        session = _make_session(
            state=MonitorState.COMPLETED,
            progress=100,
            result={"measurements": {"pm25": 12}, "health_assessment": {"aqi_overall": 120}},
        )
        manager = MagicMock()
        manager.get = MagicMock(return_value=session)
        client = TestClient(_make_test_app(manager))

        data = client.get("/api/v1/monitor/sessions/s-1").json()

        assert data["state"] == "completed"
        assert data["result"]["measurements"]["pm25"] == 12
        assert data["risk"] == {
            "level": "unhealthy_sensitive",
            "label": "Unhealthy for Sensitive Groups",
            "color": "orange",
        }

    def test_not_found(self):
        manager = MagicMock()
        manager.get = MagicMock(side_effect=SessionNotFoundError("nope"))
        client = TestClient(_make_test_app(manager))

        assert client.get("/api/v1/monitor/sessions/nope").status_code == 404


class TestConfirmPayment:

    def test_success(self):
        manager = MagicMock()
        manager.confirm_payment = AsyncMock(return_value=_make_session(state=MonitorState.PROCESSING))
        client = TestClient(_make_test_app(manager))

        resp = client.post("/api/v1/monitor/sessions/s-1/payment")

        assert resp.status_code == 200
        assert resp.json()["state"] == "processing"

    def test_payment_failure_returns_session(self):
        session = _make_session()
        session.record_failure(FailureKind.COLLABORATOR, "Payment failed: rejected", retryable=True)
        manager = MagicMock()
        manager.confirm_payment = AsyncMock(
            side_effect=CollaboratorError(
                "rejected", service="payment_service", operation="submit_payment", status_code=402
            )
        )
        manager.get = MagicMock(return_value=session)
        client = TestClient(_make_test_app(manager))

        resp = client.post("/api/v1/monitor/sessions/s-1/payment")

        assert resp.status_code == 502
        body = resp.json()
        assert body["detail"]["status_code"] == 402
        assert body["session"]["state"] == "awaiting_payment"
        assert body["session"]["failure"]["retryable"] is True

    def test_wrong_state(self):
        manager = MagicMock()
        manager.confirm_payment = AsyncMock(side_effect=StateTransitionError("not awaiting payment"))
        client = TestClient(_make_test_app(manager))

        assert client.post("/api/v1/monitor/sessions/s-1/payment").status_code == 409

    def test_not_configured(self):
        manager = MagicMock()
        manager.confirm_payment = AsyncMock(
            side_effect=ConfigurationError("API key missing", setting="MASUMI_API_KEY")
        )
        client = TestClient(_make_test_app(manager))

        assert client.post("/api/v1/monitor/sessions/s-1/payment").status_code == 503


class TestRestartAndClose:

    def test_restart(self):
        manager = MagicMock()
        manager.restart = AsyncMock(return_value=_make_session())
        client = TestClient(_make_test_app(manager))

        resp = client.post("/api/v1/monitor/sessions/s-1/restart")

        assert resp.status_code == 201
        manager.restart.assert_awaited_once_with("s-1")

    def test_close(self):
        manager = MagicMock()
        manager.close = AsyncMock(return_value=None)
        client = TestClient(_make_test_app(manager))

        assert client.delete("/api/v1/monitor/sessions/s-1").status_code == 204

    def test_close_unknown(self):
        manager = MagicMock()
        manager.close = AsyncMock(side_effect=SessionNotFoundError("s-9"))
        client = TestClient(_make_test_app(manager))

        assert client.delete("/api/v1/monitor/sessions/s-9").status_code == 404


# ============================================================================
# JOB HISTORY
# ============================================================================

class TestJobHistory:

    def test_list(self):
        history = MagicMock()
        history.list_recent = AsyncMock(return_value=[_make_job()])
        client = TestClient(_make_test_app(history=history))

        data = client.get("/api/v1/jobs?limit=5").json()

        assert data["total"] == 1
        assert data["jobs"][0]["job_id"] == "job-001"
        history.list_recent.assert_awaited_once_with(5)

    def test_limit_out_of_range(self):
        client = TestClient(_make_test_app())
        assert client.get("/api/v1/jobs?limit=501").status_code == 422

    def test_store_failure(self):
        history = MagicMock()
        history.list_recent = AsyncMock(side_effect=CollaboratorError("down", service="job_store"))
        client = TestClient(_make_test_app(history=history))

        assert client.get("/api/v1/jobs").status_code == 502

    def test_check_identifier(self):
        history = MagicMock()
        history.check_identifier = AsyncMock(return_value=IdentifierCheck(exists=True, job=_make_job()))
        client = TestClient(_make_test_app(history=history))

        data = client.get(f"/api/v1/jobs/check?identifier={IDENTIFIER}").json()

        assert data["exists"] is True
        assert data["job"]["amount_paid"] is False

    def test_check_identifier_malformed(self):
        history = MagicMock()
        history.check_identifier = AsyncMock(side_effect=ValidationError("bad identifier"))
        client = TestClient(_make_test_app(history=history))

        assert client.get("/api/v1/jobs/check?identifier=abc").status_code == 400

    def test_job_status(self):
        history = MagicMock()
        history.check_job = AsyncMock(return_value=JobStatusCheck(
            job_id="job-001",
            status="completed",
            report={"measurements": {"pm25": 12}},
        ))
        client = TestClient(_make_test_app(history=history))

        data = client.get("/api/v1/jobs/job-001/status").json()

        assert data["status"] == "completed"
        assert data["report"]["measurements"]["pm25"] == 12
