# ============================================================================
# API SCHEMAS
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Request/Response schemas
# PURPOSE: Pydantic models for API validation
# CREATED: 08 OCT 2026
# ============================================================================
"""
API Schemas

Request and response models for the API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from core.contracts import FailureKind, MonitorState, RiskLevel
from core.models import ClimateResult, MonitoringJob, MonitoringSession


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class SessionCreate(BaseModel):
    """Request to start (or resume) a monitoring session."""
    location: str = Field(..., max_length=256, description="Location to monitor")
    identifier: Optional[str] = Field(
        None,
        max_length=64,
        description="16-digit purchaser identifier; generated when omitted"
    )
    session_id: Optional[str] = Field(
        None,
        max_length=64,
        description="Optional client-chosen session id (repeat calls are idempotent)"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"location": "Berlin, Germany"},
                {"location": "Nairobi", "identifier": "0123456789012345"},
            ]
        }
    }


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class IdentifierResponse(BaseModel):
    """Freshly generated purchaser identifier."""
    identifier: str


class JobResponse(BaseModel):
    """Stored monitoring job."""
    job_id: str
    purchaser_identifier: str
    location: str
    request_text: str
    amount_paid: bool
    status: Optional[str] = None
    price: Optional[str] = None
    payment: Optional[Dict[str, Any]] = None
    created_at: datetime
    paid_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: MonitoringJob) -> "JobResponse":
        return cls(
            job_id=job.job_id,
            purchaser_identifier=job.purchaser_identifier,
            location=job.location,
            request_text=job.request_text,
            amount_paid=job.amount_paid,
            status=job.status.value if job.status else None,
            price=job.payment_display,
            payment=(
                job.payment.model_dump(mode="json", by_alias=True) if job.payment else None
            ),
            created_at=job.created_at,
            paid_at=job.paid_at,
        )


class FailureResponse(BaseModel):
    """Why a session stopped."""
    kind: FailureKind
    message: str
    retryable: bool
    restart_hint: str


class RiskResponse(BaseModel):
    """AQI band of a completed report."""
    level: RiskLevel
    label: str
    color: str

    @classmethod
    def from_report(cls, report: Optional[ClimateResult]) -> Optional["RiskResponse"]:
        band = report.risk_band if report else None
        if band is None:
            return None
        return cls(level=band, label=band.label, color=band.color)


class SessionResponse(BaseModel):
    """Snapshot of a monitoring session."""
    session_id: str
    purchaser_identifier: str
    location: str
    state: MonitorState
    progress: int
    current_step: str
    last_remote_status: Optional[str] = None
    poll_attempts: int = 0
    job: Optional[JobResponse] = None
    price: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    risk: Optional[RiskResponse] = None
    failure: Optional[FailureResponse] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session: MonitoringSession) -> "SessionResponse":
        failure = session.failure
        return cls(
            session_id=session.session_id,
            purchaser_identifier=session.purchaser_identifier,
            location=session.location,
            state=session.state,
            progress=session.progress,
            current_step=session.current_step,
            last_remote_status=session.last_remote_status,
            poll_attempts=session.poll_attempts,
            job=JobResponse.from_job(session.job) if session.job else None,
            price=session.payment_display,
            result=session.result,
            risk=RiskResponse.from_report(session.report),
            failure=FailureResponse(**failure.model_dump()) if failure else None,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class JobListResponse(BaseModel):
    """List of jobs response."""
    jobs: List[JobResponse]
    total: int


class IdentifierCheckResponse(BaseModel):
    """Does an identifier already have a job."""
    exists: bool
    job: Optional[JobResponse] = None


class JobStatusCheckResponse(BaseModel):
    """Live status of one job."""
    job_id: str
    status: str
    payment_status: Optional[str] = None
    report: Optional[Dict[str, Any]] = None
    parse_error: Optional[str] = None
    job: Optional[JobResponse] = None


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: Optional[Any] = None


class PaymentErrorResponse(BaseModel):
    """Payment failure, with the session still awaiting payment."""
    error: str
    detail: Optional[Any] = None
    session: SessionResponse
