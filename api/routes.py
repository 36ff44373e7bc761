# ============================================================================
# API ROUTES
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - FastAPI route definitions
# PURPOSE: HTTP endpoints for monitoring sessions and job history
# CREATED: 08 OCT 2026
# ============================================================================
"""
API Routes

FastAPI routes for the climate monitor.

Error mapping:
    ValidationError       -> 400
    SessionNotFoundError  -> 404
    StateTransitionError  -> 409
    payment failure       -> 502 (body carries the session snapshot)
    other collaborator    -> 502
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Response
from fastapi.responses import JSONResponse

from core.exceptions import (
    CollaboratorError,
    ConfigurationError,
    SessionNotFoundError,
    StateTransitionError,
    ValidationError,
)
from core.identifiers import generate_identifier
from .schemas import (
    SessionCreate,
    SessionResponse,
    IdentifierResponse,
    JobResponse,
    JobListResponse,
    IdentifierCheckResponse,
    JobStatusCheckResponse,
    ErrorResponse,
    PaymentErrorResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================
# These will be set by the main app at startup

_session_manager = None
_history_service = None


def set_services(session_manager, history_service):
    """Set service instances for dependency injection."""
    global _session_manager, _history_service
    _session_manager = session_manager
    _history_service = history_service


def get_session_manager():
    if _session_manager is None:
        raise HTTPException(500, "Session manager not initialized")
    return _session_manager


def get_history_service():
    if _history_service is None:
        raise HTTPException(500, "History service not initialized")
    return _history_service


def _collaborator_detail(error: CollaboratorError) -> dict:
    return {
        "service": error.service,
        "operation": error.operation,
        "status_code": error.status_code,
        "message": str(error),
    }


# ============================================================================
# IDENTIFIERS
# ============================================================================

@router.post(
    "/identifiers",
    response_model=IdentifierResponse,
    status_code=201,
    tags=["Identifiers"],
)
async def create_identifier():
    """Generate a new 16-digit purchaser identifier."""
    return IdentifierResponse(identifier=generate_identifier())


# ============================================================================
# MONITORING SESSIONS
# ============================================================================

@router.post(
    "/monitor/sessions",
    response_model=SessionResponse,
    status_code=201,
    tags=["Monitoring"],
    responses={
        201: {"description": "Session started (or resumed)"},
        400: {"model": ErrorResponse, "description": "Invalid request"},
        409: {"model": ErrorResponse, "description": "Session already initialized"},
    },
)
async def start_session(request: SessionCreate):
    """
    Start or resume a monitoring session.

    With a known identifier the purchaser's latest job is reused: unpaid
    jobs come back awaiting payment, paid jobs go straight to processing.
    Returns immediately; poll GET /monitor/sessions/{id} for progress.
    """
    manager = get_session_manager()

    try:
        session = await manager.start(
            location=request.location,
            identifier=request.identifier,
            session_id=request.session_id,
        )
    except ValidationError as e:
        raise HTTPException(400, str(e))
    except StateTransitionError as e:
        raise HTTPException(409, str(e))

    return SessionResponse.from_session(session)


@router.get(
    "/monitor/sessions/{session_id}",
    response_model=SessionResponse,
    tags=["Monitoring"],
    responses={404: {"model": ErrorResponse}},
)
async def get_session(session_id: str):
    """Current session snapshot (state, progress, result or failure)."""
    manager = get_session_manager()
    try:
        session = manager.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(404, f"Session not found: {session_id}")
    return SessionResponse.from_session(session)


@router.post(
    "/monitor/sessions/{session_id}/payment",
    response_model=SessionResponse,
    tags=["Monitoring"],
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "Session not awaiting payment"},
        502: {"model": PaymentErrorResponse, "description": "Payment failed, retry allowed"},
        503: {"model": ErrorResponse, "description": "Payment service not configured"},
    },
)
async def confirm_payment(session_id: str):
    """
    Confirm payment for the session's job.

    On success the session moves to processing and polling starts in the
    background. On failure the session stays awaiting payment.
    """
    manager = get_session_manager()

    try:
        session = await manager.confirm_payment(session_id)
    except SessionNotFoundError:
        raise HTTPException(404, f"Session not found: {session_id}")
    except StateTransitionError as e:
        raise HTTPException(409, str(e))
    except ConfigurationError as e:
        logger.error(f"Payment not configured: {e}")
        raise HTTPException(503, str(e))
    except CollaboratorError as e:
        body = PaymentErrorResponse(
            error="Payment failed",
            detail=_collaborator_detail(e),
            session=SessionResponse.from_session(manager.get(session_id)),
        )
        return JSONResponse(status_code=502, content=body.model_dump(mode="json"))

    return SessionResponse.from_session(session)


@router.post(
    "/monitor/sessions/{session_id}/restart",
    response_model=SessionResponse,
    status_code=201,
    tags=["Monitoring"],
    responses={404: {"model": ErrorResponse}},
)
async def restart_session(session_id: str):
    """Replace the session with a new one (new identifier, same location)."""
    manager = get_session_manager()
    try:
        session = await manager.restart(session_id)
    except SessionNotFoundError:
        raise HTTPException(404, f"Session not found: {session_id}")
    except ValidationError as e:
        raise HTTPException(400, str(e))
    return SessionResponse.from_session(session)


@router.delete(
    "/monitor/sessions/{session_id}",
    status_code=204,
    tags=["Monitoring"],
    responses={404: {"model": ErrorResponse}},
)
async def close_session(session_id: str):
    """Abandon a session. Any in-flight polling stops without further writes."""
    manager = get_session_manager()
    try:
        await manager.close(session_id)
    except SessionNotFoundError:
        raise HTTPException(404, f"Session not found: {session_id}")
    return Response(status_code=204)


# ============================================================================
# JOB HISTORY
# ============================================================================

@router.get("/jobs", response_model=JobListResponse, tags=["Jobs"])
async def list_jobs(
    limit: Optional[int] = Query(None, ge=1, le=500, description="Default 100"),
):
    """Recent monitoring jobs, newest first."""
    service = get_history_service()
    try:
        jobs = await service.list_recent(limit)
    except CollaboratorError as e:
        raise HTTPException(502, _collaborator_detail(e))

    return JobListResponse(
        jobs=[JobResponse.from_job(j) for j in jobs],
        total=len(jobs),
    )


@router.get(
    "/jobs/check",
    response_model=IdentifierCheckResponse,
    tags=["Jobs"],
    responses={400: {"model": ErrorResponse}},
)
async def check_identifier(identifier: str = Query(..., description="16-digit identifier")):
    """Does this identifier already have a job (latest one returned)."""
    service = get_history_service()
    try:
        check = await service.check_identifier(identifier)
    except ValidationError as e:
        raise HTTPException(400, str(e))
    except CollaboratorError as e:
        raise HTTPException(502, _collaborator_detail(e))

    return IdentifierCheckResponse(
        exists=check.exists,
        job=JobResponse.from_job(check.job) if check.job else None,
    )


@router.get(
    "/jobs/{job_id}/status",
    response_model=JobStatusCheckResponse,
    tags=["Jobs"],
    responses={502: {"model": ErrorResponse}},
)
async def check_job_status(job_id: str):
    """Live status from the processing service, with the report once completed."""
    service = get_history_service()
    try:
        check = await service.check_job(job_id)
    except ValidationError as e:
        raise HTTPException(400, str(e))
    except CollaboratorError as e:
        raise HTTPException(502, _collaborator_detail(e))

    return JobStatusCheckResponse(
        job_id=check.job_id,
        status=check.status,
        payment_status=check.payment_status,
        report=check.report,
        parse_error=check.parse_error,
        job=JobResponse.from_job(check.job) if check.job else None,
    )
