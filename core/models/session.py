# ============================================================================
# MONITORING SESSION MODEL
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core model - In-memory orchestration state
# PURPOSE: Observable state of one user session driven by the orchestrator
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: MonitoringSession, SessionFailure
# DEPENDENCIES: pydantic
# ============================================================================
"""
Monitoring Session Model

A session is what the presentation layer observes: the orchestrator state,
the bound job, progress, and either the report or the failure.

Sessions are never persisted. The job they are bound to is.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from core.contracts import FailureKind, MonitorState, RemoteJobStatus
from core.exceptions import StateTransitionError
from core.models.climate import ClimateResult
from core.models.job import MonitoringJob

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionFailure(BaseModel):
    """Why a session stopped (or, when retryable, paused)."""
    kind: FailureKind
    message: str
    retryable: bool = False
    restart_hint: str = "Start a new monitoring session to try again."

    model_config = {"frozen": True}


class MonitoringSession(BaseModel):
    """
    Orchestration state of one monitoring session.

    Lifecycle:
        1. Created in IDLE
        2. transition_to() enforces the MonitorState table
        3. Terminal in COMPLETED or ERROR
    """
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    purchaser_identifier: str
    location: str

    state: MonitorState = Field(default=MonitorState.IDLE)
    job: Optional[MonitoringJob] = None

    progress: int = Field(default=0, ge=0, le=100)
    current_step: str = Field(default="")
    last_remote_status: Optional[str] = None
    poll_attempts: int = Field(default=0, ge=0)

    result: Optional[Dict[str, Any]] = None
    failure: Optional[SessionFailure] = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    # =========================================================================
    # STATE MACHINE
    # =========================================================================

    def transition_to(self, new_state: MonitorState) -> None:
        """
        Move to new_state.

        Raises:
            StateTransitionError: If the lifecycle table forbids the move
        """
        if not self.state.can_transition_to(new_state):
            raise StateTransitionError(
                f"Cannot transition from {self.state.value} to {new_state.value}",
                current_state=self.state.value,
                operation=f"transition_to:{new_state.value}",
            )
        self.state = new_state
        self.touch()

    def set_progress(self, progress: int, step: str) -> None:
        self.progress = max(0, min(100, progress))
        self.current_step = step
        self.touch()

    def record_failure(
        self,
        kind: FailureKind,
        message: str,
        retryable: bool = False,
        restart_hint: Optional[str] = None,
    ) -> SessionFailure:
        """Attach a failure. Does not change state."""
        failure = SessionFailure(
            kind=kind,
            message=message,
            retryable=retryable,
            **({"restart_hint": restart_hint} if restart_hint else {}),
        )
        self.failure = failure
        self.touch()
        return failure

    def clear_failure(self) -> None:
        if self.failure is not None:
            self.failure = None
            self.touch()

    def touch(self) -> None:
        self.updated_at = _utcnow()

    # =========================================================================
    # DERIVED VIEWS
    # =========================================================================

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal()

    @property
    def job_id(self) -> Optional[str]:
        return self.job.job_id if self.job else None

    @property
    def remote_status(self) -> Optional[RemoteJobStatus]:
        if self.last_remote_status is None:
            return None
        try:
            return RemoteJobStatus(self.last_remote_status)
        except ValueError:
            return None

    @property
    def payment_display(self) -> Optional[str]:
        """Quoted price, e.g. '1.50 ADA'."""
        if self.job is None:
            return None
        return self.job.payment_display

    @property
    def report(self) -> Optional[ClimateResult]:
        """
        Typed report view, or None.

        The raw result is always kept; a report whose fields do not fit the
        typed view only loses the typed view.
        """
        if self.result is None:
            return None
        try:
            return ClimateResult.from_payload(self.result)
        except PydanticValidationError as e:
            logger.warning(
                f"Session {self.session_id}: report does not fit typed view "
                f"({e.error_count()} errors)"
            )
            return None


__all__ = ["MonitoringSession", "SessionFailure"]
