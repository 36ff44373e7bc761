# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Foundation - Core enums and base contracts
# PURPOSE: Status enums, AQI bands and base data contracts
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: MonitorState, RemoteJobStatus, PaymentStatus, RiskLevel, FailureKind, JobData
# DEPENDENCIES: enum, pydantic
# ============================================================================
"""
Base contracts for the climate monitor.

These define the enums and minimal identity fields that cross boundaries:
- SQL (PostgreSQL job store)
- HTTP (processing service, public API)
- Python (orchestrator state machine)
"""

from enum import Enum
from typing import Dict, Set
from pydantic import BaseModel, Field


# ============================================================================
# STATUS ENUMS
# ============================================================================

class MonitorState(str, Enum):
    """
    Orchestration states of one monitoring session.

    State transitions:
        IDLE -> INITIALIZING -> AWAITING_PAYMENT -> PROCESSING -> COMPLETED
                             -> PROCESSING (resumed paid job)
        any non-terminal -> ERROR
    """
    IDLE = "idle"                          # Session created, nothing started
    INITIALIZING = "initializing"          # Looking up / creating the job
    AWAITING_PAYMENT = "awaiting_payment"  # Job exists, payment outstanding
    PROCESSING = "processing"              # Paid, polling the processor
    COMPLETED = "completed"                # Report parsed
    ERROR = "error"                        # Halted, needs a new session

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no further transitions)."""
        return self in (MonitorState.COMPLETED, MonitorState.ERROR)

    def can_transition_to(self, new_state: "MonitorState") -> bool:
        """Validate a transition against the lifecycle table."""
        return new_state in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: Dict[MonitorState, Set[MonitorState]] = {
    MonitorState.IDLE: {MonitorState.INITIALIZING, MonitorState.ERROR},
    MonitorState.INITIALIZING: {
        MonitorState.AWAITING_PAYMENT,
        MonitorState.PROCESSING,
        MonitorState.ERROR,
    },
    MonitorState.AWAITING_PAYMENT: {MonitorState.PROCESSING, MonitorState.ERROR},
    MonitorState.PROCESSING: {MonitorState.COMPLETED, MonitorState.ERROR},
    MonitorState.COMPLETED: set(),
    MonitorState.ERROR: set(),
}


class RemoteJobStatus(str, Enum):
    """Job status as reported by the processing service."""
    AWAITING_PAYMENT = "awaiting_payment"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        """Check if the remote job has finished."""
        return self in (RemoteJobStatus.COMPLETED, RemoteJobStatus.FAILED)


class PaymentStatus(str, Enum):
    """Payment status as reported alongside the remote job status."""
    PENDING = "pending"
    COMPLETED = "completed"
    UNKNOWN = "unknown"
    ERROR = "error"


class FailureKind(str, Enum):
    """Classification of why a session stopped (or paused) with an error."""
    VALIDATION = "validation"
    COLLABORATOR = "collaborator"
    PARSE = "parse"
    PROTOCOL = "protocol"
    TIMEOUT = "timeout"
    REMOTE_FAILED = "remote_failed"


# ============================================================================
# AIR QUALITY BANDS
# ============================================================================

class RiskLevel(str, Enum):
    """
    EPA air quality bands.

    Upper bounds are inclusive: 50 is still GOOD, 51 is MODERATE.
    """
    GOOD = "good"
    MODERATE = "moderate"
    UNHEALTHY_SENSITIVE = "unhealthy_sensitive"
    UNHEALTHY = "unhealthy"
    VERY_UNHEALTHY = "very_unhealthy"
    HAZARDOUS = "hazardous"

    @classmethod
    def from_aqi(cls, aqi: float) -> "RiskLevel":
        """Map an AQI score onto its band."""
        if aqi < 0:
            raise ValueError(f"AQI cannot be negative: {aqi}")
        for upper, level in _AQI_BREAKPOINTS:
            if aqi <= upper:
                return level
        return cls.HAZARDOUS

    @property
    def label(self) -> str:
        """Display label ("unhealthy_sensitive" -> "Unhealthy for Sensitive Groups")."""
        return _RISK_LABELS[self]

    @property
    def color(self) -> str:
        """Display colour name for the band."""
        return _RISK_COLORS[self]


_AQI_BREAKPOINTS = (
    (50, RiskLevel.GOOD),
    (100, RiskLevel.MODERATE),
    (150, RiskLevel.UNHEALTHY_SENSITIVE),
    (200, RiskLevel.UNHEALTHY),
    (300, RiskLevel.VERY_UNHEALTHY),
)

_RISK_LABELS = {
    RiskLevel.GOOD: "Good",
    RiskLevel.MODERATE: "Moderate",
    RiskLevel.UNHEALTHY_SENSITIVE: "Unhealthy for Sensitive Groups",
    RiskLevel.UNHEALTHY: "Unhealthy",
    RiskLevel.VERY_UNHEALTHY: "Very Unhealthy",
    RiskLevel.HAZARDOUS: "Hazardous",
}

_RISK_COLORS = {
    RiskLevel.GOOD: "green",
    RiskLevel.MODERATE: "yellow",
    RiskLevel.UNHEALTHY_SENSITIVE: "orange",
    RiskLevel.UNHEALTHY: "red",
    RiskLevel.VERY_UNHEALTHY: "purple",
    RiskLevel.HAZARDOUS: "maroon",
}


# ============================================================================
# BASE DATA CONTRACTS
# ============================================================================

class JobData(BaseModel):
    """
    Essential job identity - the minimum fields that define a monitoring job.
    """
    purchaser_identifier: str = Field(
        ..., max_length=64, alias="purchaserIdentifier", description="Purchaser/session token"
    )
    job_id: str = Field(
        ..., max_length=128, alias="jobId", description="Assigned by the processing service"
    )

    model_config = {"frozen": False, "populate_by_name": True}
