# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors and identifier helpers
# LAST_REVIEWED: 14 OCT 2026
# ============================================================================

from core.contracts import MonitorState, RemoteJobStatus, PaymentStatus, FailureKind, RiskLevel
from core.exceptions import (
    MonitorError,
    ValidationError,
    ConfigurationError,
    StateTransitionError,
    CollaboratorError,
    JobNotFoundError,
    ParseError,
    ProtocolError,
    PollingTimeoutError,
    SessionNotFoundError,
)
from core.identifiers import generate_identifier, is_valid_identifier

__all__ = [
    # Enums
    "MonitorState",
    "RemoteJobStatus",
    "PaymentStatus",
    "FailureKind",
    "RiskLevel",
    # Errors
    "MonitorError",
    "ValidationError",
    "ConfigurationError",
    "StateTransitionError",
    "CollaboratorError",
    "JobNotFoundError",
    "ParseError",
    "ProtocolError",
    "PollingTimeoutError",
    "SessionNotFoundError",
    # Identifiers
    "generate_identifier",
    "is_valid_identifier",
]
