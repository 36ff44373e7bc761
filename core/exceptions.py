# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Foundation - Exceptions shared by all layers
# PURPOSE: Classify failures so the orchestrator can decide how to react
# CREATED: 02 OCT 2026
# ============================================================================
"""
Monitor Exceptions

MonitorError
├── ValidationError        missing/invalid request fields (no network call made)
├── ConfigurationError     required setting missing
├── StateTransitionError   operation not allowed in the current session state
├── CollaboratorError      job store or processing service call failed
│   └── JobNotFoundError   store has no record for the job_id
├── ParseError             result payload malformed or missing the report key
├── ProtocolError          "completed" status without a result body
├── PollingTimeoutError    polling ceiling reached
└── SessionNotFoundError   unknown session id
"""

from typing import Any, Optional


class MonitorError(Exception):
    """Base exception for climate monitor operations."""


class ValidationError(MonitorError):
    """Raised when a request is rejected before any network call."""

    def __init__(self, message: str, field: str = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


class ConfigurationError(MonitorError):
    """Raised when a required setting is missing."""

    def __init__(self, message: str, setting: str = None):
        self.setting = setting
        super().__init__(message)


class StateTransitionError(MonitorError):
    """Raised when an operation is invoked from a state that does not allow it."""

    def __init__(self, message: str, current_state: str = None, operation: str = None):
        self.current_state = current_state
        self.operation = operation
        super().__init__(message)


class CollaboratorError(MonitorError):
    """
    Raised when an external collaborator call fails.

    Covers network errors, timeouts, non-2xx responses and undecodable
    bodies from the processing service, and driver errors from the store.
    """

    def __init__(
        self,
        message: str,
        service: str = None,
        operation: str = None,
        status_code: Optional[int] = None,
        detail: Any = None,
    ):
        self.service = service
        self.operation = operation
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class JobNotFoundError(CollaboratorError):
    """Raised when the job store has no record for a job_id."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(
            f"Job not found: {job_id}",
            service="job_store",
            operation="patch_payment",
            status_code=404,
        )


class ParseError(MonitorError):
    """Raised when the result payload cannot be turned into a climate report."""


class ProtocolError(MonitorError):
    """Raised when the processing service breaks its response contract."""


class SessionNotFoundError(MonitorError):
    """Raised when a session id is not known to the session manager."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class PollingTimeoutError(MonitorError, TimeoutError):
    """Raised when the polling ceiling is reached without a terminal status."""

    def __init__(self, job_id: str, attempts: int, interval_seconds: float):
        self.job_id = job_id
        self.attempts = attempts
        self.interval_seconds = interval_seconds
        super().__init__(
            f"Job {job_id} did not complete after {attempts} status checks "
            f"({attempts * interval_seconds:.0f}s)"
        )


__all__ = [
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
]
