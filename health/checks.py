# ============================================================================
# APPLICATION HEALTH CHECKS
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Infrastructure - Checks for the monitor's collaborators
# PURPOSE: Job store reachability, remote service config, session manager
# CREATED: 09 OCT 2026
# ============================================================================
"""
Application Health Checks

    job_store           list_recent(1) succeeds
    processing_service  base URL configured; degraded without payment config
    sessions            session manager initialised; reports active sessions
"""

from typing import Optional

from core.config import ProcessingServiceDefaults
from core.exceptions import CollaboratorError
from health.core import HealthCheckPlugin, HealthCheckRegistry, HealthCheckResult


class JobStoreCheck(HealthCheckPlugin):
    name = "job_store"

    def __init__(self, store, backend: str):
        self.store = store
        self.backend = backend

    async def check(self) -> HealthCheckResult:
        try:
            await self.store.list_recent(1)
        except CollaboratorError as e:
            return HealthCheckResult.unhealthy(str(e), backend=self.backend)
        return HealthCheckResult.healthy("Job store reachable", backend=self.backend)


class ProcessingServiceCheck(HealthCheckPlugin):
    """Configuration check only; no request is sent to the remote service."""

    name = "processing_service"

    def __init__(self, config: ProcessingServiceDefaults):
        self.config = config

    async def check(self) -> HealthCheckResult:
        if not self.config.base_url:
            return HealthCheckResult.unhealthy("PROCESSING_API_BASE not set")
        if not self.config.has_payment_config:
            return HealthCheckResult.degraded(
                "Payment service not configured; payments will be rejected",
                base_url=self.config.base_url,
                network=self.config.network,
            )
        return HealthCheckResult.healthy(
            "Processing and payment services configured",
            base_url=self.config.base_url,
            network=self.config.network,
        )


class SessionManagerCheck(HealthCheckPlugin):
    name = "sessions"
    required_for_ready = False

    def __init__(self, manager: Optional[object] = None):
        self.manager = manager

    async def check(self) -> HealthCheckResult:
        if self.manager is None:
            return HealthCheckResult.unhealthy("Session manager not initialized")
        return HealthCheckResult.healthy(
            active_sessions=self.manager.active_count,
            total_sessions=len(self.manager.list_sessions()),
        )


def register_application_checks(
    registry: HealthCheckRegistry,
    store,
    backend: str,
    processing: ProcessingServiceDefaults,
    manager,
) -> None:
    """Register the three application checks and mark the registry ready."""
    registry.register(JobStoreCheck(store, backend))
    registry.register(ProcessingServiceCheck(processing))
    registry.register(SessionManagerCheck(manager))
    registry.mark_initialized()


__all__ = [
    "JobStoreCheck",
    "ProcessingServiceCheck",
    "SessionManagerCheck",
    "register_application_checks",
]
