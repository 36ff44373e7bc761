# ============================================================================
# HEALTH CHECK CORE TYPES
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Infrastructure - Health check plugin types and registry
# PURPOSE: Result types, plugin base class, registry, parallel execution
# CREATED: 09 OCT 2026
# ============================================================================
"""
Health Check Core

Status hierarchy (worst wins):
- healthy: everything reachable and configured
- degraded: usable with limitations (e.g. payments not configured)
- unhealthy: a collaborator the orchestrator needs is down

Plugins are registered as instances, so each one receives the objects it
checks through its constructor.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health check status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def http_code(self) -> int:
        """HTTP status for an endpoint reporting this status."""
        return {HealthStatus.HEALTHY: 200, HealthStatus.DEGRADED: 206}.get(self, 503)

    @classmethod
    def worst(cls, statuses: List["HealthStatus"]) -> "HealthStatus":
        return max(statuses, key=lambda s: s.severity, default=cls.HEALTHY)


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
}


@dataclass
class HealthCheckResult:
    """Outcome of one check."""
    status: HealthStatus
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0

    @classmethod
    def healthy(cls, message: str = None, **details) -> "HealthCheckResult":
        return cls(HealthStatus.HEALTHY, message, details)

    @classmethod
    def degraded(cls, message: str, **details) -> "HealthCheckResult":
        return cls(HealthStatus.DEGRADED, message, details)

    @classmethod
    def unhealthy(cls, message: str, **details) -> "HealthCheckResult":
        return cls(HealthStatus.UNHEALTHY, message, details)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.message:
            body["message"] = self.message
        if self.details:
            body["details"] = self.details
        return body


@dataclass
class HealthReport:
    """Results of a batch of checks."""
    checks: Dict[str, HealthCheckResult]
    total_duration_ms: float
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def status(self) -> HealthStatus:
        return HealthStatus.worst([r.status for r in self.checks.values()])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "checks": {name: r.to_dict() for name, r in self.checks.items()},
            "total_duration_ms": round(self.total_duration_ms, 2),
            "checked_at": self.checked_at.isoformat(),
        }


class HealthCheckPlugin(ABC):
    """
    Base class for health checks.

    Attributes:
        name: Unique check name (key in the /health response)
        timeout_seconds: A check running longer is reported unhealthy
        required_for_ready: If True, an unhealthy result fails /readyz
    """

    name: str = "unnamed"
    timeout_seconds: float = 5.0
    required_for_ready: bool = True

    @abstractmethod
    async def check(self) -> HealthCheckResult:
        pass

    async def run(self) -> HealthCheckResult:
        """Execute check() with its timeout; exceptions become unhealthy results."""
        started = time.monotonic()
        try:
            result = await asyncio.wait_for(self.check(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            result = HealthCheckResult.unhealthy(f"Timed out after {self.timeout_seconds}s")
        except Exception as e:
            logger.warning(f"Health check {self.name} raised: {e}")
            result = HealthCheckResult.unhealthy(str(e), exception_type=type(e).__name__)
        result.duration_ms = (time.monotonic() - started) * 1000
        return result


class HealthCheckRegistry:
    """Named collection of check instances."""

    def __init__(self):
        self._checks: Dict[str, HealthCheckPlugin] = {}
        self._initialized = False

    def register(self, check: HealthCheckPlugin) -> None:
        if check.name in self._checks:
            logger.warning(f"Overwriting health check: {check.name}")
        self._checks[check.name] = check

    def get(self, name: str) -> Optional[HealthCheckPlugin]:
        return self._checks.get(name)

    def clear(self) -> None:
        self._checks.clear()
        self._initialized = False

    def mark_initialized(self) -> None:
        self._initialized = True

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def run(self, required_only: bool = False) -> HealthReport:
        """Run checks concurrently."""
        checks = [
            c for c in self._checks.values()
            if c.required_for_ready or not required_only
        ]
        started = time.monotonic()
        results = await asyncio.gather(*(c.run() for c in checks))
        return HealthReport(
            checks={c.name: r for c, r in zip(checks, results)},
            total_duration_ms=(time.monotonic() - started) * 1000,
        )

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, name: str) -> bool:
        return name in self._checks


_registry: Optional[HealthCheckRegistry] = None


def get_registry() -> HealthCheckRegistry:
    """Get the global health check registry."""
    global _registry
    if _registry is None:
        _registry = HealthCheckRegistry()
    return _registry


__all__ = [
    "HealthStatus",
    "HealthCheckResult",
    "HealthReport",
    "HealthCheckPlugin",
    "HealthCheckRegistry",
    "get_registry",
]
