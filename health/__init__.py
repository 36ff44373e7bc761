# ============================================================================
# HEALTH CHECK MODULE
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Infrastructure - Health check plugin system
# PURPOSE: Kubernetes probes and collaborator health
# CREATED: 09 OCT 2026
# ============================================================================
"""
Health Check Module

Usage:
    from health import health_router, get_registry, register_application_checks

    register_application_checks(get_registry(), store, "memory", config, manager)
    app.include_router(health_router)
"""

from health.core import (
    HealthStatus,
    HealthCheckResult,
    HealthReport,
    HealthCheckPlugin,
    HealthCheckRegistry,
    get_registry,
)
from health.checks import register_application_checks
from health.router import health_router

__all__ = [
    "HealthStatus",
    "HealthCheckResult",
    "HealthReport",
    "HealthCheckPlugin",
    "HealthCheckRegistry",
    "get_registry",
    "register_application_checks",
    "health_router",
]
