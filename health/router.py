# ============================================================================
# HEALTH CHECK ROUTER
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Infrastructure - Probe endpoints
# PURPOSE: /livez, /readyz, /health
# CREATED: 09 OCT 2026
# ============================================================================
"""
Health Check Router

    GET /livez   process alive, no checks run
    GET /readyz  required checks only; 503 if any is unhealthy
    GET /health  every check; 200 healthy, 206 degraded, 503 unhealthy
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from __version__ import __version__, BUILD_DATE
from health.core import HealthStatus, get_registry

logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["Health"])


@health_router.get("/livez")
async def liveness_probe():
    """Process is alive."""
    return {"status": "alive", "version": __version__, "build_date": BUILD_DATE}


@health_router.get("/readyz")
async def readiness_probe():
    """Ready to accept monitoring sessions."""
    registry = get_registry()
    if not registry.is_initialized:
        return JSONResponse(status_code=503, content={"status": "starting"})

    report = await registry.run(required_only=True)
    if report.status == HealthStatus.UNHEALTHY:
        failing = {
            name: r.to_dict()
            for name, r in report.checks.items()
            if r.status == HealthStatus.UNHEALTHY
        }
        logger.warning(f"Readiness failed: {', '.join(failing)}")
        return JSONResponse(status_code=503, content={"status": "not_ready", "checks": failing})

    return {"status": "ready", "checks_passed": len(report.checks)}


@health_router.get("/health")
async def full_health_check():
    """Every registered check, with details."""
    report = await get_registry().run()
    body = report.to_dict()
    body["version"] = __version__
    body["build_date"] = BUILD_DATE
    return JSONResponse(status_code=report.status.http_code, content=body)


__all__ = ["health_router"]
