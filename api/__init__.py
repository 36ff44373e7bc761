# ============================================================================
# API MODULE
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - FastAPI routes
# PURPOSE: HTTP API for monitoring sessions and job history
# CREATED: 08 OCT 2026
# ============================================================================
"""
API Module

FastAPI routes for the climate monitor.
"""

from .routes import router, set_services
from .schemas import (
    SessionCreate,
    SessionResponse,
    JobResponse,
)

__all__ = [
    "router",
    "set_services",
    "SessionCreate",
    "SessionResponse",
    "JobResponse",
]
