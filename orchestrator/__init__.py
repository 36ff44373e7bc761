# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Job lifecycle orchestration
# PURPOSE: Drive monitoring sessions from job creation to report
# CREATED: 06 OCT 2026
# ============================================================================
"""
Orchestrator Module

Usage:
    from orchestrator import SessionManager

    manager = SessionManager(store, client)
    session = await manager.start("Berlin")
    await manager.confirm_payment(session.session_id)
"""

from .lifecycle import JobLifecycleOrchestrator, StatusObserver
from .sessions import SessionManager

__all__ = ["JobLifecycleOrchestrator", "StatusObserver", "SessionManager"]
