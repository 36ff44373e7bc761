# ============================================================================
# SESSION MANAGER
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Owns one orchestrator per user session
# PURPOSE: Start, look up, pay, restart and close monitoring sessions
# CREATED: 07 OCT 2026
# ============================================================================
"""
Session Manager

Maps session_id -> JobLifecycleOrchestrator for the API process.

Polling can take up to an hour, so it runs as a named background task per
session; API calls return immediately with the current snapshot.

    start()    idempotent per session_id
    restart()  the way back after ERROR: new identifier, same location
    close()    closes the orchestrator and cancels its poll task
    shutdown() closes everything (application shutdown)
"""

import asyncio
import logging
import uuid
from functools import partial
from typing import Dict, List, Optional

from core.config import PollingDefaults, ProcessingServiceDefaults, StoreDefaults
from core.contracts import MonitorState
from core.exceptions import SessionNotFoundError, ValidationError
from core.identifiers import generate_identifier
from core.models import MonitoringSession
from repositories import JobStore
from services import ProcessingServiceClient
from .lifecycle import JobLifecycleOrchestrator, StatusObserver

logger = logging.getLogger(__name__)


class SessionManager:
    """Registry of live monitoring sessions."""

    def __init__(
        self,
        store: JobStore,
        client: ProcessingServiceClient,
        polling: Optional[PollingDefaults] = None,
        processing: Optional[ProcessingServiceDefaults] = None,
        store_config: Optional[StoreDefaults] = None,
        observer: Optional[StatusObserver] = None,
    ):
        self.store = store
        self.client = client
        self.polling = polling
        self.processing = processing
        self.store_config = store_config
        self.observer = observer
        self._sessions: Dict[str, JobLifecycleOrchestrator] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(
        self,
        location: str,
        identifier: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> MonitoringSession:
        """
        Start (or resume) a monitoring session.

        Args:
            location: Location to monitor
            identifier: Purchaser identifier; generated when omitted
            session_id: Caller-chosen id; a repeated id returns the live session

        Returns:
            Session snapshot after resume_or_create

        Raises:
            ValidationError: Invalid location or identifier
        """
        if session_id and session_id in self._sessions:
            logger.info(f"Session {session_id} already started")
            return self._sessions[session_id].session

        session = MonitoringSession(
            session_id=session_id or uuid.uuid4().hex,
            purchaser_identifier=identifier or generate_identifier(),
            location=location or "",
        )
        orchestrator = JobLifecycleOrchestrator(
            session,
            self.store,
            self.client,
            polling=self.polling,
            processing=self.processing,
            store_config=self.store_config,
            observer=self.observer,
        )
        # Registered before the first await so a concurrent duplicate start finds it
        self._sessions[session.session_id] = orchestrator

        try:
            await orchestrator.resume_or_create()
        except ValidationError:
            self._sessions.pop(session.session_id, None)
            raise

        logger.info(
            f"Session {session.session_id} started for purchaser "
            f"{session.purchaser_identifier}: {session.state.value}"
        )
        self._start_polling_if_ready(session.session_id)
        return session

    async def confirm_payment(self, session_id: str) -> MonitoringSession:
        """
        Confirm payment for a session and start polling in the background.

        Raises:
            SessionNotFoundError: Unknown session
            StateTransitionError: Session is not awaiting payment
            CollaboratorError: Payment submission failed (retryable)
        """
        orchestrator = self._get(session_id)
        await orchestrator.confirm_payment()
        self._start_polling_if_ready(session_id)
        return orchestrator.session

    async def restart(self, session_id: str) -> MonitoringSession:
        """
        Replace a session with a fresh one for the same location.

        The new session gets a new identifier, so it never resumes the old job.
        """
        location = self._get(session_id).session.location
        await self.close(session_id)
        return await self.start(location)

    async def close(self, session_id: str) -> None:
        """
        Close a session and cancel its poll task.

        Raises:
            SessionNotFoundError: Unknown session
        """
        orchestrator = self._sessions.pop(session_id, None)
        if orchestrator is None:
            raise SessionNotFoundError(session_id)

        orchestrator.close()
        task = self._tasks.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info(f"Session {session_id} removed")

    async def shutdown(self) -> None:
        """Close every session."""
        session_ids = list(self._sessions)
        for session_id in session_ids:
            await self.close(session_id)
        if session_ids:
            logger.info(f"Session manager shut down ({len(session_ids)} sessions closed)")

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get(self, session_id: str) -> MonitoringSession:
        """Session snapshot. Raises SessionNotFoundError."""
        return self._get(session_id).session

    def list_sessions(self) -> List[MonitoringSession]:
        return [o.session for o in self._sessions.values()]

    @property
    def active_count(self) -> int:
        """Sessions that have not reached a terminal state."""
        return sum(1 for o in self._sessions.values() if not o.session.is_terminal)

    async def wait_for(self, session_id: str) -> MonitoringSession:
        """
        Wait for a session's poll task (if any) to finish.

        A crashed task is not re-raised here; its error is on the session.
        """
        orchestrator = self._get(session_id)
        task = self._tasks.get(session_id)
        if task is not None:
            await asyncio.wait({task})
        return orchestrator.session

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _get(self, session_id: str) -> JobLifecycleOrchestrator:
        orchestrator = self._sessions.get(session_id)
        if orchestrator is None:
            raise SessionNotFoundError(session_id)
        return orchestrator

    def _start_polling_if_ready(self, session_id: str) -> None:
        orchestrator = self._sessions.get(session_id)
        if orchestrator is None or orchestrator.session.state != MonitorState.PROCESSING:
            return
        existing = self._tasks.get(session_id)
        if existing is not None and not existing.done():
            return

        task = asyncio.create_task(orchestrator.poll_status(), name=f"poll-{session_id}")
        task.add_done_callback(partial(self._on_poll_done, orchestrator))
        self._tasks[session_id] = task
        logger.debug(f"Polling task started for session {session_id}")

    def _on_poll_done(self, orchestrator: JobLifecycleOrchestrator, task: asyncio.Task) -> None:
        """A crashed poll task leaves the session in ERROR, never stuck in PROCESSING."""
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Polling task {task.get_name()} crashed: {error!r}")
            orchestrator.abort(error)


__all__ = ["SessionManager"]
