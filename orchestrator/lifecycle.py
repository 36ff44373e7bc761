# ============================================================================
# JOB LIFECYCLE ORCHESTRATOR
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Drives one monitoring session from start to report
# PURPOSE: Resume or create the job, gate on payment, poll, parse
# CREATED: 06 OCT 2026
# ============================================================================
"""
Job Lifecycle Orchestrator

One orchestrator drives one MonitoringSession:

    IDLE -> INITIALIZING -> AWAITING_PAYMENT -> PROCESSING -> COMPLETED
                         -> PROCESSING (stored job already paid)
    any non-terminal -> ERROR

Operations:
    resume_or_create()  reuse the purchaser's latest job, or start a new one
    confirm_payment()   submit the stored payment bundle, then start polling
    poll_status()       check the remote job until it finishes or the ceiling hits
    close()             abandon the session; nothing is written afterwards
    run()               resume_or_create() and, if already paid, poll_status()

Every external call is a single attempt. What a failure means depends on
where it happens:
    resume lookup  -> treated as "no prior job" (configurable)
    job creation   -> ERROR, nothing persisted
    payment        -> stays AWAITING_PAYMENT with a retryable failure
    status polling -> ERROR
"""

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from core.config import PollingDefaults, ProcessingServiceDefaults, StoreDefaults, get_defaults
from core.contracts import FailureKind, MonitorState, RemoteJobStatus
from core.exceptions import (
    CollaboratorError,
    ConfigurationError,
    ParseError,
    PollingTimeoutError,
    ProtocolError,
    StateTransitionError,
    ValidationError,
)
from core.identifiers import is_valid_identifier
from core.logging import log_checkpoint, log_context
from core.models import (
    JobStatusResponse,
    MonitoringJob,
    MonitoringSession,
    build_request_text,
)
from repositories import JobStore
from services import ProcessingServiceClient, parse_climate_result

logger = logging.getLogger(__name__)

# Called with every status response before termination is evaluated.
# May be a plain function or a coroutine function.
StatusObserver = Callable[[MonitoringSession, JobStatusResponse], Any]

MAX_LOCATION_LENGTH = 256

REMOTE_FAILED_MESSAGE = (
    "Job failed: LLM service limits reached. Please try again in a few minutes."
)
TIMEOUT_HINT = "Check the job history later, or start a new monitoring session."
PAYMENT_RETRY_HINT = "Check your wallet and retry the payment."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobLifecycleOrchestrator:
    """
    State machine for one monitoring session.

    Not shared between sessions. All mutation happens on the session
    object passed in, which callers may read at any time.
    """

    def __init__(
        self,
        session: MonitoringSession,
        store: JobStore,
        client: ProcessingServiceClient,
        polling: Optional[PollingDefaults] = None,
        processing: Optional[ProcessingServiceDefaults] = None,
        store_config: Optional[StoreDefaults] = None,
        observer: Optional[StatusObserver] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            session: Session to drive (must be IDLE for resume_or_create)
            store: Job store
            client: Processing/payment service client
            polling: Poll interval and ceiling
            processing: Payment network
            store_config: Lookup-failure policy
            observer: Optional callback receiving each status response
        """
        defaults = get_defaults()
        self.session = session
        self.store = store
        self.client = client
        self.polling = polling or defaults.polling
        self.processing = processing or defaults.processing
        self.store_config = store_config or defaults.store
        self.observer = observer
        self._closed = asyncio.Event()
        self._payment_in_flight = False

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def resume_or_create(self) -> MonitoringSession:
        """
        Bind the session to a job.

        Returns:
            The session, now AWAITING_PAYMENT, PROCESSING or ERROR

        Raises:
            StateTransitionError: Session is not IDLE (already initialized)
            ValidationError: Missing location or malformed identifier
        """
        # Guard and first transition happen before any await
        self._require_state(MonitorState.IDLE, "resume_or_create")
        self._validate_inputs()
        self._transition(MonitorState.INITIALIZING)

        with self._context("resume_or_create"):
            self._progress(10, "Checking for existing job...")

            try:
                existing = await self.store.find_latest_by_identifier(
                    self.session.purchaser_identifier
                )
            except CollaboratorError as e:
                if self.store_config.resume_on_lookup_failure == "fail":
                    logger.error(f"Existing-job lookup failed: {e}")
                    self._fail(
                        FailureKind.COLLABORATOR,
                        f"Could not check for an existing job: {e}",
                    )
                    return self.session
                logger.warning(f"Existing-job lookup failed, creating a new job: {e}")
                existing = None

            if self.closed:
                return self.session

            if existing is not None:
                self._resume(existing)
            else:
                await self._create_job()

        return self.session

    async def confirm_payment(self) -> MonitoringSession:
        """
        Submit the payment bundle and move to PROCESSING.

        A job that is already paid skips submission and keeps its paid_at.

        Returns:
            The session (PROCESSING on success)

        Raises:
            StateTransitionError: Session is not AWAITING_PAYMENT, is closed,
                or a payment submission is already in flight
            CollaboratorError: Payment submission failed (session stays
                AWAITING_PAYMENT with a retryable failure)
            ConfigurationError: Payment service not configured
        """
        self._require_state(MonitorState.AWAITING_PAYMENT, "confirm_payment")
        if self._payment_in_flight:
            raise StateTransitionError(
                f"Payment for session {self.session.session_id} is already being submitted",
                current_state=self.session.state.value,
                operation="confirm_payment",
            )
        # Claimed before the first await; released only after the outcome is recorded
        self._payment_in_flight = True
        try:
            return await self._submit_payment()
        finally:
            self._payment_in_flight = False

    async def poll_status(self) -> MonitoringSession:
        """
        Poll the remote job until it finishes, fails, or the ceiling is hit.

        Returns:
            The session, COMPLETED or ERROR (or unchanged if closed)

        Raises:
            StateTransitionError: Session is not PROCESSING
        """
        self._require_state(MonitorState.PROCESSING, "poll_status")
        job_id = self.session.job_id
        max_attempts = self.polling.max_attempts

        with self._context("poll_status"):
            for attempt in range(1, max_attempts + 1):
                if self.closed:
                    return self.session

                try:
                    status = await self.client.get_status(job_id)
                except CollaboratorError as e:
                    if not self.closed:
                        logger.error(f"Status check {attempt} failed: {e}")
                        self._fail(FailureKind.COLLABORATOR, f"Could not check job status: {e}")
                    return self.session

                if self.closed:
                    return self.session

                self.session.poll_attempts = attempt
                self.session.last_remote_status = status.status
                await self._notify(status)
                if self.closed:
                    return self.session

                await self._mirror_status(status)
                remote = status.remote_status

                if remote == RemoteJobStatus.COMPLETED:
                    try:
                        self._finalize(status)
                    except ProtocolError as e:
                        logger.error(str(e))
                        self._fail(
                            FailureKind.PROTOCOL,
                            "The job completed but returned no result",
                        )
                    return self.session

                if remote == RemoteJobStatus.FAILED:
                    logger.warning(f"Job {job_id} failed remotely")
                    self._fail(FailureKind.REMOTE_FAILED, REMOTE_FAILED_MESSAGE)
                    return self.session

                if remote is None:
                    logger.warning(f"Unknown remote status '{status.status}', still waiting")

                self._progress(
                    min(90, 50 + (40 * attempt) // max_attempts),
                    f"Running analysis... (check {attempt}/{max_attempts})",
                )

                if attempt < max_attempts and await self._wait(self.polling.interval_seconds):
                    return self.session

            timeout = PollingTimeoutError(job_id, max_attempts, self.polling.interval_seconds)
            logger.error(str(timeout))
            self._fail(
                FailureKind.TIMEOUT,
                "The job is taking longer than expected. Please try again later.",
                restart_hint=TIMEOUT_HINT,
            )

        return self.session

    async def run(self) -> MonitoringSession:
        """resume_or_create(), then poll if the stored job was already paid."""
        await self.resume_or_create()
        if self.session.state == MonitorState.PROCESSING and not self.closed:
            await self.poll_status()
        return self.session

    def close(self) -> None:
        """Abandon the session. Pending waits return; no further writes happen."""
        if not self._closed.is_set():
            self._closed.set()
            logger.info(f"Session {self.session.session_id} closed")

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def abort(self, error: BaseException) -> None:
        """Move the session to ERROR after an operation crashed unexpectedly."""
        self._fail(FailureKind.PROTOCOL, f"Monitoring stopped unexpectedly: {error!r}")

    # =========================================================================
    # STEPS
    # =========================================================================

    def _resume(self, job: MonitoringJob) -> None:
        """Bind to the stored job instead of creating one."""
        if job.location != self.session.location:
            logger.info(
                f"Resuming job {job.job_id} for '{job.location}' "
                f"(requested '{self.session.location}')"
            )
            self.session.location = job.location
        self.session.job = job
        log_checkpoint(
            "session_resumed",
            {"job_id": job.job_id, "amount_paid": job.amount_paid},
            logger,
        )

        if job.amount_paid:
            self._enter_processing()
        else:
            self._enter_awaiting_payment()

    async def _create_job(self) -> None:
        """Start a remote job and persist it. Any failure ends in ERROR."""
        self._progress(20, "Creating monitoring job...")
        identifier = self.session.purchaser_identifier
        request_text = build_request_text(self.session.location)

        try:
            response = await self.client.start_job(identifier, request_text)
            job = MonitoringJob.from_start_response(
                identifier, self.session.location, request_text, response
            )
        except (CollaboratorError, PydanticValidationError) as e:
            if not self.closed:
                logger.error(f"Job creation failed: {e}")
                self._fail(FailureKind.COLLABORATOR, f"Could not create the monitoring job: {e}")
            return

        try:
            await self.store.create(job)
        except CollaboratorError as e:
            if not self.closed:
                logger.error(f"Persisting job {job.job_id} failed: {e}")
                self._fail(FailureKind.COLLABORATOR, f"Could not save the monitoring job: {e}")
            return

        if self.closed:
            return

        self.session.job = job
        with log_context(job_id=job.job_id):
            log_checkpoint(
                "job_created",
                {"location": job.location, "price": job.payment_display},
                logger,
            )
        self._enter_awaiting_payment()

    async def _submit_payment(self) -> MonitoringSession:
        """Body of confirm_payment, run while the payment claim is held."""
        job = self.session.job

        with self._context("confirm_payment"):
            self.session.clear_failure()

            if job.amount_paid:
                logger.info(f"Job {job.job_id} already paid; skipping payment submission")
                self._enter_processing()
                return self.session

            if job.payment is None:
                self._fail(
                    FailureKind.PROTOCOL,
                    f"Job {job.job_id} has no payment details to submit",
                )
                return self.session

            request = job.payment.to_payment_request(
                self.session.purchaser_identifier, self.processing.network
            )

            try:
                await self.client.submit_payment(request)
            except (CollaboratorError, ConfigurationError) as e:
                if not self.closed:
                    logger.error(f"Payment submission failed: {e}")
                    self.session.record_failure(
                        FailureKind.COLLABORATOR,
                        f"Payment failed: {e}",
                        retryable=isinstance(e, CollaboratorError),
                        restart_hint=PAYMENT_RETRY_HINT,
                    )
                raise

            if self.closed:
                return self.session

            await self._record_payment(job)
            log_checkpoint("payment_confirmed", {"network": self.processing.network}, logger)
            self._enter_processing()

        return self.session

    async def _record_payment(self, job: MonitoringJob) -> None:
        """
        Persist the payment.

        The payment was already accepted, so a store failure is logged and
        the local record is marked paid anyway.
        """
        paid_at = _utcnow()
        try:
            self.session.job = await self.store.patch_payment(job.job_id, True, paid_at)
        except CollaboratorError as e:
            logger.error(f"Payment accepted but recording it failed: {e}")
            job.mark_paid(paid_at)

    async def _mirror_status(self, status: JobStatusResponse) -> None:
        """Best-effort copy of the remote status onto the stored job."""
        remote = status.remote_status
        job = self.session.job
        if remote is None or job.status == remote:
            return
        try:
            await self.store.update_status(job.job_id, remote)
        except CollaboratorError as e:
            logger.warning(f"Could not mirror status {remote.value}: {e}")
            return
        job.status = remote

    def _finalize(self, status: JobStatusResponse) -> None:
        """
        Parse the result of a completed job.

        Raises:
            ProtocolError: The completed status carried no result body
        """
        if not status.has_result:
            raise ProtocolError(f"Job {self.session.job_id} completed without a result")

        self._progress(95, "Preparing results...")
        try:
            report = parse_climate_result(status.result)
        except ParseError as e:
            logger.error(f"Result of job {self.session.job_id} does not parse: {e}")
            self._fail(FailureKind.PARSE, f"The report could not be read: {e}")
            return

        self.session.result = report
        self._transition(MonitorState.COMPLETED)
        self._progress(100, "Monitoring complete")
        log_checkpoint("job_completed", {"attempts": self.session.poll_attempts}, logger)

    async def _notify(self, status: JobStatusResponse) -> None:
        """Hand the status to the observer. Observer errors are logged, never raised."""
        if self.observer is None:
            return
        try:
            outcome = self.observer(self.session, status)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.exception(f"Status observer failed for job {self.session.job_id}: {e}")

    async def _wait(self, seconds: float) -> bool:
        """
        Sleep between polls.

        Returns:
            True if the session was closed during the wait
        """
        if seconds <= 0:
            await asyncio.sleep(0)
            return self.closed
        try:
            await asyncio.wait_for(self._closed.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    # =========================================================================
    # STATE HELPERS
    # =========================================================================

    def _enter_awaiting_payment(self) -> None:
        self._transition(MonitorState.AWAITING_PAYMENT)
        self._progress(30, "Awaiting payment...")

    def _enter_processing(self) -> None:
        self._transition(MonitorState.PROCESSING)
        self._progress(40, "Processing...")

    def _require_state(self, expected: MonitorState, operation: str) -> None:
        if self.closed:
            raise StateTransitionError(
                f"Session {self.session.session_id} is closed",
                current_state=self.session.state.value,
                operation=operation,
            )
        if self.session.state != expected:
            raise StateTransitionError(
                f"{operation} requires state {expected.value}, "
                f"session is {self.session.state.value}",
                current_state=self.session.state.value,
                operation=operation,
            )

    def _validate_inputs(self) -> None:
        location = (self.session.location or "").strip()
        if not location:
            raise ValidationError("Location is required", field="location")
        if len(location) > MAX_LOCATION_LENGTH:
            raise ValidationError(
                f"Location must be at most {MAX_LOCATION_LENGTH} characters",
                field="location",
                value=location,
            )
        if not is_valid_identifier(self.session.purchaser_identifier):
            raise ValidationError(
                "Identifier must be exactly 16 digits",
                field="identifier",
                value=self.session.purchaser_identifier,
            )
        self.session.location = location

    def _transition(self, new_state: MonitorState) -> None:
        if self.closed:
            logger.debug(f"Ignoring transition to {new_state.value}: session closed")
            return
        self.session.transition_to(new_state)

    def _progress(self, progress: int, step: str) -> None:
        if not self.closed:
            self.session.set_progress(progress, step)

    def _fail(
        self,
        kind: FailureKind,
        message: str,
        restart_hint: Optional[str] = None,
    ) -> None:
        """Record a terminal failure and move to ERROR."""
        if self.closed or self.session.is_terminal:
            return
        self.session.record_failure(kind, message, retryable=False, restart_hint=restart_hint)
        self._transition(MonitorState.ERROR)
        log_checkpoint("job_failed", {"kind": kind.value, "message": message}, logger)

    def _context(self, operation: str):
        return log_context(
            session_id=self.session.session_id,
            job_id=self.session.job_id,
            purchaser_identifier=self.session.purchaser_identifier,
            component="orchestrator",
            operation=operation,
        )


__all__ = ["JobLifecycleOrchestrator", "StatusObserver", "REMOTE_FAILED_MESSAGE"]
