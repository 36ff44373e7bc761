# ============================================================================
# PROCESSING SERVICE HTTP CLIENT
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Service - Async HTTP client for the remote processor and payments
# PURPOSE: Start jobs, read job status, submit payment confirmations
# CREATED: 04 OCT 2026
# ============================================================================
"""
Processing Service Client

Async httpx client for the remote processing service (start_job, status)
and the payment service (purchase submission).

Every call is a single attempt. Connection failures, timeouts, non-2xx
responses and bodies that are not the expected JSON all surface as
CollaboratorError; the orchestrator decides what happens next.

The payment API key is sent in the `token` header and is never logged.
"""

from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from core.config import ProcessingServiceDefaults, get_defaults
from core.exceptions import CollaboratorError, ConfigurationError
from core.logging import ComponentType, get_logger
from core.models import JobStatusResponse, PaymentRequest, StartJobResponse

logger = get_logger(__name__, ComponentType.CLIENT)

ModelT = TypeVar("ModelT", bound=BaseModel)

PROCESSING_SERVICE = "processing_service"
PAYMENT_SERVICE = "payment_service"


def _build_timeout(config: ProcessingServiceDefaults) -> httpx.Timeout:
    return httpx.Timeout(
        connect=config.connect_timeout_seconds,
        read=config.read_timeout_seconds,
        write=config.connect_timeout_seconds,
        pool=config.connect_timeout_seconds,
    )


class ProcessingServiceClient:
    """Async HTTP client for the processing and payment services."""

    def __init__(
        self,
        config: Optional[ProcessingServiceDefaults] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            config: Service settings (defaults to environment)
            client: Shared AsyncClient; the caller keeps ownership
            transport: Transport for an owned client (tests use MockTransport)
        """
        self.config = config or get_defaults().processing
        self._base_url = self.config.base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=_build_timeout(self.config),
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ProcessingServiceClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # TRANSPORT
    # ------------------------------------------------------------------

    async def _request(
        self,
        service: str,
        operation: str,
        method: str,
        url: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Make one request and return the decoded JSON body.

        Raises:
            CollaboratorError: On any transport, status or decoding failure
        """
        try:
            resp = await self._client.request(
                method, url, json=json_body, params=params, headers=headers
            )
        except httpx.TimeoutException as e:
            logger.error(f"{service} timeout: {operation} {url}: {e}")
            raise CollaboratorError(
                f"{service} timed out during {operation}",
                service=service,
                operation=operation,
                detail=str(e) or type(e).__name__,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Cannot reach {service} at {url}: {e}")
            raise CollaboratorError(
                f"{service} unreachable during {operation}",
                service=service,
                operation=operation,
                detail=str(e) or type(e).__name__,
            ) from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.is_error:
            detail = body if body is not None else resp.text
            logger.error(f"{service} error {resp.status_code}: {operation} -> {detail}")
            raise CollaboratorError(
                f"{service} returned HTTP {resp.status_code} during {operation}",
                service=service,
                operation=operation,
                status_code=resp.status_code,
                detail=detail,
            )

        if body is None:
            logger.error(f"{service} sent a non-JSON body for {operation}")
            raise CollaboratorError(
                f"{service} sent an undecodable response during {operation}",
                service=service,
                operation=operation,
                status_code=resp.status_code,
                detail=resp.text[:500],
            )

        return body

    def _validate(self, model: Type[ModelT], body: Any, operation: str) -> ModelT:
        try:
            return model.model_validate(body)
        except PydanticValidationError as e:
            logger.error(f"{PROCESSING_SERVICE} {operation} response failed validation: {e}")
            raise CollaboratorError(
                f"{PROCESSING_SERVICE} sent a malformed {operation} response",
                service=PROCESSING_SERVICE,
                operation=operation,
                detail=e.errors(include_url=False),
            ) from e

    # ------------------------------------------------------------------
    # PROCESSING SERVICE
    # ------------------------------------------------------------------

    async def start_job(self, identifier: str, request_text: str) -> StartJobResponse:
        """
        Create a remote job.

        POST {base}/start_job
        """
        body = await self._request(
            PROCESSING_SERVICE,
            "start_job",
            "POST",
            f"{self._base_url}/start_job",
            json_body={
                "identifier_from_purchaser": identifier,
                "input_data": {"text": request_text},
            },
        )
        response = self._validate(StartJobResponse, body, "start_job")
        logger.info(f"Remote job {response.job_id} started for purchaser {identifier}")
        return response

    async def get_status(self, job_id: str) -> JobStatusResponse:
        """GET {base}/status?job_id=..."""
        body = await self._request(
            PROCESSING_SERVICE,
            "get_status",
            "GET",
            f"{self._base_url}/status",
            params={"job_id": job_id},
        )
        return self._validate(JobStatusResponse, body, "get_status")

    # ------------------------------------------------------------------
    # PAYMENT SERVICE
    # ------------------------------------------------------------------

    async def submit_payment(self, payment: PaymentRequest) -> Dict[str, Any]:
        """
        Submit a purchase to the payment service.

        Returns:
            The service's acknowledgement body

        Raises:
            ConfigurationError: Payment URL or API key not configured
            CollaboratorError: The submission failed
        """
        if not self.config.payment_api_key:
            raise ConfigurationError(
                "Payment service not configured: API key missing",
                setting="MASUMI_API_KEY",
            )
        if not self.config.payment_url:
            raise ConfigurationError(
                "Payment service not configured: URL missing",
                setting="MASUMI_PAYMENT_API",
            )

        ack = await self._request(
            PAYMENT_SERVICE,
            "submit_payment",
            "POST",
            self.config.payment_url,
            json_body=payment.to_wire(),
            headers={
                "accept": "application/json",
                "token": self.config.payment_api_key,
            },
        )
        logger.info(
            f"Payment submitted for purchaser {payment.identifier_from_purchaser} "
            f"on {payment.network}"
        )
        return ack if isinstance(ack, dict) else {"data": ack}


__all__ = ["ProcessingServiceClient", "PROCESSING_SERVICE", "PAYMENT_SERVICE"]
