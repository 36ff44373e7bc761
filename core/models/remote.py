# ============================================================================
# PROCESSING SERVICE WIRE MODELS
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core model - Request/response bodies of the remote services
# PURPOSE: Validate what the processing and payment services send and receive
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: AmountData, StartJobResponse, JobStatusResponse, PaymentRequest
# DEPENDENCIES: pydantic
# ============================================================================
"""
Processing Service Wire Models

Field names on the wire are the processing service's (camelCase, with a
few snake_case exceptions such as job_id and input_hash). Python attributes
are snake_case; aliases keep the wire names.

Timestamps in the payment bundle (payByTime, unlockTime, ...) are echoed
back verbatim, so they keep whatever type the service sent (string or int).
"""

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from core.contracts import PaymentStatus, RemoteJobStatus

WireTime = Union[int, str]


class AmountData(BaseModel):
    """One payment amount in the smallest on-chain unit."""
    amount: int = Field(..., ge=0, description="Smallest unit, e.g. lovelace")
    unit: str = Field(default="", description="Asset unit ('' or 'lovelace' for ADA)")

    model_config = {"frozen": True}


class StartJobResponse(BaseModel):
    """Response of POST /start_job."""
    status: str = Field(default="success")
    job_id: str = Field(..., min_length=1)
    blockchain_identifier: str = Field(..., alias="blockchainIdentifier")
    agent_identifier: str = Field(..., alias="agentIdentifier")
    seller_vkey: str = Field(..., alias="sellerVKey")
    identifier_from_purchaser: Optional[str] = Field(None, alias="identifierFromPurchaser")
    amounts: List[AmountData] = Field(default_factory=list)
    input_hash: str = Field(...)
    pay_by_time: WireTime = Field(..., alias="payByTime")
    submit_result_time: WireTime = Field(..., alias="submitResultTime")
    unlock_time: WireTime = Field(..., alias="unlockTime")
    external_dispute_unlock_time: WireTime = Field(..., alias="externalDisputeUnlockTime")

    model_config = {"populate_by_name": True}


class JobStatusResponse(BaseModel):
    """
    Response of GET /status?job_id=...

    status is kept as the raw string; unknown values are treated as
    "still running" by the orchestrator instead of failing validation.
    """
    job_id: Optional[str] = None
    status: str
    payment_status: Optional[str] = None
    result: Optional[str] = None

    @property
    def remote_status(self) -> Optional[RemoteJobStatus]:
        """Status as enum, or None when the service sent something unknown."""
        try:
            return RemoteJobStatus(self.status)
        except ValueError:
            return None

    @property
    def payment_state(self) -> PaymentStatus:
        """Payment status as enum; missing or unrecognised values are UNKNOWN."""
        try:
            return PaymentStatus(self.payment_status)
        except ValueError:
            return PaymentStatus.UNKNOWN

    @property
    def has_result(self) -> bool:
        """True when a non-blank result payload is present."""
        return bool(self.result and self.result.strip())


class PaymentRequest(BaseModel):
    """Body of the payment submission (exactly these ten fields)."""
    identifier_from_purchaser: str = Field(..., alias="identifierFromPurchaser")
    network: str
    seller_vkey: str = Field(..., alias="sellerVkey")
    blockchain_identifier: str = Field(..., alias="blockchainIdentifier")
    pay_by_time: WireTime = Field(..., alias="payByTime")
    submit_result_time: WireTime = Field(..., alias="submitResultTime")
    unlock_time: WireTime = Field(..., alias="unlockTime")
    external_dispute_unlock_time: WireTime = Field(..., alias="externalDisputeUnlockTime")
    agent_identifier: str = Field(..., alias="agentIdentifier")
    input_hash: str = Field(..., alias="inputHash")

    model_config = {"populate_by_name": True, "frozen": True}

    def to_wire(self) -> dict:
        """Serialize with the payment service's field names."""
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "AmountData",
    "StartJobResponse",
    "JobStatusResponse",
    "PaymentRequest",
]
