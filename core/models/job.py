# ============================================================================
# MONITORING JOB MODEL
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core model - Persisted monitoring job record
# PURPOSE: Track one monitoring request from creation through payment
# LAST_REVIEWED: 14 OCT 2026
# EXPORTS: MonitoringJob, PaymentBundle, build_request_text, format_amount
# DEPENDENCIES: pydantic
# ============================================================================
"""
Monitoring Job Model

A MonitoringJob is the durable record of one monitoring request.

Key rules:
- location and request_text never change after creation
- amount_paid only ever goes False -> True; paid_at is set once
- the payment bundle is captured verbatim from job creation and frozen;
  payment submission must echo it back unchanged
- status is a best-effort mirror of the remote status, not authoritative
"""

from datetime import datetime, timezone
from typing import ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, computed_field

from core.config import CurrencyDefaults
from core.contracts import JobData, RemoteJobStatus
from core.models.remote import AmountData, PaymentRequest, StartJobResponse, WireTime


def build_request_text(location: str) -> str:
    """Build the analysis request sent to the processing service."""
    return f"Monitor air quality in {location}: PM2.5, CO, temperature, and humidity"


def format_amount(amount: int, currency: Optional[CurrencyDefaults] = None) -> str:
    """Convert a smallest-unit amount to the major unit with two decimals."""
    currency = currency or CurrencyDefaults()
    major = amount / currency.divisor
    return f"{major:.{currency.display_decimals}f}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentBundle(BaseModel):
    """
    Payment/escrow metadata returned at job creation.

    Frozen: the exact values are required later to submit payment.
    """
    blockchain_identifier: str = Field(..., alias="blockchainIdentifier")
    agent_identifier: str = Field(..., alias="agentIdentifier")
    seller_vkey: str = Field(..., alias="sellerVKey")
    amounts: Tuple[AmountData, ...] = Field(default_factory=tuple)
    pay_by_time: WireTime = Field(..., alias="payByTime")
    submit_result_time: WireTime = Field(..., alias="submitResultTime")
    unlock_time: WireTime = Field(..., alias="unlockTime")
    external_dispute_unlock_time: WireTime = Field(..., alias="externalDisputeUnlockTime")
    input_hash: str = Field(...)

    model_config = {"frozen": True, "populate_by_name": True}

    @classmethod
    def from_start_response(cls, response: StartJobResponse) -> "PaymentBundle":
        """Capture the bundle from a start_job response."""
        return cls(
            blockchain_identifier=response.blockchain_identifier,
            agent_identifier=response.agent_identifier,
            seller_vkey=response.seller_vkey,
            amounts=tuple(response.amounts),
            pay_by_time=response.pay_by_time,
            submit_result_time=response.submit_result_time,
            unlock_time=response.unlock_time,
            external_dispute_unlock_time=response.external_dispute_unlock_time,
            input_hash=response.input_hash,
        )

    @property
    def primary_amount(self) -> Optional[AmountData]:
        """First listed amount (the one shown to the purchaser)."""
        return self.amounts[0] if self.amounts else None

    def display_amount(self, currency: Optional[CurrencyDefaults] = None) -> Optional[str]:
        """Primary amount as e.g. '1.50 ADA', or None if no amount was quoted."""
        amount = self.primary_amount
        if amount is None:
            return None
        currency = currency or CurrencyDefaults()
        return f"{format_amount(amount.amount, currency)} {currency.major_unit}"

    def to_payment_request(self, identifier: str, network: str) -> PaymentRequest:
        """Build the payment submission body from this bundle."""
        return PaymentRequest(
            identifier_from_purchaser=identifier,
            network=network,
            seller_vkey=self.seller_vkey,
            blockchain_identifier=self.blockchain_identifier,
            pay_by_time=self.pay_by_time,
            submit_result_time=self.submit_result_time,
            unlock_time=self.unlock_time,
            external_dispute_unlock_time=self.external_dispute_unlock_time,
            agent_identifier=self.agent_identifier,
            input_hash=self.input_hash,
        )


class MonitoringJob(JobData):
    """
    A persisted monitoring job.

    Maps to: climate.monitoring_jobs table

    Lifecycle:
        1. Created with amount_paid=False, status=awaiting_payment
        2. mark_paid() once payment is confirmed
        3. status mirrored from the processing service while polling
    """

    # =========================================================================
    # SQL METADATA (used by repositories.schema)
    # =========================================================================
    __sql_table__: ClassVar[str] = "monitoring_jobs"
    __sql_primary_key__: ClassVar[List[str]] = ["job_id"]
    __sql_indexes__: ClassVar[List[tuple]] = [
        ("idx_monitoring_jobs_purchaser", ["purchaser_identifier", "created_at"]),
        ("idx_monitoring_jobs_paid", ["amount_paid"]),
        ("idx_monitoring_jobs_created", ["created_at"]),
    ]

    location: str = Field(..., min_length=1, max_length=256)
    request_text: str = Field(..., min_length=1, alias="requestText")

    amount_paid: bool = Field(default=False, alias="amountPaid")
    status: Optional[RemoteJobStatus] = Field(default=RemoteJobStatus.AWAITING_PAYMENT)

    payment: Optional[PaymentBundle] = Field(
        default=None,
        description="Payment bundle captured at creation (immutable)"
    )

    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    paid_at: Optional[datetime] = Field(default=None, alias="paidAt")

    @classmethod
    def from_start_response(
        cls,
        identifier: str,
        location: str,
        request_text: str,
        response: StartJobResponse,
    ) -> "MonitoringJob":
        """Build the record to persist right after start_job succeeded."""
        return cls(
            purchaser_identifier=identifier,
            job_id=response.job_id,
            location=location,
            request_text=request_text,
            amount_paid=False,
            status=RemoteJobStatus.AWAITING_PAYMENT,
            payment=PaymentBundle.from_start_response(response),
        )

    @computed_field
    @property
    def payment_display(self) -> Optional[str]:
        """Quoted price in the major unit."""
        if self.payment is None:
            return None
        return self.payment.display_amount()

    def mark_paid(self, paid_at: Optional[datetime] = None) -> bool:
        """
        Record payment confirmation.

        Returns:
            True if the record changed, False if it was already paid
        """
        if self.amount_paid:
            return False
        self.amount_paid = True
        self.paid_at = paid_at or _utcnow()
        return True

    def to_wire(self) -> Dict:
        """Flat camelCase record with the payment bundle fields inlined."""
        record = self.model_dump(mode="json", by_alias=True, exclude={"payment"})
        if self.payment is not None:
            record.update(self.payment.model_dump(mode="json", by_alias=True))
        return record


__all__ = ["MonitoringJob", "PaymentBundle", "build_request_text", "format_amount"]
