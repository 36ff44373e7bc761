# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 14 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the climate monitor.
MonitoringJob declares SQL metadata via __sql_* ClassVar attributes; the
DDL in repositories.schema is written against them.
"""

from core.models.remote import AmountData, StartJobResponse, JobStatusResponse, PaymentRequest
from core.models.job import MonitoringJob, PaymentBundle, build_request_text, format_amount
from core.models.climate import (
    ClimateResult,
    TrendSummary,
    TrendBreakdown,
    TrendAnalysis,
    HealthAssessment,
    VerificationData,
    Measurements,
    Location,
)
from core.models.session import MonitoringSession, SessionFailure

__all__ = [
    # Remote service bodies
    "AmountData",
    "StartJobResponse",
    "JobStatusResponse",
    "PaymentRequest",
    # Job
    "MonitoringJob",
    "PaymentBundle",
    "build_request_text",
    "format_amount",
    # Report
    "ClimateResult",
    "TrendSummary",
    "TrendBreakdown",
    "TrendAnalysis",
    "HealthAssessment",
    "VerificationData",
    "Measurements",
    "Location",
    # Session
    "MonitoringSession",
    "SessionFailure",
]
