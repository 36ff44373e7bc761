# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Remote collaborators and read-side services
# PURPOSE: Processing service client, result parser, job history
# CREATED: 04 OCT 2026
# ============================================================================
"""
Services Module

Usage:
    from services import ProcessingServiceClient, parse_climate_result

    async with ProcessingServiceClient() as client:
        status = await client.get_status(job_id)
        report = parse_climate_result(status.result)
"""

from .processing_client import ProcessingServiceClient
from .result_parser import REPORT_KEY, parse_climate_result, strip_code_fence
from .history_service import JobHistoryService, IdentifierCheck, JobStatusCheck

__all__ = [
    "ProcessingServiceClient",
    "REPORT_KEY",
    "parse_climate_result",
    "strip_code_fence",
    "JobHistoryService",
    "IdentifierCheck",
    "JobStatusCheck",
]
