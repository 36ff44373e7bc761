#!/usr/bin/env python3
# ============================================================================
# CLI MONITORING RUNNER
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Tool - Drive one monitoring session from the terminal
# PURPOSE: Create or resume a job, pay, poll and print the report
# CREATED: 11 OCT 2026
# ============================================================================
"""
Run one monitoring session end to end without the API.

Steps:
1. Resume the purchaser's latest job, or create a new one
2. Submit payment (only with --pay; otherwise stop awaiting payment)
3. Poll until the report is ready, then print it

Usage:
    # New identifier, stop at the payment step
    python tools/monitor.py "Berlin, Germany"

    # Resume an identifier and pay
    python tools/monitor.py "Berlin, Germany" --identifier 0123456789012345 --pay

    # Check the history
    python tools/monitor.py --history

Requires:
    PROCESSING_API_BASE, and for --pay: MASUMI_PAYMENT_API, MASUMI_API_KEY
"""

import argparse
import asyncio
import json
import os
import sys
from dataclasses import replace

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_defaults
from core.contracts import MonitorState
from core.exceptions import CollaboratorError, ConfigurationError, ValidationError
from core.identifiers import generate_identifier
from core.logging import configure_logging
from core.models import JobStatusResponse, MonitoringSession
from orchestrator import JobLifecycleOrchestrator
from repositories import close_pool, create_job_repository, init_pool
from services import JobHistoryService, ProcessingServiceClient


def print_progress(session: MonitoringSession, status: JobStatusResponse) -> None:
    """Status observer: one line per poll."""
    print(
        f"  [check {session.poll_attempts:2d}] status={status.status} "
        f"payment={status.payment_state.value}"
    )


def print_session(session: MonitoringSession, as_json: bool) -> None:
    if as_json:
        print(json.dumps(session.model_dump(mode="json"), indent=2))
        return

    print(f"\nSession:    {session.session_id}")
    print(f"Identifier: {session.purchaser_identifier}")
    print(f"Location:   {session.location}")
    print(f"State:      {session.state.value} ({session.progress}%) {session.current_step}")
    if session.job:
        print(f"Job:        {session.job.job_id} (paid={session.job.amount_paid})")
    if session.payment_display:
        print(f"Price:      {session.payment_display}")
    if session.failure:
        print(f"\nERROR: {session.failure.message}")
        print(f"       {session.failure.restart_hint}")

    report = session.report
    if report is not None:
        print("\n--- CLIMATE REPORT ---")
        if report.measurements:
            for metric, value in report.measurements.as_dict().items():
                print(f"  {metric:12s} {value}")
        band = report.risk_band
        if band is not None:
            print(f"  AQI band     {band.label} ({band.color})")
    elif session.result is not None:
        print(json.dumps(session.result, indent=2))


async def run_session(args) -> int:
    defaults = get_defaults()
    polling = defaults.polling
    if args.interval is not None:
        polling = replace(polling, interval_seconds=args.interval)

    pool = await init_pool() if args.store == "postgres" else None
    store = create_job_repository(args.store, pool)

    async with ProcessingServiceClient(defaults.processing) as client:
        session = MonitoringSession(
            purchaser_identifier=args.identifier or generate_identifier(),
            location=args.location,
        )
        orchestrator = JobLifecycleOrchestrator(
            session,
            store,
            client,
            polling=polling,
            processing=defaults.processing,
            store_config=defaults.store,
            observer=print_progress,
        )

        try:
            await orchestrator.run()

            if session.state == MonitorState.AWAITING_PAYMENT:
                print(f"Job {session.job_id} awaiting payment of {session.payment_display}")
                if args.pay:
                    await orchestrator.confirm_payment()
                    await orchestrator.poll_status()
        except ValidationError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 2
        except (CollaboratorError, ConfigurationError) as e:
            print(f"ERROR: payment failed: {e}", file=sys.stderr)
        finally:
            if pool is not None:
                await close_pool()

    print_session(session, args.json)
    return 1 if session.state == MonitorState.ERROR else 0


async def show_history(args) -> int:
    defaults = get_defaults()
    pool = await init_pool() if args.store == "postgres" else None
    try:
        store = create_job_repository(args.store, pool)
        async with ProcessingServiceClient(defaults.processing) as client:
            history = JobHistoryService(store, client, defaults.store)
            jobs = await history.list_recent(args.limit)
    finally:
        if pool is not None:
            await close_pool()

    for job in jobs:
        print(
            f"{job.created_at:%Y-%m-%d %H:%M}  {job.purchaser_identifier}  "
            f"{job.job_id:20s} paid={str(job.amount_paid):5s} {job.location}"
        )
    print(f"\n{len(jobs)} jobs")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Run a climate monitoring session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "Berlin, Germany"
  %(prog)s "Berlin, Germany" --identifier 0123456789012345 --pay
  %(prog)s --history --store postgres
        """,
    )
    parser.add_argument("location", nargs="?", help="Location to monitor")
    parser.add_argument("--identifier", "-i", help="16-digit purchaser identifier (resume)")
    parser.add_argument("--pay", action="store_true", help="Submit payment when awaiting it")
    parser.add_argument(
        "--store", "-s",
        choices=["memory", "postgres"],
        default=get_defaults().store.backend,
        help="Job store backend (default: MONITOR_STORE_BACKEND or memory)",
    )
    parser.add_argument("--interval", type=float, help="Override poll interval in seconds")
    parser.add_argument("--history", action="store_true", help="List recent jobs and exit")
    parser.add_argument("--limit", type=int, default=None, help="History size (default 100)")
    parser.add_argument("--json", action="store_true", help="Print the session as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    configure_logging(level="DEBUG" if args.verbose else "WARNING")

    if args.history:
        sys.exit(asyncio.run(show_history(args)))

    if not args.location:
        parser.error("location is required")

    sys.exit(asyncio.run(run_session(args)))


if __name__ == "__main__":
    main()
