# ============================================================================
# LOGGING TESTS
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Tests - Context propagation and checkpoint records
# PURPOSE: Verify log_context nesting, formatters and log_checkpoint
# CREATED: 15 OCT 2026
# ============================================================================
"""
Logging Tests

Run with:
    pytest tests/test_logging.py -v
"""

import asyncio
import json
import logging

from core.logging import (
    ComponentType,
    HumanFormatter,
    StructuredFormatter,
    get_current_context,
    get_logger,
    log_checkpoint,
    log_context,
)


def _make_record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)


class TestLogContext:

    def test_nested_contexts_merge(self):
        with log_context(session_id="s-1"):
            with log_context(job_id="job-1"):
                inner = get_current_context()
            outer = get_current_context()

        assert inner.session_id == "s-1" and inner.job_id == "job-1"
        assert outer.job_id is None
        assert get_current_context().session_id is None

    def test_context_isolated_per_task(self):
        async def worker(session_id):
            with log_context(session_id=session_id):
                await asyncio.sleep(0)
                return get_current_context().session_id

        async def run():
            return await asyncio.gather(worker("a"), worker("b"))

        assert asyncio.run(run()) == ["a", "b"]


class TestFormatters:

    def test_structured_includes_context(self):
        with log_context(session_id="s-1", operation="poll_status"):
            data = json.loads(StructuredFormatter().format(_make_record()))
        assert data["message"] == "hello"
        assert data["context"] == {"session_id": "s-1", "operation": "poll_status"}

    def test_human_includes_context(self):
        with log_context(session_id="s-1", job_id="job-1"):
            line = HumanFormatter().format(_make_record())
        assert line.endswith("test [session=s-1, job=job-1]: hello")


class TestCheckpoints:

    def test_checkpoint_record(self, caplog):
        logger = logging.getLogger("tests.checkpoint")
        with caplog.at_level(logging.INFO, logger="tests.checkpoint"):
            with log_context(job_id="job-1"):
                log_checkpoint("job_created", {"price": "1.50 ADA"}, logger)

        record = caplog.records[-1]
        assert record.getMessage() == "CHECKPOINT: job_created"
        assert record.extra["checkpoint"] == "job_created"
        assert record.extra["job_id"] == "job-1"
        assert record.extra["data"] == {"price": "1.50 ADA"}

    def test_context_logger_attaches_component(self, caplog):
        logger = get_logger("tests.client", ComponentType.CLIENT)
        with caplog.at_level(logging.INFO, logger="tests.client"):
            logger.info("request sent")

        assert caplog.records[-1].extra["component"] == "client"
