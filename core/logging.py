# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across sessions and jobs
# CREATED: 02 OCT 2026
# ============================================================================
"""
Structured Logging

Provides structured, JSON-formatted logging for the climate monitor.

Features:
- Component-based loggers
- Contextual fields (session_id, job_id, purchaser_identifier)
- JSON output for log aggregation
- Named checkpoints for lifecycle milestones

Context is stored in a ContextVar, so every asyncio task (one per
monitoring session) carries its own context stack.

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("orchestrator.lifecycle")

    with log_context(session_id="s-123", job_id="job-1"):
        logger.info("Polling job", extra={"attempt": 3})
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union
from enum import Enum


class ComponentType(str, Enum):
    """Component types for logging categorization."""
    ORCHESTRATOR = "orchestrator"
    API = "api"
    REPOSITORY = "repository"
    SERVICE = "service"
    CLIENT = "client"
    CLI = "cli"


@dataclass
class LogContext:
    """
    Context for structured logging.

    Immutable snapshot; nested log_context() calls push merged copies.
    """
    session_id: Optional[str] = None
    job_id: Optional[str] = None
    purchaser_identifier: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None and key != "extra":
                result[key] = value
        if self.extra:
            result.update(self.extra)
        return result


_context_stack: ContextVar[Tuple[LogContext, ...]] = ContextVar(
    "climate_monitor_log_context", default=()
)


def get_current_context() -> LogContext:
    """Get current logging context."""
    stack = _context_stack.get()
    if stack:
        return stack[-1]
    return LogContext()


@contextmanager
def log_context(**kwargs):
    """
    Context manager for adding logging context.

    Args:
        **kwargs: Context fields to add

    Example:
        with log_context(session_id="s-1", operation="confirm_payment"):
            logger.info("Submitting payment")
    """
    parent = get_current_context()
    new_context = LogContext(
        session_id=kwargs.get("session_id", parent.session_id),
        job_id=kwargs.get("job_id", parent.job_id),
        purchaser_identifier=kwargs.get("purchaser_identifier", parent.purchaser_identifier),
        component=kwargs.get("component", parent.component),
        operation=kwargs.get("operation", parent.operation),
        extra={**parent.extra, **kwargs.get("extra", {})},
    )

    token = _context_stack.set(_context_stack.get() + (new_context,))
    try:
        yield new_context
    finally:
        _context_stack.reset(token)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _record_data(record: logging.LogRecord) -> Optional[Dict[str, Any]]:
    """Structured payload attached by ContextLogger or log_checkpoint."""
    return getattr(record, "extra", None) or None


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line, for log aggregation.

    Keys: timestamp, level, logger, message, context (current log_context),
    data (record payload), exception, source.
    """

    def __init__(self, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _utc_timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            context = get_current_context().to_dict()
            if context:
                entry["context"] = context

        data = _record_data(record)
        if data:
            entry["data"] = data

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry["source"] = f"{record.filename}:{record.lineno} {record.funcName}"
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """
    Single-line formatter for terminals.

    Shows session, job and operation from the current log_context inline.
    """

    _CONTEXT_FIELDS = (("session", "session_id"), ("job", "job_id"), ("op", "operation"))

    def format(self, record: logging.LogRecord) -> str:
        context = get_current_context()
        tags = [
            f"{label}={getattr(context, attr)}"
            for label, attr in self._CONTEXT_FIELDS
            if getattr(context, attr)
        ]
        prefix = f"{record.name} [{', '.join(tags)}]" if tags else record.name

        line = (
            f"{datetime.now(timezone.utc):%Y-%m-%d %H:%M:%S} "
            f"{record.levelname:<8} {prefix}: {record.getMessage()}"
        )

        data = _record_data(record)
        if data:
            line += f" {data}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """
    Adapter that copies the current log_context onto every record.

    The payload lands in record.extra, where both formatters pick it up.
    """

    def process(self, msg, kwargs):
        payload = {**get_current_context().to_dict(), **(kwargs.get("extra") or {})}
        component = self.extra.get("component")
        if component:
            payload.setdefault("component", component)
        kwargs["extra"] = {"extra": payload}
        return msg, kwargs


def get_logger(name: str, component: Optional[ComponentType] = None) -> ContextLogger:
    """
    Context-aware logger for a module.

    Args:
        name: Logger name, normally __name__
        component: Tag added to every record
    """
    return ContextLogger(
        logging.getLogger(name),
        {"component": component.value if component else None},
    )


def configure_logging(level: Union[str, int] = "INFO", json_output: bool = False) -> None:
    """
    Install one stdout handler on the root logger.

    Args:
        level: Level name or number
        json_output: JSON lines instead of human-readable output
            (LOG_FORMAT=json forces it)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    use_json = json_output or os.getenv("LOG_FORMAT", "").lower() == "json"
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if use_json else HumanFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a named lifecycle milestone.

    Checkpoints (session_resumed, job_created, payment_confirmed,
    job_completed, job_failed) can be filtered on to replay what a
    session did.
    """
    payload: Dict[str, Any] = {"checkpoint": name, "timestamp": _utc_timestamp()}
    payload.update(get_current_context().to_dict())
    if data:
        payload["data"] = data

    (logger or logging.getLogger("checkpoint")).info(
        f"CHECKPOINT: {name}", extra={"extra": payload}
    )


__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
