# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for polling, remote services, store, currency
# CREATED: 02 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides defaults for the monitoring job lifecycle.
Every group can be overridden via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides via from_env()
- One cached aggregate (get_defaults)
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PollingDefaults:
    """
    Defaults for status polling.

    60 checks, 60 seconds apart: a one-hour ceiling per job.
    """
    interval_seconds: float = 60.0
    max_attempts: int = 60

    @property
    def ceiling_seconds(self) -> float:
        """Worst-case time spent polling one job."""
        return self.interval_seconds * self.max_attempts

    @classmethod
    def from_env(cls) -> "PollingDefaults":
        """Create from environment variables."""
        return cls(
            interval_seconds=float(os.getenv("MONITOR_POLL_INTERVAL_SEC", 60.0)),
            max_attempts=int(os.getenv("MONITOR_POLL_MAX_ATTEMPTS", 60)),
        )


@dataclass(frozen=True)
class ProcessingServiceDefaults:
    """
    Defaults for the remote processing and payment services.

    The payment API key is only needed for payment submission; job
    creation and status polling work without it.
    """
    base_url: str = "http://localhost:8000"
    payment_url: str = ""
    payment_api_key: Optional[str] = None
    network: str = "Preprod"

    connect_timeout_seconds: float = 10.0
    read_timeout_seconds: float = 60.0

    @property
    def has_payment_config(self) -> bool:
        """Check if payment submission is configured."""
        return bool(self.payment_url and self.payment_api_key)

    @classmethod
    def from_env(cls) -> "ProcessingServiceDefaults":
        """Create from environment variables."""
        return cls(
            base_url=os.getenv("PROCESSING_API_BASE", "http://localhost:8000"),
            payment_url=os.getenv("MASUMI_PAYMENT_API", ""),
            payment_api_key=os.getenv("MASUMI_API_KEY") or None,
            network=os.getenv("PAYMENT_NETWORK", "Preprod"),
            connect_timeout_seconds=float(os.getenv("PROCESSING_CONNECT_TIMEOUT_SEC", 10.0)),
            read_timeout_seconds=float(os.getenv("PROCESSING_READ_TIMEOUT_SEC", 60.0)),
        )


@dataclass(frozen=True)
class StoreDefaults:
    """
    Defaults for the job store.

    resume_on_lookup_failure:
        "create" - a failed resume lookup is treated as "no prior job"
        "fail"   - a failed resume lookup halts the session in error
    """
    backend: str = "memory"
    schema: str = "climate"
    history_limit: int = 100
    max_history_limit: int = 500
    resume_on_lookup_failure: str = "create"

    @classmethod
    def from_env(cls) -> "StoreDefaults":
        """Create from environment variables."""
        return cls(
            backend=os.getenv("MONITOR_STORE_BACKEND", "memory").lower(),
            schema=os.getenv("MONITOR_DB_SCHEMA", "climate"),
            history_limit=int(os.getenv("MONITOR_HISTORY_LIMIT", 100)),
            resume_on_lookup_failure=os.getenv(
                "MONITOR_RESUME_ON_LOOKUP_FAILURE", "create"
            ).lower(),
        )


@dataclass(frozen=True)
class DatabaseDefaults:
    """
    PostgreSQL connection settings (only used with the postgres backend).

    DATABASE_URL wins over the individual POSTGRES_* variables.
    """
    url: Optional[str] = None
    host: str = "localhost"
    port: int = 5432
    dbname: str = "postgres"
    user: str = "postgres"
    password: str = ""
    sslmode: str = "prefer"
    pool_min_size: int = 1
    pool_max_size: int = 5

    @classmethod
    def from_env(cls) -> "DatabaseDefaults":
        """Create from environment variables."""
        return cls(
            url=os.getenv("DATABASE_URL") or None,
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", 5432)),
            dbname=os.getenv("POSTGRES_DB", "postgres"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", ""),
            sslmode=os.getenv("POSTGRES_SSLMODE", "prefer"),
            pool_min_size=int(os.getenv("POSTGRES_POOL_MIN", 1)),
            pool_max_size=int(os.getenv("POSTGRES_POOL_MAX", 5)),
        )


@dataclass(frozen=True)
class CurrencyDefaults:
    """
    On-chain amount conventions.

    Amounts travel as integers in the smallest unit (lovelace);
    display divides by the divisor and shows two decimals.
    """
    divisor: int = 1_000_000
    major_unit: str = "ADA"
    minor_unit: str = "lovelace"
    display_decimals: int = 2


@dataclass(frozen=True)
class MonitorDefaults:
    """Aggregate of all default groups."""
    polling: PollingDefaults
    processing: ProcessingServiceDefaults
    store: StoreDefaults
    currency: CurrencyDefaults

    @classmethod
    def from_env(cls) -> "MonitorDefaults":
        """Create all groups from environment variables."""
        return cls(
            polling=PollingDefaults.from_env(),
            processing=ProcessingServiceDefaults.from_env(),
            store=StoreDefaults.from_env(),
            currency=CurrencyDefaults(),
        )


_defaults: Optional[MonitorDefaults] = None


def get_defaults() -> MonitorDefaults:
    """Get the global defaults singleton (loaded from env on first use)."""
    global _defaults
    if _defaults is None:
        _defaults = MonitorDefaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Drop the cached defaults so the next get_defaults() re-reads env."""
    global _defaults
    _defaults = None


__all__ = [
    "PollingDefaults",
    "ProcessingServiceDefaults",
    "StoreDefaults",
    "DatabaseDefaults",
    "CurrencyDefaults",
    "MonitorDefaults",
    "get_defaults",
    "reset_defaults",
]
