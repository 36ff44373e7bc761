# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 02 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the climate monitor.
"""

from core.config.defaults import (
    PollingDefaults,
    ProcessingServiceDefaults,
    StoreDefaults,
    DatabaseDefaults,
    CurrencyDefaults,
    MonitorDefaults,
    get_defaults,
    reset_defaults,
)

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
