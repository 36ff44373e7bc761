# ============================================================================
# VERSION - CLIMATE MONITOR
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# ============================================================================
"""
Version information for the Climate Monitor service.

This is the single source of truth for the application version.
Updated manually for each release.
"""
# Version format: major.minor.patch.build
__version__ = "0.3.1.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-10-14"

EPOCH = 1
CODENAME = "Climate Monitor"
