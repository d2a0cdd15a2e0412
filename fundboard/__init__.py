"""
fundboard - TEFAS investment-fund performance dashboard backend.

This package acquires the TEFAS fund comparison table through a fallback chain
and hands a uniform {records, provenance} result to the presentation layer:

- Trusted proxy endpoint (server-side, with its own database fallback)
- CORS relay straight to the upstream
- Durable Cache Store snapshot (SQLite file or hosted PostgreSQL table)

Successful live results are written through to the Cache Store so the last
good snapshot survives across sessions.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from fundboard.config import Settings, get_settings
from fundboard.domain.errors import DataUnavailable, TierFailure, UnknownCategoryError
from fundboard.domain.models import FetchResult, FundCategory, FundRecord, Provenance
from fundboard.infrastructure.cache_store import (
    CacheStore,
    PostgresCacheStore,
    SqliteCacheStore,
    build_cache_store,
)
from fundboard.orchestrator import FetchOrchestrator, available_tiers, build_orchestrator
from fundboard.tiers.abstract import AbstractAcquisitionTier, AcquisitionTier
from fundboard.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "FetchResult",
    "FundCategory",
    "FundRecord",
    "Provenance",
    "DataUnavailable",
    "TierFailure",
    "UnknownCategoryError",
    # Cache Store
    "CacheStore",
    "PostgresCacheStore",
    "SqliteCacheStore",
    "build_cache_store",
    # Orchestration
    "FetchOrchestrator",
    "available_tiers",
    "build_orchestrator",
    # Tier abstractions
    "AcquisitionTier",
    "AbstractAcquisitionTier",
    # Logging
    "configure_logging",
    "get_logger",
]
