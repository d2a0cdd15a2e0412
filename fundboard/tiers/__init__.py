"""
Tiers package for fundboard.

This module re-exports the abstract interfaces and the concrete acquisition
tiers so downstream code can import from `fundboard.tiers` directly.
"""

from fundboard.tiers.abstract import (
    AbstractAcquisitionTier,
    AcquisitionTier,
    AttemptContext,
    TierOutcome,
)
from fundboard.tiers.cache_snapshot import CacheSnapshotTier
from fundboard.tiers.cors_relay import CorsRelayTier
from fundboard.tiers.trusted_proxy import TrustedProxyTier

__all__ = [
    # Abstracts
    "AbstractAcquisitionTier",
    "AcquisitionTier",
    "AttemptContext",
    "TierOutcome",
    # Concrete tiers
    "CacheSnapshotTier",
    "CorsRelayTier",
    "TrustedProxyTier",
]
