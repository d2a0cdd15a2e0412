"""
Exception taxonomy for fund data acquisition.

Tier-level errors (`TierError` subclasses) are raised by the acquisition tiers
and converted by the orchestrator into fallback decisions. Only
`DataUnavailable` (all tiers exhausted) and `UnknownCategoryError` (rejected
input) are meant to reach callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


class FundboardError(Exception):
    """Base class for all fundboard errors."""


class TierError(FundboardError):
    """A single acquisition tier could not produce usable data."""

    kind: str = "tier_error"


class TransportError(TierError):
    """Network failure, timeout or caller cancellation."""

    kind = "transport"


class UpstreamStatusError(TierError):
    """The endpoint answered with a non-2xx status."""

    kind = "upstream_status"

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(TierError):
    """Body is not JSON, has an unexpected shape, or is a disguised markup page."""

    kind = "malformed"


class EmptyResultError(TierError):
    """Well-formed response carrying zero records."""

    kind = "empty"


class StorageError(TierError):
    """Cache Store read or write failure."""

    kind = "storage"


class UnknownCategoryError(FundboardError, ValueError):
    """The requested fund category token is not recognized."""


@dataclass(frozen=True)
class TierFailure:
    """Diagnostic record of one failed tier attempt."""

    tier: str
    kind: str
    message: str
    elapsed_seconds: Optional[float] = None

    def describe(self) -> str:
        return f"{self.tier}: [{self.kind}] {self.message}"


class DataUnavailable(FundboardError):
    """
    Every acquisition tier failed.

    Carries the ordered per-tier failures so callers can tell which layer broke.
    """

    def __init__(self, failures: Sequence[TierFailure]) -> None:
        self.failures: List[TierFailure] = list(failures)
        summary = "; ".join(f.describe() for f in self.failures) or "no tiers configured"
        super().__init__(f"No data source could provide fund data ({summary})")

    @property
    def only_empty(self) -> bool:
        """True when every tier answered well-formed but empty (no data for this filter)."""
        return bool(self.failures) and all(f.kind == EmptyResultError.kind for f in self.failures)


__all__ = [
    "DataUnavailable",
    "EmptyResultError",
    "FundboardError",
    "MalformedResponseError",
    "StorageError",
    "TierError",
    "TierFailure",
    "TransportError",
    "UnknownCategoryError",
    "UpstreamStatusError",
]
