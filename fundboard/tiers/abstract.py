"""
Abstract tier interfaces and attempt contracts for fundboard.

Concrete tiers (trusted proxy, CORS relay, cache snapshot) implement the
AcquisitionTier protocol: `attempt` either returns a FetchResult carrying at
least one record or raises a TierError subclass. The orchestrator turns each
attempt into a TierOutcome, so fallback decisions never depend on which tier
raised what.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, runtime_checkable

import httpx

from fundboard.domain.errors import TierFailure
from fundboard.domain.models import FetchResult, FundCategory


@dataclass(frozen=True)
class AttemptContext:
    """
    Inputs shared by every tier during one acquisition.

    Attributes
    ----------
    category : FundCategory
        Resolved category filter.
    form : dict[str, str]
        Upstream form body (category code plus the trailing date window).
    client : httpx.AsyncClient
        HTTP client owned by the orchestrator call.
    timeout_seconds : float
        Per-tier budget; network tiers pass it to the HTTP client as well.
    """

    category: FundCategory
    form: Dict[str, str]
    client: httpx.AsyncClient
    timeout_seconds: float


@dataclass(frozen=True)
class TierOutcome:
    """Tagged result of one tier attempt: exactly one of `result` / `failure` is set."""

    tier: str
    result: Optional[FetchResult] = None
    failure: Optional[TierFailure] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


@runtime_checkable
class AcquisitionTier(Protocol):
    """
    Common interface all acquisition tiers must implement.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of the source.
    is_network : bool
        Whether the attempt performs network I/O (timeouts and caller
        cancellation apply).
    writes_through : bool
        Whether a successful result should be persisted to the Cache Store.
    """

    name: str
    description: str
    is_network: bool
    writes_through: bool

    async def attempt(self, ctx: AttemptContext) -> FetchResult:
        """
        Try to produce a non-empty FetchResult.

        Raises
        ------
        TierError
            Any subclass; the orchestrator records it and falls back.
        """
        ...


class AbstractAcquisitionTier(abc.ABC):
    """
    Optional ABC helper for class-based implementations.

    Subclasses should set `name` and `description` and implement `attempt`.
    """

    name: str
    description: str
    is_network: bool = True
    writes_through: bool = True

    @abc.abstractmethod
    async def attempt(self, ctx: AttemptContext) -> FetchResult:  # pragma: no cover - interface only
        """Fetch and normalize records from this tier."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


__all__ = [
    "AbstractAcquisitionTier",
    "AcquisitionTier",
    "AttemptContext",
    "TierOutcome",
]
