"""
Cache snapshot tier: serve the last stored fund set without any network call.

The stored snapshot is not split by category, so every filter gets the full
snapshot. This tier never writes back what it read.
"""

from __future__ import annotations

import asyncio

from fundboard.domain.errors import EmptyResultError
from fundboard.domain.models import FetchResult, Provenance
from fundboard.infrastructure.cache_store import CacheStore
from fundboard.normalizer import from_store_row
from fundboard.tiers.abstract import AbstractAcquisitionTier, AttemptContext


class CacheSnapshotTier(AbstractAcquisitionTier):
    """
    Read every row from the Cache Store.
    """

    name: str = "cache_snapshot"
    description: str = "Last successful fetch from the durable Cache Store."
    is_network: bool = False
    writes_through: bool = False

    def __init__(self, store: CacheStore) -> None:
        self.store = store

    async def attempt(self, ctx: AttemptContext) -> FetchResult:
        rows = await asyncio.to_thread(self.store.read_all)
        if not rows:
            raise EmptyResultError(f"Cache store '{self.store.name}' holds no fund records")
        records = [from_store_row(row) for row in rows]
        return FetchResult(records=records, provenance=Provenance.CACHED, tier=self.name)


__all__ = ["CacheSnapshotTier"]
