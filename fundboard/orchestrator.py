"""
Orchestrator for acquiring fund data through the ordered fallback tiers.

Tiers are tried strictly in order (trusted proxy, CORS relay, cache snapshot)
and the first non-empty, well-formed result wins. Every attempt is bounded by
the configured per-tier timeout and may be skipped by the caller through an
`asyncio.Event`; both count as a tier failure, never as a final one. Results
from network tiers are written through to the Cache Store (best-effort).

Usage (example):
    from fundboard.orchestrator import build_orchestrator

    orchestrator = build_orchestrator()
    result = orchestrator.acquire("equity")
    print(result.provenance, len(result.records))
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

import httpx

from fundboard.config import Settings, get_settings
from fundboard.domain.errors import DataUnavailable, StorageError, TierError, TierFailure, TransportError
from fundboard.domain.models import FetchResult, FundCategory, Provenance
from fundboard.infrastructure.cache_store import CacheStore, build_cache_store
from fundboard.normalizer import build_request_form, to_store_row
from fundboard.tiers.abstract import AcquisitionTier, AttemptContext, TierOutcome
from fundboard.tiers.cache_snapshot import CacheSnapshotTier
from fundboard.tiers.cors_relay import CorsRelayTier
from fundboard.tiers.trusted_proxy import TrustedProxyTier
from fundboard.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_TIER_ORDER = ("trusted_proxy", "cors_relay", "cache_snapshot")


def _round_float(value: float, decimals: int = 3) -> float:
    return round(value, decimals)


def _tier_factories(
    settings: Settings, store: CacheStore
) -> Dict[str, Callable[[], AcquisitionTier]]:
    """Registry of available tiers."""
    return {
        "trusted_proxy": lambda: TrustedProxyTier(settings.proxy_url),
        "cors_relay": lambda: CorsRelayTier(settings.relay_prefix, settings.upstream_url),
        "cache_snapshot": lambda: CacheSnapshotTier(store),
    }


def available_tiers() -> List[str]:
    """Tier names in fallback priority order."""
    return list(DEFAULT_TIER_ORDER)


class FetchOrchestrator:
    """
    Run acquisition tiers in priority order and return the first usable result.

    Parameters
    ----------
    tiers : Sequence[AcquisitionTier]
        Tiers in priority order, highest first.
    store : CacheStore | None
        Write-through target for successful network results. None disables
        write-through.
    settings : Settings | None
        Timeout, date window and category policy. Defaults to get_settings().
    client : httpx.AsyncClient | None
        Shared HTTP client. When None, a client is opened per acquisition.
    """

    def __init__(
        self,
        tiers: Sequence[AcquisitionTier],
        store: Optional[CacheStore] = None,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.tiers = list(tiers)
        self.store = store
        self.settings = settings or get_settings()
        self._client = client

    @property
    def timeout_seconds(self) -> float:
        return self.settings.tier_timeout_seconds

    def resolve_category(self, category: FundCategory | str | None) -> FundCategory:
        return FundCategory.parse(category, strict=self.settings.strict_categories)

    def acquire(self, category: FundCategory | str | None = FundCategory.ALL) -> FetchResult:
        """
        Synchronous entry point. Use `acquire_async` inside a running event loop.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise RuntimeError(
                "acquire() cannot be called from an async context; await acquire_async() instead"
            )
        return asyncio.run(self.acquire_async(category))

    async def acquire_async(
        self,
        category: FundCategory | str | None = FundCategory.ALL,
        *,
        skip_tier: Optional[asyncio.Event] = None,
    ) -> FetchResult:
        """
        Produce a FetchResult for `category`, falling back tier by tier.

        Parameters
        ----------
        category : FundCategory | str | None
            Category filter token. Unknown tokens raise UnknownCategoryError
            unless `strict_categories` is disabled, in which case they map to ALL.
        skip_tier : asyncio.Event | None
            When set during a network attempt, that attempt is abandoned, recorded
            as a transport failure and the next tier runs. The event is cleared
            afterwards. A request raised while a local tier runs is dropped.
            Cancel the awaiting task to abort the whole chain.

        Raises
        ------
        DataUnavailable
            Every tier failed; `failures` lists them in order.
        """
        resolved = self.resolve_category(category)
        form = build_request_form(resolved, days=self.settings.window_days)
        log.info(
            f"[ACQUIRE START] {resolved.value}",
            extra={"category": resolved.value, "tiers": [t.name for t in self.tiers]},
        )

        if self._client is not None:
            return await self._run_chain(resolved, form, self._client, skip_tier)
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds), follow_redirects=True
        ) as client:
            return await self._run_chain(resolved, form, client, skip_tier)

    async def _run_chain(
        self,
        category: FundCategory,
        form: Dict[str, str],
        client: httpx.AsyncClient,
        skip_tier: Optional[asyncio.Event],
    ) -> FetchResult:
        ctx = AttemptContext(
            category=category, form=form, client=client, timeout_seconds=self.timeout_seconds
        )
        failures: List[TierFailure] = []
        for tier in self.tiers:
            outcome = await self._run_tier(tier, ctx, skip_tier)
            if outcome.ok:
                result = outcome.result
                if tier.writes_through and result.provenance is not Provenance.CACHED:
                    await self._write_through(result)
                log.info(
                    f"[ACQUIRE COMPLETE] {category.value} via {tier.name}",
                    extra={
                        "category": category.value,
                        "tier": tier.name,
                        "provenance": result.provenance.value,
                        "records": len(result.records),
                        "failed_tiers": [f.tier for f in failures],
                    },
                )
                return result
            failures.append(outcome.failure)

        log.error(
            f"[ACQUIRE FAILED] {category.value}: all tiers exhausted",
            extra={"category": category.value, "failures": [f.describe() for f in failures]},
        )
        raise DataUnavailable(failures)

    async def _run_tier(
        self,
        tier: AcquisitionTier,
        ctx: AttemptContext,
        skip_tier: Optional[asyncio.Event],
    ) -> TierOutcome:
        log.info(f"[TIER START] {tier.name}", extra={"tier": tier.name})
        start = time.perf_counter()

        attempt = asyncio.create_task(tier.attempt(ctx), name=f"tier:{tier.name}")
        waiters = {attempt}
        skip_waiter: Optional[asyncio.Task] = None
        if skip_tier is not None and tier.is_network:
            skip_waiter = asyncio.create_task(skip_tier.wait())
            waiters.add(skip_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=self.timeout_seconds, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if skip_waiter is not None:
                skip_waiter.cancel()
            if not attempt.done():
                attempt.cancel()

        elapsed = _round_float(time.perf_counter() - start)
        skipped = skip_waiter is not None and skip_waiter in done
        if skipped:
            skip_tier.clear()
        elif skip_waiter is None and skip_tier is not None and skip_tier.is_set():
            # Local tiers cannot be skipped; drop the request so it does not leak into the next call.
            log.debug(f"[TIER SKIP IGNORED] {tier.name}", extra={"tier": tier.name})
            skip_tier.clear()
        error: Optional[Exception] = None
        if attempt in done:
            try:
                result = attempt.result()
            except TierError as exc:
                error = exc
            except Exception as exc:  # noqa: BLE001 - any tier bug must still fall back
                log.exception(f"[TIER ERROR] {tier.name}", extra={"tier": tier.name})
                error = exc
            else:
                log.info(
                    f"[TIER SUCCESS] {tier.name}",
                    extra={
                        "tier": tier.name,
                        "records": len(result.records),
                        "provenance": result.provenance.value,
                        "elapsed_seconds": elapsed,
                    },
                )
                return TierOutcome(tier=tier.name, result=result)
        else:
            await asyncio.gather(attempt, return_exceptions=True)
            if skipped:
                error = TransportError("Attempt cancelled by caller")
            else:
                error = TransportError(f"No answer within {self.timeout_seconds:g}s")

        failure = TierFailure(
            tier=tier.name,
            kind=getattr(error, "kind", "unexpected"),
            message=str(error) or type(error).__name__,
            elapsed_seconds=elapsed,
        )
        log.warning(
            f"[TIER FAILED] {tier.name}",
            extra={
                "tier": tier.name,
                "kind": failure.kind,
                "error": failure.message,
                "elapsed_seconds": elapsed,
            },
        )
        return TierOutcome(tier=tier.name, failure=failure)

    async def _write_through(self, result: FetchResult) -> None:
        if self.store is None:
            return
        now = datetime.now(timezone.utc)
        rows = [to_store_row(record, updated_at=now) for record in result.records]
        try:
            written = await asyncio.to_thread(self.store.upsert, rows, "code")
        except StorageError as exc:
            log.warning(
                "Write-through to cache failed; serving the fetched data anyway",
                extra={"store": self.store.name, "error": str(exc)},
            )
            return
        log.info("Cache updated", extra={"store": self.store.name, "rows": written})


def build_orchestrator(
    settings: Optional[Settings] = None,
    store: Optional[CacheStore] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> FetchOrchestrator:
    """
    Wire the default three-tier chain around one Cache Store handle.
    """
    settings = settings or get_settings()
    store = store if store is not None else build_cache_store(settings)
    factories = _tier_factories(settings, store)
    tiers = [factories[name]() for name in DEFAULT_TIER_ORDER]
    return FetchOrchestrator(tiers, store=store, settings=settings, client=client)


__all__ = [
    "DEFAULT_TIER_ORDER",
    "FetchOrchestrator",
    "available_tiers",
    "build_orchestrator",
]
