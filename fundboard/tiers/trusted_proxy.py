"""
Trusted proxy tier: the server-side endpoint fronting TEFAS.

The proxy forwards the form body to the upstream and, when the upstream is
down, answers from its own durable store. Its self-reported `source` decides
the provenance of the result.
"""

from __future__ import annotations

from fundboard.domain.models import FetchResult, Provenance
from fundboard.infrastructure.http import decode_payload, extract_records, post_form
from fundboard.normalizer import normalize_upstream
from fundboard.tiers.abstract import AbstractAcquisitionTier, AttemptContext
from fundboard.utils.logging import get_logger

log = get_logger(__name__)

SOURCE_LIVE = "tefas-live"
SOURCE_DATABASE = "database-fallback"

_PROXY_SOURCES = {
    SOURCE_LIVE: Provenance.LIVE,
    SOURCE_DATABASE: Provenance.CACHED,
}


class TrustedProxyTier(AbstractAcquisitionTier):
    """
    POST the upstream form to the trusted proxy endpoint.
    """

    name: str = "trusted_proxy"
    description: str = "Server-side proxy with its own database fallback."

    def __init__(self, url: str) -> None:
        self.url = url

    async def attempt(self, ctx: AttemptContext) -> FetchResult:
        response = await post_form(
            ctx.client,
            self.url,
            ctx.form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=ctx.timeout_seconds,
        )
        payload = decode_payload(response)
        records = normalize_upstream(extract_records(payload))

        source = payload.get("source")
        provenance = _PROXY_SOURCES.get(source, Provenance.LIVE)
        if source not in _PROXY_SOURCES:
            log.warning(
                "Proxy reported an unknown source; treating as live",
                extra={"tier": self.name, "source": source},
            )
        return FetchResult(records=records, provenance=provenance, tier=self.name)


__all__ = ["SOURCE_DATABASE", "SOURCE_LIVE", "TrustedProxyTier"]
