"""
CORS relay tier: call TEFAS through a public pass-through relay.

Only used when the trusted proxy is unreachable. Relays frequently answer with
an HTML block page instead of the upstream JSON; that case is reported as a
malformed response before any JSON parsing.
"""

from __future__ import annotations

from urllib.parse import quote

from fundboard.domain.models import FetchResult, Provenance
from fundboard.infrastructure.http import UPSTREAM_HEADERS, decode_payload, extract_records, post_form
from fundboard.normalizer import normalize_upstream
from fundboard.tiers.abstract import AbstractAcquisitionTier, AttemptContext


class CorsRelayTier(AbstractAcquisitionTier):
    """
    POST the upstream form to `relay_prefix + quote(upstream_url)`.
    """

    name: str = "cors_relay"
    description: str = "Direct TEFAS request through a CORS relay."

    def __init__(self, relay_prefix: str, upstream_url: str) -> None:
        self.relay_prefix = relay_prefix
        self.upstream_url = upstream_url

    @property
    def target_url(self) -> str:
        return self.relay_prefix + quote(self.upstream_url, safe="")

    async def attempt(self, ctx: AttemptContext) -> FetchResult:
        headers = {
            "Content-Type": UPSTREAM_HEADERS["Content-Type"],
            "X-Requested-With": UPSTREAM_HEADERS["X-Requested-With"],
        }
        response = await post_form(
            ctx.client, self.target_url, ctx.form, headers=headers, timeout=ctx.timeout_seconds
        )
        records = normalize_upstream(extract_records(decode_payload(response)))
        return FetchResult(records=records, provenance=Provenance.PROXIED, tier=self.name)


__all__ = ["CorsRelayTier"]
