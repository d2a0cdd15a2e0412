"""
HTTP helpers shared by the network tiers and the proxy app.

Wraps httpx form posts so transport problems surface as `TransportError`, and
classifies responses into the tier error taxonomy before any record mapping:
non-2xx status, markup error pages (detected before JSON parsing), unparseable
JSON, wrong top-level shape and empty record lists.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

import httpx

from fundboard.domain.errors import (
    EmptyResultError,
    MalformedResponseError,
    TransportError,
    UpstreamStatusError,
)

# TEFAS rejects requests that do not look like they come from its own page.
UPSTREAM_HEADERS: Dict[str, str] = {
    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
    "Accept": "application/json, text/javascript, */*; q=0.01",
    "X-Requested-With": "XMLHttpRequest",
    "Origin": "https://www.tefas.gov.tr",
    "Referer": "https://www.tefas.gov.tr/FonKarsilastirma.aspx",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
}

_SNIPPET_LENGTH = 120


def _snippet(text: str) -> str:
    text = " ".join(text.split())
    return text if len(text) <= _SNIPPET_LENGTH else text[:_SNIPPET_LENGTH] + "..."


async def post_form(
    client: httpx.AsyncClient,
    url: str,
    form: Mapping[str, str],
    headers: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> httpx.Response:
    """POST a form body, mapping every httpx transport failure to TransportError."""
    kwargs: Dict[str, Any] = {"data": dict(form), "headers": dict(headers or {})}
    if timeout is not None:
        kwargs["timeout"] = timeout
    try:
        return await client.post(url, **kwargs)
    except httpx.TimeoutException as exc:
        raise TransportError(f"Request to {url} timed out: {exc!r}") from exc
    except httpx.HTTPError as exc:
        raise TransportError(f"Request to {url} failed: {exc!r}") from exc


def decode_payload(response: httpx.Response) -> Dict[str, Any]:
    """
    Decode a JSON object body or raise the matching tier error.

    A body starting with a markup tag is reported as a blocked/error page
    without attempting to parse it.
    """
    text = response.text
    if not response.is_success:
        detail = _error_detail(text)
        raise UpstreamStatusError(
            f"HTTP {response.status_code} from {response.request.url}: {detail}",
            status_code=response.status_code,
        )

    stripped = text.lstrip()
    if not stripped:
        raise MalformedResponseError(f"Empty body from {response.request.url}")
    if stripped.startswith("<"):
        raise MalformedResponseError(
            f"Markup page instead of JSON from {response.request.url} "
            f"(request blocked or error page): {_snippet(stripped)}"
        )
    try:
        payload = json.loads(stripped)
    except ValueError as exc:
        raise MalformedResponseError(
            f"Invalid JSON from {response.request.url}: {_snippet(stripped)}"
        ) from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError(
            f"Expected a JSON object from {response.request.url}, got {type(payload).__name__}"
        )
    return payload


def extract_records(payload: Mapping[str, Any]) -> List[Any]:
    """Return the non-empty `data` list of a decoded payload."""
    data = payload.get("data")
    if data is None or data == []:
        raise EmptyResultError("Response carried no fund records")
    if not isinstance(data, list):
        raise MalformedResponseError(f"Expected 'data' to be a list, got {type(data).__name__}")
    return data


def _error_detail(text: str) -> str:
    """Best-effort summary of an error body ({error, stage} from the proxy, else a snippet)."""
    try:
        body = json.loads(text)
    except ValueError:
        return _snippet(text) or "<empty body>"
    if isinstance(body, dict) and "error" in body:
        stage = body.get("stage")
        return f"{body['error']} (stage: {stage})" if stage else str(body["error"])
    return _snippet(text)


__all__ = [
    "UPSTREAM_HEADERS",
    "decode_payload",
    "extract_records",
    "post_form",
]
