"""
Trusted proxy endpoint (FastAPI).

Browsers cannot call TEFAS directly (no CORS headers, bot filtering), so this
small service forwards the comparison form server-side. Successful upstream
answers are written to the server's Cache Store; when the upstream fails the
endpoint answers from that store and says so through `source`.

Run with:
    fundboard serve --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from fundboard.config import Settings, get_settings
from fundboard.domain.errors import EmptyResultError, StorageError, TierError, TransportError
from fundboard.infrastructure.cache_store import CacheStore, build_cache_store
from fundboard.infrastructure.http import UPSTREAM_HEADERS, decode_payload, extract_records, post_form
from fundboard.normalizer import from_store_row, normalize_upstream, to_store_row, to_upstream
from fundboard.tiers.trusted_proxy import SOURCE_DATABASE, SOURCE_LIVE
from fundboard.utils.logging import get_logger

log = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
# Let the edge cache serve repeated dashboard loads for 10 minutes.
LIVE_CACHE_CONTROL = "s-maxage=600, stale-while-revalidate=300"

router = APIRouter(tags=["Funds"])


def _error_response(
    error: str, stage: str, debug: Dict[str, Any], status_code: int = 502
) -> JSONResponse:
    return JSONResponse(
        {"error": error, "stage": stage, "debug": debug},
        status_code=status_code,
        headers=CORS_HEADERS,
    )


async def _fetch_upstream(request: Request, form: Dict[str, str]) -> list:
    settings: Settings = request.app.state.settings
    # Must answer (live or from the store) before the caller's tier timeout expires.
    budget = settings.proxy_upstream_budget_seconds
    async with httpx.AsyncClient(
        transport=request.app.state.transport,
        timeout=httpx.Timeout(budget),
    ) as client:
        try:
            response = await asyncio.wait_for(
                post_form(client, settings.upstream_url, form, headers=UPSTREAM_HEADERS),
                timeout=budget,
            )
        except asyncio.TimeoutError as exc:
            raise TransportError(f"Upstream gave no answer within {budget:g}s") from exc
    try:
        items = extract_records(decode_payload(response))
    except EmptyResultError:
        return []
    return normalize_upstream(items)


async def _write_through(store: CacheStore, records: list) -> None:
    now = datetime.now(timezone.utc)
    rows = [to_store_row(record, updated_at=now) for record in records]
    try:
        await asyncio.to_thread(store.upsert, rows, "code")
    except StorageError as exc:
        log.warning("Proxy could not persist live funds", extra={"store": store.name, "error": str(exc)})


@router.options("/api/funds")
async def funds_preflight() -> Response:
    """Permissive CORS answer for cross-origin dashboard calls."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/api/funds")
async def funds(request: Request) -> JSONResponse:
    """
    Forward the comparison form to TEFAS; fall back to the durable store on failure.
    """
    store: CacheStore = request.app.state.store
    body = (await request.body()).decode("utf-8", errors="replace")
    form = dict(parse_qsl(body, keep_blank_values=True))

    try:
        records = await _fetch_upstream(request, form)
    except TierError as upstream_exc:
        log.warning(
            "Upstream failed; answering from the database",
            extra={"kind": upstream_exc.kind, "error": str(upstream_exc)},
        )
        debug: Dict[str, Any] = {"upstream": f"[{upstream_exc.kind}] {upstream_exc}"}
        try:
            rows = await asyncio.to_thread(store.read_all)
            stored = [from_store_row(row) for row in rows]
        except TierError as db_exc:
            debug["database"] = f"[{db_exc.kind}] {db_exc}"
            return _error_response(str(upstream_exc), stage="database", debug=debug)
        if not stored:
            debug["database"] = "no stored funds"
            return _error_response(str(upstream_exc), stage="database", debug=debug)
        return JSONResponse(
            {"data": [to_upstream(r) for r in stored], "source": SOURCE_DATABASE},
            headers={**CORS_HEADERS, "Cache-Control": "no-store"},
        )

    if records:
        await _write_through(store, records)
    return JSONResponse(
        {"data": [to_upstream(r) for r in records], "source": SOURCE_LIVE},
        headers={**CORS_HEADERS, "Cache-Control": LIVE_CACHE_CONTROL},
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers={**CORS_HEADERS, **(exc.headers or {})},
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[CacheStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the proxy application.

    Parameters
    ----------
    settings : Settings | None
        Upstream URL and timeout. Defaults to get_settings().
    store : CacheStore | None
        Durable store for write-through and fallback. Defaults to the configured backend.
    transport : httpx.AsyncBaseTransport | None
        Optional transport for upstream calls (tests inject httpx.MockTransport).
    """
    settings = settings or get_settings()
    app = FastAPI(title="fundboard proxy", version="0.1.0")
    app.state.settings = settings
    app.state.store = store if store is not None else build_cache_store(settings)
    app.state.transport = transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.include_router(router)
    return app


__all__ = ["CORS_HEADERS", "LIVE_CACHE_CONTROL", "create_app"]
