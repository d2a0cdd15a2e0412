"""
Integration tests for the PostgreSQL Cache Store.

These tests run against a real PostgreSQL instance and verify that:
1. The funds table is created on first use
2. Upserts overwrite rows by fund code
3. The cache snapshot tier reads the stored rows back

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
from datetime import datetime, timezone

import psycopg
import pytest

from fundboard.domain.models import Provenance
from fundboard.infrastructure.cache_store import TABLE_NAME, PostgresCacheStore
from fundboard.infrastructure.db_factory import PoolManager
from fundboard.normalizer import from_upstream, to_store_row
from fundboard.orchestrator import FetchOrchestrator
from fundboard.tiers import CacheSnapshotTier

STAMP = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        os.getenv("RUN_INTEGRATION_TESTS") != "1",
        reason="Set RUN_INTEGRATION_TESTS=1 to run against PostgreSQL",
    ),
]


@pytest.fixture
def pg_store(test_dsn: str):
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute(f"DROP TABLE IF EXISTS public.{TABLE_NAME}")
    except psycopg.OperationalError:
        pytest.skip("Database not available for integration tests")

    store = PostgresCacheStore(dsn_override=test_dsn, statement_timeout_ms=5_000)
    yield store
    PoolManager().close_all()


def test_upsert_and_read_back(pg_store: PostgresCacheStore, make_item) -> None:
    rows = [to_store_row(from_upstream(make_item(code)), updated_at=STAMP) for code in ("AAA", "BBB")]

    assert pg_store.upsert(rows) == 2

    stored = {row["code"]: row for row in pg_store.read_all()}
    assert sorted(stored) == ["AAA", "BBB"]
    assert stored["AAA"]["yearly_return"] == 42.0
    assert datetime.fromisoformat(stored["AAA"]["last_updated"]) == STAMP


def test_upsert_overwrites_by_code(pg_store: PostgresCacheStore, make_item) -> None:
    pg_store.upsert([to_store_row(from_upstream(make_item("AAA", FIYAT=1.0)), updated_at=STAMP)])
    pg_store.upsert([to_store_row(from_upstream(make_item("AAA", FIYAT=3.0)))])

    rows = pg_store.read_all()

    assert len(rows) == 1
    assert rows[0]["price"] == 3.0
    assert datetime.fromisoformat(pg_store.last_updated()) > STAMP


def test_snapshot_tier_serves_postgres_rows(pg_store: PostgresCacheStore, test_settings, make_item) -> None:
    pg_store.upsert([to_store_row(from_upstream(make_item("AAA")))])
    orchestrator = FetchOrchestrator([CacheSnapshotTier(pg_store)], settings=test_settings)

    result = orchestrator.acquire("all")

    assert result.provenance is Provenance.CACHED
    assert result.codes() == ["AAA"]
