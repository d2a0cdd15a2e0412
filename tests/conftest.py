"""
Pytest configuration for fundboard.

Provides fixtures for:
- Settings with short tier timeouts and a temporary SQLite cache
- Upstream-shaped sample fund items
- An in-memory Cache Store double
- PostgreSQL connection details for the opt-in integration tests
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

import pytest

from fundboard.config import Settings
from fundboard.domain.errors import StorageError
from fundboard.infrastructure.cache_store import SqliteCacheStore


def upstream_item(code: str, **overrides: Any) -> Dict[str, Any]:
    """One record in the TEFAS comparison wire shape."""
    item: Dict[str, Any] = {
        "FONKODU": code,
        "FONUNADI": f"{code} Yatırım Fonu",
        "FIYAT": 1.5,
        "GUNLUKGETIRI": 0.4,
        "HAFTALIKGETIRI": 1.1,
        "AYLIKGETIRI": 3.2,
        "UCAYLIKGETIRI": 8.0,
        "ALTIAYLIKGETIRI": 15.5,
        "YILBASI": 20.0,
        "YILLIKGETIRI": 42.0,
        "UCYILLIKGETIRI": 180.0,
        "FONTOPLAMDEGER": 1_250_000.0,
        "KISISAYISI": 321,
    }
    item.update(overrides)
    return item


class InMemoryCacheStore:
    """Cache Store double keeping rows in a dict keyed by code."""

    name = "memory"

    def __init__(self, rows: Sequence[Mapping[str, Any]] = (), fail_reads: bool = False,
                 fail_writes: bool = False) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {row["code"]: dict(row) for row in rows}
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.upsert_calls: List[List[Dict[str, Any]]] = []

    def read_all(self) -> List[Dict[str, Any]]:
        if self.fail_reads:
            raise StorageError("memory store is unreachable")
        return [dict(row) for row in self.rows.values()]

    def upsert(self, rows: Sequence[Mapping[str, Any]], key_column: str = "code") -> int:
        self.upsert_calls.append([dict(row) for row in rows])
        if self.fail_writes:
            raise StorageError("memory store rejected the write")
        for row in rows:
            self.rows[row[key_column]] = dict(row)
        return len(rows)


@pytest.fixture
def sample_items() -> List[Dict[str, Any]]:
    return [
        upstream_item("AAA", GUNLUKGETIRI=1.2, YILLIKGETIRI=55.0),
        upstream_item("BBB", GUNLUKGETIRI=-0.3, YILLIKGETIRI=12.0),
        upstream_item("CCC", GUNLUKGETIRI=0.8, YILLIKGETIRI=80.0),
    ]


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """
    Settings fixture with short timeouts and a per-test SQLite cache file.
    """
    return Settings(
        proxy_url="http://proxy.test/api/funds",
        upstream_url="https://upstream.test/api/DB/BindComparisonFundReturns",
        relay_prefix="https://relay.test/?",
        tier_timeout_seconds=0.5,
        cache_backend="sqlite",
        sqlite_path=str(tmp_path / "funds.db"),
        log_level="DEBUG",
    )


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SqliteCacheStore:
    return SqliteCacheStore(tmp_path / "cache" / "funds.db")


@pytest.fixture
def memory_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture(scope="session")
def test_dsn() -> str:
    """
    Database connection string for integration tests.

    Can be overridden via environment variables in CI or local testing.
    """
    return (
        f"postgresql://{os.getenv('DB_USER', 'postgres')}:{os.getenv('DB_PASSWORD', 'postgres')}"
        f"@{os.getenv('DB_HOST', 'localhost')}:{os.getenv('DB_PORT', '5432')}"
        f"/{os.getenv('DB_NAME', 'fundboard')}"
    )


@pytest.fixture
def make_item():
    """Factory for upstream-shaped fund items."""
    return upstream_item


@pytest.fixture
def make_store():
    """Factory for in-memory Cache Store doubles."""
    return InMemoryCacheStore
