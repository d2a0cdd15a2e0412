"""
Cache Store realizations for the durable fund snapshot.

Both stores keep one `funds` table keyed by fund code and implement the same
contract: read every row, and upsert rows by key with full-row overwrite. The
orchestrator only sees the `CacheStore` protocol, never the backend.

- SqliteCacheStore: process-local file, one connection per operation.
- PostgresCacheStore: hosted table reached through a psycopg pool.

Each upsert batch runs in a single transaction using
`INSERT ... ON CONFLICT (code) DO UPDATE`, which is atomic per key on both
engines.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from fundboard.config import Settings, get_settings
from fundboard.domain.errors import StorageError
from fundboard.infrastructure.db_factory import (
    apply_statement_timeout,
    get_sync_connection,
    get_sync_pool,
)
from fundboard.normalizer import NUMERIC_FIELDS, STORE_COLUMNS
from fundboard.utils.logging import get_logger

log = get_logger(__name__)

TABLE_NAME = "funds"


@runtime_checkable
class CacheStore(Protocol):
    """
    Key-value persistence over rows, keyed by fund code.

    Attributes
    ----------
    name : str
        Short backend identifier used in logs and diagnostics.
    """

    name: str

    def read_all(self) -> List[Dict[str, Any]]:
        """Return every stored row."""
        ...

    def upsert(self, rows: Sequence[Mapping[str, Any]], key_column: str = "code") -> int:
        """Insert or fully overwrite rows by key; return the number of rows written."""
        ...


def _check_key_column(key_column: str) -> None:
    # Only the primary key carries a uniqueness constraint for ON CONFLICT.
    if key_column != "code":
        raise StorageError(f"Unsupported upsert key column '{key_column}'; only 'code' is unique")


def _ordered_values(rows: Sequence[Mapping[str, Any]]) -> List[tuple]:
    values = []
    for row in rows:
        missing = [c for c in STORE_COLUMNS if c not in row]
        if missing:
            raise StorageError(f"Row for {row.get('code')!r} is missing columns: {', '.join(missing)}")
        values.append(tuple(row[c] for c in STORE_COLUMNS))
    return values


def _upsert_sql(placeholder: str) -> str:
    columns = ", ".join(STORE_COLUMNS)
    params = ", ".join([placeholder] * len(STORE_COLUMNS))
    updates = ", ".join(f"{c} = excluded.{c}" for c in STORE_COLUMNS if c != "code")
    return (
        f"INSERT INTO {TABLE_NAME} ({columns}) VALUES ({params}) "
        f"ON CONFLICT (code) DO UPDATE SET {updates}"
    )


class SqliteCacheStore:
    """
    Durable cache in a local SQLite file.
    """

    name: str = "sqlite"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Connection with automatic commit/rollback and cleanup.
        """
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path, timeout=10)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Cannot open SQLite cache at {self.path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"SQLite cache operation failed: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        """Create the funds table if it does not exist."""
        numeric = ",\n".join(f"                {c} REAL NOT NULL DEFAULT 0" for c in NUMERIC_FIELDS)
        with self._connection() as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                code TEXT PRIMARY KEY,
                title TEXT NOT NULL DEFAULT '',
                category TEXT NOT NULL,
{numeric},
                last_updated TEXT NOT NULL
                )
            """)

    def read_all(self) -> List[Dict[str, Any]]:
        self.ensure_schema()
        with self._connection() as conn:
            cur = conn.execute(f"SELECT {', '.join(STORE_COLUMNS)} FROM {TABLE_NAME}")
            return [dict(row) for row in cur.fetchall()]

    def upsert(self, rows: Sequence[Mapping[str, Any]], key_column: str = "code") -> int:
        _check_key_column(key_column)
        if not rows:
            return 0
        values = _ordered_values(rows)
        self.ensure_schema()
        with self._connection() as conn:
            conn.executemany(_upsert_sql("?"), values)
        log.debug("SQLite cache upserted", extra={"rows": len(values), "path": str(self.path)})
        return len(values)

    def last_updated(self) -> Optional[str]:
        """Newest `last_updated` stamp, or None when the cache is empty."""
        self.ensure_schema()
        with self._connection() as conn:
            row = conn.execute(f"SELECT MAX(last_updated) FROM {TABLE_NAME}").fetchone()
            return row[0] if row else None


class PostgresCacheStore:
    """
    Durable cache in a hosted PostgreSQL table.
    """

    name: str = "postgres"

    def __init__(
        self,
        dsn_override: Optional[str] = None,
        pool_min_size: int = 1,
        pool_max_size: int = 4,
        statement_timeout_ms: Optional[int] = None,
    ) -> None:
        self._dsn_override = dsn_override
        self.pool_min_size = pool_min_size
        self.pool_max_size = pool_max_size
        self.statement_timeout_ms = (
            statement_timeout_ms
            if statement_timeout_ms is not None
            else get_settings().db_statement_timeout_ms
        )
        self._pool_instance: ConnectionPool | None = None
        self._schema_ready = False

    def _get_pool(self) -> ConnectionPool:
        if self._pool_instance is None:
            self._pool_instance = get_sync_pool(
                min_size=self.pool_min_size,
                max_size=self.pool_max_size,
                dsn=self._dsn_override,
            )
        return self._pool_instance

    def ensure_schema(self) -> None:
        """Create the funds table if it does not exist."""
        numeric = ", ".join(f"{c} DOUBLE PRECISION NOT NULL DEFAULT 0" for c in NUMERIC_FIELDS)
        sql = (
            f"CREATE TABLE IF NOT EXISTS public.{TABLE_NAME} ("
            "code TEXT PRIMARY KEY, title TEXT NOT NULL DEFAULT '', category TEXT NOT NULL, "
            f"{numeric}, last_updated TIMESTAMPTZ NOT NULL)"
        )
        try:
            with get_sync_connection(self._dsn_override) as conn:
                with conn.cursor() as cur:
                    cur.execute(sql)
        except psycopg.Error as exc:
            raise StorageError(f"Cannot create Postgres cache schema: {exc}") from exc
        self._schema_ready = True

    def _require_schema(self) -> None:
        if not self._schema_ready:
            self.ensure_schema()

    def read_all(self) -> List[Dict[str, Any]]:
        self._require_schema()
        sql = f"SELECT {', '.join(STORE_COLUMNS)} FROM public.{TABLE_NAME}"
        try:
            with self._get_pool().connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    apply_statement_timeout(cur, self.statement_timeout_ms)
                    cur.execute(sql)
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise StorageError(f"Postgres cache read failed: {exc}") from exc
        for row in rows:
            if row.get("last_updated") is not None and not isinstance(row["last_updated"], str):
                row["last_updated"] = row["last_updated"].isoformat()
        return rows

    def upsert(self, rows: Sequence[Mapping[str, Any]], key_column: str = "code") -> int:
        _check_key_column(key_column)
        if not rows:
            return 0
        values = _ordered_values(rows)
        self._require_schema()
        try:
            with self._get_pool().connection() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        apply_statement_timeout(cur, self.statement_timeout_ms)
                        cur.executemany(_upsert_sql("%s"), values)
        except psycopg.Error as exc:
            raise StorageError(f"Postgres cache upsert failed: {exc}") from exc
        log.debug("Postgres cache upserted", extra={"rows": len(values)})
        return len(values)

    def last_updated(self) -> Optional[str]:
        self._require_schema()
        try:
            with self._get_pool().connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(f"SELECT MAX(last_updated) FROM public.{TABLE_NAME}")
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise StorageError(f"Postgres cache read failed: {exc}") from exc
        value = row[0] if row else None
        return value.isoformat() if value is not None and not isinstance(value, str) else value


def build_cache_store(settings: Optional[Settings] = None) -> CacheStore:
    """Create the configured Cache Store. Call once at startup and pass the handle around."""
    settings = settings or get_settings()
    if settings.cache_backend == "postgres":
        return PostgresCacheStore(statement_timeout_ms=settings.db_statement_timeout_ms)
    return SqliteCacheStore(settings.sqlite_path)


__all__ = [
    "CacheStore",
    "PostgresCacheStore",
    "SqliteCacheStore",
    "TABLE_NAME",
    "build_cache_store",
]
