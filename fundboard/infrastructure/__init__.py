"""
Infrastructure package for fundboard.

Centralizes I/O concerns: the Cache Store realizations (SQLite, PostgreSQL),
database connection pooling and HTTP response classification. Keep this layer
focused on I/O and resource management, decoupled from tier/orchestrator logic.
"""

from fundboard.infrastructure.cache_store import (
    CacheStore,
    PostgresCacheStore,
    SqliteCacheStore,
    build_cache_store,
)
from fundboard.infrastructure.db_factory import (
    build_dsn,
    get_sync_connection,
    get_sync_pool,
)
from fundboard.infrastructure.http import (
    UPSTREAM_HEADERS,
    decode_payload,
    extract_records,
    post_form,
)

__all__ = [
    "CacheStore",
    "PostgresCacheStore",
    "SqliteCacheStore",
    "UPSTREAM_HEADERS",
    "build_cache_store",
    "build_dsn",
    "decode_payload",
    "extract_records",
    "get_sync_connection",
    "get_sync_pool",
    "post_form",
]
