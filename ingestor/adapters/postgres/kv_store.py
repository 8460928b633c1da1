"""PostgreSQL key-value adapter: one row per key, expiry checked on read."""

from typing import Any, Dict, Optional

import asyncpg

from infra.exceptions import CacheUnavailableError
from infra.logger import get_logger
from ingestor.adapters.postgres.connection import PostgresConnection
from ingestor.core.ports.kv_store import KeyValueStore

log = get_logger("ingestor.storage.postgres.kv")

_BACKEND_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError)


class PostgresKeyValueStore(KeyValueStore):

    def __init__(self, connection: PostgresConnection) -> None:
        self._conn = connection

    async def initialize(self) -> None:
        await self._conn.initialize()

    async def close(self) -> None:
        await self._conn.close()

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._conn.execute_query(
                """
                SELECT value FROM kv_entries
                WHERE key = $1 AND (expires_at IS NULL OR expires_at > now())
                """,
                key,
                fetch="val",
            )
        except _BACKEND_ERRORS as e:
            raise CacheUnavailableError(f"kv get failed: {e}") from e

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            await self._conn.execute_query(
                """
                INSERT INTO kv_entries (key, value, expires_at)
                VALUES ($1, $2, CASE WHEN $3::int IS NULL THEN NULL ELSE now() + make_interval(secs => $3::int) END)
                ON CONFLICT (key) DO UPDATE SET
                    value = EXCLUDED.value,
                    expires_at = EXCLUDED.expires_at
                """,
                key, value, ttl_seconds,
            )
        except _BACKEND_ERRORS as e:
            raise CacheUnavailableError(f"kv put failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._conn.execute_query("DELETE FROM kv_entries WHERE key = $1", key)
        except _BACKEND_ERRORS as e:
            raise CacheUnavailableError(f"kv delete failed: {e}") from e

    async def get_stats(self) -> Dict[str, Any]:
        count = await self._conn.execute_query("SELECT COUNT(*) FROM kv_entries", fetch="val")
        return {"type": "postgres", "keys": count or 0}
