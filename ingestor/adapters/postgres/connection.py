"""
PostgreSQL connection pool management.

One pool serves both the key-value table and the vector table. Every pooled
connection gets the pgvector codec registered on creation.
"""

import asyncio
from typing import Any, List, Optional, Sequence

import asyncpg
from pgvector.asyncpg import register_vector
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from infra.logger import get_logger
from ingestor.config.storage import storage as storage_config

log = get_logger("ingestor.storage.postgres.connection")


class PostgresConnection:
    """Manages PostgreSQL connection pool."""

    def __init__(self, operation_timeout: float = 30.0, dimensions: Optional[int] = None) -> None:
        self._pool: Optional[asyncpg.Pool] = None
        self._operation_timeout = operation_timeout
        self._dimensions = dimensions or storage_config.PGVECTOR_DIMENSIONS
        self._init_lock = asyncio.Lock()

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool. Raises error if not initialized."""
        if self._pool is None:
            raise RuntimeError("Database not initialized")
        return self._pool

    async def initialize(self) -> None:
        """Initialize connection pool and database schema."""
        async with self._init_lock:
            await self._init_pool()

    @staticmethod
    def _dsn() -> str:
        return (
            f"postgresql://{storage_config.POSTGRES_USER}:{storage_config.POSTGRES_PASSWORD}"
            f"@{storage_config.POSTGRES_HOST}:{storage_config.POSTGRES_PORT}/{storage_config.POSTGRES_DB}"
        )

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((OSError, asyncpg.PostgresConnectionError)),
        reraise=True,
    )
    async def _init_pool(self) -> None:
        if self._pool is not None:
            return

        log.info("postgres.init.start", **storage_config.to_dict_public())

        # the extension must exist before the pool's per-connection codec setup
        conn = await asyncpg.connect(self._dsn(), timeout=30.0)
        try:
            await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
            await register_vector(conn)
            await self._create_schema(conn)
        finally:
            await conn.close()

        try:
            self._pool = await asyncpg.create_pool(
                self._dsn(),
                min_size=2,
                max_size=10,
                timeout=30.0,
                command_timeout=self._operation_timeout,
                init=register_vector,
            )
        except Exception as e:
            log.error("postgres.init.failed", error=str(e))
            self._pool = None
            raise
        log.info("postgres.init.complete")

    async def _create_schema(self, conn: asyncpg.Connection) -> None:
        log.info("postgres.create_schema.start", dimensions=self._dimensions)

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_entries (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                expires_at TIMESTAMPTZ
            );
        """)

        await conn.execute(f"""
            CREATE TABLE IF NOT EXISTS chunk_vectors (
                id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL,
                project_id TEXT NOT NULL,
                file_path TEXT NOT NULL,
                metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                embedding vector({self._dimensions}) NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_chunk_vectors_scope ON chunk_vectors(tenant_id, project_id);
            CREATE INDEX IF NOT EXISTS idx_chunk_vectors_file ON chunk_vectors(tenant_id, project_id, file_path);
        """)

        log.info("postgres.create_schema.complete")

    async def execute_query(self, query: str, *args, fetch: Optional[str] = None, timeout: float = 10.0) -> Any:
        """Execute a query with logging and timeout. fetch: None | 'val' | 'row' | 'all'."""
        await self.initialize()

        try:
            log.debug("postgres.query.start", query=query[:50])

            async with asyncio.timeout(timeout):
                async with self.pool.acquire(timeout=5.0) as conn:
                    match fetch:
                        case "val":
                            return await conn.fetchval(query, *args)
                        case "row":
                            return await conn.fetchrow(query, *args)
                        case "all":
                            return await conn.fetch(query, *args)
                        case _:
                            return await conn.execute(query, *args)

        except TimeoutError:
            log.error("postgres.timeout", query=query[:50], timeout=timeout)
            raise TimeoutError(f"Database operation timed out after {timeout}s")
        except Exception as e:
            log.error("postgres.query_error", error=str(e), query=query[:50])
            raise

    async def execute_many(self, query: str, rows: List[Sequence[Any]], timeout: float = 30.0) -> None:
        await self.initialize()
        async with asyncio.timeout(timeout):
            async with self.pool.acquire(timeout=5.0) as conn:
                await conn.executemany(query, rows)

    async def close(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None
