"""PostgreSQL + pgvector vector index adapter."""

import json
from typing import Any, Dict, List, Optional, Tuple

import asyncpg

from infra.exceptions import StorageFailure
from infra.logger import get_logger
from ingestor.adapters.postgres.connection import PostgresConnection
from ingestor.core.models.records import VectorMatch, VectorRecord
from ingestor.core.ports.vector_index import VectorIndex

log = get_logger("ingestor.storage.postgres.vectors")

_BACKEND_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError)

# metadata keys stored as their own columns
_COLUMNS = {"tenantId": "tenant_id", "projectId": "project_id", "filePath": "file_path"}


def _where(filter: Optional[Dict[str, Any]], first_param: int) -> Tuple[str, List[Any]]:
    if not filter:
        return "TRUE", []
    clauses: List[str] = []
    args: List[Any] = []
    for key, value in filter.items():
        n = first_param + len(args)
        column = _COLUMNS.get(key)
        if column is not None:
            clauses.append(f"{column} = ${n}")
            args.append(value)
        else:
            clauses.append(f"metadata->>${n} = ${n + 1}")
            args.extend([key, str(value)])
    return " AND ".join(clauses), args


class PgVectorIndex(VectorIndex):

    def __init__(self, connection: PostgresConnection) -> None:
        self._conn = connection

    async def initialize(self) -> None:
        await self._conn.initialize()

    async def close(self) -> None:
        await self._conn.close()

    async def upsert(self, records: List[VectorRecord]) -> None:
        if not records:
            return
        rows = [
            (
                r.id,
                r.metadata["tenantId"],
                r.metadata["projectId"],
                r.metadata["filePath"],
                json.dumps(r.metadata),
                r.embedding,
            )
            for r in records
        ]
        try:
            await self._conn.execute_many(
                """
                INSERT INTO chunk_vectors (id, tenant_id, project_id, file_path, metadata, embedding)
                VALUES ($1, $2, $3, $4, $5::jsonb, $6)
                ON CONFLICT (id) DO UPDATE SET
                    tenant_id = EXCLUDED.tenant_id,
                    project_id = EXCLUDED.project_id,
                    file_path = EXCLUDED.file_path,
                    metadata = EXCLUDED.metadata,
                    embedding = EXCLUDED.embedding
                """,
                rows,
            )
        except _BACKEND_ERRORS as e:
            log.error("postgres.vectors.upsert_failed", count=len(records), error=str(e))
            raise StorageFailure(f"vector upsert failed: {e}") from e
        log.info("postgres.vectors.upserted", count=len(records))

    async def query(self, vector: List[float], top_k: int, filter: Optional[Dict[str, Any]] = None) -> List[VectorMatch]:
        where, args = _where(filter, first_param=3)
        try:
            rows = await self._conn.execute_query(
                f"""
                SELECT id, metadata, 1 - (embedding <=> $1) AS score
                FROM chunk_vectors
                WHERE {where}
                ORDER BY embedding <=> $1
                LIMIT $2
                """,
                vector, top_k, *args,
                fetch="all",
            )
        except _BACKEND_ERRORS as e:
            raise StorageFailure(f"vector query failed: {e}") from e
        return [
            VectorMatch(id=row["id"], score=float(row["score"]), metadata=json.loads(row["metadata"]))
            for row in rows
        ]

    async def delete_where(self, filter: Dict[str, Any]) -> int:
        where, args = _where(filter, first_param=1)
        try:
            status = await self._conn.execute_query(f"DELETE FROM chunk_vectors WHERE {where}", *args)
        except _BACKEND_ERRORS as e:
            raise StorageFailure(f"vector delete failed: {e}") from e
        return int(status.split()[-1])

    async def get_dimension(self) -> Optional[int]:
        dimension = await self._conn.execute_query(
            """
            SELECT atttypmod
            FROM pg_attribute pa
            JOIN pg_class pc ON pa.attrelid = pc.oid
            WHERE pc.relname = 'chunk_vectors' AND pa.attname = 'embedding'
            """,
            fetch="val",
        )
        return dimension or None

    async def get_stats(self) -> Dict[str, Any]:
        count = await self._conn.execute_query("SELECT COUNT(*) FROM chunk_vectors", fetch="val")
        return {"type": "postgres", "records": count or 0}
