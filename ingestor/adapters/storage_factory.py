"""
Storage factory.

Builds the key-value store and the vector index for the configured backend
(memory or PostgreSQL/pgvector). Both PostgreSQL adapters share one pool.
"""

from dataclasses import dataclass
from typing import Optional

from infra.logger import get_logger
from ingestor.adapters.memory.kv_store import MemoryKeyValueStore
from ingestor.adapters.memory.vector_index import MemoryVectorIndex
from ingestor.adapters.postgres.connection import PostgresConnection
from ingestor.adapters.postgres.kv_store import PostgresKeyValueStore
from ingestor.adapters.postgres.vector_index import PgVectorIndex
from ingestor.config.storage import storage as storage_config
from ingestor.core.ports.kv_store import KeyValueStore
from ingestor.core.ports.vector_index import VectorIndex

log = get_logger("ingestor.storage.factory")


@dataclass
class StorageBundle:
    kv: KeyValueStore
    vectors: VectorIndex

    async def initialize(self) -> None:
        await self.kv.initialize()
        await self.vectors.initialize()

    async def close(self) -> None:
        await self.kv.close()
        await self.vectors.close()


class StorageFactory:

    @staticmethod
    def create() -> StorageBundle:
        log.info("storage.factory.config", **storage_config.to_dict_public())
        storage_type = (
            storage_config.STORAGE_TYPE.lower()
            if isinstance(storage_config.STORAGE_TYPE, str)
            else storage_config.STORAGE_TYPE
        )

        match storage_type:
            case "pg" | "postgres" | "postgresql":
                connection = PostgresConnection(
                    operation_timeout=storage_config.POSTGRES_OPERATION_TIMEOUT,
                    dimensions=storage_config.PGVECTOR_DIMENSIONS,
                )
                return StorageBundle(PostgresKeyValueStore(connection), PgVectorIndex(connection))
            case None | "mem" | "memory" | "in-memory":
                return StorageBundle(MemoryKeyValueStore(), MemoryVectorIndex())
            case _:
                raise ValueError(
                    f"Unsupported storage type: {repr(storage_config.STORAGE_TYPE)}. "
                    f"Supported values: 'pg', 'postgres', 'postgresql', 'mem', 'memory', 'in-memory', None"
                )


_storage_instance: Optional[StorageBundle] = None


def get_storage() -> StorageBundle:
    """Get or create the process-wide storage bundle."""
    global _storage_instance
    if _storage_instance is None:
        _storage_instance = StorageFactory.create()
    return _storage_instance
