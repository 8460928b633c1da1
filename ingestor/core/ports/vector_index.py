"""
Vector index port.

Records carry flat metadata. Filters are equality matches on metadata keys;
implementations must support at least tenantId, projectId and filePath.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ingestor.core.models.records import VectorMatch, VectorRecord


class VectorIndex(ABC):

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def upsert(self, records: List[VectorRecord]) -> None:
        """Insert or replace records by id. Raises StorageFailure."""
        pass

    @abstractmethod
    async def query(self, vector: List[float], top_k: int, filter: Optional[Dict[str, Any]] = None) -> List[VectorMatch]:
        """Nearest records by cosine similarity, best first."""
        pass

    @abstractmethod
    async def delete_where(self, filter: Dict[str, Any]) -> int:
        """Delete matching records; returns how many were removed."""
        pass

    @abstractmethod
    async def get_dimension(self) -> Optional[int]:
        """Configured embedding dimension, None when unconstrained."""
        pass

    @abstractmethod
    async def get_stats(self) -> Dict[str, Any]:
        pass
