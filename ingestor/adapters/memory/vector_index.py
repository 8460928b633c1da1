"""
Memory vector index adapter.

Brute-force cosine similarity over all records that pass the filter. Fine
for development and tests; use the pgvector adapter for real volumes.
"""

import asyncio
import math
from typing import Any, Dict, List, Optional

from ingestor.core.models.records import VectorMatch, VectorRecord
from ingestor.core.ports.vector_index import VectorIndex


def cosine_similarity(a: List[float], b: List[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


def _matches(metadata: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    if not filter:
        return True
    return all(metadata.get(key) == value for key, value in filter.items())


class MemoryVectorIndex(VectorIndex):

    def __init__(self, dimension: Optional[int] = None) -> None:
        self._dimension = dimension
        self._records: Dict[str, VectorRecord] = {}
        self._lock = asyncio.Lock()

    async def upsert(self, records: List[VectorRecord]) -> None:
        async with self._lock:
            for record in records:
                self._records[record.id] = record

    async def query(self, vector: List[float], top_k: int, filter: Optional[Dict[str, Any]] = None) -> List[VectorMatch]:
        async with self._lock:
            candidates = [r for r in self._records.values() if _matches(r.metadata, filter)]
        scored = [
            VectorMatch(id=r.id, score=cosine_similarity(vector, r.embedding), metadata=dict(r.metadata))
            for r in candidates
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    async def delete_where(self, filter: Dict[str, Any]) -> int:
        async with self._lock:
            doomed = [rid for rid, r in self._records.items() if _matches(r.metadata, filter)]
            for rid in doomed:
                del self._records[rid]
            return len(doomed)

    async def get(self, record_id: str) -> Optional[VectorRecord]:
        async with self._lock:
            return self._records.get(record_id)

    async def get_dimension(self) -> Optional[int]:
        return self._dimension

    async def get_stats(self) -> Dict[str, Any]:
        async with self._lock:
            return {"type": "memory", "records": len(self._records)}
