from ingestor.core.models.records import (
    FALLBACK_SUMMARY,
    ChunkMeta,
    DerivedResult,
    VectorMatch,
    VectorRecord,
    is_zero_vector,
)

__all__ = [
    "FALLBACK_SUMMARY",
    "ChunkMeta",
    "DerivedResult",
    "VectorMatch",
    "VectorRecord",
    "is_zero_vector",
]
