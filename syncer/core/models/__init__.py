from syncer.core.models.chunk import (
    ChunkMetadata,
    ChunkOrigin,
    ChunkReference,
    ChunkType,
    HashedChunk,
)
from syncer.core.models.state import DirtyQueue, MerkleLeaf, TreeState

__all__ = [
    "ChunkMetadata",
    "ChunkOrigin",
    "ChunkReference",
    "ChunkType",
    "HashedChunk",
    "DirtyQueue",
    "MerkleLeaf",
    "TreeState",
]
