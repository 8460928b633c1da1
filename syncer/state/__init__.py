from syncer.state.chunk_index import ChunkIndex
from syncer.state.dirty_set import DirtySet
from syncer.state.store import StateStore

__all__ = ["ChunkIndex", "DirtySet", "StateStore"]
