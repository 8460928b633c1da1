from .kv_store import MemoryKeyValueStore
from .vector_index import MemoryVectorIndex

__all__ = ["MemoryKeyValueStore", "MemoryVectorIndex"]
