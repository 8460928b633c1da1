"""
Adapters package.

Implementations of the core ports: key-value store, vector index and
derivation service.
"""

from ingestor.adapters.storage_factory import StorageBundle, StorageFactory, get_storage

__all__ = [
    "StorageBundle",
    "StorageFactory",
    "get_storage",
]
