"""
Key-value store port.

String keys and string values with optional expiry. Implementations raise
CacheUnavailableError when the backend cannot be reached; callers decide
whether that is a miss or a failure.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class KeyValueStore(ABC):

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Store a value. ttl_seconds=None keeps it until overwritten or deleted."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def get_stats(self) -> Dict[str, Any]:
        pass
