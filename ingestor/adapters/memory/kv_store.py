"""
Memory key-value adapter.

In-process store with lazy expiry: an expired key is dropped when it is read,
and every write or stats call sweeps the keys that expired without being
read again. The clock is injectable so expiry can be exercised without
sleeping.
"""

import asyncio
import time
from typing import Any, Callable, Dict, Optional, Tuple

from ingestor.core.ports.kv_store import KeyValueStore


class MemoryKeyValueStore(KeyValueStore):

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # key -> (value, expires_at or None)
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        now = self._clock()
        expires_at = None if ttl_seconds is None else now + ttl_seconds
        async with self._lock:
            self._sweep(now)
            self._entries[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def get_stats(self) -> Dict[str, Any]:
        async with self._lock:
            self._sweep(self._clock())
            return {"type": "memory", "keys": len(self._entries)}

    def _sweep(self, now: float) -> None:
        expired = [
            key for key, (_, expires_at) in self._entries.items()
            if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            del self._entries[key]
