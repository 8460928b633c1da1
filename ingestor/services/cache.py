"""
Tiered cache over the key-value store.

    chunkHash:{hash}                 dedup presence, TTL refreshed on hit
    embedding:{hash}                 derived result, shared by all tenants
    merkleRoot:{tenant}:{project}    last fully synced root, no TTL

A failing key-value store degrades every read to a miss and every write to
a logged no-op. Correctness never depends on the cache.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from infra.exceptions import CacheUnavailableError
from infra.logger import get_logger
from ingestor.core.models.records import DerivedResult
from ingestor.core.ports.kv_store import KeyValueStore
from ingestor.services.background import BackgroundTasks
from ingestor.services.tenancy import TenantScope

log = get_logger("ingestor.cache")


class DedupCache:
    PREFIX = "chunkHash:"

    def __init__(self, kv: KeyValueStore, ttl_seconds: int, background: BackgroundTasks) -> None:
        self._kv = kv
        self._ttl = ttl_seconds
        self._background = background

    async def contains(self, content_hash: str) -> bool:
        try:
            hit = await self._kv.get(self.PREFIX + content_hash) is not None
        except CacheUnavailableError as e:
            log.warning("cache.dedup.unavailable", hash=content_hash, error=str(e))
            return False
        if hit:
            self._background.submit(self._refresh(content_hash), name=f"dedup-refresh:{content_hash[:12]}")
        return hit

    async def contains_many(self, hashes: Iterable[str]) -> Dict[str, bool]:
        unique = list(dict.fromkeys(hashes))
        results = await asyncio.gather(*(self.contains(h) for h in unique))
        return dict(zip(unique, results))

    async def add(self, content_hash: str) -> None:
        try:
            await self._kv.put(self.PREFIX + content_hash, "1", self._ttl)
        except CacheUnavailableError as e:
            log.warning("cache.dedup.write_failed", hash=content_hash, error=str(e))

    async def add_many(self, hashes: Iterable[str]) -> None:
        await asyncio.gather(*(self.add(h) for h in dict.fromkeys(hashes)))

    async def _refresh(self, content_hash: str) -> None:
        await self._kv.put(self.PREFIX + content_hash, "1", self._ttl)


class DerivedResultCache:
    PREFIX = "embedding:"

    def __init__(self, kv: KeyValueStore, ttl_seconds: int) -> None:
        self._kv = kv
        self._ttl = ttl_seconds

    async def get(self, content_hash: str) -> Optional[DerivedResult]:
        try:
            raw = await self._kv.get(self.PREFIX + content_hash)
        except CacheUnavailableError as e:
            log.warning("cache.derived.unavailable", hash=content_hash, error=str(e))
            return None
        if raw is None:
            return None
        try:
            result = DerivedResult.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            log.warning("cache.derived.corrupt", hash=content_hash, error=str(e))
            return None
        return None if result.is_degenerate else result

    async def get_many(self, hashes: Iterable[str]) -> Dict[str, DerivedResult]:
        unique = list(dict.fromkeys(hashes))
        results = await asyncio.gather(*(self.get(h) for h in unique))
        return {h: r for h, r in zip(unique, results) if r is not None}

    async def put(self, content_hash: str, result: DerivedResult) -> bool:
        if result.is_degenerate:
            return False
        try:
            await self._kv.put(self.PREFIX + content_hash, result.to_json(), self._ttl)
        except CacheUnavailableError as e:
            log.warning("cache.derived.write_failed", hash=content_hash, error=str(e))
            return False
        return True


class RootRegistry:

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    async def get(self, scope: TenantScope) -> Optional[str]:
        try:
            return await self._kv.get(scope.root_key)
        except CacheUnavailableError as e:
            log.warning("cache.root.unavailable", key=scope.root_key, error=str(e))
            return None

    async def set(self, scope: TenantScope, root: str) -> bool:
        try:
            await self._kv.put(scope.root_key, root)
        except CacheUnavailableError as e:
            log.warning("cache.root.write_failed", key=scope.root_key, error=str(e))
            return False
        return True


@dataclass
class TieredCache:
    dedup: DedupCache
    derived: DerivedResultCache
    roots: RootRegistry

    @classmethod
    def build(
        cls,
        kv: KeyValueStore,
        background: BackgroundTasks,
        dedup_ttl_seconds: int,
        derived_ttl_seconds: int,
    ) -> "TieredCache":
        return cls(
            dedup=DedupCache(kv, dedup_ttl_seconds, background),
            derived=DerivedResultCache(kv, derived_ttl_seconds),
            roots=RootRegistry(kv),
        )

    async def put_derived_many(self, results: Dict[str, DerivedResult]) -> List[str]:
        """Write every non-degenerate result; returns the hashes actually cached."""
        hashes = list(results)
        written = await asyncio.gather(*(self.derived.put(h, results[h]) for h in hashes))
        return [h for h, ok in zip(hashes, written) if ok]
