"""
Sync service: the server side of the sync protocol.

All operations are scoped by TenantScope. The remote root is only advanced
when a registration or phase 2 completes with status success, so a partial
round keeps reporting "changed" until the client retries it.
"""

from typing import Dict, List, Tuple

from infra.exceptions import StorageFailure
from infra.hashing import content_hash
from infra.logger import get_logger
from infra.schemas import (
    CheckRequest,
    CheckResponse,
    ChunkFields,
    ContentChunk,
    Phase1Request,
    Phase1Response,
    Phase2Request,
    Phase2Response,
    RegisterRequest,
    RegisterResponse,
    SearchHit,
    SearchRequest,
    SearchResponse,
    SyncStatus,
)
from ingestor.core.models.records import ChunkMeta, VectorMatch, is_zero_vector
from ingestor.core.ports.vector_index import VectorIndex
from ingestor.services.cache import TieredCache
from ingestor.services.derivation import DerivationRunner
from ingestor.services.indexing import ContentIndexer, build_record
from ingestor.services.tenancy import TenantScope

log = get_logger("ingestor.sync")

SEARCH_OVERFETCH = 3
QUERY_UNAVAILABLE = "Query embedding unavailable; results are empty"


def chunk_meta(chunk: ChunkFields, char_count: int) -> ChunkMeta:
    return ChunkMeta(
        hash=chunk.hash,
        file_path=chunk.file_path,
        type=chunk.type,
        language=chunk.language,
        lines=tuple(chunk.lines),
        name=chunk.name,
        char_count=char_count,
        extra=dict(chunk.metadata),
    )


def verified_contents(chunks: List[ContentChunk]) -> Tuple[List[Tuple[ChunkMeta, str]], List[str]]:
    """Split chunks into (meta, content) pairs whose content hashes to the declared hash, and errors."""
    verified: List[Tuple[ChunkMeta, str]] = []
    errors: List[str] = []
    for chunk in chunks:
        if content_hash(chunk.content) != chunk.hash:
            errors.append(f"{chunk.hash}: content does not match hash ({chunk.file_path})")
            continue
        verified.append((chunk_meta(chunk, len(chunk.content)), chunk.content))
    return verified, errors


class SyncService:

    def __init__(
        self,
        cache: TieredCache,
        indexer: ContentIndexer,
        runner: DerivationRunner,
        vectors: VectorIndex,
    ) -> None:
        self.cache = cache
        self.indexer = indexer
        self.runner = runner
        self.vectors = vectors

    async def register(self, scope: TenantScope, request: RegisterRequest) -> RegisterResponse:
        verified, errors = verified_contents(request.chunks)
        outcome = await self.indexer.index(scope, verified)
        await self.cache.dedup.add_many(outcome.stored)
        errors = errors + outcome.errors

        unique = {chunk.hash for chunk in request.chunks}
        status = outcome.status
        if status is SyncStatus.SUCCESS and errors:
            status = SyncStatus.PARTIAL
        if status is SyncStatus.SUCCESS:
            await self.cache.roots.set(scope, request.merkle_root)

        log.info(
            "sync.register",
            tenant=scope.tenant_id,
            project=scope.project_id,
            status=status.value,
            stored=len(outcome.stored),
            unique=len(unique),
        )
        return RegisterResponse(
            status=status,
            chunks_stored=len(outcome.stored),
            chunks_skipped=len(unique) - len(outcome.stored),
            derived_processed=outcome.derived_processed,
            cache_hits=outcome.cache_hits,
            errors=errors,
        )

    async def check_root(self, scope: TenantScope, request: CheckRequest) -> CheckResponse:
        remote = await self.cache.roots.get(scope)
        return CheckResponse(changed=remote != request.merkle_root, remote_root=remote)

    async def sync_phase1(self, scope: TenantScope, request: Phase1Request) -> Phase1Response:
        latest: Dict[str, ChunkMeta] = {}
        for chunk in request.chunks:
            latest[chunk.hash] = chunk_meta(chunk, chunk.char_count)
        hashes = list(latest)

        present = await self.cache.dedup.contains_many(hashes)
        derived = await self.cache.derived.get_many(h for h in hashes if present[h])

        # a cached hash still needs this tenant's own record
        records = [build_record(scope, latest[h], derived[h]) for h in hashes if h in derived]
        stored, failed, _ = await self.indexer.write_records(records)
        cached = set(stored)

        needed = [h for h in hashes if h not in cached]
        log.info(
            "sync.phase1",
            tenant=scope.tenant_id,
            project=scope.project_id,
            submitted=len(request.chunks),
            unique=len(hashes),
            cached=len(cached),
            needed=len(needed),
            record_failures=len(failed),
        )
        return Phase1Response(needed=needed, cached=[h for h in hashes if h in cached])

    async def sync_phase2(self, scope: TenantScope, request: Phase2Request) -> Phase2Response:
        verified, errors = verified_contents(request.chunks)

        removed = 0
        for file_path in dict.fromkeys(request.removed_paths):
            try:
                removed += await self.vectors.delete_where(scope.filter(filePath=file_path))
            except StorageFailure as e:
                errors.append(f"{file_path}: removal failed: {e}")

        outcome = await self.indexer.index(scope, verified)
        await self.cache.dedup.add_many(outcome.stored)
        errors.extend(outcome.errors)

        if not errors:
            status = SyncStatus.SUCCESS
        elif outcome.stored or removed:
            status = SyncStatus.PARTIAL
        else:
            status = SyncStatus.FAILED

        root = None
        if status is SyncStatus.SUCCESS and await self.cache.roots.set(scope, request.merkle_root):
            root = request.merkle_root

        log.info(
            "sync.phase2",
            tenant=scope.tenant_id,
            project=scope.project_id,
            status=status.value,
            received=len(outcome.stored),
            removed_records=removed,
            errors=len(errors),
        )
        return Phase2Response(
            status=status,
            received=outcome.stored,
            derived_processed=outcome.derived_processed,
            cache_hits=outcome.cache_hits,
            errors=errors,
            merkle_root=root,
        )

    async def search(self, scope: TenantScope, request: SearchRequest) -> SearchResponse:
        vector = await self.runner.embed_query(request.query)
        if is_zero_vector(vector):
            log.warning("sync.search.degenerate_query", tenant=scope.tenant_id, project=scope.project_id)
            return SearchResponse(results=[], warning=QUERY_UNAVAILABLE)

        matches = await self.vectors.query(vector, request.top_k * SEARCH_OVERFETCH, filter=scope.filter())
        owned = [m for m in matches if scope.owns(m.metadata)][:request.top_k]
        return SearchResponse(results=[_hit(m) for m in owned])


def _hit(match: VectorMatch) -> SearchHit:
    meta = match.metadata
    return SearchHit(
        id=match.id,
        hash=meta["hash"],
        score=match.score,
        summary=meta["summary"],
        file_path=meta["filePath"],
        name=meta.get("name"),
        type=meta["type"],
        language=meta["language"],
        lines=(meta["lineStart"], meta["lineEnd"]),
    )
