"""
Content indexing pipeline shared by registration and phase 2.

    derived-result cache -> derivation (misses only) -> cache write
    -> one VectorRecord per (tenant, project, hash) -> upsert in sub-batches

Degenerate results are neither cached nor indexed. A failed sub-batch upsert
only fails the hashes in that sub-batch.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from infra.exceptions import StorageFailure
from infra.logger import get_logger
from infra.schemas import SyncStatus
from ingestor.core.models.records import ChunkMeta, DerivedResult, VectorRecord
from ingestor.core.ports.vector_index import VectorIndex
from ingestor.services.cache import TieredCache
from ingestor.services.derivation import DerivationRunner, DeriveItem
from ingestor.services.tenancy import TenantScope

log = get_logger("ingestor.indexing")


def build_record(scope: TenantScope, meta: ChunkMeta, result: DerivedResult) -> VectorRecord:
    return VectorRecord(
        id=scope.record_id(meta.hash),
        embedding=list(result.embedding),
        metadata={
            "tenantId": scope.tenant_id,
            "projectId": scope.project_id,
            "hash": meta.hash,
            "filePath": meta.file_path,
            "summary": result.summary,
            "type": meta.type,
            "name": meta.name,
            "language": meta.language,
            "lineStart": meta.lines[0],
            "lineEnd": meta.lines[1],
            "charCount": meta.char_count,
        },
    )


@dataclass
class IndexOutcome:
    stored: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    derived_processed: int = 0
    cache_hits: int = 0

    @property
    def status(self) -> SyncStatus:
        if not self.errors and not self.failed and not self.skipped:
            return SyncStatus.SUCCESS
        if not self.stored:
            return SyncStatus.FAILED
        return SyncStatus.PARTIAL


class ContentIndexer:

    def __init__(
        self,
        cache: TieredCache,
        runner: DerivationRunner,
        vectors: VectorIndex,
        vector_batch_size: int = 100,
    ) -> None:
        self.cache = cache
        self.runner = runner
        self.vectors = vectors
        self.vector_batch_size = vector_batch_size

    async def index(self, scope: TenantScope, chunks: List[Tuple[ChunkMeta, str]]) -> IndexOutcome:
        """Index (metadata, content) pairs whose content already matches its hash."""
        outcome = IndexOutcome()
        # last occurrence of a hash supplies the record's metadata
        latest: Dict[str, Tuple[ChunkMeta, str]] = {}
        for meta, content in chunks:
            latest[meta.hash] = (meta, content)
        if not latest:
            return outcome

        results = await self.cache.derived.get_many(latest)
        outcome.cache_hits = len(results)

        misses = [
            DeriveItem(hash=h, content=content, language=meta.language)
            for h, (meta, content) in latest.items()
            if h not in results
        ]
        if misses:
            derivation = await self.runner.derive(misses)
            outcome.derived_processed = len(derivation.results)
            outcome.failed.extend(derivation.failed)
            outcome.errors.extend(derivation.errors)
            await self.cache.put_derived_many(derivation.results)
            results.update(derivation.results)

        records: List[VectorRecord] = []
        for h, (meta, _) in latest.items():
            result = results.get(h)
            if result is None:
                continue
            if result.is_degenerate:
                outcome.skipped.append(h)
                continue
            records.append(build_record(scope, meta, result))

        if outcome.skipped:
            outcome.errors.append(f"{len(outcome.skipped)} chunk(s) fell back to placeholder derivation")

        stored, failed, errors = await self.write_records(records)
        outcome.stored.extend(stored)
        outcome.failed.extend(failed)
        outcome.errors.extend(errors)

        log.info(
            "indexing.done",
            tenant=scope.tenant_id,
            project=scope.project_id,
            unique=len(latest),
            cache_hits=outcome.cache_hits,
            derived=outcome.derived_processed,
            stored=len(outcome.stored),
            skipped=len(outcome.skipped),
            failed=len(outcome.failed),
        )
        return outcome

    async def write_records(self, records: List[VectorRecord]) -> Tuple[List[str], List[str], List[str]]:
        """Upsert sequential sub-batches. Returns (stored hashes, failed hashes, errors)."""
        stored: List[str] = []
        failed: List[str] = []
        errors: List[str] = []
        for start in range(0, len(records), self.vector_batch_size):
            batch = records[start:start + self.vector_batch_size]
            hashes = [r.metadata["hash"] for r in batch]
            try:
                await self.vectors.upsert(batch)
            except StorageFailure as e:
                log.error("indexing.upsert.failed", size=len(batch), error=str(e))
                failed.extend(hashes)
                errors.append(f"vector upsert of {len(batch)} record(s) failed: {e}")
                continue
            stored.extend(hashes)
        return stored, failed, errors
