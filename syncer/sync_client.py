"""
Sync client.

Drives one sync round for a project:

    new project            -> register (full content)
    server has no root     -> register
    roots equal            -> nothing to do
    otherwise              -> phase 1 (hashes) then phase 2 (needed content)

The dirty set is cleared only when the round completed without losses.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from infra.hashing import content_hash
from infra.logger import get_logger
from infra.schemas import (
    ChunkDescriptor,
    CheckRequest,
    ContentChunk,
    Phase1Request,
    Phase2Request,
    RegisterRequest,
    SyncStatus,
)
from syncer.api_client import SyncApiClient
from syncer.config import SyncerConfig
from syncer.core.models.chunk import HashedChunk
from syncer.merkle import MerkleTree, MerkleTreeBuilder
from syncer.project import ProjectConfig, ProjectConfigManager, ProjectStatus
from syncer.reader import ChunkReader
from syncer.scanner import FileScanner
from syncer.segmenter import SegmenterConfig, SemanticSegmenter
from syncer.state import ChunkIndex, DirtySet, StateStore

log = get_logger("syncer.sync_client")


@dataclass
class SyncResult:
    project_id: str
    action: str  # "register" | "sync" | "unchanged"
    status: SyncStatus
    merkle_root: str
    files: int = 0
    chunks: int = 0
    needed: List[str] = field(default_factory=list)
    cached: List[str] = field(default_factory=list)
    received: List[str] = field(default_factory=list)
    removed_paths: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    dirty_cleared: bool = False


class SyncClient:

    def __init__(
        self,
        project_root: Path,
        api: SyncApiClient,
        segmenter: Optional[SemanticSegmenter] = None,
        state_dir_name: str = ".sync",
        extensions: Optional[Iterable[str]] = None,
    ) -> None:
        self.project_root = Path(project_root).resolve()
        self.api = api
        self.segmenter = segmenter or SemanticSegmenter()
        self.store = StateStore(self.project_root / state_dir_name)
        self.dirty = DirtySet(self.store)
        self.chunk_index = ChunkIndex(self.store)
        self.scanner = FileScanner(self.project_root, state_dir_name, extensions)
        self.tree_builder = MerkleTreeBuilder(self.project_root, self.store, self.scanner, self.dirty)
        self.reader = ChunkReader(self.project_root)
        self.projects = ProjectConfigManager(self.store)
        self._scanned = False

    @classmethod
    def from_config(cls, config: SyncerConfig, api: SyncApiClient) -> "SyncClient":
        segmenter = SemanticSegmenter(SegmenterConfig(
            max_chunk_size=config.MAX_CHUNK_SIZE,
            min_chunk_size=config.MIN_CHUNK_SIZE,
            fallback_line_size=config.FALLBACK_LINE_SIZE,
            fallback_overlap=config.FALLBACK_OVERLAP,
        ))
        return cls(config.PROJECT_ROOT, api, segmenter, config.STATE_DIR_NAME, config.EXTENSIONS)

    async def sync(self) -> SyncResult:
        project, status = self.projects.load_or_create()
        self.reader.reset()
        tree = self._tree()

        if status is ProjectStatus.NEW:
            return await self.register(project, tree)

        check = await self.api.check(CheckRequest(project_id=project.project_id, merkle_root=tree.root))
        if check.remote_root is None:
            log.info("sync.remote_root.missing", project_id=project.project_id)
            return await self.register(project, tree)

        if not check.changed:
            self.dirty.clear()
            log.info("sync.unchanged", project_id=project.project_id, root=tree.root)
            return SyncResult(
                project_id=project.project_id,
                action="unchanged",
                status=SyncStatus.SUCCESS,
                merkle_root=tree.root,
                dirty_cleared=True,
            )

        return await self._two_phase(project, tree)

    def _tree(self) -> MerkleTree:
        """
        The first round rescans the project to pick up edits made while the
        client was not running; later rounds use the tree kept current by
        update_file().
        """
        if self._scanned:
            return self.tree_builder.current()
        self._scanned = True
        return self.tree_builder.refresh()

    async def register(self, project: ProjectConfig, tree: MerkleTree) -> SyncResult:
        paths = [leaf.relative_path for leaf in tree.leaves]
        chunks = await self._segment(paths)

        contents: List[ContentChunk] = []
        errors: List[str] = []
        for chunk in chunks:
            content = await self.reader.read_chunk(chunk.reference)
            if content is None:
                errors.append(f"{chunk.reference.relative_path}: unreadable")
                continue
            contents.append(_content_chunk(chunk, content))

        response = await self.api.register(RegisterRequest(
            project_id=project.project_id,
            merkle_root=tree.root,
            chunks=contents,
        ))
        errors.extend(response.errors)

        cleared = response.status is SyncStatus.SUCCESS and not errors
        if cleared:
            self.dirty.clear()
            self.chunk_index.replace(_hashes_by_file(paths, chunks))

        log.info(
            "sync.register.done",
            project_id=project.project_id,
            status=response.status.value,
            stored=response.chunks_stored,
            skipped=response.chunks_skipped,
        )
        return SyncResult(
            project_id=project.project_id,
            action="register",
            status=response.status,
            merkle_root=tree.root,
            files=len(paths),
            chunks=len(chunks),
            errors=errors,
            dirty_cleared=cleared,
        )

    async def _two_phase(self, project: ProjectConfig, tree: MerkleTree) -> SyncResult:
        candidates = self.dirty.paths() or [leaf.relative_path for leaf in tree.leaves]
        present = [p for p in candidates if p in tree]
        removed = [p for p in candidates if p not in tree]

        # records are per hash, so a chunk of a removed file may still live in
        # another file; offering those files again moves the record to them
        sharing = self._sharing_removed(removed, present, tree)
        offered = present + sharing

        chunks = await self._segment(offered)
        phase1 = await self.api.sync_phase1(Phase1Request(
            project_id=project.project_id,
            merkle_root=tree.root,
            chunks=[_descriptor(chunk) for chunk in chunks],
        ))

        # phase 2 content is re-read from disk; a span whose text changed since
        # segmentation is not sent and keeps the round incomplete
        self.reader.reset()
        first_by_hash: Dict[str, HashedChunk] = {}
        for chunk in chunks:
            first_by_hash.setdefault(chunk.content_hash, chunk)

        contents: List[ContentChunk] = []
        errors: List[str] = []
        for digest in dict.fromkeys(phase1.needed):
            chunk = first_by_hash.get(digest)
            if chunk is None:
                errors.append(f"{digest}: requested but not offered")
                continue
            content = await self.reader.read_chunk(chunk.reference)
            if content is None or content_hash(content) != digest:
                errors.append(f"{chunk.reference.relative_path}: changed during sync")
                continue
            contents.append(_content_chunk(chunk, content))

        phase2 = await self.api.sync_phase2(Phase2Request(
            project_id=project.project_id,
            merkle_root=tree.root,
            chunks=contents,
            removed_paths=removed,
        ))
        errors.extend(phase2.errors)

        status = phase2.status
        if status is SyncStatus.SUCCESS and errors:
            status = SyncStatus.PARTIAL
        cleared = status is SyncStatus.SUCCESS
        if cleared:
            self.dirty.clear()
            self.chunk_index.update(_hashes_by_file(offered, chunks), removed=removed)

        log.info(
            "sync.two_phase.done",
            project_id=project.project_id,
            files=len(present),
            removed=len(removed),
            sharing=len(sharing),
            chunks=len(chunks),
            needed=len(phase1.needed),
            cached=len(phase1.cached),
            received=len(phase2.received),
            status=status.value,
        )
        return SyncResult(
            project_id=project.project_id,
            action="sync",
            status=status,
            merkle_root=tree.root,
            files=len(present),
            chunks=len(chunks),
            needed=list(phase1.needed),
            cached=list(phase1.cached),
            received=list(phase2.received),
            removed_paths=removed,
            errors=errors,
            dirty_cleared=cleared,
        )

    def _sharing_removed(self, removed: List[str], present: List[str], tree: MerkleTree) -> List[str]:
        """Unchanged files holding chunks of the removed files."""
        if not removed:
            return []
        skip = set(present) | set(removed)
        if not self.chunk_index.known:
            log.info("sync.chunk_index.missing", removed=len(removed))
            return [leaf.relative_path for leaf in tree.leaves if leaf.relative_path not in skip]

        gone: Set[str] = set()
        for relative_path in removed:
            gone.update(self.chunk_index.hashes(relative_path) or ())
        return [p for p in self.chunk_index.sharing(gone, exclude=skip) if p in tree]

    async def _segment(self, paths: List[str]) -> List[HashedChunk]:
        chunks: List[HashedChunk] = []
        for relative_path in paths:
            text = await self.reader.read_file(relative_path)
            if text is None:
                log.warning("sync.segment.unreadable", path=relative_path)
                continue
            chunks.extend(self.segmenter.segment(text, relative_path))
        return chunks


def _descriptor(chunk: HashedChunk) -> ChunkDescriptor:
    return ChunkDescriptor.model_validate(chunk.to_sync_payload())


def _content_chunk(chunk: HashedChunk, content: str) -> ContentChunk:
    payload = chunk.to_sync_payload()
    payload.pop("charCount")
    payload["content"] = content
    return ContentChunk.model_validate(payload)


def _hashes_by_file(paths: List[str], chunks: List[HashedChunk]) -> Dict[str, List[str]]:
    files: Dict[str, List[str]] = {path: [] for path in paths}
    for chunk in chunks:
        held = files.setdefault(chunk.reference.relative_path, [])
        if chunk.content_hash not in held:
            held.append(chunk.content_hash)
    return files
