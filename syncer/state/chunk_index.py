"""Chunk hashes per file as of the last successful sync."""

from typing import Dict, Iterable, List, Optional, Set

from infra.logger import get_logger
from syncer.state.store import StateStore

log = get_logger("syncer.state.chunk_index")


class ChunkIndex:
    """
    Lets the client find which surviving files still hold the chunks of a
    removed file. Without an index (first run, lost state) nothing is known,
    and callers have to treat every file as possibly sharing.
    """

    def __init__(self, store: StateStore):
        self._store = store
        self._files: Optional[Dict[str, List[str]]] = store.load_chunk_index()

    @property
    def known(self) -> bool:
        return self._files is not None

    def hashes(self, relative_path: str) -> Optional[List[str]]:
        if self._files is None:
            return None
        return self._files.get(relative_path)

    def sharing(self, hashes: Set[str], exclude: Iterable[str] = ()) -> List[str]:
        """Paths, other than exclude, holding at least one of hashes."""
        if self._files is None or not hashes:
            return []
        skip = set(exclude)
        return sorted(
            path for path, held in self._files.items()
            if path not in skip and not hashes.isdisjoint(held)
        )

    def replace(self, files: Dict[str, List[str]]) -> None:
        self._files = {path: list(hashes) for path, hashes in files.items()}
        self._store.save_chunk_index(self._files)
        log.debug("chunk_index.saved", files=len(self._files))

    def update(self, files: Dict[str, List[str]], removed: Iterable[str] = ()) -> None:
        merged = dict(self._files or {})
        for path in removed:
            merged.pop(path, None)
        merged.update(files)
        self.replace(merged)
