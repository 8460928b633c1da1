"""
JSON persistence for client state.

Everything lives under <project>/<state dir>/:
    project.json       project identity
    merkle-state.json  last built tree
    dirty-queue.json   paths changed since the last successful sync
    chunk-index.json   chunk hashes per file as last synced
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from infra.logger import get_logger
from syncer.core.models.state import DirtyQueue, TreeState

log = get_logger("syncer.state.store")

PROJECT_FILE = "project.json"
TREE_FILE = "merkle-state.json"
DIRTY_FILE = "dirty-queue.json"
CHUNK_INDEX_FILE = "chunk-index.json"


class StateStore:

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)

    def load_tree(self) -> Optional[TreeState]:
        data = self._read(TREE_FILE)
        return None if data is None else TreeState.from_dict(data)

    def save_tree(self, state: TreeState) -> None:
        self._write(TREE_FILE, state.to_dict())

    def load_dirty(self) -> DirtyQueue:
        data = self._read(DIRTY_FILE)
        return DirtyQueue() if data is None else DirtyQueue.from_dict(data)

    def save_dirty(self, queue: DirtyQueue) -> None:
        self._write(DIRTY_FILE, queue.to_dict())

    def load_chunk_index(self) -> Optional[Dict[str, List[str]]]:
        data = self._read(CHUNK_INDEX_FILE)
        return None if data is None else {path: list(hashes) for path, hashes in data.get("files", {}).items()}

    def save_chunk_index(self, files: Dict[str, List[str]]) -> None:
        self._write(CHUNK_INDEX_FILE, {"files": files})

    def load_project(self) -> Optional[Dict[str, Any]]:
        return self._read(PROJECT_FILE)

    def save_project(self, data: Dict[str, Any]) -> None:
        self._write(PROJECT_FILE, data)

    def _read(self, name: str) -> Optional[Dict[str, Any]]:
        path = self.state_dir / name
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            log.warning("state.store.corrupt", file=str(path), error=str(e))
            return None

    def _write(self, name: str, data: Dict[str, Any]) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        path = self.state_dir / name
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, path)
